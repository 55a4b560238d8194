import pytest

from bingoparty.backend.win import WIN_PATTERNS, has_won, winning_patterns


def test_win_patterns_cover_rows_columns_and_diagonals() -> None:
    assert len(WIN_PATTERNS) == 12
    assert frozenset({0, 1, 2, 3, 4}) in WIN_PATTERNS
    assert frozenset({2, 7, 12, 17, 22}) in WIN_PATTERNS
    assert frozenset({0, 6, 12, 18, 24}) in WIN_PATTERNS
    assert frozenset({4, 8, 12, 16, 20}) in WIN_PATTERNS
    assert all(len(pattern) == 5 for pattern in WIN_PATTERNS)


@pytest.mark.parametrize("pattern", WIN_PATTERNS)
def test_has_won_for_every_pattern_with_extra_marks(pattern: frozenset[int]) -> None:
    marks = set(pattern) | {12}

    assert has_won(pattern) is True
    assert has_won(marks) is True


@pytest.mark.parametrize("pattern", WIN_PATTERNS)
def test_has_won_false_when_any_cell_of_pattern_missing(pattern: frozenset[int]) -> None:
    for missing in pattern:
        assert has_won(set(pattern) - {missing}) is False


def test_has_won_false_when_one_cell_removed_from_every_pattern() -> None:
    marks = set(range(25))
    for pattern in WIN_PATTERNS:
        if pattern <= marks:
            marks.discard(min(pattern))

    assert has_won(marks) is False
    assert winning_patterns(marks) == []


def test_has_won_false_for_free_cell_only() -> None:
    assert has_won({12}) is False
    assert has_won([]) is False


def test_winning_patterns_lists_each_completed_line() -> None:
    marks = {0, 1, 2, 3, 4, 5, 10, 15, 20}

    lines = winning_patterns(marks)

    assert frozenset({0, 1, 2, 3, 4}) in lines
    assert frozenset({0, 5, 10, 15, 20}) in lines
    assert len(lines) == 2
