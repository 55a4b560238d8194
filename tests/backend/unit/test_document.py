from bingoparty.backend.document import (
    SessionUpdate,
    apply_update,
    check_expectations,
    first_failed_expectation,
    get_path,
)


def _state() -> dict:
    return {
        "status": "playing",
        "winnerName": None,
        "drawnHistory": [5, 17],
        "players": {"a": {"displayName": "Ann", "marks": [12]}},
    }


def test_get_path_reads_nested_fields_and_missing_as_none() -> None:
    state = _state()

    assert get_path(state, "players.a.displayName") == "Ann"
    assert get_path(state, "players.b.marks") is None
    assert get_path(state, "winnerName") is None


def test_apply_update_writes_only_named_fields_without_mutating_input() -> None:
    state = _state()

    next_state = apply_update(state, SessionUpdate(set={"players.a.marks": [0, 12]}))

    assert next_state["players"]["a"]["marks"] == [0, 12]
    assert next_state["players"]["a"]["displayName"] == "Ann"
    assert state["players"]["a"]["marks"] == [12]


def test_apply_update_creates_missing_subtree() -> None:
    next_state = apply_update(_state(), SessionUpdate(set={"players.b": {"displayName": "Bo", "marks": [12]}}))

    assert set(next_state["players"]) == {"a", "b"}


def test_union_append_skips_values_already_present() -> None:
    update = SessionUpdate(union={"drawnHistory": [17, 40]})

    once = apply_update(_state(), update)
    twice = apply_update(once, update)

    assert once["drawnHistory"] == [5, 17, 40]
    assert twice["drawnHistory"] == [5, 17, 40]


def test_union_append_on_missing_field_starts_new_list() -> None:
    next_state = apply_update({}, SessionUpdate(union={"drawnHistory": [3]}))

    assert next_state["drawnHistory"] == [3]


def test_expectations_compare_against_current_values() -> None:
    state = _state()

    assert check_expectations(state, SessionUpdate(expect={"winnerName": None, "status": "playing"})) is True
    assert first_failed_expectation(state, SessionUpdate(expect={"status": "lobby"})) == ("status", "lobby", "playing")
    assert check_expectations(state, SessionUpdate(expect={"drawnHistory": [5]})) is False
