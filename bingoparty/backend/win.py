"""Line completion checks for a 5x5 board."""

from __future__ import annotations

from collections.abc import Iterable

from .board import GRID_WIDTH


def _build_patterns() -> tuple[frozenset[int], ...]:
    cells = range(GRID_WIDTH)
    rows = [frozenset(row * GRID_WIDTH + col for col in cells) for row in cells]
    cols = [frozenset(row * GRID_WIDTH + col for row in cells) for col in cells]
    diagonals = [
        frozenset(i * GRID_WIDTH + i for i in cells),
        frozenset(i * GRID_WIDTH + (GRID_WIDTH - 1 - i) for i in cells),
    ]
    return tuple(rows + cols + diagonals)


WIN_PATTERNS = _build_patterns()


def winning_patterns(marks: Iterable[int]) -> list[frozenset[int]]:
    marked = set(marks)
    return [pattern for pattern in WIN_PATTERNS if pattern <= marked]


def has_won(marks: Iterable[int]) -> bool:
    """Return True when the marks cover at least one row, column or diagonal.

    Only the cell indices are inspected; whether those cells were legitimately
    marked is the caller's concern.
    """
    marked = set(marks)
    return any(pattern <= marked for pattern in WIN_PATTERNS)
