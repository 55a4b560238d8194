"""Bingo board generation."""

from __future__ import annotations

import random

BOARD_SIZE = 25
GRID_WIDTH = 5
FREE_INDEX = 12
FREE_VALUE = 0
COLUMN_LETTERS = ("B", "I", "N", "G", "O")
COLUMN_RANGES: tuple[tuple[int, int], ...] = (
    (1, 15),
    (16, 30),
    (31, 45),
    (46, 60),
    (61, 75),
)
NUMBER_DOMAIN = range(1, 76)


def generate_board(rng: random.Random | None = None) -> list[int]:
    """Return a 25 cell row-major board with the free marker at the center.

    Every column holds five distinct values from its own range, placed in the
    order they were drawn.
    """
    source = rng if rng is not None else random.SystemRandom()
    board = [FREE_VALUE] * BOARD_SIZE
    for col, (low, high) in enumerate(COLUMN_RANGES):
        values = source.sample(range(low, high + 1), GRID_WIDTH)
        for row, value in enumerate(values):
            board[row * GRID_WIDTH + col] = value
    board[FREE_INDEX] = FREE_VALUE
    return board


def column_letter(value: int) -> str:
    for letter, (low, high) in zip(COLUMN_LETTERS, COLUMN_RANGES):
        if low <= value <= high:
            return letter
    raise ValueError(f"{value} is not a callable bingo number")


def call_label(value: int) -> str:
    """Format a drawn number the way it is announced, e.g. ``B-7``."""
    return f"{column_letter(value)}-{value}"
