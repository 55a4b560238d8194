"""Errors raised by the session store and controller."""

from __future__ import annotations


class BingoError(Exception):
    """Base class for session failures surfaced to an actor."""


class SessionNotFound(BingoError):
    def __init__(self, code: str) -> None:
        super().__init__(f"Room {code} not found")
        self.code = code


class SessionExists(BingoError):
    def __init__(self, code: str) -> None:
        super().__init__(f"Room {code} already exists")
        self.code = code


class GameAlreadyStarted(BingoError):
    def __init__(self, code: str) -> None:
        super().__init__(f"Game in room {code} already started")
        self.code = code


class ConditionFailed(BingoError):
    """A conditional write found a field that no longer held its expected value."""

    def __init__(self, code: str, path: str, expected: object, actual: object) -> None:
        super().__init__(f"Room {code}: expected {path}={expected!r}, found {actual!r}")
        self.code = code
        self.path = path
        self.expected = expected
        self.actual = actual


class ChannelLost(BingoError):
    def __init__(self, code: str) -> None:
        super().__init__(f"Connection to room {code} lost")
        self.code = code
