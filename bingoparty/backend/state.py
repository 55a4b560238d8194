"""State builders for session documents."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from .board import FREE_INDEX

STATUS_LOBBY = "lobby"
STATUS_PLAYING = "playing"
STATUS_FINISHED = "finished"


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def build_player_state(display_name: str, board: list[int]) -> dict[str, Any]:
    return {
        "displayName": display_name,
        "board": list(board),
        "marks": [FREE_INDEX],
    }


def build_initial_state(code: str, host_id: str, display_name: str, board: list[int]) -> dict[str, Any]:
    """Return a lobby document holding only the host as a player."""
    now = _utc_now_iso()
    return {
        "code": code,
        "version": 1,
        "hostId": host_id,
        "status": STATUS_LOBBY,
        "round": 0,
        "currentNumber": None,
        "drawnHistory": [],
        "winnerName": None,
        "players": {
            host_id: build_player_state(display_name, board),
        },
        "meta": {
            "createdAt": now,
            "updatedAt": now,
        },
    }
