"""Mutation planning for session documents.

Each planner reads a snapshot and returns the field-scoped update the actor
should commit, or a rejected/noop plan when the action has no effect.
"""

from __future__ import annotations

import random
from typing import Any

from .board import BOARD_SIZE, FREE_INDEX, NUMBER_DOMAIN, call_label, generate_board
from .document import SessionUpdate
from .errors import GameAlreadyStarted
from .models import MutationPlan
from .security import validate_actor_id
from .state import STATUS_FINISHED, STATUS_LOBBY, STATUS_PLAYING, build_player_state
from .win import has_won, winning_patterns


def _rejected(reason: str) -> MutationPlan:
    return MutationPlan(outcome="rejected", reason=reason)


def _is_host(state: dict[str, Any], actor_id: str) -> bool:
    return state.get("hostId") == actor_id


def _player_path(actor_id: str, field_name: str | None = None) -> str:
    validate_actor_id(actor_id)
    if field_name is None:
        return f"players.{actor_id}"
    return f"players.{actor_id}.{field_name}"


def plan_join(
    state: dict[str, Any],
    actor_id: str,
    display_name: str,
    rng: random.Random | None = None,
) -> MutationPlan:
    players = state.get("players", {})
    if actor_id in players:
        return MutationPlan(outcome="noop", reason="already_joined")
    if state.get("status") != STATUS_LOBBY:
        raise GameAlreadyStarted(str(state.get("code", "")))

    player = build_player_state(display_name, generate_board(rng))
    return MutationPlan(
        outcome="apply",
        update=SessionUpdate(set={_player_path(actor_id): player}, expect={"status": STATUS_LOBBY}),
        events=[{"kind": "player_joined", "actorId": actor_id, "displayName": display_name}],
    )


def plan_start(state: dict[str, Any], actor_id: str) -> MutationPlan:
    if not _is_host(state, actor_id):
        return _rejected("not_host")
    if state.get("status") != STATUS_LOBBY:
        return _rejected("not_in_lobby")
    return MutationPlan(
        outcome="apply",
        update=SessionUpdate(set={"status": STATUS_PLAYING}, expect={"status": STATUS_LOBBY}),
        events=[{"kind": "game_started"}],
    )


def plan_draw(state: dict[str, Any], actor_id: str, rng: random.Random | None = None) -> MutationPlan:
    if not _is_host(state, actor_id):
        return _rejected("not_host")
    if state.get("status") != STATUS_PLAYING:
        return _rejected("not_playing")
    if state.get("winnerName") is not None:
        return _rejected("already_won")

    history = list(state.get("drawnHistory", []))
    drawn = set(history)
    available = [number for number in NUMBER_DOMAIN if number not in drawn]
    if not available:
        return MutationPlan(outcome="noop", reason="pool_exhausted")

    source = rng if rng is not None else random.SystemRandom()
    number = source.choice(available)
    # Expecting the exact history read here serializes draws: a second draw
    # computed from the same snapshot fails instead of appending a sibling.
    return MutationPlan(
        outcome="apply",
        update=SessionUpdate(
            set={"currentNumber": number},
            union={"drawnHistory": [number]},
            expect={
                "status": STATUS_PLAYING,
                "round": state.get("round"),
                "drawnHistory": history,
                "winnerName": None,
            },
        ),
        events=[{"kind": "number_drawn", "number": number, "label": call_label(number)}],
    )


def plan_mark(
    state: dict[str, Any],
    actor_id: str,
    cell_index: int,
    cell_value: int,
    replay: bool = False,
) -> MutationPlan:
    """Plan a toggle of one of the actor's own cells.

    A toggle that completes a line also claims the win, conditional on no
    winner being recorded yet. ``replay`` re-plans a toggle whose winning write
    lost the race: status gates and win evaluation are skipped and only the
    actor's own marks are written. The value must be the one printed on the
    actor's board at ``cell_index``.
    """
    if not replay:
        if state.get("status") != STATUS_PLAYING:
            return _rejected("not_playing")
        if state.get("winnerName") is not None:
            return _rejected("already_won")
    player = state.get("players", {}).get(actor_id)
    if player is None:
        return _rejected("not_a_player")
    if not 0 <= cell_index < BOARD_SIZE:
        return _rejected("out_of_range")
    if cell_index != FREE_INDEX:
        board = player.get("board", [])
        if cell_index >= len(board) or board[cell_index] != cell_value:
            return _rejected("ineligible")
        if cell_value not in state.get("drawnHistory", []):
            return _rejected("ineligible")

    marks = set(player.get("marks", []))
    if cell_index in marks:
        marks.discard(cell_index)
    else:
        marks.add(cell_index)
    next_marks = sorted(marks)

    writes: dict[str, Any] = {_player_path(actor_id, "marks"): next_marks}
    events: list[dict[str, Any]] = [
        {"kind": "cell_toggled", "actorId": actor_id, "cellIndex": cell_index, "marked": cell_index in marks}
    ]
    # Pinning the round keeps a toggle planned before a restart out of the next game.
    expect: dict[str, Any] = {"round": state.get("round")}
    if replay:
        return MutationPlan(outcome="apply", update=SessionUpdate(set=writes, expect=expect), events=events)
    expect["status"] = STATUS_PLAYING
    if not has_won(next_marks):
        return MutationPlan(outcome="apply", update=SessionUpdate(set=writes, expect=expect), events=events)

    winner = player.get("displayName", "")
    writes["winnerName"] = winner
    writes["status"] = STATUS_FINISHED
    lines = [sorted(pattern) for pattern in winning_patterns(next_marks)]
    events.append({"kind": "game_won", "actorId": actor_id, "winnerName": winner, "lines": lines})
    return MutationPlan(
        outcome="apply",
        update=SessionUpdate(set=writes, expect={**expect, "winnerName": None}),
        events=events,
    )


def plan_restart(state: dict[str, Any], actor_id: str, rng: random.Random | None = None) -> MutationPlan:
    if not _is_host(state, actor_id):
        return _rejected("not_host")

    writes: dict[str, Any] = {
        "status": STATUS_LOBBY,
        "currentNumber": None,
        "drawnHistory": [],
        "winnerName": None,
        "round": int(state.get("round") or 0) + 1,
    }
    for player_id in state.get("players", {}):
        writes[_player_path(player_id, "marks")] = [FREE_INDEX]
        writes[_player_path(player_id, "board")] = generate_board(rng)
    return MutationPlan(
        outcome="apply",
        update=SessionUpdate(set=writes, expect={"round": state.get("round")}),
        events=[{"kind": "game_restarted", "players": len(state.get("players", {}))}],
    )
