"""Actor-facing session operations composed from plans and store writes."""

from __future__ import annotations

import logging
import random
from collections.abc import Callable
from typing import Any

from .board import generate_board
from .errors import ChannelLost, ConditionFailed, GameAlreadyStarted, SessionExists, SessionNotFound
from .models import MutationPlan, MutationResult
from .protocol import plan_draw, plan_join, plan_mark, plan_restart, plan_start
from .security import generate_room_code, normalize_room_code, validate_actor_id
from .state import build_initial_state
from .store import SessionStore, Unsubscribe

logger = logging.getLogger(__name__)

MAX_CODE_ATTEMPTS = 8


class SessionController:
    """Runs session operations on behalf of one actor.

    Every operation reads the latest document, plans a field-scoped update and
    commits it through the store. Soft refusals come back as results with
    ``outcome == "rejected"``; missing rooms raise SessionNotFound.
    """

    def __init__(
        self,
        store: SessionStore,
        actor_id: str,
        rng: random.Random | None = None,
        code_factory: Callable[[], str] = generate_room_code,
    ) -> None:
        self.store = store
        self.actor_id = validate_actor_id(actor_id)
        self.rng = rng
        self.code_factory = code_factory

    def create_session(self, display_name: str) -> str:
        for _ in range(MAX_CODE_ATTEMPTS):
            code = self.code_factory()
            state = build_initial_state(
                code=code,
                host_id=self.actor_id,
                display_name=display_name,
                board=generate_board(self.rng),
            )
            try:
                self.store.create_session(code, state)
            except SessionExists:
                logger.debug("room code %s already taken, retrying", code)
                continue
            logger.info("room %s created by %s", code, self.actor_id)
            return code
        raise SessionExists(code)

    def join_session(self, code: str, display_name: str) -> MutationResult:
        code = normalize_room_code(code)
        state = self._read(code)
        plan = plan_join(state, self.actor_id, display_name, self.rng)
        try:
            return self._commit(code, state, plan)
        except ConditionFailed as exc:
            logger.info("join of %s to room %s raced a start", self.actor_id, code)
            raise GameAlreadyStarted(code) from exc

    def start_session(self, code: str) -> MutationResult:
        code = normalize_room_code(code)
        state = self._read(code)
        return self._commit(code, state, plan_start(state, self.actor_id))

    def draw_number(self, code: str) -> MutationResult:
        code = normalize_room_code(code)
        state = self._read(code)
        plan = plan_draw(state, self.actor_id, self.rng)
        try:
            return self._commit(code, state, plan)
        except ConditionFailed as exc:
            logger.info("draw in room %s lost to a concurrent write on %s", code, exc.path)
            return MutationResult(outcome="rejected", state=self._read(code), reason="draw_conflict")

    def mark_cell(self, code: str, cell_index: int, cell_value: int) -> MutationResult:
        code = normalize_room_code(code)
        state = self._read(code)
        plan = plan_mark(state, self.actor_id, cell_index, cell_value)
        try:
            return self._commit(code, state, plan)
        except ConditionFailed:
            logger.info("mark by %s in room %s raced another write, replaying toggle", self.actor_id, code)

        latest = self._read(code)
        if latest.get("round") != state.get("round"):
            return MutationResult(outcome="rejected", state=latest, reason="round_changed")
        replay = plan_mark(latest, self.actor_id, cell_index, cell_value, replay=True)
        return self._commit(code, latest, replay)

    def restart_session(self, code: str) -> MutationResult:
        code = normalize_room_code(code)
        state = self._read(code)
        plan = plan_restart(state, self.actor_id, self.rng)
        try:
            return self._commit(code, state, plan)
        except ConditionFailed:
            logger.info("restart of room %s lost to a concurrent restart", code)
            return MutationResult(outcome="rejected", state=self._read(code), reason="restart_conflict")

    def watch(
        self,
        code: str,
        on_state: Callable[[dict[str, Any]], None],
        on_error: Callable[[ChannelLost], None],
    ) -> Unsubscribe:
        """Subscribe to room snapshots; a vanished document is reported as ChannelLost."""
        code = normalize_room_code(code)

        def deliver(snapshot: dict[str, Any] | None) -> None:
            if snapshot is None:
                on_error(ChannelLost(code))
                return
            on_state(snapshot)

        return self.store.subscribe(code, deliver)

    def _read(self, code: str) -> dict[str, Any]:
        state = self.store.get_session(code)
        if state is None:
            raise SessionNotFound(code)
        return state

    def _commit(self, code: str, state: dict[str, Any], plan: MutationPlan) -> MutationResult:
        if plan.outcome != "apply" or plan.update is None:
            logger.debug("%s in room %s had no effect: %s", self.actor_id, code, plan.reason)
            return MutationResult(outcome=plan.outcome, state=state, reason=plan.reason, events=plan.events)

        next_state = self.store.update_session(code, plan.update)
        for event in plan.events:
            self._log_event(code, event)
        return MutationResult(outcome="applied", state=next_state, reason=plan.reason, events=plan.events)

    def _log_event(self, code: str, event: dict[str, Any]) -> None:
        kind = event.get("kind")
        if kind == "number_drawn":
            logger.info("room %s called %s", code, event["label"])
        elif kind == "game_won":
            logger.info("room %s won by %s", code, event["winnerName"])
        elif kind == "cell_toggled":
            logger.debug("room %s: %s toggled cell %s", code, event["actorId"], event["cellIndex"])
        else:
            logger.info("room %s: %s", code, kind)
