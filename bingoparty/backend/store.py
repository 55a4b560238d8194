"""Persistence interfaces and implementations for session documents."""

from __future__ import annotations

import copy
import json
import logging
import threading
import uuid
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Protocol

from bingoparty.backend.document import SessionUpdate, apply_update, first_failed_expectation
from bingoparty.backend.errors import ConditionFailed, SessionExists, SessionNotFound

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[dict[str, Any] | None], None]
Unsubscribe = Callable[[], None]


class SessionStore(Protocol):
    def create_session(self, code: str, state: dict[str, Any]) -> dict[str, Any]:
        """Persist a new document; raise SessionExists when the code is taken."""

    def get_session(self, code: str) -> dict[str, Any] | None:
        """Return the current document, or None when absent."""

    def update_session(self, code: str, update: SessionUpdate) -> dict[str, Any]:
        """Atomically check expectations, apply writes and unions, return the new document."""

    def delete_session(self, code: str) -> bool:
        """Remove a document and notify subscribers with None."""

    def subscribe(self, code: str, callback: SnapshotCallback) -> Unsubscribe:
        """Deliver the current document now and after every change."""


def _committed(state: dict[str, Any]) -> dict[str, Any]:
    next_state = dict(state)
    next_state["version"] = int(state.get("version", 0)) + 1
    next_meta = dict(state.get("meta", {}))
    next_meta["updatedAt"] = datetime.now(timezone.utc).isoformat()
    next_state["meta"] = next_meta
    return next_state


def _checked_update(code: str, state: dict[str, Any], update: SessionUpdate) -> dict[str, Any]:
    failed = first_failed_expectation(state, update)
    if failed is not None:
        path, expected, actual = failed
        raise ConditionFailed(code=code, path=path, expected=expected, actual=actual)
    return _committed(apply_update(state, update))


@dataclass(eq=False)
class _Subscription:
    callback: SnapshotCallback
    last_version: int = 0


class SubscriberRegistry:
    """In-process fan-out of document snapshots keyed by room code.

    Deliveries for one code are serialized, and each subscriber only ever sees
    increasing versions. A publish that arrives late with an older snapshot is
    skipped for subscribers that already saw a newer one. ``None`` (deletion)
    always goes through and resets the counter so a recreated room starts over.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._delivery_locks: dict[str, threading.RLock] = defaultdict(threading.RLock)
        self._subscriptions: dict[str, list[_Subscription]] = defaultdict(list)

    def _delivery_lock(self, code: str) -> threading.RLock:
        with self._lock:
            return self._delivery_locks[code]

    def add(
        self,
        code: str,
        callback: SnapshotCallback,
        current: Callable[[], dict[str, Any] | None],
    ) -> Unsubscribe:
        """Register ``callback`` and hand it ``current()`` before any later publish."""
        subscription = _Subscription(callback)
        with self._delivery_lock(code):
            with self._lock:
                self._subscriptions[code].append(subscription)
            self._deliver(code, subscription, current())

        def unsubscribe() -> None:
            self._discard(code, subscription)

        return unsubscribe

    def _discard(self, code: str, subscription: _Subscription) -> None:
        with self._lock:
            subscriptions = self._subscriptions.get(code)
            if subscriptions is None:
                return
            if subscription in subscriptions:
                subscriptions.remove(subscription)
            if not subscriptions:
                self._subscriptions.pop(code, None)

    def publish(self, code: str, state: dict[str, Any] | None) -> None:
        version = int(state.get("version", 0)) if state is not None else 0
        with self._delivery_lock(code):
            with self._lock:
                subscriptions = list(self._subscriptions.get(code, []))
            for subscription in subscriptions:
                if state is not None and version <= subscription.last_version:
                    continue
                self._deliver(code, subscription, state)

    def _deliver(self, code: str, subscription: _Subscription, state: dict[str, Any] | None) -> None:
        snapshot = copy.deepcopy(state) if state is not None else None
        subscription.last_version = int(state.get("version", 0)) if state is not None else 0
        try:
            subscription.callback(snapshot)
        except Exception:
            logger.exception("subscriber for room %s failed, dropping it", code)
            self._discard(code, subscription)


@dataclass
class InMemorySessionStore:
    def __post_init__(self) -> None:
        self._sessions: dict[str, dict[str, Any]] = {}
        self._lock = threading.RLock()
        self._subscribers = SubscriberRegistry()

    def create_session(self, code: str, state: dict[str, Any]) -> dict[str, Any]:
        with self._lock:
            if code in self._sessions:
                raise SessionExists(code)
            self._sessions[code] = copy.deepcopy(state)
            created = copy.deepcopy(self._sessions[code])
        self._subscribers.publish(code, created)
        return created

    def get_session(self, code: str) -> dict[str, Any] | None:
        with self._lock:
            state = self._sessions.get(code)
            return copy.deepcopy(state) if state is not None else None

    def update_session(self, code: str, update: SessionUpdate) -> dict[str, Any]:
        with self._lock:
            state = self._sessions.get(code)
            if state is None:
                raise SessionNotFound(code)
            next_state = _checked_update(code, state, update)
            self._sessions[code] = next_state
            result = copy.deepcopy(next_state)
        self._subscribers.publish(code, result)
        return result

    def delete_session(self, code: str) -> bool:
        with self._lock:
            removed = self._sessions.pop(code, None) is not None
        if removed:
            self._subscribers.publish(code, None)
        return removed

    def subscribe(self, code: str, callback: SnapshotCallback) -> Unsubscribe:
        return self._subscribers.add(code, callback, lambda: self.get_session(code))


@dataclass
class PostgresSessionStore:
    database_url: str

    def __post_init__(self) -> None:
        self._subscribers = SubscriberRegistry()

    def _connect(self) -> Any:
        import psycopg

        return psycopg.connect(self.database_url)

    def create_session(self, code: str, state: dict[str, Any]) -> dict[str, Any]:
        now = datetime.now(timezone.utc)
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO sessions (code, status, current_version, created_at, updated_at)
                    VALUES (%s, %s, %s, %s, %s)
                    ON CONFLICT (code) DO NOTHING
                    """,
                    (code, state["status"], state["version"], now, now),
                )
                if cur.rowcount == 0:
                    raise SessionExists(code)
                cur.execute(
                    """
                    INSERT INTO session_snapshots (id, session_code, version, created_at, state_json)
                    VALUES (%s, %s, %s, %s, %s::jsonb)
                    """,
                    (str(uuid.uuid4()), code, state["version"], now, json.dumps(state)),
                )
            conn.commit()

        self._subscribers.publish(code, state)
        return copy.deepcopy(state)

    def get_session(self, code: str) -> dict[str, Any] | None:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT s.state_json
                    FROM sessions e
                    JOIN session_snapshots s
                      ON s.session_code = e.code AND s.version = e.current_version
                    WHERE e.code = %s
                    """,
                    (code,),
                )
                row = cur.fetchone()

        if row is None:
            return None
        (state_json,) = row
        return state_json if isinstance(state_json, dict) else json.loads(state_json)

    def update_session(self, code: str, update: SessionUpdate) -> dict[str, Any]:
        with self._connect() as conn:
            with conn.cursor() as cur:
                # Row lock on the session serializes concurrent writers.
                cur.execute(
                    """
                    SELECT s.state_json
                    FROM sessions e
                    JOIN session_snapshots s
                      ON s.session_code = e.code AND s.version = e.current_version
                    WHERE e.code = %s
                    FOR UPDATE OF e
                    """,
                    (code,),
                )
                row = cur.fetchone()
                if row is None:
                    raise SessionNotFound(code)
                (state_json,) = row
                state = state_json if isinstance(state_json, dict) else json.loads(state_json)

                next_state = _checked_update(code, state, update)
                now = datetime.now(timezone.utc)
                cur.execute(
                    """
                    INSERT INTO session_snapshots (id, session_code, version, created_at, state_json)
                    VALUES (%s, %s, %s, %s, %s::jsonb)
                    """,
                    (str(uuid.uuid4()), code, next_state["version"], now, json.dumps(next_state)),
                )
                cur.execute(
                    """
                    UPDATE sessions
                    SET current_version = %s, status = %s, updated_at = %s
                    WHERE code = %s
                    """,
                    (next_state["version"], next_state.get("status", "lobby"), now, code),
                )
            conn.commit()

        self._subscribers.publish(code, next_state)
        return next_state

    def delete_session(self, code: str) -> bool:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM session_snapshots WHERE session_code = %s", (code,))
                cur.execute("DELETE FROM sessions WHERE code = %s", (code,))
                removed = cur.rowcount > 0
            conn.commit()

        if removed:
            self._subscribers.publish(code, None)
        return removed

    def subscribe(self, code: str, callback: SnapshotCallback) -> Unsubscribe:
        return self._subscribers.add(code, callback, lambda: self.get_session(code))


def create_store(database_url: str | None) -> SessionStore:
    if database_url:
        return PostgresSessionStore(database_url=database_url)
    return InMemorySessionStore()
