"""Field-scoped update language for session documents.

Paths are dotted (``players.<actorId>.marks``). An update combines plain
writes, set-union appends and expectations that must hold at commit time.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class SessionUpdate:
    set: dict[str, Any] = field(default_factory=dict)
    union: dict[str, list[Any]] = field(default_factory=dict)
    expect: dict[str, Any] = field(default_factory=dict)


def get_path(state: dict[str, Any], path: str) -> Any:
    node: Any = state
    for part in path.split("."):
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node


def first_failed_expectation(state: dict[str, Any], update: SessionUpdate) -> tuple[str, Any, Any] | None:
    """Return ``(path, expected, actual)`` for the first unmet expectation."""
    for path, expected in update.expect.items():
        actual = get_path(state, path)
        if actual != expected:
            return path, expected, actual
    return None


def check_expectations(state: dict[str, Any], update: SessionUpdate) -> bool:
    return first_failed_expectation(state, update) is None


def _parent_for_write(root: dict[str, Any], path: str) -> tuple[dict[str, Any], str]:
    parts = path.split(".")
    node = root
    for part in parts[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    return node, parts[-1]


def apply_update(state: dict[str, Any], update: SessionUpdate) -> dict[str, Any]:
    """Return a new document with the update's writes and unions applied.

    Expectations are not evaluated here; stores check them first under their
    own lock or transaction.
    """
    next_state = copy.deepcopy(state)
    for path, value in update.set.items():
        parent, key = _parent_for_write(next_state, path)
        parent[key] = copy.deepcopy(value)
    for path, values in update.union.items():
        parent, key = _parent_for_write(next_state, path)
        current = parent.get(key)
        merged = list(current) if isinstance(current, list) else []
        for value in values:
            if value not in merged:
                merged.append(value)
        parent[key] = merged
    return next_state
