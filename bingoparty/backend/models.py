"""Result types shared by the protocol, controller and API."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from .document import SessionUpdate

PlanOutcome = Literal["apply", "rejected", "noop"]
ResultOutcome = Literal["applied", "rejected", "noop"]


@dataclass(frozen=True)
class MutationPlan:
    outcome: PlanOutcome
    update: SessionUpdate | None = None
    reason: str = ""
    events: list[dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class MutationResult:
    outcome: ResultOutcome
    state: dict[str, Any]
    reason: str = ""
    events: list[dict[str, Any]] = field(default_factory=list)

    @property
    def applied(self) -> bool:
        return self.outcome == "applied"

