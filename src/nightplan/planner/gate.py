"""Sanity gate deciding whether a context carries enough signal for a plan."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional

from nightplan.models.context import PlanContext, PlanKind

GateStatus = Literal["passed", "denied", "bypassed"]
GateReason = Literal["not_enough_events", "not_enough_distinct_types", "invalid_age"]


@dataclass(frozen=True)
class GateDecision:
    """Outcome of the gate; ``reason`` is set whenever the numeric checks failed."""

    status: GateStatus
    reason: Optional[GateReason] = None

    @property
    def proceed(self) -> bool:
        return self.status != "denied"


class SanityGate:
    """Pure threshold check with a survey-only bypass for initial plans."""

    def __init__(self, *, min_events: int = 10, min_distinct_types: int = 2) -> None:
        self.min_events = min_events
        self.min_distinct_types = min_distinct_types

    def failure_reason(self, context: PlanContext) -> Optional[GateReason]:
        """Return the first failing rule in precedence order, or ``None``."""

        if context.event_count < self.min_events:
            return "not_enough_events"
        if context.distinct_types < self.min_distinct_types:
            return "not_enough_distinct_types"
        if context.age_in_months is None or context.age_in_months < 0:
            return "invalid_age"
        return None

    def evaluate(self, context: PlanContext, kind: PlanKind) -> GateDecision:
        reason = self.failure_reason(context)
        if reason is None:
            return GateDecision(status="passed")
        if kind == "initial" and context.flags.allow_survey_only:
            return GateDecision(status="bypassed", reason=reason)
        return GateDecision(status="denied", reason=reason)


__all__ = ["GateDecision", "GateReason", "GateStatus", "SanityGate"]
