"""Helpers for assembling the plan context from the repository collaborators."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime
from typing import Any, Optional, Protocol

from nightplan.models.context import (
    ChildProfile,
    ContextFlags,
    EventWindow,
    GenerateOptions,
    PlanContext,
    PlanKind,
    PlanWindow,
)
from nightplan.planner.observability import PlanRecorder
from nightplan.planner.sanitize import sanitize_survey_data, sanitize_tree


class EventStatsCollector(Protocol):
    """Source of per-type event counts for one child."""

    def count_by_types(self, child_id: str, from_: datetime, to: datetime) -> Mapping[str, int]:
        """Return counts keyed by event type for events inside ``[from_, to)``."""


class ChildProfileLookup(Protocol):
    """Source of child birth dates and stored survey answers."""

    def find_by_id(self, child_id: str) -> Optional[ChildProfile]:
        """Return the child's profile or ``None`` when unknown."""


def months_between(birthdate: date, until: date) -> int:
    """Whole calendar months from ``birthdate`` to ``until``, rounded down by day of month."""

    total = (until.year - birthdate.year) * 12 + (until.month - birthdate.month)
    if until.day < birthdate.day:
        total -= 1
    return total


def is_survey_complete(survey: Optional[Mapping[str, Any]]) -> bool:
    """A survey is complete when flagged so, or when non-empty and not marked partial."""

    if not survey:
        return False
    if survey.get("completed") is True:
        return True
    return survey.get("isPartial") is not True


class ContextBuilder:
    """Combine event statistics and the child profile into a bounded ``PlanContext``."""

    def __init__(
        self,
        events: EventStatsCollector,
        children: ChildProfileLookup,
        *,
        default_window_days: int = 30,
        recorder: Optional[PlanRecorder] = None,
    ) -> None:
        self._events = events
        self._children = children
        self._default_window_days = default_window_days
        self._recorder = recorder or PlanRecorder()

    def default_window(self, now: Optional[datetime] = None) -> PlanWindow:
        return PlanWindow.trailing(self._default_window_days, now=now)

    def build(
        self,
        child_id: str,
        kind: PlanKind,
        window: Optional[PlanWindow] = None,
        options: Optional[GenerateOptions] = None,
    ) -> PlanContext:
        """Return a fully-hydrated PlanContext for the supplied parameters."""

        window = window or self.default_window()
        options = options or GenerateOptions()

        raw_counts = self._events.count_by_types(child_id, window.from_, window.to)
        by_type = {
            str(key): int(value) for key, value in dict(raw_counts).items() if int(value) > 0
        }
        event_count = sum(by_type.values())

        profile = self._children.find_by_id(child_id)
        age_in_months: Optional[int] = None
        if profile is not None and profile.birthdate is not None:
            age_in_months = months_between(profile.birthdate, window.to.date())

        raw_survey = options.survey_data
        if raw_survey is None and profile is not None:
            raw_survey = profile.survey_data
        survey_complete = (
            options.survey_complete
            if options.survey_complete is not None
            else is_survey_complete(raw_survey)
        )

        context = PlanContext(
            child_id=child_id,
            window=EventWindow(child_id=child_id, from_=window.from_, to=window.to),
            by_type=by_type,
            event_count=event_count,
            distinct_types=len(by_type),
            age_in_months=age_in_months,
            survey_data=sanitize_survey_data(raw_survey),
            extra=sanitize_tree(options.extra_context),
            flags=ContextFlags(
                allow_survey_only=options.allow_survey_only,
                survey_complete=survey_complete,
                events_available=event_count > 0,
            ),
        )
        self._recorder.context_built(context, kind)
        return context


__all__ = [
    "ChildProfileLookup",
    "ContextBuilder",
    "EventStatsCollector",
    "is_survey_complete",
    "months_between",
]
