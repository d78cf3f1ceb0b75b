"""Shared fakes and builders for the Nightplan test suite."""

from __future__ import annotations

import copy
import json
from datetime import date, datetime, timezone
from typing import Any, Iterable, Optional

from nightplan.config import get_settings
from nightplan.models.context import ChildProfile, PlanWindow
from nightplan.planner.engine import EngineConfig, PlanGenerationEngine

FIXED_WINDOW = PlanWindow(
    from_=datetime(2024, 5, 1, tzinfo=timezone.utc),
    to=datetime(2024, 5, 31, tzinfo=timezone.utc),
)
BUSY_COUNTS = {"sleep": 8, "night_waking": 4, "feeding": 3}
INFANT_BIRTHDATE = date(2023, 9, 15)  # 8 months old at FIXED_WINDOW.to
INFANT = ChildProfile(birthdate=INFANT_BIRTHDATE)

_PLAN_DOCUMENT: dict[str, Any] = {
    "planType": "event_based",
    "title": "Two-nap routine",
    "summary": "Consolidate night sleep around a 19:30 bedtime with two daytime naps.",
    "schedule": {
        "bedtime": "19:30",
        "wakeTime": "07:00",
        "meals": [
            {"time": "07:30", "type": "breakfast", "description": "Porridge with fruit"},
            {"time": "17:30", "type": "dinner", "description": "Vegetables and rice"},
        ],
        "activities": [
            {
                "time": "10:30",
                "activity": "Outdoor walk",
                "duration": 30,
                "description": "Morning daylight exposure",
            }
        ],
        "naps": [
            {"time": "09:30", "duration": 60, "description": "Morning nap"},
            {"time": "14:00", "duration": 90},
        ],
    },
    "objectives": ["Reduce night wakings", "Stabilise bedtime"],
    "recommendations": ["Keep the bedroom dark", "Start the wind-down at 19:00"],
    "window": {"from": "2024-05-01T00:00:00+00:00", "to": "2024-05-31T00:00:00+00:00"},
    "metrics": {
        "eventCount": 15,
        "distinctTypes": 3,
        "byType": {"feeding": 3, "night_waking": 4, "sleep": 8},
        "ageInMonths": 8,
    },
    "metadata": {"ragSources": []},
}


def plan_document(**overrides: Any) -> dict[str, Any]:
    """Return a fresh schema-valid plan document with top-level overrides applied."""

    document = copy.deepcopy(_PLAN_DOCUMENT)
    document.update(overrides)
    return document


def plan_json(**overrides: Any) -> str:
    return json.dumps(plan_document(**overrides))


def plan_without_bedtime() -> str:
    document = plan_document()
    del document["schedule"]["bedtime"]
    return json.dumps(document)


class StubEventStats:
    """EventStatsCollector returning canned counts and recording each query."""

    def __init__(self, counts: Optional[dict[str, int]] = None, error: Optional[Exception] = None):
        self.counts = dict(counts or {})
        self.error = error
        self.calls: list[tuple[str, datetime, datetime]] = []

    def count_by_types(self, child_id: str, from_: datetime, to: datetime) -> dict[str, int]:
        self.calls.append((child_id, from_, to))
        if self.error is not None:
            raise self.error
        return dict(self.counts)


class StubChildren:
    """ChildProfileLookup over an in-memory mapping."""

    def __init__(self, profiles: Optional[dict[str, ChildProfile]] = None):
        self.profiles = dict(profiles or {})

    def find_by_id(self, child_id: str) -> Optional[ChildProfile]:
        return self.profiles.get(child_id)


class ScriptedModel:
    """ModelClient replaying scripted replies; exception instances are raised."""

    def __init__(self, replies: Iterable[Any] = ()):
        self.replies = list(replies)
        self.prompts: list[str] = []
        self.calls: list[dict[str, Any]] = []

    def complete(self, *, prompt: str, temperature: float, max_tokens: int) -> str:
        self.prompts.append(prompt)
        self.calls.append({"temperature": temperature, "max_tokens": max_tokens})
        if not self.replies:
            raise RuntimeError("no scripted reply left")
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply


def build_engine(
    *,
    counts: Optional[dict[str, int]] = None,
    profile: Optional[ChildProfile] = INFANT,
    replies: Iterable[Any] = (),
    config: Optional[EngineConfig] = None,
    events: Optional[StubEventStats] = None,
) -> tuple[PlanGenerationEngine, ScriptedModel, StubEventStats]:
    """Wire an engine to in-memory collaborators for child ``c1``."""

    events = events or StubEventStats(BUSY_COUNTS if counts is None else counts)
    children = StubChildren({"c1": profile} if profile is not None else {})
    model = ScriptedModel(replies)
    engine = PlanGenerationEngine(events=events, children=children, model=model, config=config)
    return engine, model, events


def auth_headers() -> dict[str, str]:
    token = get_settings().api_token
    if not token:
        return {}
    return {"Authorization": f"Bearer {token}"}
