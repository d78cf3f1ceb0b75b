"""Plan context data models."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

PlanKind = Literal["initial", "event_based", "transcript_refinement"]

PLAN_KINDS: tuple[str, ...] = ("initial", "event_based", "transcript_refinement")


def as_utc(value: datetime) -> datetime:
    """Return ``value`` in UTC, treating naive datetimes as already UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class PlanWindow(BaseModel):
    """Half-open ``[from, to)`` range over which event history is aggregated."""

    from_: datetime = Field(alias="from")
    to: datetime

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @field_validator("from_", "to")
    @classmethod
    def normalize_timezone(cls, value: datetime) -> datetime:
        return as_utc(value)

    @model_validator(mode="after")
    def check_order(self) -> "PlanWindow":
        if self.from_ >= self.to:
            raise ValueError("window start must be strictly before window end")
        return self

    @classmethod
    def trailing(cls, days: int, *, now: Optional[datetime] = None) -> "PlanWindow":
        """Return the window covering the ``days`` days that end at ``now``."""

        end = as_utc(now) if now is not None else datetime.now(timezone.utc)
        return cls(from_=end - timedelta(days=days), to=end)


class EventWindow(PlanWindow):
    """Plan window bound to the child whose events it covers."""

    child_id: str = Field(alias="childId")


class ChildProfile(BaseModel):
    """Subset of a child record needed to build plan context."""

    birthdate: Optional[date] = Field(default=None)
    survey_data: Optional[dict[str, Any]] = Field(default=None, alias="surveyData")

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class GenerateOptions(BaseModel):
    """Caller-supplied switches and data for a single plan generation."""

    allow_survey_only: bool = Field(default=False, alias="allowSurveyOnly")
    survey_data: Optional[dict[str, Any]] = Field(default=None, alias="surveyData")
    survey_complete: Optional[bool] = Field(default=None, alias="surveyComplete")
    extra_context: Optional[dict[str, Any]] = Field(default=None, alias="extraContext")

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class ContextFlags(BaseModel):
    """Booleans describing which signal sources are available."""

    allow_survey_only: bool = Field(alias="allowSurveyOnly")
    survey_complete: bool = Field(alias="surveyComplete")
    events_available: bool = Field(alias="eventsAvailable")

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class PlanContext(BaseModel):
    """Bounded, sanitized context shared with the sanity gate and the prompt."""

    child_id: str = Field(alias="childId")
    window: EventWindow
    by_type: dict[str, int] = Field(default_factory=dict, alias="byType")
    event_count: int = Field(alias="eventCount", ge=0)
    distinct_types: int = Field(alias="distinctTypes", ge=0)
    age_in_months: Optional[int] = Field(default=None, alias="ageInMonths")
    survey_data: Optional[dict[str, Any]] = Field(default=None, alias="surveyData")
    extra: Optional[dict[str, Any]] = Field(default=None)
    flags: ContextFlags

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    def to_prompt_payload(self) -> dict[str, Any]:
        """Return the JSON-ready representation embedded in prompts."""

        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
