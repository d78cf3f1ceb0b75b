"""Plan output models enforced on generative model responses."""

from __future__ import annotations

from typing import Annotated, Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

ClockTime = Annotated[str, StringConstraints(pattern=r"^(?:[01]\d|2[0-3]):[0-5]\d$")]
"""24-hour ``HH:MM`` wall-clock time."""

_PLAN_CONFIG = ConfigDict(frozen=True, populate_by_name=True)


class Meal(BaseModel):
    """Scheduled meal."""

    time: ClockTime
    type: str
    description: str

    model_config = _PLAN_CONFIG


class Activity(BaseModel):
    """Scheduled daytime activity; duration is in minutes."""

    time: ClockTime
    activity: str
    duration: int = Field(ge=0)
    description: str

    model_config = _PLAN_CONFIG


class Nap(BaseModel):
    """Scheduled nap; duration is in minutes."""

    time: ClockTime
    duration: int = Field(ge=0)
    description: Optional[str] = Field(default=None)

    model_config = _PLAN_CONFIG


class Schedule(BaseModel):
    """Daily routine anchored on bedtime and wake time."""

    bedtime: ClockTime
    wake_time: ClockTime = Field(alias="wakeTime")
    meals: list[Meal]
    activities: list[Activity]
    naps: list[Nap]

    model_config = _PLAN_CONFIG


class OutputWindow(BaseModel):
    """Window echoed back by the model, kept as the ISO strings it produced."""

    from_: str = Field(alias="from")
    to: str

    model_config = _PLAN_CONFIG


class PlanMetrics(BaseModel):
    """Event statistics the plan was based on."""

    event_count: int = Field(alias="eventCount", ge=0)
    distinct_types: int = Field(alias="distinctTypes", ge=0)
    by_type: dict[str, int] = Field(alias="byType")
    age_in_months: Optional[int] = Field(default=None, alias="ageInMonths")

    model_config = _PLAN_CONFIG


class PlanMetadata(BaseModel):
    """Provenance information attached to a plan."""

    rag_sources: list[str] = Field(alias="ragSources")
    notes: Optional[str] = Field(default=None)

    model_config = _PLAN_CONFIG


class PlanOutput(BaseModel):
    """Structured routine plan produced by the generative model."""

    plan_type: Literal["initial", "event_based", "transcript_refinement"] = Field(alias="planType")
    title: str
    summary: str
    schedule: Schedule
    objectives: list[str]
    recommendations: list[str]
    window: OutputWindow
    metrics: PlanMetrics
    metadata: PlanMetadata

    model_config = _PLAN_CONFIG

    def to_document(self) -> dict[str, Any]:
        """Return the plan as the camelCase JSON document it was validated from."""

        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)
