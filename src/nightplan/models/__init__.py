"""Pydantic models defining shared data contracts."""

from nightplan.models.context import (
    PLAN_KINDS,
    ChildProfile,
    ContextFlags,
    EventWindow,
    GenerateOptions,
    PlanContext,
    PlanKind,
    PlanWindow,
)
from nightplan.models.plan import (
    Activity,
    Meal,
    Nap,
    OutputWindow,
    PlanMetadata,
    PlanMetrics,
    PlanOutput,
    Schedule,
)
from nightplan.models.result import (
    GenerationFailure,
    GenerationResult,
    GenerationSuccess,
)

__all__ = [
    "PLAN_KINDS",
    "ChildProfile",
    "ContextFlags",
    "EventWindow",
    "GenerateOptions",
    "PlanContext",
    "PlanKind",
    "PlanWindow",
    "Activity",
    "Meal",
    "Nap",
    "OutputWindow",
    "PlanMetadata",
    "PlanMetrics",
    "PlanOutput",
    "Schedule",
    "GenerationFailure",
    "GenerationResult",
    "GenerationSuccess",
]
