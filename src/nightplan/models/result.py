"""Generation result models returned by the plan engine."""

from __future__ import annotations

from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from nightplan.models.plan import PlanOutput

FailureCode = Literal["insufficient_data", "validation_failed", "model_error"]


class GenerationSuccess(BaseModel):
    """A schema-valid plan and how many model attempts it took."""

    ok: Literal[True] = True
    output: PlanOutput
    attempts: Literal[1, 2]
    inference_ms: int = Field(ge=0)

    model_config = ConfigDict(frozen=True)

    def to_payload(self) -> dict[str, Any]:
        return {
            "ok": True,
            "output": self.output.to_document(),
            "attempts": self.attempts,
            "inference_ms": self.inference_ms,
        }


class GenerationFailure(BaseModel):
    """A generation that ended without a usable plan."""

    ok: Literal[False] = False
    error: FailureCode
    reason: Optional[str] = Field(default=None)
    attempts: Literal[0, 1, 2]
    inference_ms: int = Field(ge=0)

    model_config = ConfigDict(frozen=True)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


GenerationResult = Union[GenerationSuccess, GenerationFailure]
