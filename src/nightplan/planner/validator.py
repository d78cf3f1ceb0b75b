"""Parse and validate raw model text against the plan schema."""

from __future__ import annotations

import json
import re
from typing import Any, Optional

from pydantic import ValidationError

from nightplan.models.plan import PlanOutput

_JSON_FENCE_RE = re.compile(r"^\s*```(?:json)?\s*(\{.*\})\s*```\s*$", re.DOTALL)


class PlanValidationError(ValueError):
    """Raised when model text is not a schema-valid plan; messages never carry the raw text."""

    def __init__(self, code: str, detail: Optional[str] = None) -> None:
        self.code = code
        self.detail = detail
        super().__init__(f"{code}: {detail}" if detail else code)


def _unwrap_fence(text: str) -> str:
    match = _JSON_FENCE_RE.match(text)
    if match:
        return match.group(1)
    return text


def _describe(exc: ValidationError, limit: int = 5) -> str:
    parts = []
    for error in exc.errors()[:limit]:
        location = ".".join(str(part) for part in error.get("loc", ()))
        parts.append(f"{location or '<root>'}:{error.get('type')}")
    return ", ".join(parts)


class OutputValidator:
    """Strict JSON + schema check; invalid output is rejected, never repaired."""

    def parse(self, raw: str) -> Any:
        try:
            return json.loads(_unwrap_fence(raw))
        except (TypeError, ValueError) as exc:
            raise PlanValidationError("invalid_json", f"line {getattr(exc, 'lineno', '?')}") from exc
        except RecursionError as exc:
            raise PlanValidationError("invalid_json", "nesting too deep") from exc

    def validate(self, raw: str) -> PlanOutput:
        document = self.parse(raw)
        if not isinstance(document, dict):
            raise PlanValidationError("not_an_object", type(document).__name__)
        if document.get("error") == "insufficient_data":
            raise PlanValidationError("model_reported_insufficient_data")
        try:
            return PlanOutput.model_validate(document, strict=True)
        except ValidationError as exc:
            raise PlanValidationError("schema_mismatch", _describe(exc)) from exc


__all__ = ["OutputValidator", "PlanValidationError"]
