"""Structured plan-generation events and Prometheus counters."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

from nightplan import metrics
from nightplan.logging_utils import render_fields

if TYPE_CHECKING:
    from nightplan.models.context import PlanContext

logger = logging.getLogger(__name__)


def _date_range(context: "PlanContext") -> dict[str, str]:
    return {
        "from": context.window.from_.isoformat(),
        "to": context.window.to.isoformat(),
    }


class PlanRecorder:
    """
    Emit one log line per pipeline transition and keep the process-wide counters.

    Prompt text, raw model output and survey content are never passed in, so they can
    never be logged. Counters are prometheus_client singletons and safe to increment from
    concurrent generations.
    """

    def __init__(self, *, model: Optional[str] = None, provider: Optional[str] = None) -> None:
        self._model = model
        self._provider = provider

    def _emit(self, level: int, event: str, **fields: Any) -> None:
        payload = {key: value for key, value in fields.items() if value is not None}
        logger.log(
            level,
            "%s %s",
            event,
            render_fields(payload),
            extra={"plan_event": event, "plan_fields": payload},
        )

    def _decision_fields(self, context: "PlanContext", kind: str) -> dict[str, Any]:
        return {
            "child_id": context.child_id,
            "plan_type": kind,
            "event_count": context.event_count,
            "distinct_types": context.distinct_types,
            "age_in_months": context.age_in_months,
            "date_range": _date_range(context),
        }

    def context_built(self, context: "PlanContext", kind: str) -> None:
        self._emit(
            logging.INFO,
            "context_built",
            child_id=context.child_id,
            plan_type=kind,
            event_count=context.event_count,
            distinct_types=context.distinct_types,
            age_in_months=context.age_in_months,
            survey_included=context.survey_data is not None,
            survey_complete=context.flags.survey_complete,
        )

    def gate_passed(self, context: "PlanContext", kind: str) -> None:
        self._emit(logging.DEBUG, "gate_passed", **self._decision_fields(context, kind))

    def gate_denied(self, context: "PlanContext", kind: str, reason: str) -> None:
        self._emit(
            logging.INFO,
            "gate_denied",
            reason=reason,
            **self._decision_fields(context, kind),
        )

    def gate_bypassed(self, context: "PlanContext", kind: str, reason: str) -> None:
        self._emit(
            logging.INFO,
            "gate_bypassed",
            reason=reason,
            survey_complete=context.flags.survey_complete,
            **self._decision_fields(context, kind),
        )

    def inference_start(self, child_id: str, kind: str) -> None:
        self._emit(
            logging.INFO,
            "inference_start",
            child_id=child_id,
            plan_type=kind,
            model=self._model,
            provider=self._provider,
        )

    def model_error(self, attempt: int, exc: BaseException) -> None:
        self._emit(logging.WARNING, "model_error", attempt=attempt, error=type(exc).__name__)

    def validation_error(self, attempt: int, code: str, detail: Optional[str]) -> None:
        metrics.VALIDATION_FAILURES.inc()
        self._emit(
            logging.WARNING,
            "validation_error",
            attempt=attempt,
            retry=attempt > 1,
            code=code,
            detail=detail,
        )

    def inference_end(self, child_id: str, kind: str, attempts: int, elapsed_ms: int) -> None:
        metrics.INFERENCE_DURATION.observe(elapsed_ms / 1000.0)
        self._emit(
            logging.INFO,
            "inference_end",
            child_id=child_id,
            plan_type=kind,
            attempts=attempts,
            ms=elapsed_ms,
        )

    def success(self, kind: str, attempts: int, elapsed_ms: int) -> None:
        metrics.PLANS_GENERATED.labels(kind=kind).inc()
        self._emit(logging.INFO, "success", plan_type=kind, attempts=attempts, ms=elapsed_ms)

    def abort(self, kind: str, reason: str, attempts: int, elapsed_ms: int) -> None:
        metrics.PLANS_ABORTED.labels(kind=kind, reason=reason).inc()
        self._emit(
            logging.INFO,
            "abort",
            plan_type=kind,
            reason=reason,
            attempts=attempts,
            ms=elapsed_ms,
        )


__all__ = ["PlanRecorder"]
