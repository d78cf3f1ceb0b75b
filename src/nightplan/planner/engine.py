"""Plan generation engine: context, gate, and a two-attempt model call."""

from __future__ import annotations

import logging
from time import perf_counter
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from nightplan.config import Settings, get_settings
from nightplan.db.children import SqlChildProfileLookup
from nightplan.db.events import SqlEventStatsCollector
from nightplan.llm.http_client import build_model_client
from nightplan.llm.interface import ModelClient
from nightplan.models.context import GenerateOptions, PlanContext, PlanKind, PlanWindow
from nightplan.models.plan import PlanOutput
from nightplan.models.result import GenerationFailure, GenerationResult, GenerationSuccess
from nightplan.planner.context_builder import (
    ChildProfileLookup,
    ContextBuilder,
    EventStatsCollector,
)
from nightplan.planner.gate import SanityGate
from nightplan.planner.observability import PlanRecorder
from nightplan.planner.prompt import PromptBuilder
from nightplan.planner.validator import OutputValidator, PlanValidationError

MAX_ATTEMPTS = 2

logger = logging.getLogger(__name__)


class EngineConfig(BaseModel):
    """Explicit engine settings; defaults apply at construction time."""

    temperature: float = Field(default=0.2, ge=0.0)
    max_tokens: int = Field(default=2000, ge=1)
    min_events: int = Field(default=10, ge=0)
    min_distinct_types: int = Field(default=2, ge=0)
    default_window_days: int = Field(default=30, ge=1)
    model_name: Optional[str] = Field(default=None)
    provider: Optional[str] = Field(default=None)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "EngineConfig":
        settings = settings or get_settings()
        return cls(
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens,
            min_events=settings.plan_min_events,
            min_distinct_types=settings.plan_min_distinct_types,
            default_window_days=settings.plan_window_days,
            model_name=settings.llm_model,
            provider=settings.llm_provider,
        )


def _elapsed_ms(started: float) -> int:
    return max(0, int((perf_counter() - started) * 1000))


class ModelInvoker:
    """Call the model client with the configured sampling budget."""

    def __init__(self, client: ModelClient, *, temperature: float, max_tokens: int) -> None:
        self._client = client
        self.temperature = temperature
        self.max_tokens = max_tokens

    def invoke(self, prompt: str) -> str:
        return self._client.complete(
            prompt=prompt,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )


class RetryController:
    """Run the first attempt and, only if it fails, one corrective attempt."""

    def __init__(
        self,
        invoker: ModelInvoker,
        prompts: PromptBuilder,
        validator: OutputValidator,
        recorder: PlanRecorder,
    ) -> None:
        self._invoker = invoker
        self._prompts = prompts
        self._validator = validator
        self._recorder = recorder

    def _attempt(
        self,
        attempt: int,
        kind: PlanKind,
        context: PlanContext,
        survey_only: bool,
    ) -> Optional[PlanOutput]:
        prompt = self._prompts.build(kind, context, retry=attempt > 1, survey_only=survey_only)
        try:
            raw = self._invoker.invoke(prompt)
        except Exception as exc:
            self._recorder.model_error(attempt, exc)
            return None
        try:
            return self._validator.validate(raw)
        except PlanValidationError as exc:
            self._recorder.validation_error(attempt, exc.code, exc.detail)
            return None
        except Exception as exc:
            self._recorder.validation_error(attempt, "unexpected_error", type(exc).__name__)
            return None

    def run(
        self,
        kind: PlanKind,
        context: PlanContext,
        *,
        survey_only: bool = False,
    ) -> tuple[Optional[PlanOutput], int]:
        """Return the validated plan (or ``None``) and the number of attempts made."""

        for attempt in range(1, MAX_ATTEMPTS + 1):
            output = self._attempt(attempt, kind, context, survey_only)
            if output is not None:
                return output, attempt
        return None, MAX_ATTEMPTS


class PlanGenerationEngine:
    """
    Decide whether a child has enough signal for a plan and, if so, generate one.

    ``generate`` never raises: every outcome, including collaborator failures, is returned
    as a ``GenerationSuccess`` or ``GenerationFailure``.
    """

    def __init__(
        self,
        *,
        events: EventStatsCollector,
        children: ChildProfileLookup,
        model: ModelClient,
        config: Optional[EngineConfig] = None,
        recorder: Optional[PlanRecorder] = None,
    ) -> None:
        self.config = config or EngineConfig()
        self._recorder = recorder or PlanRecorder(
            model=self.config.model_name,
            provider=self.config.provider,
        )
        self._contexts = ContextBuilder(
            events,
            children,
            default_window_days=self.config.default_window_days,
            recorder=self._recorder,
        )
        self._gate = SanityGate(
            min_events=self.config.min_events,
            min_distinct_types=self.config.min_distinct_types,
        )
        self._retries = RetryController(
            ModelInvoker(
                model,
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
            ),
            PromptBuilder(),
            OutputValidator(),
            self._recorder,
        )

    def generate(
        self,
        child_id: str,
        kind: PlanKind,
        window: Optional[PlanWindow] = None,
        options: Optional[GenerateOptions] = None,
    ) -> GenerationResult:
        started = perf_counter()
        try:
            context = self._contexts.build(child_id, kind, window, options)
        except Exception as exc:
            logger.warning("Plan context unavailable for child %s: %s", child_id, exc)
            elapsed = _elapsed_ms(started)
            self._recorder.abort(kind, "context_unavailable", 0, elapsed)
            return GenerationFailure(
                error="insufficient_data",
                reason="context_unavailable",
                attempts=0,
                inference_ms=elapsed,
            )

        decision = self._gate.evaluate(context, kind)
        if not decision.proceed:
            assert decision.reason is not None
            elapsed = _elapsed_ms(started)
            self._recorder.gate_denied(context, kind, decision.reason)
            self._recorder.abort(kind, decision.reason, 0, elapsed)
            return GenerationFailure(
                error="insufficient_data",
                reason=decision.reason,
                attempts=0,
                inference_ms=elapsed,
            )
        if decision.status == "bypassed":
            assert decision.reason is not None
            self._recorder.gate_bypassed(context, kind, decision.reason)
        else:
            self._recorder.gate_passed(context, kind)

        self._recorder.inference_start(child_id, kind)
        output, attempts = self._retries.run(
            kind,
            context,
            survey_only=decision.status == "bypassed",
        )
        elapsed = _elapsed_ms(started)
        self._recorder.inference_end(child_id, kind, attempts, elapsed)

        if output is not None:
            self._recorder.success(kind, attempts, elapsed)
            return GenerationSuccess(output=output, attempts=attempts, inference_ms=elapsed)

        self._recorder.abort(kind, "validation_failed", attempts, elapsed)
        return GenerationFailure(
            error="validation_failed",
            attempts=attempts,
            inference_ms=elapsed,
        )


def build_plan_engine(
    settings: Optional[Settings] = None,
    *,
    model: Optional[ModelClient] = None,
) -> PlanGenerationEngine | None:
    """Wire the engine to the SQL repositories and the configured model client."""

    settings = settings or get_settings()
    client = model or build_model_client(settings)
    if client is None:
        return None
    return PlanGenerationEngine(
        events=SqlEventStatsCollector(),
        children=SqlChildProfileLookup(),
        model=client,
        config=EngineConfig.from_settings(settings),
    )


__all__ = [
    "EngineConfig",
    "MAX_ATTEMPTS",
    "ModelInvoker",
    "PlanGenerationEngine",
    "RetryController",
    "build_plan_engine",
]
