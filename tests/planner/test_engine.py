"""Tests for the plan generation engine."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import httpx
import pytest
from prometheus_client import REGISTRY

from nightplan.config import Settings
from nightplan.llm.interface import ModelClientError
from nightplan.models.context import GenerateOptions
from nightplan.models.result import GenerationFailure, GenerationSuccess
from nightplan.planner.engine import EngineConfig, build_plan_engine
from nightplan.planner.prompt import RETRY_SUFFIX, SURVEY_ONLY_NOTE
from nightplan.planner.validator import OutputValidator
from tests.support import (
    FIXED_WINDOW,
    StubEventStats,
    build_engine,
    plan_document,
    plan_json,
    plan_without_bedtime,
)


def _sample(name, labels=None):
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0


def test_valid_first_reply_succeeds_in_one_attempt():
    engine, model, _ = build_engine(replies=[plan_json()])

    result = engine.generate("c1", "event_based", FIXED_WINDOW)

    assert isinstance(result, GenerationSuccess)
    assert result.ok is True
    assert result.attempts == 1
    assert result.inference_ms >= 0
    assert result.output.to_document() == plan_document()
    assert len(model.prompts) == 1
    assert '"eventCount":15' in model.prompts[0]
    assert '"ageInMonths":8' in model.prompts[0]


def test_sparse_history_is_rejected_without_calling_the_model():
    engine, model, _ = build_engine(counts={"sleep": 3, "feeding": 1}, replies=[plan_json()])

    result = engine.generate("c1", "event_based", FIXED_WINDOW)

    assert isinstance(result, GenerationFailure)
    assert result.to_payload() == {
        "ok": False,
        "error": "insufficient_data",
        "reason": "not_enough_events",
        "attempts": 0,
        "inference_ms": result.inference_ms,
    }
    assert model.prompts == []


def test_survey_only_initial_plan_bypasses_the_gate():
    engine, model, _ = build_engine(counts={}, replies=[plan_json(planType="initial")])

    result = engine.generate(
        "c1",
        "initial",
        FIXED_WINDOW,
        GenerateOptions(
            allow_survey_only=True,
            survey_complete=True,
            survey_data={"sleepLocation": "crib", "completed": True},
        ),
    )

    assert isinstance(result, GenerationSuccess)
    assert result.attempts == 1
    assert len(model.prompts) == 1
    assert SURVEY_ONLY_NOTE in model.prompts[0]
    assert '"sleepLocation":"crib"' in model.prompts[0]


def test_unparseable_first_reply_is_corrected_on_retry():
    engine, model, _ = build_engine(replies=["Sure! Here's the plan: bedtime 7:30pm", plan_json()])

    result = engine.generate("c1", "event_based", FIXED_WINDOW)

    assert isinstance(result, GenerationSuccess)
    assert result.attempts == 2
    assert not model.prompts[0].endswith(RETRY_SUFFIX)
    assert model.prompts[1] == model.prompts[0] + RETRY_SUFFIX


def test_two_schema_failures_end_in_validation_failed():
    engine, model, _ = build_engine(replies=[plan_without_bedtime(), plan_without_bedtime()])

    result = engine.generate("c1", "event_based", FIXED_WINDOW)

    assert isinstance(result, GenerationFailure)
    assert result.error == "validation_failed"
    assert result.reason is None
    assert result.attempts == 2
    assert len(model.prompts) == 2


def test_never_makes_a_third_attempt():
    engine, model, _ = build_engine(replies=["nope", "still nope", plan_json()])

    result = engine.generate("c1", "event_based", FIXED_WINDOW)

    assert isinstance(result, GenerationFailure)
    assert result.attempts == 2
    assert len(model.prompts) == 2
    assert len(model.replies) == 1


def test_model_exceptions_are_folded_into_validation_failures():
    engine, model, _ = build_engine(
        replies=[ModelClientError("openai_error: 503"), httpx.ConnectError("refused")]
    )

    result = engine.generate("c1", "event_based", FIXED_WINDOW)

    assert isinstance(result, GenerationFailure)
    assert result.error == "validation_failed"
    assert result.attempts == 2


def test_model_exception_then_valid_reply_succeeds():
    engine, _, _ = build_engine(replies=[TimeoutError("slow"), plan_json()])

    result = engine.generate("c1", "event_based", FIXED_WINDOW)

    assert isinstance(result, GenerationSuccess)
    assert result.attempts == 2


def test_insufficient_data_reply_is_treated_as_invalid():
    sentinel = '{"error":"insufficient_data","reason":"not enough"}'
    engine, _, _ = build_engine(replies=[sentinel, sentinel])

    result = engine.generate("c1", "event_based", FIXED_WINDOW)

    assert isinstance(result, GenerationFailure)
    assert result.error == "validation_failed"


def test_collaborator_failure_returns_insufficient_data():
    engine, model, _ = build_engine(events=StubEventStats(error=RuntimeError("database is locked")))

    result = engine.generate("c1", "event_based", FIXED_WINDOW)

    assert isinstance(result, GenerationFailure)
    assert result.error == "insufficient_data"
    assert result.reason == "context_unavailable"
    assert result.attempts == 0
    assert model.prompts == []


@pytest.mark.parametrize(
    ("counts", "profile_missing", "reason"),
    [
        ({"sleep": 15}, False, "not_enough_distinct_types"),
        ({"sleep": 8, "feeding": 7}, True, "invalid_age"),
    ],
)
def test_gate_reasons_surface_in_result(counts, profile_missing, reason):
    kwargs = {"profile": None} if profile_missing else {}
    engine, model, _ = build_engine(counts=counts, replies=[plan_json()], **kwargs)

    result = engine.generate("c1", "event_based", FIXED_WINDOW)

    assert isinstance(result, GenerationFailure)
    assert result.reason == reason
    assert result.attempts == 0
    assert model.prompts == []


def test_bypass_does_not_apply_to_event_based_plans():
    engine, model, _ = build_engine(counts={}, replies=[plan_json()])

    result = engine.generate(
        "c1",
        "event_based",
        FIXED_WINDOW,
        GenerateOptions(allow_survey_only=True, survey_complete=True),
    )

    assert isinstance(result, GenerationFailure)
    assert result.reason == "not_enough_events"
    assert model.prompts == []


def test_sampling_budget_comes_from_config():
    config = EngineConfig(temperature=0.7, max_tokens=512)
    engine, model, _ = build_engine(replies=[plan_json()], config=config)

    engine.generate("c1", "event_based", FIXED_WINDOW)

    assert model.calls == [{"temperature": 0.7, "max_tokens": 512}]


def test_default_sampling_budget():
    engine, model, _ = build_engine(replies=[plan_json()])

    engine.generate("c1", "event_based", FIXED_WINDOW)

    assert model.calls == [{"temperature": 0.2, "max_tokens": 2000}]


def test_thresholds_come_from_config():
    config = EngineConfig(min_events=3, min_distinct_types=1)
    engine, model, _ = build_engine(counts={"sleep": 3}, replies=[plan_json()], config=config)

    result = engine.generate("c1", "event_based", FIXED_WINDOW)

    assert isinstance(result, GenerationSuccess)
    assert len(model.prompts) == 1


def test_default_window_length_comes_from_config():
    engine, _, events = build_engine(replies=[plan_json()], config=EngineConfig(default_window_days=14))

    engine.generate("c1", "event_based")

    _, start, end = events.calls[0]
    assert (end - start).days == 14


def test_engine_config_from_settings():
    settings = Settings(
        llm_temperature=0.4,
        llm_max_tokens=900,
        llm_model="local-model",
        llm_provider="ollama",
        plan_min_events=5,
        plan_min_distinct_types=3,
        plan_window_days=21,
    )

    config = EngineConfig.from_settings(settings)

    assert config.temperature == 0.4
    assert config.max_tokens == 900
    assert config.min_events == 5
    assert config.min_distinct_types == 3
    assert config.default_window_days == 21
    assert config.model_name == "local-model"
    assert config.provider == "ollama"


def test_build_plan_engine_requires_a_model_endpoint():
    assert build_plan_engine(Settings()) is None
    assert build_plan_engine(Settings(llm_base_url="http://llm.test/v1")) is not None


def test_success_and_abort_counters():
    generated_before = _sample("nightplan_plans_generated_total", {"kind": "event_based"})
    aborted_before = _sample(
        "nightplan_plans_aborted_total", {"kind": "event_based", "reason": "not_enough_events"}
    )
    failed_before = _sample(
        "nightplan_plans_aborted_total", {"kind": "event_based", "reason": "validation_failed"}
    )
    rejected_before = _sample("nightplan_plan_validation_failures_total")
    inference_before = _sample("nightplan_plan_inference_duration_seconds_count")

    build_engine(replies=[plan_json()])[0].generate("c1", "event_based", FIXED_WINDOW)
    build_engine(counts={"sleep": 1})[0].generate("c1", "event_based", FIXED_WINDOW)
    build_engine(replies=["x", "y"])[0].generate("c1", "event_based", FIXED_WINDOW)

    assert _sample("nightplan_plans_generated_total", {"kind": "event_based"}) == generated_before + 1
    assert (
        _sample("nightplan_plans_aborted_total", {"kind": "event_based", "reason": "not_enough_events"})
        == aborted_before + 1
    )
    assert (
        _sample("nightplan_plans_aborted_total", {"kind": "event_based", "reason": "validation_failed"})
        == failed_before + 1
    )
    assert _sample("nightplan_plan_validation_failures_total") == rejected_before + 2
    assert _sample("nightplan_plan_inference_duration_seconds_count") == inference_before + 2


def test_oversized_integer_reply_is_corrected_on_retry():
    engine, model, _ = build_engine(replies=["1" * 5000, plan_json()])

    result = engine.generate("c1", "event_based", FIXED_WINDOW)

    assert isinstance(result, GenerationSuccess)
    assert result.attempts == 2
    assert len(model.prompts) == 2


def test_deeply_nested_replies_end_in_validation_failed():
    engine, _, _ = build_engine(replies=["[" * 200000, "[" * 200000])

    result = engine.generate("c1", "event_based", FIXED_WINDOW)

    assert isinstance(result, GenerationFailure)
    assert result.error == "validation_failed"
    assert result.attempts == 2


def test_unexpected_validator_errors_count_as_failed_attempts(monkeypatch):
    def explode(self, raw):
        raise KeyError("boom")

    monkeypatch.setattr(OutputValidator, "validate", explode)
    engine, model, _ = build_engine(replies=[plan_json(), plan_json()])

    result = engine.generate("c1", "event_based", FIXED_WINDOW)

    assert isinstance(result, GenerationFailure)
    assert result.error == "validation_failed"
    assert result.attempts == 2
    assert len(model.prompts) == 2


def test_survey_only_bypass_covers_invalid_age():
    engine, model, _ = build_engine(
        profile=None,
        replies=[plan_json(planType="initial")],
    )

    result = engine.generate(
        "c1",
        "initial",
        FIXED_WINDOW,
        GenerateOptions(allow_survey_only=True, survey_complete=True),
    )

    assert isinstance(result, GenerationSuccess)
    assert result.attempts == 1
    assert len(model.prompts) == 1
    assert SURVEY_ONLY_NOTE in model.prompts[0]


def test_counters_are_exact_under_concurrent_generation():
    runs = 16
    before = _sample("nightplan_plans_generated_total", {"kind": "event_based"})
    engine, model, _ = build_engine(replies=[plan_json() for _ in range(runs)])

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda _: engine.generate("c1", "event_based", FIXED_WINDOW), range(runs)))

    assert all(isinstance(result, GenerationSuccess) for result in results)
    assert len(model.prompts) == runs
    assert _sample("nightplan_plans_generated_total", {"kind": "event_based"}) == before + runs
