"""Application configuration helpers."""

from __future__ import annotations

import math
import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

ENV_FILE_CANDIDATES = (Path(".env"), Path(".env.local"))


class Settings(BaseModel):
    """Global application settings loaded from environment variables or .env files."""

    database_path: Path = Field(
        default=Path("./data/nightplan.db"),
        description="SQLite database location.",
    )
    api_token: Optional[str] = Field(
        default=None,
        description="Bearer token required for authenticated endpoints.",
    )
    log_level: str = Field(default="INFO", description="Logging level (DEBUG/INFO/WARNING/ERROR)")
    log_format: str = Field(
        default="plain",
        description="Logging format (plain/json).",
    )
    log_requests: bool = Field(
        default=True,
        description="Emit request access logs when true.",
    )
    llm_base_url: Optional[str] = Field(
        default=None,
        description="Plan LLM base URL (OpenAI-compatible runtime or Ollama).",
    )
    llm_api_key: Optional[str] = Field(
        default=None,
        description="API key sent as a bearer token to the plan LLM endpoint.",
    )
    llm_model: str = Field(
        default="gpt-4o-mini",
        description="Model identifier passed to the plan LLM endpoint.",
    )
    llm_provider: str = Field(
        default="openai",
        description="Plan LLM provider (openai or ollama).",
    )
    llm_temperature: float = Field(
        default=0.2,
        description="Sampling temperature for plan generation.",
    )
    llm_max_tokens: int = Field(
        default=2000,
        description="Maximum output tokens to request from the plan LLM.",
    )
    llm_timeout: float = Field(
        default=60.0,
        description="Seconds to wait for a plan LLM response.",
    )
    plan_min_events: int = Field(
        default=10,
        description="Minimum events inside the window for the sanity gate to pass.",
    )
    plan_min_distinct_types: int = Field(
        default=2,
        description="Minimum distinct event types inside the window for the sanity gate to pass.",
    )
    plan_window_days: int = Field(
        default=30,
        description="Length in days of the default event lookback window.",
    )
    plan_allow_survey_only: bool = Field(
        default=False,
        description="Default for the survey-only bypass on initial plans when a request omits it.",
    )

    model_config = ConfigDict(frozen=True)


def _coerce_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _parse_env_file(path: Path) -> dict[str, str]:
    payload: dict[str, str] = {}
    try:
        with path.open("r", encoding="utf-8") as handle:
            for raw_line in handle:
                line = raw_line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue
                key, raw_value = line.split("=", 1)
                payload[key.strip()] = raw_value.strip()
    except FileNotFoundError:
        return {}
    return payload


def _load_env_file_values() -> dict[str, str]:
    values: dict[str, str] = {}
    for candidate in ENV_FILE_CANDIDATES:
        values.update(_parse_env_file(candidate))
    return values


_INT_OVERRIDES = {
    "NIGHTPLAN_LLM_MAX_TOKENS": "llm_max_tokens",
    "NIGHTPLAN_PLAN_MIN_EVENTS": "plan_min_events",
    "NIGHTPLAN_PLAN_MIN_DISTINCT_TYPES": "plan_min_distinct_types",
    "NIGHTPLAN_PLAN_WINDOW_DAYS": "plan_window_days",
}

# Temperature may be zero; timeouts must be positive.
_FLOAT_OVERRIDES = {
    "NIGHTPLAN_LLM_TEMPERATURE": ("llm_temperature", True),
    "NIGHTPLAN_LLM_TIMEOUT": ("llm_timeout", False),
}


def _load_from_env() -> dict[str, object]:
    """Load optional overrides from env vars (with .env fallbacks)."""

    file_values = _load_env_file_values()

    def _env(key: str) -> Optional[str]:
        return os.environ.get(key) or file_values.get(key)

    payload: dict[str, object] = {}
    if (db_path := _env("NIGHTPLAN_DATABASE_PATH")):
        payload["database_path"] = Path(db_path)
    if (api_token := _env("NIGHTPLAN_API_TOKEN")):
        payload["api_token"] = api_token
    if (log_level := _env("NIGHTPLAN_LOG_LEVEL")):
        payload["log_level"] = log_level
    if (log_format := _env("NIGHTPLAN_LOG_FORMAT")):
        payload["log_format"] = log_format
    if (log_requests := _env("NIGHTPLAN_LOG_REQUESTS")):
        payload["log_requests"] = _coerce_bool(log_requests)
    if (llm_base_url := _env("NIGHTPLAN_LLM_BASE_URL")):
        payload["llm_base_url"] = llm_base_url
    if (llm_api_key := _env("NIGHTPLAN_LLM_API_KEY")):
        payload["llm_api_key"] = llm_api_key
    if (llm_model := _env("NIGHTPLAN_LLM_MODEL")):
        payload["llm_model"] = llm_model
    if (llm_provider := _env("NIGHTPLAN_LLM_PROVIDER")):
        payload["llm_provider"] = llm_provider
    if (allow_survey_only := _env("NIGHTPLAN_PLAN_ALLOW_SURVEY_ONLY")):
        payload["plan_allow_survey_only"] = _coerce_bool(allow_survey_only)
    for key, field_name in _INT_OVERRIDES.items():
        if (raw := _env(key)):
            try:
                value = int(raw)
            except ValueError:
                continue
            if value > 0:
                payload[field_name] = value
    for key, (field_name, allow_zero) in _FLOAT_OVERRIDES.items():
        if (raw := _env(key)):
            try:
                value = float(raw)
            except ValueError:
                continue
            if not math.isfinite(value) or value < 0 or (value == 0 and not allow_zero):
                continue
            payload[field_name] = value
    return payload


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings(**_load_from_env())
