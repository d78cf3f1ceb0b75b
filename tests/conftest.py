"""Shared pytest fixtures for the Nightplan test suite."""

from __future__ import annotations

from typing import Generator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from nightplan.config import get_settings
from nightplan.db.repository import reset_repository_state
from nightplan.server.app import create_app

_ISOLATED_ENV = (
    "NIGHTPLAN_API_TOKEN",
    "NIGHTPLAN_LLM_BASE_URL",
    "NIGHTPLAN_LLM_API_KEY",
    "NIGHTPLAN_LLM_PROVIDER",
    "NIGHTPLAN_LLM_MODEL",
    "NIGHTPLAN_LLM_TEMPERATURE",
    "NIGHTPLAN_LLM_MAX_TOKENS",
    "NIGHTPLAN_LLM_TIMEOUT",
    "NIGHTPLAN_LOG_LEVEL",
    "NIGHTPLAN_LOG_FORMAT",
    "NIGHTPLAN_LOG_REQUESTS",
    "NIGHTPLAN_PLAN_ALLOW_SURVEY_ONLY",
    "NIGHTPLAN_PLAN_MIN_EVENTS",
    "NIGHTPLAN_PLAN_MIN_DISTINCT_TYPES",
    "NIGHTPLAN_PLAN_WINDOW_DAYS",
)


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Ensure each test uses an isolated SQLite database and a clean environment."""

    monkeypatch.chdir(tmp_path)
    for key in _ISOLATED_ENV:
        monkeypatch.delenv(key, raising=False)
    db_path = tmp_path / "test_nightplan.db"
    monkeypatch.setenv("NIGHTPLAN_DATABASE_PATH", str(db_path))
    get_settings.cache_clear()
    reset_repository_state()
    yield
    reset_repository_state()
    monkeypatch.delenv("NIGHTPLAN_DATABASE_PATH", raising=False)
    get_settings.cache_clear()


@pytest.fixture()
def app() -> Generator[FastAPI, None, None]:
    """Create a new FastAPI app instance for each test and reset overrides."""

    application = create_app()
    yield application
    application.dependency_overrides.clear()


@pytest.fixture()
def client(app) -> TestClient:
    """Return a test client bound to the FastAPI app."""

    return TestClient(app)
