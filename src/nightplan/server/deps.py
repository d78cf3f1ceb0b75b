"""Dependency definitions for the Nightplan API server."""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status

from nightplan.config import Settings, get_settings
from nightplan.planner.engine import PlanGenerationEngine, build_plan_engine


def get_plan_engine(settings: Settings = Depends(get_settings)) -> PlanGenerationEngine:
    """Return an engine wired to the SQL repositories and the configured model."""

    engine = build_plan_engine(settings)
    if engine is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"error": "service_unavailable", "reason": "llm_misconfigured"},
        )
    return engine


def require_api_token(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> None:
    """Ensure requests carry the configured API token when required."""

    token = settings.api_token
    if not token:
        return

    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.split("Bearer ")[-1].strip() == token:
        return

    if request.headers.get("X-API-Key") == token:
        return

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Missing or invalid API token.",
        headers={"WWW-Authenticate": "Bearer"},
    )


__all__ = ["get_plan_engine", "require_api_token"]
