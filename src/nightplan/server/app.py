"""ASGI application for Nightplan."""

from __future__ import annotations

import logging
from datetime import datetime
from time import perf_counter
from typing import Any, Optional
from uuid import uuid4

from fastapi import Depends, FastAPI, Path, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import BaseModel, ConfigDict, Field, model_validator

from nightplan import __version__, metrics
from nightplan.config import Settings, get_settings
from nightplan.logging_utils import configure_logging as configure_app_logging
from nightplan.models.context import GenerateOptions, PlanKind, PlanWindow, as_utc
from nightplan.models.result import GenerationSuccess
from nightplan.planner.engine import PlanGenerationEngine
from nightplan.server import deps

logger = logging.getLogger(__name__)

FAILURE_STATUS = {
    "insufficient_data": status.HTTP_422_UNPROCESSABLE_CONTENT,
    "validation_failed": status.HTTP_502_BAD_GATEWAY,
    "model_error": status.HTTP_502_BAD_GATEWAY,
}


class GeneratePlanRequest(BaseModel):
    """Body of a plan generation request."""

    plan_type: PlanKind = Field(alias="planType")
    allow_survey_only: Optional[bool] = Field(default=None, alias="allowSurveyOnly")
    survey_data: Optional[dict[str, Any]] = Field(default=None, alias="surveyData")
    survey_complete: Optional[bool] = Field(default=None, alias="surveyComplete")
    extra_context: Optional[dict[str, Any]] = Field(default=None, alias="extraContext")
    from_: Optional[datetime] = Field(default=None, alias="from")
    to: Optional[datetime] = Field(default=None)

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="after")
    def check_window(self) -> "GeneratePlanRequest":
        if (self.from_ is None) != (self.to is None):
            raise ValueError("'from' and 'to' must be provided together")
        if self.from_ is not None and self.to is not None and as_utc(self.from_) >= as_utc(self.to):
            raise ValueError("'from' must be strictly before 'to'")
        return self

    def window(self) -> Optional[PlanWindow]:
        if self.from_ is None or self.to is None:
            return None
        return PlanWindow(from_=self.from_, to=self.to)

    def options(self, settings: Settings) -> GenerateOptions:
        allow_survey_only = (
            self.allow_survey_only
            if self.allow_survey_only is not None
            else settings.plan_allow_survey_only
        )
        return GenerateOptions(
            allow_survey_only=allow_survey_only,
            survey_data=self.survey_data,
            survey_complete=self.survey_complete,
            extra_context=self.extra_context,
        )


def _json_safe(value: Any) -> Any:
    """Convert non-serializable values into JSON-safe representations."""

    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, (list, tuple)):
        return [_json_safe(entry) for entry in value]
    if isinstance(value, dict):
        return {key: _json_safe(sub_value) for key, sub_value in value.items()}
    return repr(value)


def _normalize_validation_errors(errors: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return [{key: _json_safe(value) for key, value in error.items()} for error in errors]


def _error_locations(errors: list[dict[str, Any]]) -> list[str]:
    return [".".join(str(part) for part in error.get("loc", ())) for error in errors]


def _configure_logging(settings: Settings) -> None:
    secrets = [settings.api_token or "", settings.llm_api_key or ""]
    configure_app_logging(settings.log_level, settings.log_format, secrets)


def create_app() -> FastAPI:
    """Create and configure a FastAPI application instance."""

    settings = get_settings()
    _configure_logging(settings)

    application = FastAPI(title="Nightplan", version=__version__)
    logger.debug("Application created with log level %s", settings.log_level)

    if settings.log_requests:
        access_logger = logging.getLogger("nightplan.access")

        @application.middleware("http")
        async def log_request_response(request: Request, call_next):
            """Log request/response details without leaking sensitive data."""

            request_id = request.headers.get("X-Request-ID") or uuid4().hex
            request.state.request_id = request_id
            start = perf_counter()
            route = request.scope.get("route")
            method = request.method
            try:
                response: Response = await call_next(request)
            except Exception:
                duration_ms = (perf_counter() - start) * 1000
                path = getattr(request.scope.get("route"), "path", request.url.path)
                access_logger.exception(
                    "HTTP %s %s status=500 duration_ms=%.2f",
                    method,
                    request.url.path,
                    duration_ms,
                    extra={"request_id": request_id},
                )
                metrics.REQUEST_COUNT.labels(method=method, path=path, status="500").inc()
                metrics.REQUEST_LATENCY.labels(method=method, path=path).observe(
                    duration_ms / 1000.0
                )
                raise

            duration_ms = (perf_counter() - start) * 1000
            route = request.scope.get("route") or route
            path = getattr(route, "path", request.url.path)
            response.headers.setdefault("X-Request-ID", request_id)
            access_logger.info(
                "HTTP %s %s status=%s duration_ms=%.2f",
                method,
                request.url.path,
                response.status_code,
                duration_ms,
                extra={"request_id": request_id},
            )
            metrics.REQUEST_COUNT.labels(
                method=method,
                path=path,
                status=str(response.status_code),
            ).inc()
            metrics.REQUEST_LATENCY.labels(method=method, path=path).observe(
                duration_ms / 1000.0
            )
            return response

    @application.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        # Request bodies may carry survey answers, so only error locations are logged.
        log_kwargs: dict[str, Any] = {}
        request_id = getattr(request.state, "request_id", None)
        if request_id:
            log_kwargs["extra"] = {"request_id": request_id}

        logger.warning(
            "Validation error on %s %s: %s",
            request.method,
            request.url.path,
            _error_locations(exc.errors()),
            **log_kwargs,
        )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            content={"detail": _normalize_validation_errors(exc.errors())},
        )

    @application.get("/healthz", include_in_schema=False)
    def healthz() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    @application.get("/metrics", include_in_schema=False)
    def metrics_endpoint() -> Response:
        payload = generate_latest()
        return Response(content=payload, media_type=CONTENT_TYPE_LATEST)

    @application.post(
        "/children/{child_id}/plans/generate",
        summary="Generate a routine plan for a child",
    )
    def generate_plan_endpoint(
        body: GeneratePlanRequest,
        child_id: str = Path(min_length=1, max_length=64),
        auth: None = Depends(deps.require_api_token),
        engine: PlanGenerationEngine = Depends(deps.get_plan_engine),
        settings: Settings = Depends(get_settings),
    ) -> JSONResponse:
        """Run the plan engine and translate its result into an HTTP response."""

        result = engine.generate(
            child_id,
            body.plan_type,
            body.window(),
            body.options(settings),
        )
        if isinstance(result, GenerationSuccess):
            return JSONResponse(status_code=status.HTTP_200_OK, content=result.to_payload())
        return JSONResponse(
            status_code=FAILURE_STATUS[result.error],
            content=result.to_payload(),
        )

    return application


app = create_app()

__all__ = ["app", "create_app"]
