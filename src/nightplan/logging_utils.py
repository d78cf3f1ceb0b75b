"""Logging setup for the server and CLI, with secret redaction and plan-event fields."""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Sequence

REDACTED = "[redacted]"

# Header values as they appear in httpx errors and access logs, plus provider keys in query strings.
_SECRET_PATTERNS = (
    re.compile(r"(Bearer\s+)([A-Za-z0-9\-._~+/=]+)", re.IGNORECASE),
    re.compile(r"(X-API-Key[:=]\s*)([^&\s,]+)", re.IGNORECASE),
    re.compile(r"([?&](?:api_)?key=)([^&\s]+)", re.IGNORECASE),
)


def redact(message: str, secrets: Sequence[str]) -> str:
    """Return ``message`` with auth token patterns and the given secrets masked."""

    for pattern in _SECRET_PATTERNS:
        message = pattern.sub(r"\1" + REDACTED, message)
    for secret in secrets:
        if secret:
            message = message.replace(secret, REDACTED)
    return message


def _redact_value(value: Any, secrets: Sequence[str]) -> Any:
    if isinstance(value, str):
        return redact(value, secrets)
    if isinstance(value, Mapping):
        return {key: _redact_value(item, secrets) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_redact_value(item, secrets) for item in value]
    return value


class SensitiveDataFilter(logging.Filter):
    """Redact configured secrets from the message and from plan-event fields."""

    def __init__(self, secrets: Iterable[str]):
        super().__init__()
        self._secrets = [secret.strip() for secret in secrets if secret and secret.strip()]

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401 - standard interface
        message = record.getMessage()
        sanitized = redact(message, self._secrets)
        if sanitized != message:
            record.msg = sanitized
            record.args = ()

        fields = getattr(record, "plan_fields", None)
        if isinstance(fields, Mapping):
            record.plan_fields = _redact_value(fields, self._secrets)
        return True


def render_fields(fields: Mapping[str, Any]) -> str:
    """Render structured log fields as a compact, deterministic JSON object."""

    return json.dumps(dict(fields), sort_keys=True, default=str, ensure_ascii=True)


class JsonFormatter(logging.Formatter):
    """One JSON object per record; plan events carry ``event`` and ``fields``."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401 - override
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if request_id := getattr(record, "request_id", None):
            payload["request_id"] = request_id

        if plan_event := getattr(record, "plan_event", None):
            payload["event"] = plan_event
            payload["fields"] = getattr(record, "plan_fields", None) or {}

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=True, default=str)


def configure_logging(level_name: str, fmt: str, secrets: Iterable[str]) -> None:
    """Install a single redacting stream handler on the root and uvicorn loggers."""

    numeric_level = getattr(logging, level_name.upper(), logging.INFO)

    handler = logging.StreamHandler()
    if (fmt or "plain").lower() == "json":
        formatter: logging.Formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S%z",
        )
    handler.setFormatter(formatter)

    filter_ = SensitiveDataFilter(secrets)
    handler.addFilter(filter_)

    root = logging.getLogger()
    root.handlers = []
    root.addHandler(handler)
    root.setLevel(numeric_level)

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logger = logging.getLogger(name)
        logger.handlers = []
        logger.setLevel(numeric_level)
        logger.propagate = True
        logger.addFilter(filter_)
