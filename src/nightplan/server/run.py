"""Helper for running the Nightplan ASGI application."""

from __future__ import annotations

import asyncio
import os
from typing import Optional

import uvicorn

APP_TARGET = "nightplan.server.app:app"


async def _serve_with_duration(server: uvicorn.Server, duration: float) -> None:
    """Run the server and shut it down after the specified duration."""

    async def _shutdown() -> None:
        await asyncio.sleep(duration)
        server.should_exit = True

    asyncio.create_task(_shutdown())
    await server.serve()


def _parse_port(value: str | None) -> int:
    if not value:
        return 8000
    try:
        port = int(value)
    except ValueError as exc:
        raise SystemExit(f"Invalid NIGHTPLAN_SERVER_PORT '{value}': {exc}") from exc
    if not 0 < port < 65536:
        raise SystemExit("NIGHTPLAN_SERVER_PORT must be between 1 and 65535.")
    return port


def _parse_duration(value: str | None) -> Optional[float]:
    if not value:
        return None
    try:
        parsed = float(value)
    except ValueError as exc:
        raise SystemExit(f"Invalid NIGHTPLAN_SERVER_DURATION '{value}': {exc}") from exc
    if parsed <= 0:
        raise SystemExit("NIGHTPLAN_SERVER_DURATION must be greater than 0 when provided.")
    return parsed


def main() -> None:
    """Entry point for the ``nightplan-server`` script."""

    host = os.environ.get("NIGHTPLAN_SERVER_HOST", "127.0.0.1")
    port = _parse_port(os.environ.get("NIGHTPLAN_SERVER_PORT"))
    reload_enabled = os.environ.get("NIGHTPLAN_SERVER_RELOAD") == "1"
    duration = _parse_duration(os.environ.get("NIGHTPLAN_SERVER_DURATION"))

    if reload_enabled and duration is not None:
        raise SystemExit("Disable NIGHTPLAN_SERVER_RELOAD when specifying NIGHTPLAN_SERVER_DURATION.")

    if reload_enabled:
        uvicorn.run(APP_TARGET, host=host, port=port, reload=True)
        return

    server = uvicorn.Server(uvicorn.Config(APP_TARGET, host=host, port=port, reload=False))

    if duration is not None:
        asyncio.run(_serve_with_duration(server, duration))
        return

    server.run()


if __name__ == "__main__":
    main()
