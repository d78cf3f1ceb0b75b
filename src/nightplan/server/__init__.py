"""ASGI application factory and dependencies for the Nightplan server."""

from nightplan.server.app import app, create_app

__all__ = ["app", "create_app"]
