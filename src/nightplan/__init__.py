"""
Nightplan sleep-routine planning package.

The package exposes the plan generation engine that turns a child's event history and
intake survey into a structured daily routine, together with the collaborators and
adapters (SQL repositories, model client, HTTP API, CLI) needed to run it.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
