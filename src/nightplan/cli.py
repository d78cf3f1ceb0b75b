"""Command-line interface for Nightplan."""

from __future__ import annotations

import json
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Optional

import typer

from nightplan.config import get_settings
from nightplan.db.children import save_child
from nightplan.db.events import record_event
from nightplan.logging_utils import configure_logging
from nightplan.models.context import PLAN_KINDS, GenerateOptions, PlanKind, PlanWindow
from nightplan.models.result import GenerationSuccess
from nightplan.planner.engine import build_plan_engine

app = typer.Typer(help="Nightplan routine-plan generation commands.")


def _load_json_object(path: Path) -> dict[str, Any]:
    with open(path, "r", encoding="utf-8") as fh:
        payload = json.load(fh)
    if not isinstance(payload, dict):
        raise typer.BadParameter(f"{path} must contain a JSON object")
    return payload


def _parse_timestamp(value: Optional[str]) -> datetime:
    if value is None:
        return datetime.now(timezone.utc)
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as exc:
        raise typer.BadParameter(f"invalid ISO timestamp '{value}'") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@app.callback()
def setup() -> None:
    """Configure logging from settings before any command runs."""

    settings = get_settings()
    configure_logging(
        settings.log_level,
        settings.log_format,
        [settings.api_token or "", settings.llm_api_key or ""],
    )


@app.command("add-child")
def add_child(
    child_id: str = typer.Argument(..., help="Child identifier."),
    name: Optional[str] = typer.Option(None, "--name", help="Display name."),
    birthdate: Optional[str] = typer.Option(None, "--birthdate", help="Birth date (YYYY-MM-DD)."),
    survey_file: Optional[Path] = typer.Option(
        None,
        "--survey-file",
        exists=True,
        dir_okay=False,
        help="JSON file with intake-survey answers.",
    ),
) -> None:
    """Register or update a child profile."""

    parsed_birthdate: Optional[date] = None
    if birthdate is not None:
        try:
            parsed_birthdate = date.fromisoformat(birthdate)
        except ValueError as exc:
            raise typer.BadParameter(f"invalid birth date '{birthdate}'") from exc

    survey = _load_json_object(survey_file) if survey_file is not None else None
    profile = save_child(child_id, name=name, birthdate=parsed_birthdate, survey_data=survey)
    typer.echo(json.dumps({"childId": child_id, **profile.model_dump(mode="json", by_alias=True)}))


@app.command("log-event")
def log_event(
    child_id: str = typer.Argument(..., help="Child identifier."),
    event_type: str = typer.Argument(..., help="Event type, e.g. sleep or night_waking."),
    at: Optional[str] = typer.Option(None, "--at", help="Event start (ISO 8601); defaults to now."),
    notes: Optional[str] = typer.Option(None, "--notes", help="Free-form notes."),
) -> None:
    """Record one event for a child."""

    started = _parse_timestamp(at)
    try:
        event_id = record_event(child_id, event_type, started, notes=notes)
    except ValueError as exc:
        typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(f"Recorded event {event_id} ({event_type.strip()}) at {started.isoformat()}")


@app.command()
def generate(
    child_id: str = typer.Argument(..., help="Child identifier."),
    kind: str = typer.Option(
        "initial",
        "--kind",
        help="Plan type: initial, event_based or transcript_refinement.",
    ),
    days: Optional[int] = typer.Option(
        None,
        "--days",
        min=1,
        help="Lookback window in days; defaults to NIGHTPLAN_PLAN_WINDOW_DAYS.",
    ),
    allow_survey_only: Optional[bool] = typer.Option(
        None,
        "--allow-survey-only/--require-events",
        help="Allow an initial plan from survey data alone.",
    ),
    survey_file: Optional[Path] = typer.Option(
        None,
        "--survey-file",
        exists=True,
        dir_okay=False,
        help="JSON survey answers overriding the stored survey.",
    ),
    pretty: bool = typer.Option(False, "--pretty", help="Pretty-print output JSON."),
) -> None:
    """
    Generate a routine plan and print the result as JSON.

    Exits with status 1 when no plan could be produced.
    """

    if kind not in PLAN_KINDS:
        raise typer.BadParameter(f"unknown plan type '{kind}'", param_hint="--kind")
    plan_kind: PlanKind = kind  # type: ignore[assignment]

    settings = get_settings()
    engine = build_plan_engine(settings)
    if engine is None:
        typer.secho(
            "Error: NIGHTPLAN_LLM_BASE_URL is not configured.",
            fg=typer.colors.RED,
            err=True,
        )
        raise typer.Exit(code=2)

    window = PlanWindow.trailing(days) if days is not None else None
    options = GenerateOptions(
        allow_survey_only=(
            allow_survey_only if allow_survey_only is not None else settings.plan_allow_survey_only
        ),
        survey_data=_load_json_object(survey_file) if survey_file is not None else None,
    )
    result = engine.generate(child_id, plan_kind, window, options)

    payload = result.to_payload()
    typer.echo(json.dumps(payload, indent=2 if pretty else None, sort_keys=pretty))
    if not isinstance(result, GenerationSuccess):
        raise typer.Exit(code=1)


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for the ``nightplan`` script."""
    app(prog_name="nightplan", args=argv)


if __name__ == "__main__":
    main()
