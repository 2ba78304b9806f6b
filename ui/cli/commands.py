"""Typer command handlers."""

from __future__ import annotations

import json
from pathlib import Path

import typer

from core import plan_api
from core.logging_setup import configure_logging
from core.policy_runtime import PlannerSettings, load_planner_settings
from planner.errors import PlanError
from planner.execution_plan import Plan
from planner.response_parser import parse_task_response
from planner.step_model import Outcome


def _settings(root: Path | None = None) -> PlannerSettings:
    settings = load_planner_settings(root)
    configure_logging(settings.log_level)
    return settings


def _read_text(text: str | None, file: Path | None) -> str:
    if file is not None:
        return file.read_text(encoding="utf-8")
    if text is None:
        raise typer.BadParameter("Provide approach TEXT or --file.")
    return text


def _build(text: str, complexity: str | None, settings: PlannerSettings) -> Plan:
    try:
        return plan_api.build_plan(text, complexity=complexity, settings=settings)
    except PlanError as exc:
        typer.echo(f"Plan rejected: {exc}", err=True)
        for violation in getattr(exc, "violations", [])[1:]:
            typer.echo(f"  also: {violation}", err=True)
        raise typer.Exit(code=1) from exc


def _parse_completed(entries: list[str]) -> dict[str, Outcome]:
    completed: dict[str, Outcome] = {}
    for entry in entries:
        step_id, _, outcome = entry.partition("=")
        try:
            completed[step_id.strip()] = Outcome((outcome or Outcome.SUCCESS.value).strip().lower())
        except ValueError as exc:
            raise typer.BadParameter(f"Unknown outcome in '{entry}' (use success or failure)") from exc
    return completed


def plan(text: str | None, file: Path | None, complexity: str | None, as_json: bool) -> None:
    """Build a plan and print it."""
    settings = _settings()
    built = _build(_read_text(text, file), complexity, settings)
    if as_json:
        payload = built.to_dict()
        payload["critical_duration"] = plan_api.critical_duration(built)
        payload["total_duration"] = plan_api.total_duration(built)
        typer.echo(json.dumps(payload, indent=2))
        return
    for warning in built.warnings:
        typer.echo(f"warning: {warning}", err=True)
    typer.echo(plan_api.summarize(built))


def ready(text: str | None, file: Path | None, completed: list[str]) -> None:
    """Print the ready frontier for a given completion state."""
    settings = _settings()
    built = _build(_read_text(text, file), None, settings)
    try:
        frontier = built.frontier(_parse_completed(completed))
    except PlanError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc
    if not frontier:
        typer.echo("No steps are ready.")
        return
    for entry in frontier:
        step = built.get_step(entry.step_id)
        typer.echo(f"{step.id} {step.type_label}: {step.name}")
        for condition in entry.conditions:
            typer.echo(f"  condition: {condition}")
        for source, outputs in entry.input_context.items():
            typer.echo(f"  input from {source}: {', '.join(outputs) or '-'}")


def parse_response(file: Path, as_json: bool) -> None:
    """Read a model response file and plan its approach."""
    settings = _settings()
    response = file.read_text(encoding="utf-8")
    task = parse_task_response(response)
    if as_json:
        typer.echo(json.dumps(task.model_dump(mode="json"), indent=2))
        return
    typer.echo(f"Understanding: {task.understanding}")
    typer.echo(f"Complexity: {task.complexity.value}")
    for requirement in task.requirements:
        typer.echo(f"- {requirement}")
    built = _build(task.approach, task.complexity.value, settings)
    typer.echo(plan_api.summarize(built))


def config_show() -> None:
    """Show effective configuration."""
    settings = _settings()
    typer.echo(json.dumps(settings.model_dump(mode="json"), indent=2))
