"""CLI entrypoint for approach-planner."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer

from ui.cli import commands

app = typer.Typer(help="Turn approach descriptions into executable step plans")
config_app = typer.Typer(help="Configuration commands")


@app.command("plan")
def plan_cmd(
    text: Optional[str] = typer.Argument(None, help="Approach text"),
    file: Optional[Path] = typer.Option(None, "--file", "-f", exists=True, dir_okay=False, help="Read approach from file"),
    complexity: Optional[str] = typer.Option(None, help="simple, moderate or complex"),
    as_json: bool = typer.Option(False, "--json", help="Print the full plan as JSON"),
) -> None:
    """Build a plan and print its summary."""
    commands.plan(text=text, file=file, complexity=complexity, as_json=as_json)


@app.command("ready")
def ready_cmd(
    text: Optional[str] = typer.Argument(None, help="Approach text"),
    file: Optional[Path] = typer.Option(None, "--file", "-f", exists=True, dir_okay=False, help="Read approach from file"),
    completed: List[str] = typer.Option([], "--completed", "-c", help="STEP_ID[=success|failure], repeatable"),
) -> None:
    """List steps ready to run given completed steps."""
    commands.ready(text=text, file=file, completed=completed)


@app.command("parse-response")
def parse_response_cmd(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Model response file"),
    as_json: bool = typer.Option(False, "--json", help="Print the parsed task analysis as JSON"),
) -> None:
    """Plan the approach found in a model response."""
    commands.parse_response(file=file, as_json=as_json)


@config_app.command("show")
def config_show_cmd() -> None:
    """Show effective configuration."""
    commands.config_show()


app.add_typer(config_app, name="config")


def main() -> None:
    """Console script entrypoint."""
    app()


if __name__ == "__main__":
    main()
