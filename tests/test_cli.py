"""CLI tests using Typer's runner."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest
from typer.testing import CliRunner

from core import plan_api
from ui.cli.cli import app

runner = CliRunner()

APPROACH = "1. Create config file\n2. Run the build command"


@pytest.fixture(autouse=True)
def _reset_planner_logging():
    yield
    # The CLI binds a handler to the runner's stderr; drop it between tests.
    logger = logging.getLogger("ap")
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)


def test_plan_prints_summary() -> None:
    result = runner.invoke(app, ["plan", APPROACH])

    assert result.exit_code == 0
    assert "Plan: 2 step(s), 1 dependency(ies)" in result.output
    assert "command_execution (1):" in result.output


def test_plan_reads_file(tmp_path: Path) -> None:
    approach = tmp_path / "approach.txt"
    approach.write_text(APPROACH, encoding="utf-8")

    result = runner.invoke(app, ["plan", "--file", str(approach)])

    assert result.exit_code == 0
    assert "Total duration: 10 min" in result.output


def test_plan_without_input_is_usage_error() -> None:
    result = runner.invoke(app, ["plan"])

    assert result.exit_code != 0


def test_ready_lists_frontier_after_completion() -> None:
    first, second = (step.id for step in plan_api.build_plan(APPROACH).steps)

    initial = runner.invoke(app, ["ready", APPROACH])
    after = runner.invoke(app, ["ready", APPROACH, "--completed", first])

    assert initial.exit_code == 0
    assert f"{first} file_operation: Create config file" in initial.output
    assert second not in initial.output
    assert after.exit_code == 0
    assert f"{second} command_execution: Run the build command" in after.output


def test_ready_rejects_unknown_step_id() -> None:
    result = runner.invoke(app, ["ready", APPROACH, "-c", "step_missing"])

    assert result.exit_code == 1


def test_ready_rejects_unknown_outcome() -> None:
    result = runner.invoke(app, ["ready", APPROACH, "-c", "x=maybe"])

    assert result.exit_code != 0


def test_parse_response_plans_approach(tmp_path: Path) -> None:
    response = tmp_path / "response.md"
    response.write_text(
        "UNDERSTANDING: Set up a repo\nAPPROACH:\n1. Create the readme file\n2. Run the test suite\nCOMPLEXITY: SIMPLE\n",
        encoding="utf-8",
    )

    result = runner.invoke(app, ["parse-response", str(response)])

    assert result.exit_code == 0
    assert "Complexity: simple" in result.output
    assert "Plan: 2 step(s)" in result.output


def test_config_show_prints_settings() -> None:
    result = runner.invoke(app, ["config", "show"])

    assert result.exit_code == 0
    start = result.output.index("{")
    payload = json.loads(result.output[start : result.output.rindex("}") + 1])
    assert payload["max_steps"] == 50
    assert payload["base_durations"]["code_generation"] == 20
