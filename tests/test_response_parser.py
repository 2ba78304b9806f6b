"""Tests for reading model task analyses."""

from __future__ import annotations

from planner.response_parser import TaskComplexity, infer_complexity, parse_task_response


def test_bold_fields_and_multiline_content() -> None:
    response = "\n".join(
        [
            "**UNDERSTANDING**: Build a CLI tool",
            "that converts files",
            "**APPROACH**:",
            "1. Create the project layout",
            "2. Implement the converter",
            "**COMPLEXITY**: COMPLEX",
            "**REQUIREMENTS**:",
            "1. python 3.11",
            "- typer",
            "None",
        ]
    )
    task = parse_task_response(response)

    assert task.understanding == "Build a CLI tool that converts files"
    assert task.approach == "1. Create the project layout\n2. Implement the converter"
    assert task.complexity is TaskComplexity.COMPLEX
    assert task.requirements == ["python 3.11", "typer"]
    assert task.estimated_steps == 10


def test_plain_fields_and_plan_alias() -> None:
    response = "UNDERSTANDING: Rename a file\nAPPROACH: Rename the file\nPLAN:\n* filesystem access\n"
    task = parse_task_response(response)

    assert task.approach == "Rename the file"
    assert task.requirements == ["filesystem access"]
    # No complexity stated; short content is simple.
    assert task.complexity is TaskComplexity.SIMPLE
    assert task.estimated_steps == 1


def test_missing_fields_fall_back_to_defaults() -> None:
    task = parse_task_response("I could not understand the request.")

    assert task.understanding == "Task analysis in progress"
    assert task.approach == "Determining best approach"
    assert task.requirements == []


def test_infer_complexity_thresholds() -> None:
    assert infer_complexity("", "x" * 201, []) is TaskComplexity.COMPLEX
    assert infer_complexity("x" * 81, "", []) is TaskComplexity.MODERATE
    assert infer_complexity("", "", ["r"] * 6) is TaskComplexity.MODERATE
    assert infer_complexity("short", "short", []) is TaskComplexity.SIMPLE
