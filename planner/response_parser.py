"""Read a language model's task analysis into a TaskPlan.

Expected response shape (markdown bold field names are accepted too)::

    UNDERSTANDING: what the user wants
    APPROACH: 1. first step 2. second step
    COMPLEXITY: SIMPLE | MODERATE | COMPLEX
    REQUIREMENTS:
    - requirement one
    - requirement two
"""

from __future__ import annotations

import logging
import re
from enum import Enum

from pydantic import BaseModel, Field

logger = logging.getLogger("ap.planner.response")

_FIELD = re.compile(
    r"^\s*(?:\*\*)?(understanding|approach|complexity|requirements|plan|execution)(?:\*\*)?\s*:(?:\*\*)?\s*(.*)$",
    re.IGNORECASE,
)
_LIST_MARKER = re.compile(r"^(?:\d+[.)]|[-*•])\s*")


class TaskComplexity(str, Enum):
    SIMPLE = "simple"
    MODERATE = "moderate"
    COMPLEX = "complex"


ESTIMATED_STEPS = {
    TaskComplexity.SIMPLE: 1,
    TaskComplexity.MODERATE: 5,
    TaskComplexity.COMPLEX: 10,
}


class TaskPlan(BaseModel):
    """Model-produced task analysis."""

    understanding: str = "Task analysis in progress"
    approach: str = "Determining best approach"
    complexity: TaskComplexity = TaskComplexity.MODERATE
    requirements: list[str] = Field(default_factory=list)
    estimated_steps: int | None = None


def infer_complexity(understanding: str, approach: str, requirements: list[str]) -> TaskComplexity:
    """Length-based guess used when the response states no complexity."""
    if len(approach) > 200 or len(understanding) > 150 or len(requirements) > 10:
        return TaskComplexity.COMPLEX
    if len(approach) > 100 or len(understanding) > 80 or len(requirements) > 5:
        return TaskComplexity.MODERATE
    return TaskComplexity.SIMPLE


def parse_task_response(response: str) -> TaskPlan:
    """Extract fields from a model response; missing fields get defaults."""
    fields: dict[str, list[str]] = {}
    current: str | None = None
    for raw_line in (response or "").splitlines():
        match = _FIELD.match(raw_line)
        if match:
            current = match.group(1).lower()
            if current == "plan":
                current = "requirements"
            fields.setdefault(current, [])
            if match.group(2).strip():
                fields[current].append(match.group(2).strip())
            continue
        if current is not None and raw_line.strip():
            fields[current].append(raw_line.strip())

    understanding = " ".join(fields.get("understanding", []))
    # Approach keeps its line breaks so enumerated steps stay segmentable.
    approach = "\n".join(fields.get("approach", []))
    requirements = [
        cleaned
        for cleaned in (_LIST_MARKER.sub("", line).strip() for line in fields.get("requirements", []))
        if cleaned and cleaned.lower() != "none"
    ]

    stated = " ".join(fields.get("complexity", [])).strip("* ").lower()
    try:
        complexity = TaskComplexity(stated)
    except ValueError:
        complexity = infer_complexity(understanding, approach, requirements)

    plan = TaskPlan(complexity=complexity, requirements=requirements, estimated_steps=ESTIMATED_STEPS[complexity])
    if understanding:
        plan.understanding = understanding
    if approach:
        plan.approach = approach
    else:
        logger.warning("Model response carried no APPROACH field; using placeholder")
    return plan
