"""Public entry points for building and driving plans.

Typical loop::

    plan = build_plan(approach_text)
    while not plan.finished:
        for step_id in ready_steps(plan):
            ...  # run the step with the caller's own tools
            mark_complete(plan, step_id, Outcome.SUCCESS)
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from core.event_bus import EventBus
from core.policy_runtime import PlannerSettings, load_planner_settings
from planner import plan_estimator
from planner.dependency_graph import ConditionEvaluator, DependencyGraph
from planner.execution_plan import Plan
from planner.plan_parser import PlanParser
from planner.plan_validator import PlanValidator
from planner.response_parser import parse_task_response
from planner.step_model import Dependency, Outcome, Step

logger = logging.getLogger("ap.api")

StepInput = str | Step | Mapping[str, Any]


def _draft_from_supplied(
    parser: PlanParser,
    supplied: Sequence[StepInput],
    complexity: str | None,
) -> tuple[list[Step], list[Dependency]]:
    if all(isinstance(item, str) for item in supplied):
        result = parser.parse_segments([str(item) for item in supplied], complexity=complexity)
        return result.steps, result.dependencies
    # Explicit step objects carry their own ids; no edges are inferred.
    steps: list[Step] = []
    for index, item in enumerate(supplied):
        if isinstance(item, str):
            steps.append(parser.draft_step(index, item, complexity))
        elif isinstance(item, Step):
            steps.append(item)
        else:
            steps.append(Step.model_validate(item))
    return parser.complete_steps(steps, complexity=complexity), []


def build_plan(
    text: str = "",
    steps: Sequence[StepInput] | None = None,
    dependencies: Sequence[Dependency | Mapping[str, Any]] | None = None,
    complexity: str | None = None,
    settings: PlannerSettings | None = None,
    event_bus: EventBus | None = None,
) -> Plan:
    """Parse, link and validate an approach into a plan.

    ``steps`` replaces segmentation with a caller-supplied list. Explicit
    ``dependencies`` are added to the inferred ones. Raises
    ``ValidationError`` when the resulting graph is unsound.
    """
    settings = settings or load_planner_settings()
    parser = PlanParser(settings)
    degraded = False
    warnings: list[str] = []

    if steps is not None:
        drafts, edges = _draft_from_supplied(parser, steps, complexity)
    else:
        result = parser.parse(text, complexity=complexity)
        drafts, edges = result.steps, result.dependencies
        degraded, warnings = result.degraded, result.warnings

    for item in dependencies or []:
        edges.append(item if isinstance(item, Dependency) else Dependency.model_validate(item))

    graph = DependencyGraph.build(drafts, edges)
    plan = PlanValidator(settings.default_criterion).validate(graph, event_bus=event_bus)
    plan.source_text = text
    plan.degraded = degraded
    plan.warnings = warnings
    logger.info("Built plan with %d step(s) and %d dependency(ies)", len(plan.steps), len(plan.dependencies))
    return plan


def build_plan_from_response(
    response: str,
    settings: PlannerSettings | None = None,
    event_bus: EventBus | None = None,
) -> Plan:
    """Build a plan from a model's UNDERSTANDING/APPROACH/COMPLEXITY response."""
    task = parse_task_response(response)
    return build_plan(task.approach, complexity=task.complexity.value, settings=settings, event_bus=event_bus)


def ready_steps(
    plan: Plan,
    completed: Mapping[str, Outcome] | None = None,
    evaluate_condition: ConditionEvaluator | None = None,
) -> list[str]:
    return plan.ready_steps(completed, evaluate_condition)


def mark_complete(plan: Plan, step_id: str, outcome: Outcome = Outcome.SUCCESS) -> None:
    plan.mark_complete(step_id, outcome)


def mark_failed(plan: Plan, step_id: str) -> list[str]:
    return plan.mark_failed(step_id)


def resolve_condition(plan: Plan, from_id: str, to_id: str, value: bool) -> None:
    plan.resolve_condition(from_id, to_id, value)


def critical_duration(plan: Plan) -> int:
    return plan_estimator.critical_duration(plan.graph)


def total_duration(plan: Plan) -> int:
    return plan_estimator.total_duration(plan.graph)


def summarize(plan: Plan) -> str:
    return plan_estimator.summarize(plan.graph)
