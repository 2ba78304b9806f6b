"""Structural checks run before a plan is handed to a caller."""

from __future__ import annotations

import logging

from core.event_bus import EventBus
from planner.dependency_graph import DependencyGraph
from planner.errors import (
    CyclicDependencyError,
    DanglingReferenceError,
    DuplicateIdError,
    SelfDependencyError,
    ValidationError,
)
from planner.execution_plan import Plan
from planner.step_model import DEFAULT_CRITERION

logger = logging.getLogger("ap.planner.validator")


class PlanValidator:
    """Checks ids, edge endpoints, self-loops and cycles, in that order."""

    def __init__(self, default_criterion: str = DEFAULT_CRITERION) -> None:
        self.default_criterion = default_criterion

    def collect_violations(self, graph: DependencyGraph) -> list[ValidationError]:
        """Every invariant violation, in check order."""
        violations: list[ValidationError] = []

        seen: set[str] = set()
        for step in graph.steps:
            if step.id in seen:
                violations.append(DuplicateIdError(step.id))
            seen.add(step.id)

        for edge in graph.edges:
            for endpoint in (edge.from_id, edge.to_id):
                if endpoint not in graph:
                    violations.append(DanglingReferenceError(edge.from_id, edge.to_id, endpoint))
                    break

        for edge in graph.edges:
            if edge.from_id == edge.to_id:
                violations.append(SelfDependencyError(edge.from_id))

        # Self-loops are already reported; keep them out of cycle search.
        loop_free = DependencyGraph.build(graph.steps, [edge for edge in graph.edges if edge.from_id != edge.to_id])
        cycle = loop_free.detect_cycle()
        if cycle:
            violations.append(CyclicDependencyError(cycle))
        return violations

    def validate(self, graph: DependencyGraph, event_bus: EventBus | None = None) -> Plan:
        """Freeze a graph into a validated plan.

        Raises the first violation, which carries all of them in
        ``violations``. Steps without validation criteria get the default
        criterion; the input graph is left untouched.
        """
        violations = self.collect_violations(graph)
        if violations:
            first = violations[0]
            first.violations = violations
            logger.warning("Plan validation failed with %d violation(s): %s", len(violations), first)
            raise first

        steps = [
            step if step.validation_criteria else step.model_copy(update={"validation_criteria": [self.default_criterion]})
            for step in graph.steps
        ]
        plan = Plan(graph=DependencyGraph.build(steps, graph.edges), event_bus=event_bus)
        plan.mark_validated()
        return plan
