"""Plan aggregate: a validated step graph plus caller-reported progress.

A plan is mutated only through ``mark_complete``, ``mark_failed`` and
``resolve_condition``. It is not synchronized; callers running steps in
parallel must serialize those calls themselves.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from core.event_bus import PLAN_FINISHED, PLAN_VALIDATED, STEP_COMPLETED, STEP_FAILED, STEP_READY, EventBus
from planner.dependency_graph import ConditionEvaluator, DependencyGraph, ReadyStep
from planner.errors import AlreadyTerminalError, StateError, StepNotReadyError, UnknownStepIdError
from planner.step_model import Dependency, DependencyKind, Outcome, PlanStatus, Step, StepStatus

logger = logging.getLogger("ap.planner.plan")


@dataclass
class Plan:
    """Validated steps and dependencies with per-step progress."""

    graph: DependencyGraph
    status: PlanStatus = PlanStatus.PENDING
    step_status: dict[str, StepStatus] = field(default_factory=dict)
    outcomes: dict[str, Outcome] = field(default_factory=dict)
    condition_results: dict[tuple[str, str], bool] = field(default_factory=dict)
    source_text: str = ""
    degraded: bool = False
    warnings: list[str] = field(default_factory=list)
    event_bus: EventBus | None = None

    @property
    def steps(self) -> list[Step]:
        return self.graph.steps

    @property
    def dependencies(self) -> list[Dependency]:
        return self.graph.edges

    @property
    def finished(self) -> bool:
        return self.status in (PlanStatus.COMPLETED, PlanStatus.FAILED)

    def get_step(self, step_id: str) -> Step:
        step = self.graph.get(step_id)
        if step is None:
            raise UnknownStepIdError(step_id)
        return step

    def status_of(self, step_id: str) -> StepStatus:
        self.get_step(step_id)
        return self.step_status.get(step_id, StepStatus.PENDING)

    def mark_validated(self) -> None:
        """Pending -> validated; computes the initial frontier."""
        if self.status is not PlanStatus.PENDING:
            raise StateError(f"Plan is already {self.status.value}")
        self.status = PlanStatus.VALIDATED
        self.step_status = {step.id: StepStatus.PENDING for step in self.steps}
        self._emit(PLAN_VALIDATED, {"steps": len(self.steps), "dependencies": len(self.dependencies)})
        self._promote_ready()

    def _stored_condition(self, edge: Dependency) -> bool:
        return self.condition_results.get(edge.key, False)

    def ready_steps(
        self,
        completed: Mapping[str, Outcome] | None = None,
        evaluate_condition: ConditionEvaluator | None = None,
    ) -> list[str]:
        """Eligible step ids in parse order.

        ``completed`` defaults to the outcomes reported on this plan;
        conditions default to those reported through ``resolve_condition``.
        """
        return [entry.step_id for entry in self.frontier(completed, evaluate_condition)]

    def frontier(
        self,
        completed: Mapping[str, Outcome] | None = None,
        evaluate_condition: ConditionEvaluator | None = None,
    ) -> list[ReadyStep]:
        """Ready steps with condition tokens and data input context.

        Against the plan's own progress, verdicts from ``evaluate_condition``
        on pending conditional edges are recorded as if passed to
        ``resolve_condition``, so the steps it admits can be completed.
        """
        if completed is None and evaluate_condition is not None:
            self._record_verdicts(evaluate_condition)
        completed = self.outcomes if completed is None else completed
        for step_id in completed:
            self.get_step(step_id)
        return self.graph.frontier(completed, evaluate_condition or self._stored_condition)

    def pending_conditions(self) -> list[Dependency]:
        """Conditional edges waiting for the caller's verdict."""
        return [edge for edge in self.graph.pending_conditions(self.outcomes) if edge.key not in self.condition_results]

    def blocked_steps(self) -> list[str]:
        rejected = {key for key, value in self.condition_results.items() if not value}
        return self.graph.blocked_steps(self.outcomes, rejected)

    def resolve_condition(self, from_id: str, to_id: str, value: bool) -> None:
        """Record the caller's evaluation of a conditional edge's token."""
        self.get_step(from_id)
        self.get_step(to_id)
        edge = next(
            (e for e in self.dependencies if e.key == (from_id, to_id) and e.kind is DependencyKind.CONDITIONAL),
            None,
        )
        if edge is None:
            raise ValueError(f"No conditional dependency {from_id} -> {to_id}")
        self._require_active()
        self.condition_results[edge.key] = bool(value)
        logger.info("Condition %r on %s -> %s resolved %s", edge.condition, from_id, to_id, bool(value))
        self._after_transition()

    def _record_verdicts(self, evaluate_condition: ConditionEvaluator) -> None:
        pending = self.pending_conditions()
        if not pending:
            return
        for edge in pending:
            self.condition_results[edge.key] = bool(evaluate_condition(edge))
            logger.info(
                "Condition %r on %s -> %s evaluated %s",
                edge.condition,
                edge.from_id,
                edge.to_id,
                self.condition_results[edge.key],
            )
        self._after_transition()

    def mark_complete(self, step_id: str, outcome: Outcome = Outcome.SUCCESS) -> None:
        """Record a step's terminal outcome.

        A successful completion requires the step to be ready. A failure
        outcome is accepted from pending as well, and surfaces no rollback
        actions; use ``mark_failed`` for those.
        """
        outcome = Outcome(outcome)
        current = self._require_mutable(step_id)
        if outcome is Outcome.SUCCESS and current is not StepStatus.READY:
            raise StepNotReadyError(step_id)
        self._record(step_id, outcome)

    def mark_failed(self, step_id: str) -> list[str]:
        """Fail a step; returns its rollback actions when it had been ready."""
        current = self._require_mutable(step_id)
        self._record(step_id, Outcome.FAILURE)
        if current is StepStatus.READY:
            return list(self.get_step(step_id).rollback_actions)
        return []

    def _require_active(self) -> None:
        if self.status is PlanStatus.PENDING:
            raise StateError("Plan has not been validated")

    def _require_mutable(self, step_id: str) -> StepStatus:
        current = self.status_of(step_id)
        self._require_active()
        if current.terminal:
            raise AlreadyTerminalError(step_id, current.value)
        return current

    def _record(self, step_id: str, outcome: Outcome) -> None:
        self.outcomes[step_id] = outcome
        if outcome is Outcome.SUCCESS:
            self.step_status[step_id] = StepStatus.COMPLETED
            logger.info("Step %s completed", step_id)
            self._emit(STEP_COMPLETED, {"step_id": step_id})
        else:
            self.step_status[step_id] = StepStatus.FAILED
            logger.warning("Step %s failed", step_id)
            self._emit(STEP_FAILED, {"step_id": step_id})
        self._after_transition()

    def _after_transition(self) -> None:
        if self.status is PlanStatus.VALIDATED:
            self.status = PlanStatus.IN_PROGRESS
        self._promote_ready()
        if self.finished:
            return
        blocked = set(self.blocked_steps())
        unresolved = [
            step.id for step in self.steps if not self.step_status[step.id].terminal and step.id not in blocked
        ]
        if unresolved:
            return
        failed = any(status is StepStatus.FAILED for status in self.step_status.values())
        self.status = PlanStatus.FAILED if failed else PlanStatus.COMPLETED
        logger.info("Plan finished with status %s", self.status.value)
        self._emit(PLAN_FINISHED, {"status": self.status.value, "blocked": sorted(blocked)})

    def _promote_ready(self) -> None:
        for step_id in self.ready_steps():
            if self.step_status.get(step_id) is StepStatus.PENDING:
                self.step_status[step_id] = StepStatus.READY
                self._emit(STEP_READY, {"step_id": step_id})

    def _emit(self, event_name: str, payload: dict[str, Any]) -> None:
        if self.event_bus is not None:
            self.event_bus.emit(event_name, payload)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "degraded": self.degraded,
            "warnings": list(self.warnings),
            "steps": [
                {
                    **step.model_dump(mode="json"),
                    "status": self.step_status.get(step.id, StepStatus.PENDING).value,
                }
                for step in self.steps
            ],
            "dependencies": [edge.model_dump(mode="json") for edge in self.dependencies],
        }
