"""Duration estimate and summary tests."""

from __future__ import annotations

from planner.dependency_graph import DependencyGraph
from planner.plan_estimator import critical_duration, summarize, total_duration
from planner.step_model import Dependency, DependencyKind, Step, StepType


def _graph() -> DependencyGraph:
    steps = [
        Step(id="a", name="Create file", step_type=StepType.FILE_OPERATION, estimated_duration=10),
        Step(id="b", name="Run build", step_type=StepType.COMMAND_EXECUTION, estimated_duration=20),
        Step(
            id="c",
            name="Write parser",
            step_type=StepType.CODE_GENERATION,
            language="python",
            estimated_duration=5,
        ),
    ]
    edges = [
        Dependency(from_id="a", to_id="b", kind=DependencyKind.STRICT),
        Dependency(from_id="a", to_id="c", kind=DependencyKind.WEAK),
    ]
    return DependencyGraph.build(steps, edges)


def test_critical_duration_follows_gating_edges_only() -> None:
    assert critical_duration(_graph()) == 30


def test_data_edges_extend_critical_path() -> None:
    graph = _graph()
    graph.edges.append(Dependency(from_id="b", to_id="c", kind=DependencyKind.DATA))

    assert critical_duration(graph) == 35


def test_total_duration_is_plain_sum() -> None:
    assert total_duration(_graph()) == 35


def test_missing_estimates_count_as_zero() -> None:
    graph = DependencyGraph.build([Step(id="x", name="x")], [])

    assert total_duration(graph) == 0
    assert critical_duration(graph) == 0


def test_empty_graph() -> None:
    graph = DependencyGraph.build([], [])

    assert critical_duration(graph) == 0
    assert summarize(graph).startswith("Plan: 0 step(s)")


def test_summary_is_grouped_by_type() -> None:
    assert summarize(_graph()) == "\n".join(
        [
            "Plan: 3 step(s), 2 dependency(ies)",
            "Critical duration: 30 min",
            "Total duration: 35 min",
            "file_operation (1):",
            "  - a Create file (10 min)",
            "command_execution (1):",
            "  - b Run build (20 min)",
            "code_generation (1):",
            "  - c [python] Write parser (5 min)",
        ]
    )
