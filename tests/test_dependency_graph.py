"""Dependency graph readiness and cycle tests."""

from __future__ import annotations

import pytest

from planner.dependency_graph import DependencyGraph
from planner.step_model import Dependency, DependencyKind, Outcome, Step


def _step(step_id: str, **kwargs) -> Step:
    return Step(id=step_id, name=step_id.upper(), **kwargs)


def _graph(edges: list[Dependency], ids: str = "abc") -> DependencyGraph:
    return DependencyGraph.build([_step(step_id) for step_id in ids], edges)


def test_steps_without_dependencies_are_ready_immediately() -> None:
    graph = _graph([], ids="a")

    assert graph.ready_steps({}) == ["a"]


def test_strict_edge_requires_success() -> None:
    graph = _graph([Dependency(from_id="a", to_id="b", kind=DependencyKind.STRICT)], ids="ab")

    assert graph.ready_steps({}) == ["a"]
    assert graph.ready_steps({"a": Outcome.FAILURE}) == []
    assert graph.ready_steps({"a": Outcome.SUCCESS}) == ["b"]


def test_weak_edge_accepts_any_outcome() -> None:
    graph = _graph([Dependency(from_id="a", to_id="b", kind=DependencyKind.WEAK)], ids="ab")

    assert graph.ready_steps({"a": Outcome.FAILURE}) == ["b"]
    assert graph.ready_steps({"a": Outcome.SUCCESS}) == ["b"]


def test_conditional_edge_defers_to_caller() -> None:
    edge = Dependency(from_id="a", to_id="b", kind=DependencyKind.CONDITIONAL, condition="tests_green")
    graph = _graph([edge], ids="ab")

    assert graph.ready_steps({"a": Outcome.SUCCESS}) == []
    assert graph.pending_conditions({"a": Outcome.SUCCESS}) == [edge]
    assert graph.ready_steps({"a": Outcome.SUCCESS}, lambda dep: dep.condition == "tests_green") == ["b"]
    assert graph.ready_steps({"a": Outcome.FAILURE}, lambda dep: True) == []

    frontier = graph.frontier({"a": Outcome.SUCCESS}, lambda dep: True)
    assert frontier[0].conditions == ["tests_green"]


def test_conditional_edge_requires_token() -> None:
    with pytest.raises(ValueError):
        Dependency(from_id="a", to_id="b", kind=DependencyKind.CONDITIONAL)


def test_data_edge_attaches_outputs_to_input_context() -> None:
    steps = [_step("a", expected_outputs=["schema.sql"]), _step("b"), _step("c")]
    graph = DependencyGraph.build(
        steps,
        [
            Dependency(from_id="a", to_id="b", kind=DependencyKind.DATA),
            Dependency(from_id="a", to_id="c", kind=DependencyKind.DATA, expected_outputs=["rows.csv"]),
        ],
    )

    assert graph.ready_steps({"a": Outcome.FAILURE}) == []
    frontier = graph.frontier({"a": Outcome.SUCCESS})
    assert [entry.step_id for entry in frontier] == ["b", "c"]
    assert frontier[0].input_context == {"a": ["schema.sql"]}
    assert frontier[1].input_context == {"a": ["rows.csv"]}


def test_ready_steps_follow_parse_order() -> None:
    graph = _graph(
        [
            Dependency(from_id="a", to_id="c", kind=DependencyKind.STRICT),
            Dependency(from_id="a", to_id="b", kind=DependencyKind.STRICT),
        ]
    )

    assert graph.ready_steps({"a": Outcome.SUCCESS}) == ["b", "c"]


def test_frontier_is_monotonic_under_more_successes() -> None:
    graph = DependencyGraph.build(
        [_step(step_id) for step_id in "abcd"],
        [
            Dependency(from_id="a", to_id="c", kind=DependencyKind.STRICT),
            Dependency(from_id="b", to_id="c", kind=DependencyKind.WEAK),
            Dependency(from_id="c", to_id="d", kind=DependencyKind.DATA),
        ],
    )
    states = [
        {},
        {"a": Outcome.SUCCESS},
        {"a": Outcome.SUCCESS, "b": Outcome.SUCCESS},
        {"a": Outcome.SUCCESS, "b": Outcome.SUCCESS, "c": Outcome.SUCCESS},
    ]
    for smaller, larger in zip(states, states[1:]):
        still_ready_or_done = set(graph.ready_steps(larger)) | set(larger)
        assert set(graph.ready_steps(smaller)) <= still_ready_or_done


def test_detect_cycle_returns_path() -> None:
    graph = _graph(
        [
            Dependency(from_id="a", to_id="b"),
            Dependency(from_id="b", to_id="c"),
            Dependency(from_id="c", to_id="a"),
        ]
    )

    assert graph.detect_cycle() == ["a", "b", "c"]


def test_detect_cycle_none_for_dag_and_self_loop_found() -> None:
    dag = _graph([Dependency(from_id="a", to_id="b"), Dependency(from_id="a", to_id="c")])
    looped = _graph([Dependency(from_id="b", to_id="b")])

    assert dag.detect_cycle() is None
    assert looped.detect_cycle() == ["b"]


def test_topological_order_is_stable() -> None:
    graph = DependencyGraph.build(
        [_step(step_id) for step_id in "dcba"],
        [Dependency(from_id="a", to_id="d"), Dependency(from_id="b", to_id="d")],
    )

    assert graph.topological_order() == ["c", "b", "a", "d"]


def test_topological_order_rejects_cycles() -> None:
    graph = _graph([Dependency(from_id="a", to_id="b"), Dependency(from_id="b", to_id="a")])

    with pytest.raises(ValueError):
        graph.topological_order()


def test_blocked_steps_propagate_through_failures() -> None:
    graph = DependencyGraph.build(
        [_step(step_id) for step_id in "abcd"],
        [
            Dependency(from_id="a", to_id="b", kind=DependencyKind.STRICT),
            Dependency(from_id="b", to_id="c", kind=DependencyKind.WEAK),
            Dependency(from_id="a", to_id="d", kind=DependencyKind.WEAK),
        ],
    )

    assert graph.blocked_steps({"a": Outcome.FAILURE}) == ["b", "c"]


def test_predecessors_and_successors() -> None:
    graph = _graph([Dependency(from_id="a", to_id="b"), Dependency(from_id="a", to_id="c")])

    assert graph.successors("a") == ["b", "c"]
    assert graph.predecessors("c") == ["a"]
    assert "a" in graph
    assert graph.get("z") is None
