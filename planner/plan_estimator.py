"""Duration estimates and textual summaries of step graphs."""

from __future__ import annotations

from planner.dependency_graph import DependencyGraph
from planner.step_model import DependencyKind, StepType

GATING_KINDS = frozenset({DependencyKind.STRICT, DependencyKind.DATA})


def _minutes(value: int | None) -> int:
    return value or 0


def critical_duration(graph: DependencyGraph) -> int:
    """Longest path in minutes following strict and data edges only."""
    gating = DependencyGraph.build(graph.steps, [edge for edge in graph.edges if edge.kind in GATING_KINDS])
    finish: dict[str, int] = {}
    for step_id in gating.topological_order():
        step = gating.get(step_id)
        start = max((finish[pred] for pred in gating.predecessors(step_id) if pred in finish), default=0)
        finish[step_id] = start + _minutes(step.estimated_duration if step else None)
    return max(finish.values(), default=0)


def total_duration(graph: DependencyGraph) -> int:
    """Sum of all step estimates; an upper bound on serial execution."""
    return sum(_minutes(step.estimated_duration) for step in graph.steps)


def summarize(graph: DependencyGraph) -> str:
    """Deterministic listing grouped by step type in declaration order."""
    lines = [
        f"Plan: {len(graph)} step(s), {len(graph.edges)} dependency(ies)",
        f"Critical duration: {critical_duration(graph)} min",
        f"Total duration: {total_duration(graph)} min",
    ]
    for step_type in StepType:
        members = [step for step in graph.steps if step.step_type is step_type]
        if not members:
            continue
        lines.append(f"{step_type.value} ({len(members)}):")
        for step in members:
            label = f" [{step.language}]" if step.language else ""
            lines.append(f"  - {step.id}{label} {step.name} ({_minutes(step.estimated_duration)} min)")
    return "\n".join(lines)
