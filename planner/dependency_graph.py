"""Typed step dependency graph.

Steps live in a flat list with an id-to-index map; edges reference ids. All
traversals are index based, so the graph never holds references between
steps.
"""

from __future__ import annotations

from collections.abc import Callable, Collection, Iterable, Mapping
from dataclasses import dataclass, field

from planner.step_model import Dependency, DependencyKind, Outcome, Step

ConditionEvaluator = Callable[[Dependency], bool]

_WHITE, _GREY, _BLACK = 0, 1, 2


@dataclass
class ReadyStep:
    """A step eligible to run, with what the caller needs to run it."""

    step_id: str
    # Condition tokens of conditional edges the caller reported as true.
    conditions: list[str] = field(default_factory=list)
    # Declared outputs of data predecessors, keyed by predecessor id.
    input_context: dict[str, list[str]] = field(default_factory=dict)


@dataclass
class DependencyGraph:
    """Steps in parse order plus the edges between them."""

    steps: list[Step] = field(default_factory=list)
    edges: list[Dependency] = field(default_factory=list)
    index: dict[str, int] = field(default_factory=dict)

    @classmethod
    def build(cls, steps: Iterable[Step], edges: Iterable[Dependency]) -> DependencyGraph:
        """Create a graph. Duplicate ids keep their first position in ``index``."""
        graph = cls(steps=list(steps), edges=list(edges))
        for position, step in enumerate(graph.steps):
            graph.index.setdefault(step.id, position)
        return graph

    def __contains__(self, step_id: object) -> bool:
        return step_id in self.index

    def __len__(self) -> int:
        return len(self.steps)

    @property
    def step_ids(self) -> list[str]:
        return [step.id for step in self.steps]

    def get(self, step_id: str) -> Step | None:
        position = self.index.get(step_id)
        return None if position is None else self.steps[position]

    def incoming(self, step_id: str) -> list[Dependency]:
        return [edge for edge in self.edges if edge.to_id == step_id]

    def outgoing(self, step_id: str) -> list[Dependency]:
        return [edge for edge in self.edges if edge.from_id == step_id]

    def predecessors(self, step_id: str) -> list[str]:
        return [edge.from_id for edge in self.incoming(step_id)]

    def successors(self, step_id: str) -> list[str]:
        return [edge.to_id for edge in self.outgoing(step_id)]

    def _adjacency(self, kinds: set[DependencyKind] | None = None) -> list[list[int]]:
        adjacency: list[list[int]] = [[] for _ in self.steps]
        for edge in self.edges:
            if kinds is not None and edge.kind not in kinds:
                continue
            source = self.index.get(edge.from_id)
            target = self.index.get(edge.to_id)
            if source is None or target is None:
                continue
            adjacency[source].append(target)
        return adjacency

    def detect_cycle(self) -> list[str] | None:
        """Return one cycle as a list of step ids, or None when acyclic.

        Three-colour DFS: reaching a grey node closes a cycle, which is read
        back off the DFS stack starting at that node.
        """
        adjacency = self._adjacency()
        colour = [_WHITE] * len(self.steps)
        for root in range(len(self.steps)):
            if colour[root] != _WHITE:
                continue
            colour[root] = _GREY
            stack: list[tuple[int, int]] = [(root, 0)]
            path: list[int] = [root]
            while stack:
                node, next_child = stack[-1]
                if next_child >= len(adjacency[node]):
                    colour[node] = _BLACK
                    stack.pop()
                    path.pop()
                    continue
                stack[-1] = (node, next_child + 1)
                child = adjacency[node][next_child]
                if colour[child] == _GREY:
                    cycle = path[path.index(child) :]
                    return [self.steps[position].id for position in cycle]
                if colour[child] == _WHITE:
                    colour[child] = _GREY
                    stack.append((child, 0))
                    path.append(child)
        return None

    def topological_order(self) -> list[str]:
        """Kahn order, stable with respect to parse order. Raises on cycles."""
        adjacency = self._adjacency()
        in_degree = [0] * len(self.steps)
        for targets in adjacency:
            for target in targets:
                in_degree[target] += 1
        ready = [position for position, degree in enumerate(in_degree) if degree == 0]
        order: list[int] = []
        while ready:
            ready.sort()
            node = ready.pop(0)
            order.append(node)
            for target in adjacency[node]:
                in_degree[target] -= 1
                if in_degree[target] == 0:
                    ready.append(target)
        if len(order) != len(self.steps):
            raise ValueError("Dependency graph contains a cycle")
        return [self.steps[position].id for position in order]

    def _edge_satisfied(
        self,
        edge: Dependency,
        completed: Mapping[str, Outcome],
        evaluate_condition: ConditionEvaluator | None,
    ) -> bool:
        outcome = completed.get(edge.from_id)
        if edge.kind is DependencyKind.WEAK:
            return outcome is not None
        if outcome is not Outcome.SUCCESS:
            return False
        if edge.kind is DependencyKind.CONDITIONAL:
            return evaluate_condition is not None and bool(evaluate_condition(edge))
        return True

    def frontier(
        self,
        completed: Mapping[str, Outcome],
        evaluate_condition: ConditionEvaluator | None = None,
    ) -> list[ReadyStep]:
        """Ready steps with their condition tokens and data input context."""
        ready: list[ReadyStep] = []
        for step in self.steps:
            if step.id in completed:
                continue
            incoming = self.incoming(step.id)
            if not all(self._edge_satisfied(edge, completed, evaluate_condition) for edge in incoming):
                continue
            entry = ReadyStep(step_id=step.id)
            for edge in incoming:
                if edge.kind is DependencyKind.CONDITIONAL and edge.condition:
                    entry.conditions.append(edge.condition)
                elif edge.kind is DependencyKind.DATA:
                    source = self.get(edge.from_id)
                    outputs = list(edge.expected_outputs) or (list(source.expected_outputs) if source else [])
                    entry.input_context[edge.from_id] = outputs
            ready.append(entry)
        return ready

    def ready_steps(
        self,
        completed: Mapping[str, Outcome],
        evaluate_condition: ConditionEvaluator | None = None,
    ) -> list[str]:
        """Ids of eligible steps in parse order."""
        return [entry.step_id for entry in self.frontier(completed, evaluate_condition)]

    def pending_conditions(self, completed: Mapping[str, Outcome]) -> list[Dependency]:
        """Conditional edges whose source succeeded and whose token awaits the caller."""
        return [
            edge
            for edge in self.edges
            if edge.kind is DependencyKind.CONDITIONAL
            and completed.get(edge.from_id) is Outcome.SUCCESS
            and edge.to_id not in completed
        ]

    def blocked_steps(
        self,
        completed: Mapping[str, Outcome],
        rejected_conditions: Collection[tuple[str, str]] = (),
    ) -> list[str]:
        """Steps that can never become ready.

        A step is blocked when any predecessor is blocked, when a strict,
        data or conditional predecessor failed, or when the caller rejected
        the condition on one of its conditional edges.
        """
        blocked: set[str] = set()
        changed = True
        while changed:
            changed = False
            for edge in self.edges:
                if edge.to_id in blocked or edge.to_id in completed:
                    continue
                gated = edge.kind.blocking and (
                    completed.get(edge.from_id) is Outcome.FAILURE or edge.key in rejected_conditions
                )
                if gated or edge.from_id in blocked:
                    blocked.add(edge.to_id)
                    changed = True
        return [step_id for step_id in self.step_ids if step_id in blocked]
