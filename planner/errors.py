"""Exceptions raised while building and driving plans."""

from __future__ import annotations


class PlanError(Exception):
    """Base class for planner errors."""


class ValidationError(PlanError):
    """A step graph violates a structural invariant.

    ``violations`` holds every problem found, in check order, so callers can
    report all of them at once; the raised type reflects the first one.
    """

    def __init__(self, message: str, violations: list[ValidationError] | None = None) -> None:
        super().__init__(message)
        self.violations: list[ValidationError] = violations if violations is not None else [self]


class DuplicateIdError(ValidationError):
    def __init__(self, step_id: str) -> None:
        super().__init__(f"Duplicate step id: {step_id}")
        self.step_id = step_id


class DanglingReferenceError(ValidationError):
    def __init__(self, from_id: str, to_id: str, missing: str) -> None:
        super().__init__(f"Dependency {from_id} -> {to_id} references unknown step: {missing}")
        self.from_id = from_id
        self.to_id = to_id
        self.missing = missing


class SelfDependencyError(ValidationError):
    def __init__(self, step_id: str) -> None:
        super().__init__(f"Step depends on itself: {step_id}")
        self.step_id = step_id


class CyclicDependencyError(ValidationError):
    def __init__(self, path: list[str]) -> None:
        super().__init__("Dependency cycle: " + " -> ".join(path + path[:1]))
        self.path = path


class StateError(PlanError):
    """Caller tried an invalid step transition."""


class UnknownStepIdError(StateError):
    def __init__(self, step_id: str) -> None:
        super().__init__(f"Unknown step id: {step_id}")
        self.step_id = step_id


class AlreadyTerminalError(StateError):
    def __init__(self, step_id: str, status: str) -> None:
        super().__init__(f"Step {step_id} is already {status}")
        self.step_id = step_id
        self.status = status


class StepNotReadyError(StateError):
    def __init__(self, step_id: str) -> None:
        super().__init__(f"Step {step_id} cannot complete before its dependencies are satisfied")
        self.step_id = step_id
