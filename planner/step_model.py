"""Typed step, dependency and status models for execution plans."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, model_validator

DEFAULT_CRITERION = "step completed successfully"


class StepType(str, Enum):
    """Kind of work a step performs."""

    FILE_OPERATION = "file_operation"
    COMMAND_EXECUTION = "command_execution"
    CODE_GENERATION = "code_generation"
    DATA_ANALYSIS = "data_analysis"
    SYSTEM_CONFIGURATION = "system_configuration"
    TEST_EXECUTION = "test_execution"
    TOOL_INVOCATION = "tool_invocation"
    MANUAL_CONFIRMATION = "manual_confirmation"


class DependencyKind(str, Enum):
    """Gating semantics of an edge."""

    STRICT = "strict"
    WEAK = "weak"
    CONDITIONAL = "conditional"
    DATA = "data"

    @property
    def blocking(self) -> bool:
        """Whether the edge requires a successful predecessor."""
        return self is not DependencyKind.WEAK


class Outcome(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


class StepStatus(str, Enum):
    PENDING = "pending"
    READY = "ready"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (StepStatus.COMPLETED, StepStatus.FAILED)


class PlanStatus(str, Enum):
    PENDING = "pending"
    VALIDATED = "validated"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class Step(BaseModel):
    """One typed unit of work."""

    id: str
    name: str
    description: str = ""
    step_type: StepType = StepType.TOOL_INVOCATION
    language: str | None = None
    operation: str | None = None
    estimated_duration: int | None = Field(default=None, ge=0)
    preconditions: list[str] = Field(default_factory=list)
    expected_outputs: list[str] = Field(default_factory=list)
    validation_criteria: list[str] = Field(default_factory=list)
    rollback_actions: list[str] = Field(default_factory=list)

    @property
    def type_label(self) -> str:
        """Display label, e.g. ``code_generation(python)``."""
        if self.step_type is StepType.CODE_GENERATION and self.language:
            return f"{self.step_type.value}({self.language})"
        return self.step_type.value


class Dependency(BaseModel):
    """Directed edge: ``to_id`` depends on ``from_id``."""

    from_id: str
    to_id: str
    kind: DependencyKind = DependencyKind.STRICT
    condition: str | None = None
    expected_outputs: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _condition_matches_kind(self) -> Dependency:
        if self.kind is DependencyKind.CONDITIONAL and not self.condition:
            raise ValueError("conditional dependency requires a condition token")
        return self

    @property
    def key(self) -> tuple[str, str]:
        return (self.from_id, self.to_id)
