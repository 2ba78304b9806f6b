"""Configuration loading for the planner runtime."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from planner.step_model import DEFAULT_CRITERION, StepType

DEFAULT_ROOT = Path(__file__).resolve().parents[1]


class PlannerSettings(BaseModel):
    """Effective planner policy."""

    # Step i weakly depends on step i-1 when no explicit reference is found.
    sequential_edges: bool = True
    default_criterion: str = DEFAULT_CRITERION
    base_durations: dict[StepType, int] = Field(
        default_factory=lambda: {
            StepType.FILE_OPERATION: 5,
            StepType.COMMAND_EXECUTION: 5,
            StepType.CODE_GENERATION: 20,
            StepType.DATA_ANALYSIS: 15,
            StepType.SYSTEM_CONFIGURATION: 10,
            StepType.TEST_EXECUTION: 10,
            StepType.TOOL_INVOCATION: 5,
            StepType.MANUAL_CONFIRMATION: 10,
        }
    )
    complexity_keywords: list[str] = Field(
        default_factory=lambda: [
            "comprehensive",
            "multiple",
            "complex",
            "entire",
            "thorough",
            "extensive",
        ]
    )
    complexity_multipliers: dict[str, float] = Field(
        default_factory=lambda: {"simple": 1.0, "moderate": 1.5, "complex": 2.0}
    )
    max_steps: int = Field(default=50, ge=1)
    log_level: str = "INFO"

    def base_duration(self, step_type: StepType) -> int:
        return self.base_durations.get(step_type, 5)


def load_yaml(path: Path) -> dict[str, Any]:
    """Load YAML from file, returning empty mapping when missing."""
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping: {path}")
    return data


def merge_dicts(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge dictionaries."""
    merged: dict[str, Any] = dict(base)
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = merge_dicts(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_effective_config(root: Path | None = None, overrides: dict[str, Any] | None = None) -> dict[str, Any]:
    """Load ``config/planner.yaml`` under root and apply overrides."""
    config_dir = (root or DEFAULT_ROOT) / "config"
    planner_cfg = load_yaml(config_dir / "planner.yaml")
    return merge_dicts(planner_cfg, overrides or {})


def load_planner_settings(root: Path | None = None, overrides: dict[str, Any] | None = None) -> PlannerSettings:
    """Build validated settings from config files; defaults fill the gaps."""
    config = load_effective_config(root, overrides)
    defaults = PlannerSettings()
    # Partial duration tables extend the defaults instead of replacing them.
    durations = config.get("base_durations")
    if isinstance(durations, dict):
        config["base_durations"] = merge_dicts(
            {key.value: value for key, value in defaults.base_durations.items()},
            durations,
        )
    multipliers = config.get("complexity_multipliers")
    if isinstance(multipliers, dict):
        config["complexity_multipliers"] = merge_dicts(defaults.complexity_multipliers, multipliers)
    return PlannerSettings.model_validate(config)
