"""Config loading tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from core.policy_runtime import load_effective_config, load_planner_settings, merge_dicts
from planner.step_model import StepType


def _write_config(root: Path, body: str) -> None:
    config_dir = root / "config"
    config_dir.mkdir()
    (config_dir / "planner.yaml").write_text(body, encoding="utf-8")


def test_missing_config_uses_defaults(tmp_path: Path) -> None:
    settings = load_planner_settings(tmp_path)

    assert settings.sequential_edges is True
    assert settings.max_steps == 50
    assert settings.base_duration(StepType.CODE_GENERATION) == 20


def test_partial_tables_extend_defaults(tmp_path: Path) -> None:
    _write_config(
        tmp_path,
        "sequential_edges: false\nbase_durations:\n  file_operation: 7\ncomplexity_multipliers:\n  complex: 3.0\n",
    )
    settings = load_planner_settings(tmp_path)

    assert settings.sequential_edges is False
    assert settings.base_duration(StepType.FILE_OPERATION) == 7
    assert settings.base_duration(StepType.TEST_EXECUTION) == 10
    assert settings.complexity_multipliers == {"simple": 1.0, "moderate": 1.5, "complex": 3.0}


def test_overrides_win_over_file(tmp_path: Path) -> None:
    _write_config(tmp_path, "max_steps: 10\nlog_level: DEBUG\n")
    settings = load_planner_settings(tmp_path, overrides={"max_steps": 3})

    assert settings.max_steps == 3
    assert settings.log_level == "DEBUG"


def test_non_mapping_config_rejected(tmp_path: Path) -> None:
    _write_config(tmp_path, "- just\n- a list\n")

    with pytest.raises(ValueError):
        load_effective_config(tmp_path)


def test_invalid_values_rejected(tmp_path: Path) -> None:
    _write_config(tmp_path, "max_steps: 0\n")

    with pytest.raises(ValueError):
        load_planner_settings(tmp_path)


def test_bundled_config_loads() -> None:
    settings = load_planner_settings()

    assert settings.default_criterion == "step completed successfully"


def test_merge_dicts_is_recursive() -> None:
    merged = merge_dicts({"a": {"b": 1, "c": 2}, "d": 1}, {"a": {"b": 5}})

    assert merged == {"a": {"b": 5, "c": 2}, "d": 1}
