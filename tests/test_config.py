from __future__ import annotations

from pathlib import Path

import pytest

import factories  # noqa: F401  # puts the project root on sys.path

from triage_common.config import ConfigError, analysis_settings, load_config, resolve_path


def test_load_config_reads_yaml(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text("analysis:\n  ticket_match_threshold: 40\n", encoding="utf-8")

    config = load_config(config_path)

    assert config == {"analysis": {"ticket_match_threshold": 40}}


def test_load_config_empty_file_is_empty_mapping(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text("", encoding="utf-8")

    assert load_config(config_path) == {}


def test_load_config_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_config(tmp_path / "absent.yaml")


def test_load_config_rejects_invalid_yaml(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text("analysis: [unclosed\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(config_path)


def test_resolve_path_relative_to_base(tmp_path: Path) -> None:
    assert resolve_path("reports", base=tmp_path) == tmp_path / "reports"
    assert resolve_path(str(tmp_path), base=Path("/elsewhere")) == tmp_path
    assert resolve_path(None, base=tmp_path) == tmp_path


def test_analysis_settings_normalises_statuses() -> None:
    settings = analysis_settings(
        {"analysis": {"ticket_match_threshold": "35", "open_statuses": "Open, Waiting"}}
    )

    assert settings == {"ticket_match_threshold": 35, "open_statuses": frozenset({"open", "waiting"})}


def test_analysis_settings_defaults_to_nothing() -> None:
    assert analysis_settings({}) == {}


def test_analysis_settings_rejects_bad_threshold() -> None:
    with pytest.raises(ConfigError):
        analysis_settings({"analysis": {"ticket_match_threshold": "lots"}})
