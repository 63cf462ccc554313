"""Configuration helpers for the mailbox triage tools."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict

import yaml


class ConfigError(RuntimeError):
    """Raised when configuration cannot be loaded."""


PACKAGE_ROOT = Path(__file__).resolve().parents[1]

DEFAULT_CONFIG_LOCATIONS = (
    PACKAGE_ROOT / "config" / "config.yaml",
    PACKAGE_ROOT / "config" / "config.yml",
    Path("./config/config.yaml"),
    Path("./config/config.yml"),
    Path.home() / ".email_triage" / "config.yaml",
)


def resolve_path(path_str: str | None, *, base: Path | None = None) -> Path:
    """Resolve a path string that may be relative to an optional base directory."""
    base_path = base or Path.cwd()
    if not path_str:
        return base_path
    path = Path(path_str)
    if not path.is_absolute():
        path = base_path / path
    return path


def load_config(path: str | os.PathLike[str] | None = None) -> Dict[str, Any]:
    """Load configuration from YAML.

    Parameters
    ----------
    path: Optional path to a configuration file. If not provided, default
        locations will be searched.
    """
    if path:
        candidate_paths = [Path(path)]
    else:
        candidate_paths = list(DEFAULT_CONFIG_LOCATIONS)

    for candidate in candidate_paths:
        if candidate.exists():
            with candidate.open("r", encoding="utf-8") as handle:
                try:
                    data = yaml.safe_load(handle) or {}
                except yaml.YAMLError as exc:
                    raise ConfigError(f"Unable to parse configuration file {candidate}") from exc
            if not isinstance(data, dict):
                raise ConfigError(f"Configuration file {candidate} must contain a mapping")
            return data
    raise ConfigError(
        "No configuration file could be located. Provide --config or copy "
        "config/config.example.yaml to config/config.yaml."
    )


def analysis_settings(config: Dict[str, Any]) -> Dict[str, Any]:
    """Return keyword arguments for the cross analysis from the ``analysis`` section."""
    analysis_cfg = config.get("analysis") or {}
    settings: Dict[str, Any] = {}
    if "ticket_match_threshold" in analysis_cfg:
        try:
            settings["ticket_match_threshold"] = int(analysis_cfg["ticket_match_threshold"])
        except (TypeError, ValueError) as exc:
            raise ConfigError("analysis.ticket_match_threshold must be an integer") from exc
    statuses = analysis_cfg.get("open_statuses")
    if statuses:
        if isinstance(statuses, str):
            statuses = [part.strip() for part in statuses.split(",")]
        settings["open_statuses"] = frozenset(str(status).lower() for status in statuses if status)
    return settings
