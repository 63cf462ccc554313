"""Logging configuration for the mailbox triage tools."""
from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any, Dict

from rich.logging import RichHandler

from .config import resolve_path

# Modules that log once per scored email pair or email/ticket pair.
SCORE_TRACE_LOGGERS = (
    "triage_common.similarity",
    "triage_common.grouping",
    "triage_common.matching",
)
DEFAULT_LOG_PATH = "logs/email_triage.log"


def _console_handler(console_cfg: Dict[str, Any]) -> logging.Handler:
    level = console_cfg.get("level", "INFO")
    if console_cfg.get("rich_format", False):
        handler: logging.Handler = RichHandler(level=level, rich_tracebacks=True, show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
        return handler
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    return handler


def _file_handler(file_cfg: Dict[str, Any], base_dir: Path | None) -> logging.Handler:
    file_path = resolve_path(file_cfg.get("path", DEFAULT_LOG_PATH), base=base_dir)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(file_path, mode="a", encoding="utf-8")
    handler.setLevel(file_cfg.get("level", "DEBUG"))
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    return handler


def configure_logging(config: Dict[str, Any], *, base_dir: Path | None = None) -> None:
    """Configure logging sinks based on YAML configuration.

    Pair scoring logs one DEBUG line per compared pair, which grows
    quadratically with the mailbox. Those lines are only emitted when
    ``logging.score_trace`` is true.
    """
    logging.captureWarnings(True)
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(logging.DEBUG)

    logging_config = config.get("logging", {})
    console_cfg = logging_config.get("console", {})
    file_cfg = logging_config.get("file", {})

    trace_level = logging.DEBUG if logging_config.get("score_trace", False) else logging.INFO
    for name in SCORE_TRACE_LOGGERS:
        logging.getLogger(name).setLevel(trace_level)

    if console_cfg.get("enabled", True):
        root.addHandler(_console_handler(console_cfg))
    if file_cfg.get("enabled", False):
        root.addHandler(_file_handler(file_cfg, base_dir))
