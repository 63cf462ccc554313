"""Higher level workflows used by the command line entry points."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import yaml

from .config import ConfigError, analysis_settings, load_config, resolve_path
from .entities import analyze_emails, analyze_tickets
from .logging_setup import configure_logging
from .recommendations import AnalysisResult, cross_analyze_emails_and_tickets
from .reporting import AnalysisReportWriter, summary_rows

LOGGER = logging.getLogger(__name__)

DEFAULT_REPORT_NAME = "mailbox_triage"
DEFAULT_FORMATS = ("csv",)


@dataclass
class AnalyzeOptions:
    config_path: Optional[str]
    emails_path: Optional[str] = None
    tickets_path: Optional[str] = None
    output_directory: Optional[str] = None
    report_name: Optional[str] = None
    formats: Optional[List[str]] = None
    disable_console: bool = False
    simple_console: bool = False
    console_level: Optional[str] = None
    show_console_log: bool = False


def _prepare_logging(config: dict, options: AnalyzeOptions, *, base_dir: Path) -> None:
    logging_config = config.setdefault("logging", {})
    console_cfg = logging_config.setdefault("console", {})
    if options.disable_console:
        console_cfg["enabled"] = False
    if options.simple_console:
        console_cfg["rich_format"] = False
    if options.console_level:
        console_cfg["level"] = options.console_level
    configure_logging(config, base_dir=base_dir)


def load_snapshot(path: Path, *, key: str) -> List[Dict[str, Any]]:
    """Read a list of raw records from a JSON or YAML file.

    The file may hold the list itself or a mapping with the list under ``key``.
    """
    if not path.exists():
        raise FileNotFoundError(f"Snapshot file not found: {path}")
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        data = json.loads(text) if text.strip() else []
    else:
        data = yaml.safe_load(text) or []
    if isinstance(data, dict):
        data = data.get(key, [])
    if not isinstance(data, list):
        raise ValueError(f"Snapshot {path} must contain a list of {key}")
    LOGGER.info("Loaded %s %s from %s", len(data), key, path)
    return data


def _format_summary(rows: Sequence[Tuple[str, int]], report_paths: Sequence[Path]) -> str:
    """Return a table of batch counts followed by the written report paths."""

    label_width = max([len("Metric")] + [len(label) for label, _ in rows])
    value_width = max([len("Count")] + [len(str(value)) for _, value in rows])

    border = f"+{'-' * (label_width + 2)}+{'-' * (value_width + 2)}+"
    header = f"| {'Metric'.ljust(label_width)} | {'Count'.rjust(value_width)} |"

    lines = [border, header, border]
    for label, value in rows:
        lines.append(f"| {label.ljust(label_width)} | {str(value).rjust(value_width)} |")
    lines.append(border)

    if report_paths:
        lines.append("")
        lines.extend(f"Report: {path}" for path in report_paths)
    return "\n".join(lines)


def run_analysis(
    email_payloads: List[Dict[str, Any]],
    ticket_payloads: List[Dict[str, Any]],
    *,
    config: Optional[Dict[str, Any]] = None,
) -> AnalysisResult:
    """Analyse raw payloads end to end, skipping malformed records."""
    emails = analyze_emails(email_payloads)
    tickets = analyze_tickets(ticket_payloads)
    result = cross_analyze_emails_and_tickets(
        emails.records, tickets.records, **analysis_settings(config or {})
    )
    result.skipped = [*emails.skipped, *tickets.skipped]
    if result.skipped:
        LOGGER.warning("Skipped %s malformed record(s)", len(result.skipped))
    return result


def analyze_mailbox(options: AnalyzeOptions, *, base_dir: Optional[Path] = None) -> List[Path]:
    base_dir = base_dir or Path.cwd()
    config = load_config(options.config_path)
    _prepare_logging(config, options, base_dir=base_dir)

    input_cfg = config.get("input", {})
    emails_setting = options.emails_path or input_cfg.get("emails")
    tickets_setting = options.tickets_path or input_cfg.get("tickets")
    if not emails_setting:
        raise ConfigError("No email snapshot configured. Provide --emails or input.emails")

    email_payloads = load_snapshot(resolve_path(emails_setting, base=base_dir), key="emails")
    ticket_payloads: List[Dict[str, Any]] = []
    if tickets_setting:
        ticket_payloads = load_snapshot(resolve_path(tickets_setting, base=base_dir), key="tickets")
    else:
        LOGGER.warning("No ticket snapshot configured; every group will be compared against no tickets")

    result = run_analysis(email_payloads, ticket_payloads, config=config)

    reporting_cfg = config.get("reporting", {})
    output_directory = resolve_path(
        options.output_directory or reporting_cfg.get("output_directory", "reports"), base=base_dir
    )
    report_name = options.report_name or reporting_cfg.get("report_filename", DEFAULT_REPORT_NAME)
    formats = options.formats or reporting_cfg.get("formats") or list(DEFAULT_FORMATS)
    writer = AnalysisReportWriter(output_directory=output_directory, report_name=report_name)
    report_paths = writer.write(result, formats)

    LOGGER.info("Triage complete. Reports: %s", ", ".join(str(path) for path in report_paths))
    if not options.show_console_log:
        print(_format_summary(summary_rows(result), report_paths))
    return report_paths
