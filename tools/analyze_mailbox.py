#!/usr/bin/env python3
"""Group a mailbox snapshot and recommend skip / link / create against existing tickets."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Iterable, List

BASE_DIR = Path(__file__).resolve().parents[1]
DEFAULT_CONFIG_PATH = BASE_DIR / "config" / "config.yaml"
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

from triage_common.config import ConfigError  # type: ignore  # pylint: disable=import-error
from triage_common.reporting import SUPPORTED_FORMATS  # type: ignore  # pylint: disable=import-error
from triage_common.workflow import AnalyzeOptions, analyze_mailbox  # type: ignore  # pylint: disable=import-error

LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Group related support emails and match them against existing tickets.",
    )
    parser.add_argument(
        "--config",
        help=(
            "Path to configuration YAML file. Defaults to "
            f"{DEFAULT_CONFIG_PATH} or config/config.yaml if present."
        ),
    )
    parser.add_argument("--emails", help="JSON or YAML file holding the email snapshot. Overrides input.emails.")
    parser.add_argument("--tickets", help="JSON or YAML file holding the ticket snapshot. Overrides input.tickets.")
    parser.add_argument(
        "--output-directory",
        help="Directory where reports should be written. Overrides reporting.output_directory.",
    )
    parser.add_argument("--report-name", help="Base filename (without extension) for the reports.")
    parser.add_argument(
        "--formats",
        nargs="+",
        choices=SUPPORTED_FORMATS,
        help="Report formats to write. Overrides reporting.formats.",
    )
    parser.add_argument(
        "--show-console-log",
        action="store_true",
        help="Show detailed log output instead of the summary table.",
    )
    parser.add_argument(
        "--simple-console",
        action="store_true",
        help="Use a simple console log format instead of Rich formatting.",
    )
    parser.add_argument(
        "--console-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Override the console logging level.",
    )
    return parser


def main(argv: Iterable[str] | None = None) -> List[Path]:
    parser = build_parser()
    args = parser.parse_args(argv)
    options = AnalyzeOptions(
        config_path=args.config,
        emails_path=args.emails,
        tickets_path=args.tickets,
        output_directory=args.output_directory,
        report_name=args.report_name,
        formats=args.formats,
        disable_console=not args.show_console_log,
        simple_console=args.simple_console,
        console_level=args.console_level,
        show_console_log=args.show_console_log,
    )
    try:
        return analyze_mailbox(options, base_dir=BASE_DIR)
    except (ConfigError, FileNotFoundError, ValueError) as exc:
        LOGGER.error("Mailbox analysis failed: %s", exc)
        parser.exit(1, f"error: {exc}\n")


if __name__ == "__main__":
    main()
