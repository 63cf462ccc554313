"""Write cross analysis results as CSV, HTML and JSON for reviewers."""
from __future__ import annotations

import csv
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Sequence

from jinja2 import Template

from .recommendations import AnalysisResult

LOGGER = logging.getLogger(__name__)

SUPPORTED_FORMATS = ("csv", "html", "json")

HTML_TEMPLATE = Template(
    """
<!DOCTYPE html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <title>Mailbox Triage Report</title>
    <style>
      body { font-family: Arial, sans-serif; margin: 2rem; }
      h1, h2, h3 { color: #1f3b4d; }
      table { border-collapse: collapse; width: 100%; margin-bottom: 1.5rem; }
      th, td { border: 1px solid #ccc; padding: 0.4rem 0.6rem; text-align: left; }
      th { background-color: #f0f6fb; }
      .skip { color: #8a1c1c; }
      .link { color: #8a5a00; }
      .create { color: #1c6b2a; }
    </style>
  </head>
  <body>
    <h1>Mailbox Triage Report</h1>
    <h2>Summary</h2>
    <table>
      <tr><th>Metric</th><th>Count</th></tr>
      {% for label, value in stats %}
      <tr><td>{{ label }}</td><td>{{ value }}</td></tr>
      {% endfor %}
    </table>
    {% for entry in groups %}
    <div class="section">
      <h3>{{ entry.group.id }}: {{ entry.group.suggested_ticket_title }}</h3>
      <p class="{{ entry.recommendation.action }}">
        <strong>{{ entry.recommendation.action|upper }}</strong> - {{ entry.recommendation.reason }}
      </p>
      <p>
        Category: {{ entry.group.suggested_category }} |
        Priority: {{ entry.group.suggested_priority }} |
        Participants: {{ entry.group.participants|join(', ') }}
      </p>
      <table>
        <tr><th>Email</th><th>Subject</th><th>From</th><th>Received</th></tr>
        {% for email in entry.group.members %}
        <tr>
          <td>{{ email.id }}{% if loop.first %} (primary){% endif %}</td>
          <td>{{ email.subject }}</td>
          <td>{{ email.sender }}</td>
          <td>{{ email.received_at.isoformat() }}</td>
        </tr>
        {% endfor %}
      </table>
      {% if entry.matching_tickets %}
      <table>
        <tr><th>Ticket</th><th>Title</th><th>Status</th><th>Score</th><th>Confidence</th><th>Reasons</th></tr>
        {% for match in entry.matching_tickets %}
        <tr>
          <td>{{ match.ticket.id }}{% if match.is_duplicate %} (duplicate){% endif %}</td>
          <td>{{ match.ticket.title }}</td>
          <td>{{ match.ticket.status }}</td>
          <td>{{ match.similarity_score }}</td>
          <td>{{ match.confidence }}</td>
          <td>{{ match.reasons|join('; ') }}</td>
        </tr>
        {% endfor %}
      </table>
      {% endif %}
    </div>
    {% endfor %}
  </body>
</html>
""",
    autoescape=True,
)


def _normalise_for_json(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k): _normalise_for_json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalise_for_json(item) for item in value]
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Path):
        return str(value)
    return value


def result_to_json(result: AnalysisResult) -> Dict[str, Any]:
    return _normalise_for_json(result.to_dict())


def summary_rows(result: AnalysisResult) -> List[tuple[str, int]]:
    stats = result.stats
    return [
        ("Emails analysed", stats.total_emails),
        ("Email groups", stats.total_groups),
        ("Groups with related emails", stats.potential_duplicates),
        ("Tickets compared", stats.total_tickets),
        ("Emails to skip (duplicate)", stats.emails_with_duplicates),
        ("Emails to link", stats.emails_to_link),
        ("Emails needing a new ticket", stats.emails_to_create),
        ("Records skipped as malformed", len(result.skipped)),
    ]


class AnalysisReportWriter:
    """Persist cross analysis output for review."""

    HEADERS: Sequence[str] = (
        "email_id",
        "group_id",
        "is_primary",
        "subject",
        "sender",
        "received_at",
        "issue_type",
        "urgency",
        "sentiment",
        "references",
        "recommendation",
        "recommendation_reason",
        "top_ticket_id",
        "top_ticket_score",
        "top_ticket_confidence",
        "suggested_ticket_title",
        "suggested_category",
        "suggested_priority",
    )

    def __init__(self, *, output_directory: Path, report_name: str) -> None:
        self.output_directory = output_directory
        self.report_name = report_name
        self.output_directory.mkdir(parents=True, exist_ok=True)

    def _path(self, suffix: str) -> Path:
        return (self.output_directory / self.report_name).with_suffix(suffix)

    def write_csv(self, result: AnalysisResult) -> Path:
        report_path = self._path(".csv")
        LOGGER.info("Writing triage CSV report to %s", report_path)
        with report_path.open("w", encoding="utf-8", newline="") as handle:
            writer = csv.writer(handle)
            writer.writerow(self.HEADERS)
            for entry in result.groups_with_matches:
                group = entry.group
                top = entry.matching_tickets[0] if entry.matching_tickets else None
                for email in group.members:
                    writer.writerow(
                        [
                            email.id,
                            group.id,
                            "yes" if email.id == group.primary_email.id else "no",
                            email.subject,
                            email.sender,
                            email.received_at.isoformat(),
                            email.entities.issue_type or "",
                            email.entities.urgency,
                            email.entities.sentiment,
                            " ".join(email.entities.references),
                            entry.recommendation.action,
                            entry.recommendation.reason,
                            top.ticket.id if top else "",
                            top.similarity_score if top else "",
                            top.confidence if top else "",
                            group.suggested_ticket_title,
                            group.suggested_category,
                            group.suggested_priority,
                        ]
                    )
        return report_path

    def write_html(self, result: AnalysisResult) -> Path:
        report_path = self._path(".html")
        LOGGER.info("Writing triage HTML report to %s", report_path)
        html = HTML_TEMPLATE.render(stats=summary_rows(result), groups=result.groups_with_matches)
        report_path.write_text(html, encoding="utf-8")
        return report_path

    def write_json(self, result: AnalysisResult) -> Path:
        report_path = self._path(".json")
        LOGGER.info("Writing triage JSON payload to %s", report_path)
        report_path.write_text(json.dumps(result_to_json(result), indent=2), encoding="utf-8")
        return report_path

    def write(self, result: AnalysisResult, formats: Iterable[str]) -> List[Path]:
        writers = {"csv": self.write_csv, "html": self.write_html, "json": self.write_json}
        paths: List[Path] = []
        for fmt in formats:
            key = fmt.lower().strip()
            if key not in writers:
                raise ValueError(f"Unsupported report format '{fmt}'. Choose from {', '.join(SUPPORTED_FORMATS)}")
            paths.append(writers[key](result))
        return paths
