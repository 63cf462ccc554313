"""Shared modules for mailbox triage: email grouping and duplicate ticket detection."""

from .config import ConfigError, load_config, resolve_path
from .logging_setup import configure_logging
from .entities import analyze_email, analyze_emails, analyze_ticket, analyze_tickets
from .grouping import EmailGroup, group_related_emails
from .matching import find_matching_tickets, find_potential_duplicates
from .recommendations import AnalysisResult, cross_analyze_emails_and_tickets
from .records import AnalyzedEmail, AnalyzedTicket, RawEmail, RawTicket, RecordError
from .reporting import AnalysisReportWriter
from .similarity import MatchResult, score_email_pair, score_email_ticket

__all__ = [
    "ConfigError",
    "load_config",
    "resolve_path",
    "configure_logging",
    "analyze_email",
    "analyze_emails",
    "analyze_ticket",
    "analyze_tickets",
    "EmailGroup",
    "group_related_emails",
    "find_matching_tickets",
    "find_potential_duplicates",
    "AnalysisResult",
    "cross_analyze_emails_and_tickets",
    "AnalyzedEmail",
    "AnalyzedTicket",
    "RawEmail",
    "RawTicket",
    "RecordError",
    "AnalysisReportWriter",
    "MatchResult",
    "score_email_pair",
    "score_email_ticket",
]
