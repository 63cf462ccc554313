"""Greedy grouping of related emails around an earliest-received primary."""
from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, Iterable, List, Set, Tuple

from .records import AnalyzedEmail
from .similarity import EmailSimilarity, score_email_pair

LOGGER = logging.getLogger(__name__)

MAX_COMMON_KEYWORDS = 5
TITLE_PRODUCT_COUNT = 2
DEFAULT_ISSUE_TYPE = "General Issue"
DEFAULT_CATEGORY = "general"
_WHITESPACE = re.compile(r"\s+")


@dataclass
class EmailGroup:
    id: str
    primary_email: AnalyzedEmail
    related_emails: List[AnalyzedEmail] = field(default_factory=list)
    suggested_ticket_title: str = DEFAULT_ISSUE_TYPE
    suggested_category: str = DEFAULT_CATEGORY
    suggested_priority: str = "medium"
    common_keywords: List[str] = field(default_factory=list)
    participants: List[str] = field(default_factory=list)
    date_range: Tuple[datetime, datetime] | None = None

    @property
    def members(self) -> List[AnalyzedEmail]:
        return [self.primary_email, *self.related_emails]

    def to_dict(self) -> Dict[str, Any]:
        earliest, latest = self.date_range or (None, None)
        return {
            "id": self.id,
            "primaryEmail": self.primary_email.to_dict(),
            "relatedEmails": [email.to_dict() for email in self.related_emails],
            "suggestedTicketTitle": self.suggested_ticket_title,
            "suggestedCategory": self.suggested_category,
            "suggestedPriority": self.suggested_priority,
            "commonKeywords": list(self.common_keywords),
            "participants": list(self.participants),
            "dateRange": {"earliest": earliest, "latest": latest},
        }


def common_keywords(emails: Iterable[AnalyzedEmail]) -> List[str]:
    """Keywords shared by more than one email, most frequent first."""
    counts: Counter[str] = Counter()
    for email in emails:
        counts.update(email.entities.keywords)
    shared = [word for word, count in counts.most_common() if count > 1]
    return shared[:MAX_COMMON_KEYWORDS]


def suggest_ticket_fields(primary: AnalyzedEmail) -> Tuple[str, str, str]:
    """Return the suggested title, category slug and priority for a group."""
    issue_type = primary.entities.issue_type or DEFAULT_ISSUE_TYPE
    products = " ".join(primary.entities.product_mentions[:TITLE_PRODUCT_COUNT])
    title = f"{issue_type} - {products}" if products else issue_type
    category = _WHITESPACE.sub("-", issue_type.lower()) or DEFAULT_CATEGORY
    priority = "high" if primary.entities.urgency in ("critical", "high") else "medium"
    return title, category, priority


def _build_group(group_id: str, primary: AnalyzedEmail, related: List[AnalyzedEmail]) -> EmailGroup:
    primary = replace(primary, group_id=group_id)
    related = [replace(email, group_id=group_id) for email in related]
    members = [primary, *related]
    title, category, priority = suggest_ticket_fields(primary)
    dates = [email.received_at for email in members]
    return EmailGroup(
        id=group_id,
        primary_email=primary,
        related_emails=related,
        suggested_ticket_title=title,
        suggested_category=category,
        suggested_priority=priority,
        common_keywords=common_keywords(members),
        participants=list(dict.fromkeys(email.entities.sender for email in members)),
        date_range=(min(dates), max(dates)),
    )


def group_related_emails(emails: Iterable[AnalyzedEmail]) -> List[EmailGroup]:
    """Partition ``emails`` into groups.

    Emails are visited oldest first. Each still-unassigned email becomes a
    primary and claims every other unassigned email it is directly likely
    related to, whether older or newer. Claimed emails never become primaries
    themselves, so relatedness is not closed transitively.

    Cost is quadratic in the number of emails.
    """
    ordered = sorted(emails, key=lambda email: email.received_at)
    assigned: Set[int] = set()
    groups: List[EmailGroup] = []

    for index, primary in enumerate(ordered):
        if index in assigned:
            continue
        related: List[AnalyzedEmail] = []
        for other_index, other in enumerate(ordered):
            if other_index == index or other_index in assigned:
                continue
            similarity: EmailSimilarity = score_email_pair(primary, other)
            if similarity.is_likely_related:
                LOGGER.debug(
                    "Email %s joins group of %s (score %s: %s)",
                    other.id,
                    primary.id,
                    similarity.score,
                    "; ".join(similarity.reasons),
                )
                related.append(other)
                assigned.add(other_index)
        assigned.add(index)
        groups.append(_build_group(f"group-{len(groups) + 1}", primary, related))

    LOGGER.info("Grouped %s emails into %s groups", len(ordered), len(groups))
    return groups
