"""Turn grouping and ticket matches into skip / link / create decisions."""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field, replace
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .grouping import EmailGroup, group_related_emails
from .matching import TICKET_MATCH_THRESHOLD, find_matching_tickets
from .records import AnalyzedEmail, AnalyzedTicket, SkippedRecord
from .similarity import OPEN_STATUSES, MatchResult, is_open_status

LOGGER = logging.getLogger(__name__)

SKIP = "skip"
LINK = "link"
CREATE = "create"
CREATE_REASON = "No matching tickets found - create new ticket"


@dataclass(frozen=True)
class Recommendation:
    action: str
    reason: str
    ticket_id: Optional[str] = None


def recommend(matches: Sequence[MatchResult]) -> Recommendation:
    """Pick an action from matches already sorted best first."""
    duplicates = [match for match in matches if match.is_duplicate]
    if duplicates:
        ticket_id = duplicates[0].ticket.id
        return Recommendation(SKIP, f"Duplicate of ticket #{ticket_id}", ticket_id)
    linkable = [match for match in matches if not match.is_duplicate and match.confidence != "low"]
    if linkable:
        ticket_id = linkable[0].ticket.id
        return Recommendation(LINK, f"Related to ticket #{ticket_id}", ticket_id)
    return Recommendation(CREATE, CREATE_REASON)


@dataclass
class GroupAnalysis:
    group: EmailGroup
    matching_tickets: List[MatchResult]
    recommendation: Recommendation

    def to_dict(self) -> Dict[str, Any]:
        payload = self.group.to_dict()
        payload["matchingTickets"] = [match.to_dict() for match in self.matching_tickets]
        payload["recommendation"] = self.recommendation.action
        payload["recommendationReason"] = self.recommendation.reason
        return payload


@dataclass
class AnalysisStats:
    total_emails: int = 0
    emails_with_duplicates: int = 0
    emails_to_link: int = 0
    emails_to_create: int = 0
    total_groups: int = 0
    total_tickets: int = 0
    potential_duplicates: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "totalEmails": self.total_emails,
            "emailsWithDuplicates": self.emails_with_duplicates,
            "emailsToLink": self.emails_to_link,
            "emailsToCreate": self.emails_to_create,
            "totalGroups": self.total_groups,
            "totalTickets": self.total_tickets,
            "potentialDuplicates": self.potential_duplicates,
        }


@dataclass
class TicketStats:
    total: int = 0
    open: int = 0
    closed: int = 0


@dataclass
class AnalysisResult:
    groups_with_matches: List[GroupAnalysis] = field(default_factory=list)
    stats: AnalysisStats = field(default_factory=AnalysisStats)
    ticket_stats: TicketStats = field(default_factory=TicketStats)
    skipped: List[SkippedRecord] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "groupsWithMatches": [entry.to_dict() for entry in self.groups_with_matches],
            "stats": self.stats.to_dict(),
            "ticketStats": asdict(self.ticket_stats),
            "skipped": [asdict(record) for record in self.skipped],
        }


def _annotate(group: EmailGroup, ticket_id: Optional[str]) -> EmailGroup:
    if ticket_id is None:
        return group
    return replace(
        group,
        primary_email=replace(group.primary_email, existing_ticket_id=ticket_id),
        related_emails=[replace(email, existing_ticket_id=ticket_id) for email in group.related_emails],
    )


def cross_analyze_emails_and_tickets(
    emails: Iterable[AnalyzedEmail],
    tickets: Iterable[AnalyzedTicket],
    *,
    ticket_match_threshold: int = TICKET_MATCH_THRESHOLD,
    open_statuses: Iterable[str] = OPEN_STATUSES,
) -> AnalysisResult:
    """Group ``emails``, match each group's primary to ``tickets`` and recommend an action.

    Every call recomputes everything from the given snapshot; the result does
    not depend on earlier runs.
    """
    email_list = list(emails)
    ticket_list = list(tickets)
    open_statuses = frozenset(status.lower() for status in open_statuses)

    result = AnalysisResult()
    result.stats.total_emails = len(email_list)
    result.stats.total_tickets = len(ticket_list)
    open_count = sum(1 for ticket in ticket_list if is_open_status(ticket.status, open_statuses))
    result.ticket_stats = TicketStats(
        total=len(ticket_list), open=open_count, closed=len(ticket_list) - open_count
    )

    for group in group_related_emails(email_list):
        matches = find_matching_tickets(
            group.primary_email,
            ticket_list,
            threshold=ticket_match_threshold,
            open_statuses=open_statuses,
        )
        decision = recommend(matches)
        member_count = len(group.members)
        if decision.action == SKIP:
            result.stats.emails_with_duplicates += member_count
        elif decision.action == LINK:
            result.stats.emails_to_link += member_count
        else:
            result.stats.emails_to_create += member_count
        if group.related_emails:
            result.stats.potential_duplicates += 1
        LOGGER.debug("Group %s -> %s (%s)", group.id, decision.action, decision.reason)
        result.groups_with_matches.append(
            GroupAnalysis(
                group=_annotate(group, decision.ticket_id),
                matching_tickets=matches,
                recommendation=decision,
            )
        )

    result.stats.total_groups = len(result.groups_with_matches)
    LOGGER.info(
        "Cross analysis: %s emails in %s groups against %s tickets "
        "(skip=%s, link=%s, create=%s)",
        result.stats.total_emails,
        result.stats.total_groups,
        result.stats.total_tickets,
        result.stats.emails_with_duplicates,
        result.stats.emails_to_link,
        result.stats.emails_to_create,
    )
    return result
