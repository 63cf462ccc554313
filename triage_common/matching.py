"""Rank existing tickets and emails against an incoming email."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List

from .records import AnalyzedEmail, AnalyzedTicket
from .similarity import (
    OPEN_STATUSES,
    EmailSimilarity,
    MatchResult,
    score_email_pair,
    score_email_ticket,
)

LOGGER = logging.getLogger(__name__)

TICKET_MATCH_THRESHOLD = 30


@dataclass
class EmailMatch:
    email: AnalyzedEmail
    similarity: EmailSimilarity

    def to_dict(self) -> Dict[str, Any]:
        return {"email": self.email.to_dict(), "similarity": self.similarity.to_dict()}


def find_matching_tickets(
    email: AnalyzedEmail,
    tickets: Iterable[AnalyzedTicket],
    *,
    threshold: int = TICKET_MATCH_THRESHOLD,
    open_statuses: Iterable[str] = OPEN_STATUSES,
) -> List[MatchResult]:
    """Return tickets scoring at least ``threshold`` against ``email``, best first.

    The threshold sits below the email relatedness cutoff so weaker candidates
    still reach a reviewer.
    """
    open_statuses = frozenset(open_statuses)
    matches = [
        match
        for match in (score_email_ticket(email, ticket, open_statuses=open_statuses) for ticket in tickets)
        if match.similarity_score >= threshold
    ]
    matches.sort(key=lambda match: match.similarity_score, reverse=True)
    if matches:
        LOGGER.debug(
            "Email %s matched %s tickets (best %s at %s)",
            email.id,
            len(matches),
            matches[0].ticket.id,
            matches[0].similarity_score,
        )
    return matches


def find_potential_duplicates(
    email: AnalyzedEmail, others: Iterable[AnalyzedEmail]
) -> List[EmailMatch]:
    """Return other emails likely related to ``email``, highest score first."""
    candidates: List[EmailMatch] = []
    for other in others:
        if other.id == email.id:
            continue
        similarity = score_email_pair(email, other)
        if similarity.is_likely_related:
            candidates.append(EmailMatch(email=other, similarity=similarity))
    candidates.sort(key=lambda candidate: candidate.similarity.score, reverse=True)
    return candidates
