"""Additive similarity scoring between emails and between emails and tickets.

Each signal that fires adds a fixed or scaled number of points and a
human-readable reason. Scores are clamped to ``[0, 100]`` and bucketed into
confidence tiers so reviewers can see why two records were linked.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Sequence

from .records import AnalyzedEmail, AnalyzedTicket

LOGGER = logging.getLogger(__name__)

MAX_SCORE = 100
HIGH_CONFIDENCE_SCORE = 70
MEDIUM_CONFIDENCE_SCORE = 45
LIKELY_RELATED_SCORE = 50
DUPLICATE_SCORE = 60
KEYWORD_OVERLAP_THRESHOLD = 0.3
PROXIMITY_WINDOW_DAYS = 7

OPEN_STATUSES: FrozenSet[str] = frozenset({"open", "in-progress", "pending", "new"})

# Email to email weights
SAME_DOMAIN_POINTS = 15
SAME_SENDER_POINTS = 20
SHARED_REFERENCE_POINTS = 40
KEYWORD_OVERLAP_POINTS = 25
SHARED_PRODUCT_POINTS = 10
SAME_ISSUE_TYPE_POINTS = 15
PROXIMITY_POINTS_PER_DAY = 2

# Email to ticket weights
TICKET_REFERENCE_POINTS = 50
TICKET_PRODUCT_POINTS = 15
TICKET_PRODUCT_CAP = 2
TICKET_ISSUE_TYPE_POINTS = 15
SENDER_MENTION_POINTS = 20
TITLE_OVERLAP_POINTS = 10
TITLE_OVERLAP_MIN_WORDS = 2
TITLE_WORD_MIN_LENGTH = 4


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp_score(score: float) -> int:
    return int(max(0, min(MAX_SCORE, score)))


def confidence_tier(score: float) -> str:
    if score >= HIGH_CONFIDENCE_SCORE:
        return "high"
    if score >= MEDIUM_CONFIDENCE_SCORE:
        return "medium"
    return "low"


def is_open_status(status: str | None, open_statuses: Iterable[str] = OPEN_STATUSES) -> bool:
    return (status or "").lower() in {value.lower() for value in open_statuses}


def _shared(left: Sequence[str], right: Sequence[str]) -> List[str]:
    right_set = set(right)
    return [value for value in dict.fromkeys(left) if value in right_set]


def keyword_overlap(left: Sequence[str], right: Sequence[str]) -> tuple[List[str], float]:
    """Return the shared keywords and their ratio to the larger keyword set."""
    left_set, right_set = set(left), set(right)
    shared = _shared(left, right)
    return shared, len(shared) / max(len(left_set), len(right_set), 1)


@dataclass
class EmailSimilarity:
    score: int
    reasons: List[str] = field(default_factory=list)
    confidence: str = "low"
    is_likely_related: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "reasons": list(self.reasons),
            "isLikelyRelated": self.is_likely_related,
            "confidence": self.confidence,
        }


@dataclass
class MatchResult:
    ticket: AnalyzedTicket
    similarity_score: int
    reasons: List[str] = field(default_factory=list)
    confidence: str = "low"
    is_duplicate: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ticket": self.ticket.to_dict(),
            "similarityScore": self.similarity_score,
            "matchReasons": list(self.reasons),
            "confidence": self.confidence,
            "isDuplicate": self.is_duplicate,
        }


def score_email_pair(first: AnalyzedEmail, second: AnalyzedEmail) -> EmailSimilarity:
    left, right = first.entities, second.entities
    score = 0
    reasons: List[str] = []

    if left.sender_domain == right.sender_domain:
        score += SAME_DOMAIN_POINTS
        reasons.append("Same sender domain")

    if left.sender == right.sender:
        score += SAME_SENDER_POINTS
        reasons.append("Same sender")

    shared_references = _shared(left.references, right.references)
    if shared_references:
        score += SHARED_REFERENCE_POINTS
        reasons.append(f"Same order reference: {', '.join(shared_references)}")

    _, ratio = keyword_overlap(left.keywords, right.keywords)
    if ratio > KEYWORD_OVERLAP_THRESHOLD:
        score += round_half_up(ratio * KEYWORD_OVERLAP_POINTS)
        reasons.append(f"{round_half_up(ratio * 100)}% keyword overlap")

    shared_products = _shared(left.product_mentions, right.product_mentions)
    if shared_products:
        score += SHARED_PRODUCT_POINTS * len(shared_products)
        reasons.append(f"Same products: {', '.join(shared_products)}")

    if left.issue_type and left.issue_type == right.issue_type:
        score += SAME_ISSUE_TYPE_POINTS
        reasons.append(f"Same issue type: {left.issue_type}")

    days_apart = abs((first.received_at - second.received_at).total_seconds()) / 86400.0
    if days_apart <= PROXIMITY_WINDOW_DAYS:
        bonus = round_half_up((PROXIMITY_WINDOW_DAYS - days_apart) * PROXIMITY_POINTS_PER_DAY)
        if bonus:
            score += bonus
            reasons.append(f"Within {round_half_up(days_apart)} days")

    score = clamp_score(score)
    return EmailSimilarity(
        score=score,
        reasons=reasons,
        confidence=confidence_tier(score),
        is_likely_related=score >= LIKELY_RELATED_SCORE,
    )


def score_email_ticket(
    email: AnalyzedEmail,
    ticket: AnalyzedTicket,
    *,
    open_statuses: Iterable[str] = OPEN_STATUSES,
) -> MatchResult:
    left, right = email.entities, ticket.entities
    score = 0
    reasons: List[str] = []

    shared_references = _shared(
        [ref.upper() for ref in left.references], [ref.upper() for ref in right.references]
    )
    if shared_references:
        score += TICKET_REFERENCE_POINTS
        reasons.append(f"Matching reference: {', '.join(shared_references)}")

    shared_products = _shared(
        [p.lower() for p in left.product_mentions], [p.lower() for p in right.product_mentions]
    )
    if shared_products:
        score += TICKET_PRODUCT_POINTS * min(len(shared_products), TICKET_PRODUCT_CAP)
        reasons.append(f"Same product: {', '.join(shared_products)}")

    shared_keywords, ratio = keyword_overlap(left.keywords, right.keywords)
    if ratio > KEYWORD_OVERLAP_THRESHOLD:
        score += round_half_up(ratio * KEYWORD_OVERLAP_POINTS)
        reasons.append(f"{len(shared_keywords)} matching keywords")

    if left.issue_type and right.issue_type:
        email_issue = left.issue_type.lower()
        ticket_issue = right.issue_type.lower()
        if email_issue in ticket_issue or ticket_issue in email_issue:
            score += TICKET_ISSUE_TYPE_POINTS
            reasons.append(f"Same issue type: {left.issue_type}")

    if left.sender and left.sender.lower() in ticket.description.lower():
        score += SENDER_MENTION_POINTS
        reasons.append("Sender mentioned in ticket")

    subject_words = {w for w in left.subject.lower().split() if len(w) >= TITLE_WORD_MIN_LENGTH}
    title_words = {w for w in ticket.title.lower().split() if len(w) >= TITLE_WORD_MIN_LENGTH}
    if len(subject_words & title_words) >= TITLE_OVERLAP_MIN_WORDS:
        score += TITLE_OVERLAP_POINTS
        reasons.append("Similar subject/title")

    score = clamp_score(score)
    is_duplicate = score >= DUPLICATE_SCORE and is_open_status(ticket.status, open_statuses)
    LOGGER.debug(
        "Email %s vs ticket %s scored %s (duplicate=%s): %s",
        email.id,
        ticket.id,
        score,
        is_duplicate,
        reasons,
    )
    return MatchResult(
        ticket=ticket,
        similarity_score=score,
        reasons=reasons,
        confidence=confidence_tier(score),
        is_duplicate=is_duplicate,
    )
