"""Pattern driven entity extraction for emails and tickets."""
from __future__ import annotations

import logging
import re
from collections import Counter
from typing import Any, Dict, Iterable, List, Optional, Pattern, Sequence, Tuple, Union

from .records import (
    AnalyzedEmail,
    AnalyzedTicket,
    EmailEntities,
    ParsedBatch,
    RawEmail,
    RawTicket,
    TicketEntities,
    parse_batch,
)
from .text import combine, tokenize

LOGGER = logging.getLogger(__name__)

MAX_KEYWORDS = 15

_FLAGS = re.IGNORECASE | re.ASCII

# Specific identifier forms come first; the bare digit run stays last.
REFERENCE_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r"\b(ORD|ORDER|PO|SO)[-#]?\s*(\d{4,})\b", _FLAGS),
    re.compile(r"\b(TKT|TICKET|CASE|INC)[-#]?\s*(\d{4,})\b", _FLAGS),
    re.compile(r"\b(REF|REFERENCE)[-#]?\s*([A-Z0-9]{5,})\b", _FLAGS),
    re.compile(r"\b([A-Z]{2,4}-\d{4,})\b", re.ASCII),
    re.compile(r"\b(\d{6,10})\b", re.ASCII),
)

PRODUCT_PATTERNS: Tuple[Pattern[str], ...] = tuple(
    re.compile(pattern, _FLAGS)
    for pattern in (
        r"\b(pacjet|packjet|pack-jet)\b",
        r"\b(printer|printing|print)\b",
        r"\b(invoice|invoicing)\b",
        r"\b(shipping|shipment|delivery)\b",
        r"\b(order|orders)\b",
        r"\b(label|labels|labeling)\b",
        r"\b(scanner|scanning)\b",
        r"\b(system|application|app|software)\b",
        r"\b(database|db)\b",
        r"\b(network|internet|connection)\b",
        r"\b(login|password|access|permission)\b",
        r"\b(error|issue|problem|bug|crash)\b",
    )
)

# Order is precedence: the first matching pattern names the issue type.
ISSUE_TYPE_PATTERNS: Tuple[Tuple[Pattern[str], str], ...] = tuple(
    (re.compile(pattern, _FLAGS), label)
    for pattern, label in (
        (r"\b(not working|doesn't work|won't start|stopped|broken|down)\b", "System Outage"),
        (r"\b(error|exception|failed|failure|crash)\b", "Error/Bug"),
        (r"\b(slow|performance|timeout|taking long)\b", "Performance Issue"),
        (r"\b(print|printer|printing|label)\b", "Printing Issue"),
        (r"\b(login|password|access|permission|denied)\b", "Access Issue"),
        (r"\b(request|need|want|please add|feature)\b", "Feature Request"),
        (r"\b(how to|how do|help with|question about)\b", "How-To Question"),
        (r"\b(order|shipment|delivery|tracking)\b", "Order Issue"),
        (r"\b(invoice|billing|payment|charge)\b", "Billing Issue"),
        (r"\b(data|report|missing|incorrect)\b", "Data Issue"),
    )
)

URGENCY_PATTERNS: Tuple[Tuple[Pattern[str], str], ...] = tuple(
    (re.compile(pattern, _FLAGS), level)
    for pattern, level in (
        (r"\b(urgent|asap|immediately|critical|emergency|down|outage)\b", "critical"),
        (r"\b(high priority|important|need today|by eod|end of day)\b", "high"),
        (r"\b(soon|when you can|this week)\b", "medium"),
    )
)
DEFAULT_URGENCY = "low"

FRUSTRATED_PATTERN = re.compile(
    r"\b(frustrated|angry|unacceptable|terrible|worst|fed up|sick of|tired of|!!+)\b", _FLAGS
)
NEGATIVE_PATTERN = re.compile(
    r"\b(problem|issue|wrong|incorrect|failed|error|bad|poor|disappointed)\b", _FLAGS
)
POSITIVE_PATTERN = re.compile(
    r"\b(thank|great|excellent|perfect|wonderful|appreciate|helpful|good job)\b", _FLAGS
)


def _unique(values: Iterable[str]) -> Tuple[str, ...]:
    return tuple(dict.fromkeys(values))


def extract_keywords(text: Optional[str]) -> List[str]:
    """Return up to fifteen of the most frequent tokens, first-seen order on ties."""
    counts = Counter(tokenize(text))
    return [word for word, _ in counts.most_common(MAX_KEYWORDS)]


def extract_references(text: Optional[str]) -> Tuple[str, ...]:
    if not text:
        return ()
    matches: List[str] = []
    for pattern in REFERENCE_PATTERNS:
        matches.extend(match.group(0).upper() for match in pattern.finditer(text))
    return _unique(matches)


def extract_product_mentions(text: Optional[str]) -> Tuple[str, ...]:
    if not text:
        return ()
    matches: List[str] = []
    for pattern in PRODUCT_PATTERNS:
        matches.extend(match.group(0).lower() for match in pattern.finditer(text))
    return _unique(matches)


def _first_label(
    rules: Sequence[Tuple[Pattern[str], str]], text: str, default: Optional[str] = None
) -> Optional[str]:
    for pattern, label in rules:
        if pattern.search(text):
            return label
    return default


def detect_issue_type(body: Optional[str], subject: Optional[str]) -> Optional[str]:
    return _first_label(ISSUE_TYPE_PATTERNS, combine(subject, body).lower())


def detect_urgency(body: Optional[str], subject: Optional[str]) -> str:
    return _first_label(URGENCY_PATTERNS, combine(subject, body).lower(), DEFAULT_URGENCY)


def detect_sentiment(text: Optional[str]) -> str:
    """Classify tone; positive markers cancel negative ones, frustration wins outright."""
    if not text:
        return "neutral"
    lowered = text.lower()
    positive = bool(POSITIVE_PATTERN.search(lowered))
    if FRUSTRATED_PATTERN.search(lowered):
        return "frustrated"
    if NEGATIVE_PATTERN.search(lowered) and not positive:
        return "negative"
    if positive:
        return "positive"
    return "neutral"


def sender_domain(address: str) -> str:
    _, at, domain = address.partition("@")
    return domain if at else ""


def analyze_email(raw: Union[RawEmail, Dict[str, Any]]) -> AnalyzedEmail:
    """Extract :class:`EmailEntities` from a raw email record or payload."""
    if not isinstance(raw, RawEmail):
        raw = RawEmail.from_api(raw)
    full_text = combine(raw.subject, raw.body)
    entities = EmailEntities(
        sender=raw.sender,
        sender_domain=sender_domain(raw.sender),
        recipients=raw.recipients,
        subject=raw.subject,
        keywords=tuple(extract_keywords(full_text)),
        product_mentions=extract_product_mentions(full_text),
        references=extract_references(full_text),
        issue_type=detect_issue_type(raw.body, raw.subject),
        urgency=detect_urgency(raw.body, raw.subject),
        sentiment=detect_sentiment(raw.body),
    )
    LOGGER.debug(
        "Email %s analysed issue_type=%s urgency=%s sentiment=%s references=%s",
        raw.id,
        entities.issue_type,
        entities.urgency,
        entities.sentiment,
        list(entities.references),
    )
    return AnalyzedEmail(
        id=raw.id,
        subject=raw.subject,
        sender=raw.sender,
        recipients=raw.recipients,
        body=raw.body,
        received_at=raw.received_at,
        entities=entities,
    )


def analyze_ticket(raw: Union[RawTicket, Dict[str, Any]]) -> AnalyzedTicket:
    """Extract :class:`TicketEntities` from a raw ticket record or payload."""
    if not isinstance(raw, RawTicket):
        raw = RawTicket.from_api(raw)
    full_text = combine(raw.title, raw.description)
    entities = TicketEntities(
        keywords=tuple(extract_keywords(full_text)),
        product_mentions=extract_product_mentions(full_text),
        references=extract_references(full_text),
        issue_type=detect_issue_type(raw.description, raw.title),
        category=raw.category,
    )
    return AnalyzedTicket(
        id=raw.id,
        title=raw.title,
        description=raw.description,
        status=raw.status,
        priority=raw.priority,
        category=raw.category,
        created_at=raw.created_at,
        entities=entities,
    )


def analyze_emails(payloads: Iterable[Dict[str, Any]]) -> ParsedBatch:
    """Analyse a batch of raw email payloads, skipping malformed records."""
    batch = parse_batch(payloads, RawEmail.from_api, kind="email")
    batch.records = [analyze_email(raw) for raw in batch.records]
    LOGGER.info("Analysed %s emails (%s skipped)", len(batch.records), len(batch.skipped))
    return batch


def analyze_tickets(payloads: Iterable[Dict[str, Any]]) -> ParsedBatch:
    """Analyse a batch of raw ticket payloads, skipping malformed records."""
    batch = parse_batch(payloads, RawTicket.from_api, kind="ticket")
    batch.records = [analyze_ticket(raw) for raw in batch.records]
    LOGGER.info("Analysed %s tickets (%s skipped)", len(batch.records), len(batch.skipped))
    return batch
