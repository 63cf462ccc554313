"""Email and ticket records consumed and produced by the triage engine."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from dateutil import parser as date_parser

LOGGER = logging.getLogger(__name__)

URGENCY_LEVELS = ("low", "medium", "high", "critical")
SENTIMENTS = ("positive", "neutral", "negative", "frustrated")


class RecordError(ValueError):
    """Raised when a raw record is missing required structure."""


def parse_timestamp(value: Any, *, field_name: str) -> datetime:
    """Return ``value`` as an aware UTC datetime.

    Naive values are assumed to already be in UTC.
    """
    if value is None or value == "":
        raise RecordError(f"missing required field '{field_name}'")
    if isinstance(value, datetime):
        dt = value
    else:
        try:
            dt = date_parser.isoparse(str(value))
        except (ValueError, TypeError) as exc:
            raise RecordError(f"unparsable {field_name} value {value!r}") from exc
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _require_id(payload: Dict[str, Any]) -> str:
    record_id = payload.get("id")
    if record_id is None or str(record_id).strip() == "":
        raise RecordError("missing required field 'id'")
    return str(record_id)


def _parse_recipients(value: Any) -> Tuple[str, ...]:
    if not value:
        return ()
    if isinstance(value, str):
        try:
            decoded = json.loads(value)
        except ValueError:
            LOGGER.debug("Ignoring unparsable recipient list %r", value)
            return ()
        value = decoded if isinstance(decoded, list) else []
    return tuple(str(item) for item in value if item)


def _text(value: Any) -> str:
    return "" if value is None else str(value)


@dataclass(frozen=True)
class RawEmail:
    id: str
    subject: str
    sender: str
    recipients: Tuple[str, ...]
    body: str
    received_at: datetime

    def __post_init__(self) -> None:
        # Null text becomes "" and timestamps are always aware UTC.
        object.__setattr__(self, "subject", _text(self.subject))
        object.__setattr__(self, "sender", _text(self.sender))
        object.__setattr__(self, "body", _text(self.body))
        object.__setattr__(self, "recipients", tuple(self.recipients or ()))
        object.__setattr__(
            self, "received_at", parse_timestamp(self.received_at, field_name="receivedAt")
        )

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "RawEmail":
        record_id = _require_id(payload)
        return cls(
            id=record_id,
            subject=payload.get("subject") or "",
            sender=payload.get("from") or payload.get("fromEmail") or "",
            recipients=_parse_recipients(payload.get("to", payload.get("toEmails"))),
            body=payload.get("body") or payload.get("bodyPreview") or "",
            received_at=payload.get("receivedAt"),
        )


@dataclass(frozen=True)
class RawTicket:
    id: str
    title: str
    description: str
    status: str
    priority: str
    category: Optional[str]
    created_at: datetime

    def __post_init__(self) -> None:
        for name in ("title", "description", "status", "priority"):
            object.__setattr__(self, name, _text(getattr(self, name)))
        object.__setattr__(
            self, "created_at", parse_timestamp(self.created_at, field_name="createdAt")
        )

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "RawTicket":
        record_id = _require_id(payload)
        return cls(
            id=record_id,
            title=payload.get("title") or "",
            description=payload.get("description") or "",
            status=payload.get("status") or "",
            priority=payload.get("priority") or "",
            category=payload.get("category"),
            created_at=payload.get("createdAt"),
        )


@dataclass(frozen=True)
class EmailEntities:
    sender: str
    sender_domain: str
    recipients: Tuple[str, ...]
    subject: str
    keywords: Tuple[str, ...]
    product_mentions: Tuple[str, ...]
    references: Tuple[str, ...]
    issue_type: Optional[str]
    urgency: str = "low"
    sentiment: str = "neutral"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sender": self.sender,
            "senderDomain": self.sender_domain,
            "recipients": list(self.recipients),
            "subject": self.subject,
            "keywords": list(self.keywords),
            "productMentions": list(self.product_mentions),
            "orderNumbers": list(self.references),
            "issueType": self.issue_type,
            "urgency": self.urgency,
            "sentiment": self.sentiment,
        }


@dataclass(frozen=True)
class TicketEntities:
    keywords: Tuple[str, ...]
    product_mentions: Tuple[str, ...]
    references: Tuple[str, ...]
    issue_type: Optional[str]
    category: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "keywords": list(self.keywords),
            "productMentions": list(self.product_mentions),
            "referenceNumbers": list(self.references),
            "issueType": self.issue_type,
            "category": self.category,
        }


@dataclass(frozen=True)
class AnalyzedEmail:
    id: str
    subject: str
    sender: str
    recipients: Tuple[str, ...]
    body: str
    received_at: datetime
    entities: EmailEntities
    existing_ticket_id: Optional[str] = None
    group_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "subject": self.subject,
            "from": self.sender,
            "to": list(self.recipients),
            "body": self.body,
            "receivedAt": self.received_at,
            "entities": self.entities.to_dict(),
        }
        if self.existing_ticket_id is not None:
            payload["existingTicketId"] = self.existing_ticket_id
        if self.group_id is not None:
            payload["groupId"] = self.group_id
        return payload


@dataclass(frozen=True)
class AnalyzedTicket:
    id: str
    title: str
    description: str
    status: str
    priority: str
    category: Optional[str]
    created_at: datetime
    entities: TicketEntities

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "priority": self.priority,
            "category": self.category,
            "createdAt": self.created_at,
            "entities": self.entities.to_dict(),
        }


@dataclass(frozen=True)
class SkippedRecord:
    """A raw record rejected at the batch boundary."""

    index: int
    record_id: Optional[str]
    reason: str


@dataclass
class ParsedBatch:
    records: List[Any] = field(default_factory=list)
    skipped: List[SkippedRecord] = field(default_factory=list)


def parse_batch(payloads: Iterable[Dict[str, Any]], factory, *, kind: str) -> ParsedBatch:
    """Build records with ``factory``, skipping and logging the malformed ones."""
    batch = ParsedBatch()
    for index, payload in enumerate(payloads or []):
        if not isinstance(payload, dict):
            reason = f"expected a mapping, got {type(payload).__name__}"
            LOGGER.warning("Skipping %s at index %s: %s", kind, index, reason)
            batch.skipped.append(SkippedRecord(index=index, record_id=None, reason=reason))
            continue
        try:
            batch.records.append(factory(payload))
        except RecordError as exc:
            record_id = payload.get("id")
            LOGGER.warning("Skipping %s at index %s (id=%r): %s", kind, index, record_id, exc)
            batch.skipped.append(
                SkippedRecord(
                    index=index,
                    record_id=str(record_id) if record_id is not None else None,
                    reason=str(exc),
                )
            )
    return batch
