from __future__ import annotations

from datetime import datetime, timezone

from factories import BASE_TIME, make_email, make_ticket

from triage_common.entities import (
    MAX_KEYWORDS,
    analyze_email,
    analyze_emails,
    analyze_ticket,
    analyze_tickets,
    detect_issue_type,
    detect_sentiment,
    detect_urgency,
    extract_keywords,
    extract_product_mentions,
    extract_references,
)
from triage_common.records import RawEmail, RawTicket
from triage_common.text import STOP_WORDS


def test_extract_keywords_caps_length_and_filters_noise() -> None:
    words = [f"word{index:02d}" for index in range(25)]
    text = " ".join(words) + " the and it is ok by to a"

    keywords = extract_keywords(text)

    assert len(keywords) == MAX_KEYWORDS
    assert all(len(keyword) >= 3 for keyword in keywords)
    assert not set(keywords) & STOP_WORDS


def test_extract_keywords_orders_by_frequency_then_first_seen() -> None:
    keywords = extract_keywords("beta alpha beta alpha gamma delta gamma beta")

    assert keywords == ["beta", "alpha", "gamma", "delta"]


def test_extract_keywords_handles_missing_text() -> None:
    assert extract_keywords(None) == []
    assert extract_keywords("") == []


def test_extract_references_captures_known_forms() -> None:
    text = "Order ORD-1234, ticket TKT#5678, see REF ABC123XY, code AB-12345 and 12345678."

    references = extract_references(text)

    assert set(references) == {"ORD-1234", "TKT#5678", "REF ABC123XY", "AB-12345", "12345678"}


def test_extract_references_uppercases_and_deduplicates() -> None:
    assert extract_references("order ord-5555 and again ord-5555") == ("ORD-5555",)
    assert extract_references(None) == ()


def test_extract_product_mentions_deduplicates_in_pattern_order() -> None:
    mentions = extract_product_mentions("Invoice attached. The PRINTER and printer queue crashed")

    assert mentions == ("printer", "invoice")


def test_extract_product_mentions_lowercases_matches() -> None:
    assert extract_product_mentions("LOGIN failed, Network down") == ("network", "login")


def test_issue_type_precedence_prefers_outage_over_printing() -> None:
    assert detect_issue_type("", "URGENT: printer not working") == "System Outage"
    assert detect_issue_type("the printer shows an error", None) == "Error/Bug"
    assert detect_issue_type("please check the label printer", "") == "Printing Issue"
    assert detect_issue_type("lovely weather", "hello") is None


def test_urgency_tiers_follow_precedence() -> None:
    assert detect_urgency("", "URGENT: printer not working") == "critical"
    assert detect_urgency("This is important, please fix by EOD", "") == "high"
    assert detect_urgency("whenever, this week is fine", "") == "medium"
    assert detect_urgency(None, None) == "low"


def test_sentiment_frustration_overrides_everything() -> None:
    assert detect_sentiment("This is unacceptable, thank you anyway") == "frustrated"


def test_sentiment_positive_markers_cancel_negative_ones() -> None:
    assert detect_sentiment("Thank you, but there was an issue with the label") == "positive"
    assert detect_sentiment("There is a problem with my order") == "negative"
    assert detect_sentiment("Great job on the release") == "positive"
    assert detect_sentiment("Meeting moved to Tuesday") == "neutral"
    assert detect_sentiment(None) == "neutral"


def test_analyze_email_for_urgent_subject_with_empty_body() -> None:
    email = make_email("e-1", subject="URGENT: printer not working", body="", sender="ops@acme.com")

    assert email.entities.urgency == "critical"
    assert email.entities.issue_type == "System Outage"
    assert email.entities.sender_domain == "acme.com"
    assert email.entities.sentiment == "neutral"
    assert email.group_id is None
    assert email.existing_ticket_id is None


def test_analyze_email_accepts_collaborator_payload() -> None:
    email = analyze_email(
        {
            "id": "abc",
            "subject": "Invoice INV-20240 wrong",
            "fromEmail": "billing@client.io",
            "toEmails": '["support@pms.example"]',
            "bodyPreview": "The invoice total is incorrect",
            "receivedAt": "2024-03-04T09:00:00Z",
        }
    )

    assert email.sender == "billing@client.io"
    assert email.recipients == ("support@pms.example",)
    assert email.body == "The invoice total is incorrect"
    assert email.received_at == BASE_TIME
    assert "INV-20240" in email.entities.references
    assert email.entities.issue_type == "Billing Issue"


def test_analyze_email_without_sender_has_empty_domain() -> None:
    email = analyze_email(
        RawEmail(id="x", subject="", sender="", recipients=(), body="", received_at=BASE_TIME)
    )

    assert email.entities.sender_domain == ""
    assert email.entities.keywords == ()
    assert email.entities.references == ()
    assert email.entities.issue_type is None
    assert email.entities.urgency == "low"


def test_analyze_ticket_copies_category_and_extracts_signal() -> None:
    ticket = make_ticket(
        "T-1",
        title="Scanner broken",
        description="Scanner at dock 4 broken since ORD-4411 shipment",
        category="hardware",
    )

    assert ticket.entities.category == "hardware"
    assert ticket.entities.issue_type == "System Outage"
    assert ticket.entities.references == ("ORD-4411",)
    assert "scanner" in ticket.entities.product_mentions
    assert ticket.entities.keywords[0] == "scanner"


def test_analyze_emails_skips_malformed_records() -> None:
    batch = analyze_emails(
        [
            {"id": "ok", "subject": "Hello", "from": "a@b.com", "receivedAt": "2024-03-04T09:00:00Z"},
            {"subject": "missing id", "receivedAt": "2024-03-04T09:00:00Z"},
            {"id": "bad-date", "receivedAt": "not a date"},
            "not a mapping",
        ]
    )

    assert [email.id for email in batch.records] == ["ok"]
    assert [record.index for record in batch.skipped] == [1, 2, 3]
    assert batch.skipped[1].record_id == "bad-date"
    assert "id" in batch.skipped[0].reason


def test_analyze_tickets_accepts_null_description() -> None:
    batch = analyze_tickets(
        [
            {
                "id": "T-9",
                "title": "Password reset",
                "description": None,
                "status": "new",
                "priority": "low",
                "category": None,
                "createdAt": "2024-03-01T10:00:00",
            }
        ]
    )

    ticket = batch.records[0]
    assert ticket.description == ""
    assert ticket.entities.issue_type == "Access Issue"
    assert ticket.created_at.tzinfo is not None


def test_null_email_fields_are_treated_as_empty() -> None:
    email = analyze_email(
        RawEmail(id="n", subject=None, sender=None, recipients=None, body=None, received_at=BASE_TIME)
    )

    assert email.subject == ""
    assert email.sender == ""
    assert email.body == ""
    assert email.recipients == ()
    assert email.entities.sender_domain == ""
    assert email.entities.keywords == ()


def test_null_ticket_description_is_treated_as_empty() -> None:
    ticket = analyze_ticket(
        RawTicket(
            id="T-1",
            title="Printer",
            description=None,
            status=None,
            priority="low",
            category=None,
            created_at=BASE_TIME,
        )
    )

    assert ticket.description == ""
    assert ticket.status == ""
    assert ticket.entities.product_mentions == ("printer",)


def test_naive_timestamps_on_records_are_read_as_utc() -> None:
    email = make_email("n", received_at=datetime(2024, 3, 4, 10, 0))
    ticket = make_ticket("T-2", created_at=datetime(2024, 3, 1, 8, 30))

    assert email.received_at == datetime(2024, 3, 4, 10, 0, tzinfo=timezone.utc)
    assert ticket.created_at == datetime(2024, 3, 1, 8, 30, tzinfo=timezone.utc)
