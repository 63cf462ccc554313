from __future__ import annotations

import pytest

from factories import at, label_printer_emails, label_printer_ticket, make_email, make_ticket

from triage_common.recommendations import (
    CREATE,
    CREATE_REASON,
    LINK,
    SKIP,
    cross_analyze_emails_and_tickets,
    recommend,
)
from triage_common.similarity import score_email_ticket


def test_open_duplicate_recommends_skip() -> None:
    emails = label_printer_emails()

    result = cross_analyze_emails_and_tickets(emails, [label_printer_ticket("open")])

    entry = result.groups_with_matches[0]
    assert entry.recommendation.action == SKIP
    assert entry.recommendation.reason == "Duplicate of ticket #T-100"
    assert result.stats.emails_with_duplicates == 2
    assert result.stats.emails_to_create == 0
    assert {email.existing_ticket_id for email in entry.group.members} == {"T-100"}


def test_closed_match_recommends_link() -> None:
    emails = label_printer_emails()

    result = cross_analyze_emails_and_tickets(emails, [label_printer_ticket("closed")])

    entry = result.groups_with_matches[0]
    assert entry.recommendation.action == LINK
    assert entry.recommendation.reason == "Related to ticket #T-100"
    assert entry.matching_tickets[0].confidence == "high"
    assert not entry.matching_tickets[0].is_duplicate
    assert result.stats.emails_to_link == 2


def test_low_confidence_matches_recommend_create() -> None:
    email = make_email(
        "e-5",
        subject="Login problem",
        body="Cannot login",
        sender="fay@firm.com",
    )
    ticket = make_ticket("T-5", title="Password policy", description="Reset login for the finance team")

    match = score_email_ticket(email, ticket)
    assert match.confidence == "low"

    decision = recommend([match])

    assert decision.action == CREATE
    assert decision.reason == CREATE_REASON
    assert decision.ticket_id is None


def test_duplicate_wins_over_higher_scoring_link() -> None:
    email, _ = label_printer_emails()
    closed = score_email_ticket(email, label_printer_ticket("closed"))
    open_match = score_email_ticket(email, make_ticket("T-2", title="Label printer down", description="label printer down", status="open"))
    assert open_match.is_duplicate

    decision = recommend([closed, open_match])

    assert decision.action == SKIP
    assert decision.ticket_id == "T-2"


def test_empty_email_batch_is_not_an_error() -> None:
    result = cross_analyze_emails_and_tickets([], [label_printer_ticket()])

    assert result.stats.total_emails == 0
    assert result.groups_with_matches == []
    assert result.stats.total_tickets == 1
    assert result.to_dict()["groupsWithMatches"] == []


def test_stats_account_for_every_email() -> None:
    emails = [
        *label_printer_emails(),
        make_email("e-9", subject="Invoice copy", body="Could I get a copy of invoice 20240311?", sender="gus@shop.org", received_at=at(days=14)),
        make_email("e-10", subject="Lunch", body="", sender="hal@home.net", received_at=at(days=30)),
    ]
    tickets = [label_printer_ticket("open"), make_ticket("T-11", title="Old", status="resolved")]

    result = cross_analyze_emails_and_tickets(emails, tickets)
    stats = result.stats

    assert stats.total_emails == 4
    assert stats.emails_with_duplicates + stats.emails_to_link + stats.emails_to_create == 4
    assert stats.total_groups == 3
    assert stats.potential_duplicates == 1
    assert stats.total_tickets == 2
    assert (result.ticket_stats.open, result.ticket_stats.closed) == (1, 1)


def test_cross_analysis_is_deterministic() -> None:
    emails = label_printer_emails()
    tickets = [label_printer_ticket("open"), label_printer_ticket("closed")]

    first = cross_analyze_emails_and_tickets(emails, tickets).to_dict()
    second = cross_analyze_emails_and_tickets(emails, tickets).to_dict()

    assert first == second


@pytest.mark.parametrize("threshold, expected", [(30, 1), (90, 0)])
def test_threshold_is_configurable(threshold: int, expected: int) -> None:
    result = cross_analyze_emails_and_tickets(
        label_printer_emails(), [label_printer_ticket()], ticket_match_threshold=threshold
    )

    assert len(result.groups_with_matches[0].matching_tickets) == expected
