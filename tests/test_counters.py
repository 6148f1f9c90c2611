"""
Tests for aggregate summary counts.
"""

from datetime import datetime, timezone

import pytest

from casedesk.config import CaseDeskConfig
from casedesk.trash import AggregateCounter, TrashSummary
from casedesk.trash.entities import Case, Invoice, OurCompany, Partner

DELETED_AT = datetime(2026, 9, 15, tzinfo=timezone.utc)


@pytest.fixture
def summary_rows(add):
    """3 active open cases, 2 completed cases, 1 unpaid and 1 paid invoice,
    and 4 trashed rows spread across kinds."""
    add(
        Case(case_number="A1", status="draft"),
        Case(case_number="A2", status="in_progress"),
        Case(case_number="A3", status="paused"),
        Case(case_number="D1", status="completed"),
        Case(case_number="D2", status="completed"),
        Invoice(invoice_number="I1", status="unpaid"),
        Invoice(invoice_number="I2", status="paid"),
        Case(case_number="T1", status="in_progress", deleted_at=DELETED_AT),
        Invoice(invoice_number="T2", status="unpaid", deleted_at=DELETED_AT),
        Partner(name="T3", deleted_at=DELETED_AT),
        OurCompany(name="T4", deleted_at=DELETED_AT),
    )


class TestAggregateCounter:
    """Test summary counts."""

    def test_summary(self, counter, summary_rows):
        summary = counter.compute_summary()

        assert summary == TrashSummary(
            active_cases=3, unpaid_invoices=1, trashed_items=4
        )

    def test_summary_body_uses_camel_case(self, counter, summary_rows):
        body = counter.compute_summary().model_dump(by_alias=True)
        assert body == {"activeCases": 3, "unpaidInvoices": 1, "trashedItems": 4}

    def test_empty_store(self, counter):
        summary = counter.compute_summary()
        assert summary.active_cases == 0
        assert summary.unpaid_invoices == 0
        assert summary.trashed_items == 0

    def test_trashed_by_kind(self, counter, summary_rows):
        assert counter.trashed_by_kind() == {
            "case": 1,
            "invoice": 1,
            "partner": 1,
            "our_company": 1,
        }

    def test_statuses_come_from_config(self, store, summary_rows):
        config = CaseDeskConfig(
            terminal_case_statuses=["completed", "paused"],
            unpaid_invoice_statuses=["unpaid", "paid"],
        )

        summary = AggregateCounter(store, config=config).compute_summary()

        assert summary.active_cases == 2
        assert summary.unpaid_invoices == 2

    def test_counts_follow_trash_lifecycle(
        self, service, counter, admin, summary_rows, seeded
    ):
        before = counter.compute_summary()

        service.soft_delete("case", seeded["case"].id, admin)
        service.soft_delete("invoice", seeded["invoice"].id, admin)
        after = counter.compute_summary()

        assert after.active_cases == before.active_cases - 1
        assert after.unpaid_invoices == before.unpaid_invoices - 1
        assert after.trashed_items == before.trashed_items + 2

        service.empty_trash(admin)
        assert counter.compute_summary().trashed_items == 0
