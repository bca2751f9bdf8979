"""
Tests for dashboard aggregation.

``summarize`` is pure, so most tests build records directly and never
touch a store.
"""

import random
from datetime import datetime, timezone

import pytest

from orgledger.models import DashboardSummary, FeeAssignment, Transaction
from orgledger.queries import DashboardService, summarize
from orgledger.queries.dashboard import RECENT_TRANSACTION_COUNT

from helpers import ORG_ID, fee_input, transaction_input


def make_transaction(transaction_id, **overrides):
    return Transaction.model_validate({
        **transaction_input(createdAt=datetime(2024, 1, 1, tzinfo=timezone.utc)),
        **overrides,
        "id": transaction_id,
    })


def make_assignment(assignment_id, is_paid):
    return FeeAssignment.model_validate({
        "id": assignment_id,
        "feeId": "f1",
        "memberId": f"member-{assignment_id}",
        "isPaid": is_paid,
    })


def on(year, month, day):
    return datetime(year, month, day, tzinfo=timezone.utc)


@pytest.fixture
def ledger():
    return [
        make_transaction("t1", type="Revenue", amount="100", category="Membership Fees", date=on(2024, 1, 10)),
        make_transaction("t2", type="Revenue", amount="50.10", category="Donations", date=on(2024, 1, 20)),
        make_transaction("t3", type="Revenue", amount="0.20", category="Donations", date=on(2024, 3, 5)),
        make_transaction("t4", type="Expense", amount="40", category="Supplies", date=on(2024, 2, 1)),
        make_transaction("t5", type="Expense", amount="60", category="Venue", date=on(2024, 2, 14)),
        make_transaction("t6", type="Expense", amount="20.05", category="Supplies", date=on(2024, 3, 1)),
    ]


class TestSummarize:
    """Tests for summarize."""

    def test_totals(self, ledger):
        summary = summarize(ledger, [])

        assert summary.total_revenue == pytest.approx(150.30)
        assert summary.total_expenses == pytest.approx(120.05)
        assert summary.balance == pytest.approx(30.25)

    def test_revenue_by_month_ascending(self, ledger):
        summary = summarize(ledger, [])

        assert [item.month for item in summary.revenue_by_month] == ["2024-01", "2024-03"]
        assert summary.revenue_by_month[0].total == pytest.approx(150.10)

    def test_expenses_by_category_descending(self, ledger):
        summary = summarize(ledger, [])

        categories = summary.expenses_by_category
        assert [item.category for item in categories] == ["Supplies", "Venue"]
        assert categories[0].total == pytest.approx(60.05)
        assert categories[1].total == 60.0

    def test_category_tie_broken_by_name(self):
        transactions = [
            make_transaction("t1", category="Venue", amount="10"),
            make_transaction("t2", category="Food", amount="10"),
        ]

        summary = summarize(transactions, [])

        assert [item.category for item in summary.expenses_by_category] == ["Food", "Venue"]

    def test_fee_status_counts(self):
        assignments = [
            make_assignment("a1", True),
            make_assignment("a2", False),
            make_assignment("a3", False),
        ]

        summary = summarize([], assignments)

        assert summary.fee_status.paid == 1
        assert summary.fee_status.unpaid == 2
        assert summary.fee_status.total == 3

    def test_recent_newest_first_and_capped(self, ledger):
        summary = summarize(ledger, [])

        assert len(summary.recent_transactions) == RECENT_TRANSACTION_COUNT
        assert [t.id for t in summary.recent_transactions] == ["t3", "t6", "t5", "t4", "t2"]

    def test_recent_same_date_tie_break(self):
        """Same date falls back to created_at, then id, both descending."""
        same_day = on(2024, 5, 1)
        transactions = [
            make_transaction("a", date=same_day, createdAt=on(2024, 5, 1)),
            make_transaction("b", date=same_day, createdAt=on(2024, 5, 2)),
            make_transaction("c", date=same_day, createdAt=on(2024, 5, 1)),
        ]

        summary = summarize(transactions, [])

        assert [t.id for t in summary.recent_transactions] == ["b", "c", "a"]

    def test_order_independent(self, ledger):
        assignments = [make_assignment(f"a{i}", i % 2 == 0) for i in range(6)]
        expected = summarize(ledger, assignments)

        rng = random.Random(7)
        for _ in range(10):
            shuffled = list(ledger)
            rng.shuffle(shuffled)
            shuffled_assignments = list(assignments)
            rng.shuffle(shuffled_assignments)
            assert summarize(shuffled, shuffled_assignments) == expected

    def test_sums_exactly_rounded(self):
        """Totals do not drift with summation order."""
        amounts = ["0.1"] * 10 + ["1000000.01"]
        transactions = [
            make_transaction(f"t{i}", type="Revenue", amount=amount)
            for i, amount in enumerate(amounts)
        ]

        forward = summarize(transactions, [])
        backward = summarize(list(reversed(transactions)), [])

        assert forward.total_revenue == backward.total_revenue

    def test_empty(self):
        summary = summarize([], [])

        assert summary == DashboardSummary()
        assert summary.balance == 0.0
        assert summary.fee_status.total == 0


class TestDashboardService:
    """Tests for DashboardService against the in-memory store."""

    @pytest.mark.asyncio
    async def test_summary_reflects_payments(self, transactions, fees):
        dashboard = DashboardService(transactions, fees)
        await transactions.create_transaction_document(transaction_input(amount="10"))
        fee = await fees.add_fee(fee_input(amount="25", memberIds=["m1", "m2"]))
        assignment = (await fees.get_fee_assignments(fee.id))[0]
        await fees.update_fee_assignment(assignment.id, {"isPaid": True})

        summary = await dashboard.get_summary(ORG_ID)

        assert summary.total_revenue == 25.0
        assert summary.total_expenses == 10.0
        assert summary.balance == 15.0
        assert summary.fee_status.paid == 1
        assert summary.fee_status.unpaid == 1
        assert [item.category for item in summary.expenses_by_category] == ["Supplies"]

    @pytest.mark.asyncio
    async def test_other_org_excluded(self, transactions, fees):
        dashboard = DashboardService(transactions, fees)
        await transactions.create_transaction_document(transaction_input(orgId="org-2"))

        summary = await dashboard.get_summary(ORG_ID)

        assert summary == DashboardSummary()
