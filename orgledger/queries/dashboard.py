"""
Dashboard Aggregation

DESIGN DECISION: Aggregation is a PURE function of the loaded records.
No store access, no clock, no randomness. The same transactions and
assignments give the same summary whatever order they arrive in:
- sums use math.fsum (exactly rounded, so order cannot change a total)
- every ordering has a full tie-break

DashboardService is the thin async wrapper that loads an organization's
records and hands them to ``summarize``.
"""

import math
from collections import defaultdict
from collections.abc import Iterable

from orgledger.models.dashboard import (
    CategoryTotal,
    DashboardSummary,
    FeeStatusCounts,
    MonthlyTotal,
)
from orgledger.models.entities import FeeAssignment, Transaction, TransactionType
from orgledger.repository import FeeRepository, TransactionRepository


RECENT_TRANSACTION_COUNT = 5


def _month_key(transaction: Transaction) -> str:
    return transaction.date.strftime("%Y-%m")


def _recency(transaction: Transaction) -> tuple:
    return (transaction.date, transaction.created_at, transaction.id)


def summarize(
    transactions: Iterable[Transaction],
    assignments: Iterable[FeeAssignment],
) -> DashboardSummary:
    """
    Build the dashboard figures.

    Orderings:
    - revenue_by_month: month ascending
    - expenses_by_category: total descending, then category name
    - recent_transactions: date descending, then created_at, then id
    """
    transactions = list(transactions)

    revenue_amounts: list[float] = []
    expense_amounts: list[float] = []
    revenue_months: dict[str, list[float]] = defaultdict(list)
    expense_categories: dict[str, list[float]] = defaultdict(list)

    for transaction in transactions:
        if transaction.type == TransactionType.REVENUE:
            revenue_amounts.append(transaction.amount)
            revenue_months[_month_key(transaction)].append(transaction.amount)
        else:
            expense_amounts.append(transaction.amount)
            expense_categories[transaction.category].append(transaction.amount)

    total_revenue = math.fsum(revenue_amounts)
    total_expenses = math.fsum(expense_amounts)

    revenue_by_month = [
        MonthlyTotal(month=month, total=math.fsum(amounts))
        for month, amounts in sorted(revenue_months.items())
    ]

    category_totals = [
        CategoryTotal(category=category, total=math.fsum(amounts))
        for category, amounts in expense_categories.items()
    ]
    category_totals.sort(key=lambda item: (-item.total, item.category))

    paid = 0
    unpaid = 0
    for assignment in assignments:
        if assignment.is_paid:
            paid += 1
        else:
            unpaid += 1

    recent = sorted(transactions, key=_recency, reverse=True)[:RECENT_TRANSACTION_COUNT]

    return DashboardSummary(
        total_revenue=total_revenue,
        total_expenses=total_expenses,
        balance=total_revenue - total_expenses,
        revenue_by_month=revenue_by_month,
        expenses_by_category=category_totals,
        fee_status=FeeStatusCounts(paid=paid, unpaid=unpaid),
        recent_transactions=recent,
    )


class DashboardService:
    """Loads an organization's records and summarizes them."""

    def __init__(self, transactions: TransactionRepository, fees: FeeRepository):
        self._transactions = transactions
        self._fees = fees

    async def get_summary(self, org_id: str) -> DashboardSummary:
        transactions = await self._transactions.get_transactions(org_id)
        assignments = await self._fees.get_org_fee_assignments(org_id)
        return summarize(transactions, assignments)
