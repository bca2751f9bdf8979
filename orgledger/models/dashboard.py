"""
Dashboard Summary Models

Read-only figures derived from an organization's transactions and fee
assignments. Every field has an empty/zero default so a summary of no
data is still a complete summary.
"""

from pydantic import BaseModel, Field

from orgledger.models.entities import Transaction


class MonthlyTotal(BaseModel):
    month: str = Field(
        ...,
        pattern=r"^\d{4}-\d{2}$",
        description="Year-month key (YYYY-MM)"
    )
    total: float


class CategoryTotal(BaseModel):
    category: str
    total: float


class FeeStatusCounts(BaseModel):
    paid: int = Field(default=0, ge=0)
    unpaid: int = Field(default=0, ge=0)

    @property
    def total(self) -> int:
        return self.paid + self.unpaid


class DashboardSummary(BaseModel):
    """Everything the organization dashboard shows."""

    total_revenue: float = 0.0
    total_expenses: float = 0.0
    balance: float = 0.0

    # Ascending by month
    revenue_by_month: list[MonthlyTotal] = Field(default_factory=list)
    # Descending by total
    expenses_by_category: list[CategoryTotal] = Field(default_factory=list)

    fee_status: FeeStatusCounts = Field(default_factory=FeeStatusCounts)

    # Newest first
    recent_transactions: list[Transaction] = Field(default_factory=list)
