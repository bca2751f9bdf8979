"""Read-side aggregation package."""

from orgledger.queries.dashboard import DashboardService, summarize

__all__ = ["DashboardService", "summarize"]
