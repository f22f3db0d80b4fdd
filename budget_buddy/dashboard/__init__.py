"""Dashboard aggregation package."""

from budget_buddy.dashboard.aggregator import DashboardAggregator

__all__ = ["DashboardAggregator"]
