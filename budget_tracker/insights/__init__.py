"""Aggregation engine: pure functions from collections to view-ready numbers."""

from budget_tracker.insights.aggregations import (
    TimeWindow,
    apply_debt_status,
    budget_progress,
    budgets_progress,
    category_expense_breakdown,
    category_trends,
    debt_balance,
    debt_status,
    filter_by_category,
    filter_by_time_window,
    financial_summary,
    monthly_income_expense,
    running_balance,
    window_cutoff,
)
from budget_tracker.insights.alerts import budget_alerts, detect_spending_spikes
from budget_tracker.insights.lookup import (
    resolve_category,
    resolve_debt,
    resolve_subcategory,
)

__all__ = [
    "TimeWindow",
    "apply_debt_status",
    "budget_alerts",
    "budget_progress",
    "budgets_progress",
    "category_expense_breakdown",
    "category_trends",
    "debt_balance",
    "debt_status",
    "detect_spending_spikes",
    "filter_by_category",
    "filter_by_time_window",
    "financial_summary",
    "monthly_income_expense",
    "resolve_category",
    "resolve_debt",
    "resolve_subcategory",
    "running_balance",
    "window_cutoff",
]
