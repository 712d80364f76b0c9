"""Derived views: balances, budgets and breakdowns."""

from duwit.core.balances import compute_balance_snapshot
from duwit.core.breakdown import category_breakdown, daily_flows
from duwit.core.budgets import (
    DEFAULT_NEAR_LIMIT_PERCENT,
    budget_status,
    budgets_by_category,
    compute_budget_summary,
    month_spending,
)

__all__ = [
    "DEFAULT_NEAR_LIMIT_PERCENT",
    "budget_status",
    "budgets_by_category",
    "category_breakdown",
    "compute_balance_snapshot",
    "compute_budget_summary",
    "daily_flows",
    "month_spending",
]
