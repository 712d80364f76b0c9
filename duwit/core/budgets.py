"""
Budget Aggregator

Compares this calendar month's expense spend per category against the
configured monthly limits.

Rules:
- Only expense transactions dated in the same (year, month) as `today`
  count; the creation time is irrelevant.
- Every expense category gets a line, with spent = 0 when idle.
- A limit of 0 means "no budget set", never "hard cap of zero".
- The rollup only covers categories that have a limit.
"""

from collections import defaultdict
from collections.abc import Iterable, Mapping
from datetime import date
from decimal import Decimal
from typing import Optional, Union

from duwit.models.finance import (
    EXPENSE_CATEGORIES,
    Budget,
    BudgetLine,
    BudgetStatus,
    BudgetSummary,
    Category,
    Transaction,
    TransactionType,
)


DEFAULT_NEAR_LIMIT_PERCENT = Decimal("80")

BudgetsInput = Union[Mapping[Category, Budget], Iterable[Budget]]


def budgets_by_category(budgets: BudgetsInput) -> dict[Category, Budget]:
    """Normalise budgets to a mapping keyed by category (last row wins)."""
    if isinstance(budgets, Mapping):
        return dict(budgets)
    return {budget.category: budget for budget in budgets}


def month_spending(
    transactions: Iterable[Transaction],
    today: date,
) -> dict[Category, Decimal]:
    """Expense totals per category for the calendar month of `today`."""
    spending: dict[Category, Decimal] = defaultdict(lambda: Decimal("0"))
    for transaction in transactions:
        if transaction.type != TransactionType.EXPENSE:
            continue
        occurred = transaction.occurred_on
        if (occurred.year, occurred.month) != (today.year, today.month):
            continue
        spending[transaction.category] += transaction.amount
    return dict(spending)


def budget_status(
    spent: Decimal,
    limit: Decimal,
    near_limit_percent: Decimal = DEFAULT_NEAR_LIMIT_PERCENT,
) -> tuple[Decimal, BudgetStatus]:
    """
    Percentage used and status for one category.

    Returns:
        (percentage, status); percentage is 0 when no limit is set
    """
    if limit <= 0:
        return Decimal("0"), BudgetStatus.NO_BUDGET

    percentage = spent / limit * 100
    if spent > limit:
        return percentage, BudgetStatus.OVER_BUDGET
    if percentage > near_limit_percent:
        return percentage, BudgetStatus.NEAR_LIMIT
    return percentage, BudgetStatus.ON_TRACK


def compute_budget_summary(
    transactions: Iterable[Transaction],
    budgets: BudgetsInput,
    today: Optional[date] = None,
    near_limit_percent: Union[Decimal, float, int] = DEFAULT_NEAR_LIMIT_PERCENT,
) -> BudgetSummary:
    """
    Build the current-month budget report.

    Args:
        transactions: Full transaction history
        budgets: Budgets keyed by category, or any iterable of Budget
        today: Reference date (defaults to date.today())
        near_limit_percent: Threshold above which a line is NEAR_LIMIT

    Returns:
        BudgetSummary with one line per expense category
    """
    today = today or date.today()
    threshold = Decimal(str(near_limit_percent))
    by_category = budgets_by_category(budgets)
    spending = month_spending(transactions, today)

    lines = []
    total_allocated = Decimal("0")
    total_spent = Decimal("0")

    for category in EXPENSE_CATEGORIES:
        budget = by_category.get(category)
        limit = budget.limit if budget else Decimal("0")
        spent = spending.get(category, Decimal("0"))
        percentage, status = budget_status(spent, limit, threshold)

        if limit > 0:
            total_allocated += limit
            total_spent += spent

        lines.append(BudgetLine(
            category=category,
            spent=spent,
            limit=limit,
            percentage=percentage,
            status=status,
        ))

    overall = total_spent / total_allocated * 100 if total_allocated > 0 else Decimal("0")

    return BudgetSummary(
        month=today.replace(day=1),
        lines=lines,
        total_allocated=total_allocated,
        total_spent=total_spent,
        overall_percentage=overall,
    )
