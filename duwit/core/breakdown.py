"""
Dashboard breakdowns: where the money went, and day-by-day cash flow.

Both are all-time views (not month filtered), recomputed on every read.
"""

from collections import defaultdict
from collections.abc import Iterable
from decimal import Decimal

from duwit.models.finance import (
    CategoryShare,
    DailyFlow,
    Transaction,
    TransactionType,
)


def category_breakdown(transactions: Iterable[Transaction]) -> list[CategoryShare]:
    """
    Expense totals per category with their share of all spending.

    Sorted by amount, largest first. Empty when there are no expenses.
    """
    totals: dict = defaultdict(lambda: Decimal("0"))
    for transaction in transactions:
        if transaction.type == TransactionType.EXPENSE:
            totals[transaction.category] += transaction.amount

    grand_total = sum(totals.values(), Decimal("0"))
    shares = [
        CategoryShare(
            category=category,
            amount=amount,
            percentage=amount / grand_total * 100 if grand_total > 0 else Decimal("0"),
        )
        for category, amount in totals.items()
    ]
    shares.sort(key=lambda share: share.amount, reverse=True)
    return shares


def daily_flows(transactions: Iterable[Transaction], days: int = 7) -> list[DailyFlow]:
    """
    Income and expense per date for the last `days` distinct dates.

    Dates without transactions are not filled in.
    """
    income: dict = defaultdict(lambda: Decimal("0"))
    expense: dict = defaultdict(lambda: Decimal("0"))
    for transaction in transactions:
        if transaction.type == TransactionType.INCOME:
            income[transaction.occurred_on] += transaction.amount
        else:
            expense[transaction.occurred_on] += transaction.amount

    if days <= 0:
        return []

    all_days = sorted(set(income) | set(expense))
    return [
        DailyFlow(day=day, income=income[day], expense=expense[day])
        for day in all_days[-days:]
    ]
