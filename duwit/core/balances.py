"""
Balance Aggregator

Folds the full transaction list and per-account initial balances into
a balance snapshot. Pure and total: empty inputs give an all-zero
snapshot, and no input makes it raise.

POLICY: a transaction whose account is unknown (e.g. right after its
account was deleted) is skipped for per-account balances but still
counts toward total income / total expense.
"""

from collections.abc import Iterable
from decimal import Decimal

from duwit.models.finance import (
    Account,
    BalanceSnapshot,
    Transaction,
    TransactionType,
)


def compute_balance_snapshot(
    accounts: Iterable[Account],
    transactions: Iterable[Transaction],
) -> BalanceSnapshot:
    """
    Compute per-account balances and global totals.

    Args:
        accounts: Every known account
        transactions: The full transaction history (not date filtered)

    Returns:
        BalanceSnapshot with balances keyed by account id
    """
    balances: dict[str, Decimal] = {
        account.id: account.initial_balance for account in accounts
    }
    total_income = Decimal("0")
    total_expense = Decimal("0")

    for transaction in transactions:
        if transaction.type == TransactionType.INCOME:
            total_income += transaction.amount
        else:
            total_expense += transaction.amount

        if transaction.account_id in balances:
            balances[transaction.account_id] += transaction.signed_amount

    return BalanceSnapshot(
        account_balances=balances,
        total_income=total_income,
        total_expense=total_expense,
        total_balance=sum(balances.values(), Decimal("0")),
    )
