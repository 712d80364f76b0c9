"""Pytest configuration and fixtures."""

from datetime import date
from decimal import Decimal

import pytest

from duwit.audit import AuditLogger
from duwit.config import AppSettings
from duwit.models.finance import (
    Account,
    Category,
    Transaction,
    TransactionType,
)
from duwit.services.storage import InMemoryTable
from duwit.services.storage.mapping import account_to_row
from duwit.store import FinanceStore


USER_ID = "user-1"


def make_transaction(
    amount,
    transaction_type: TransactionType = TransactionType.EXPENSE,
    category: Category = Category.FOOD,
    occurred_on: date = date(2024, 6, 15),
    account_id: str = "acc-a",
    description: str = "",
) -> Transaction:
    """Build a transaction with sensible defaults for tests."""
    if transaction_type == TransactionType.INCOME and category == Category.FOOD:
        category = Category.SALARY
    return Transaction(
        amount=Decimal(str(amount)),
        type=transaction_type,
        category=category,
        occurred_on=occurred_on,
        account_id=account_id,
        description=description,
    )


@pytest.fixture
def app_settings():
    """Settings that never read the environment."""
    return AppSettings(_env_file=None, storage_backend="memory", default_user_id=USER_ID)


@pytest.fixture
def tables():
    """Fresh in-memory accounts / transactions / budgets tables."""
    return (
        InMemoryTable("accounts"),
        InMemoryTable("transactions"),
        InMemoryTable("budgets", key_column="category"),
    )


@pytest.fixture
def store(tables, app_settings):
    """A store backed by the in-memory tables."""
    accounts, transactions, budgets = tables
    return FinanceStore(
        accounts_table=accounts,
        transactions_table=transactions,
        budgets_table=budgets,
        audit_logger=AuditLogger(),
        settings=app_settings,
    )


@pytest.fixture
def offline_store(app_settings):
    """A store with no backend at all."""
    return FinanceStore(audit_logger=AuditLogger(), settings=app_settings)


@pytest.fixture
def seeded_tables(tables):
    """Tables holding two accounts of USER_ID and one of another user."""
    accounts, _, _ = tables
    accounts.seed(
        account_to_row(Account(id="acc-a", name="BCA", initial_balance=Decimal("100000")), USER_ID),
        account_to_row(Account(id="acc-b", name="Dompet"), USER_ID),
        account_to_row(Account(id="acc-x", name="Other"), "user-2"),
    )
    return tables
