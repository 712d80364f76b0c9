"""
Row Mapping

The single place where backend column names meet entity fields.

Backend rows use snake_case columns (initial_balance, account_id,
limit_amount). Entities serialize to camelCase (initialBalance,
accountId, limit). Each table below maps column -> entity alias;
nothing else in the codebase knows the column names.
"""

from typing import Any, Optional

from duwit.models.finance import Account, Budget, Transaction
from duwit.services.storage.interface import USER_ID_COLUMN, Row


# Column -> entity alias, in worksheet column order
ACCOUNT_COLUMNS: dict[str, str] = {
    "id": "id",
    "name": "name",
    "type": "type",
    "initial_balance": "initialBalance",
}

TRANSACTION_COLUMNS: dict[str, str] = {
    "id": "id",
    "amount": "amount",
    "type": "type",
    "category": "category",
    "description": "description",
    "date": "date",
    "account_id": "accountId",
    "created_at": "createdAt",
}

BUDGET_COLUMNS: dict[str, str] = {
    "category": "category",
    "limit_amount": "limit",
}


def header_for(columns: dict[str, str]) -> list[str]:
    """Worksheet header: user scope column followed by the entity columns."""
    return [USER_ID_COLUMN, *columns.keys()]


def _to_row(dumped: dict[str, Any], columns: dict[str, str], user_id: Optional[str]) -> Row:
    row = {column: dumped[alias] for column, alias in columns.items()}
    if user_id is not None:
        row[USER_ID_COLUMN] = user_id
    return row


def _from_row(row: Row, columns: dict[str, str]) -> dict[str, Any]:
    return {alias: row[column] for column, alias in columns.items() if column in row}


def account_to_row(account: Account, user_id: Optional[str] = None) -> Row:
    """Convert an Account to a wire row."""
    return _to_row(account.model_dump(mode="json", by_alias=True), ACCOUNT_COLUMNS, user_id)


def account_from_row(row: Row) -> Account:
    """Convert a wire row to an Account."""
    return Account.model_validate(_from_row(row, ACCOUNT_COLUMNS))


def transaction_to_row(transaction: Transaction, user_id: Optional[str] = None) -> Row:
    """Convert a Transaction to a wire row."""
    return _to_row(transaction.model_dump(mode="json", by_alias=True), TRANSACTION_COLUMNS, user_id)


def transaction_from_row(row: Row) -> Transaction:
    """Convert a wire row to a Transaction."""
    return Transaction.model_validate(_from_row(row, TRANSACTION_COLUMNS))


def budget_to_row(budget: Budget, user_id: Optional[str] = None) -> Row:
    """Convert a Budget to a wire row."""
    return _to_row(budget.model_dump(mode="json", by_alias=True), BUDGET_COLUMNS, user_id)


def budget_from_row(row: Row) -> Budget:
    """Convert a wire row to a Budget."""
    return Budget.model_validate(_from_row(row, BUDGET_COLUMNS))


# Editable account fields -> column
ACCOUNT_FIELD_COLUMNS: dict[str, str] = {
    "name": "name",
    "type": "type",
    "initial_balance": "initial_balance",
}


def partial_account_row(account: Account, fields: list[str]) -> Row:
    """
    Wire row holding only the columns of the given fields.

    Used for updates so the backend receives a true partial row.
    """
    row = account_to_row(account)
    return {
        ACCOUNT_FIELD_COLUMNS[field]: row[ACCOUNT_FIELD_COLUMNS[field]]
        for field in fields
    }
