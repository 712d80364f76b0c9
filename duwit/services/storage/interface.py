"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for the backend.
This allows us to:
1. Swap Google Sheets for a hosted database later
2. Use in-memory storage for testing
3. Keep the store and aggregators decoupled from the backend

The interface is intentionally simple - we're not building a full ORM.
Each logical table (accounts, transactions, budgets) gets one instance.
Rows are wire rows: snake_case column name -> primitive value.
Translation to entities happens in mapping.py.
"""

from abc import ABC, abstractmethod
from typing import Any


Row = dict[str, Any]

USER_ID_COLUMN = "user_id"


class TableStorageInterface(ABC):
    """
    Abstract interface for one backend table.

    Any storage implementation (Google Sheets, PostgreSQL, etc.)
    must implement these methods.
    """

    #: Name of the logical table (accounts, transactions, budgets)
    table_name: str
    #: Column that identifies a row: "id", or "category" for budgets
    key_column: str

    @abstractmethod
    async def list_for_user(self, user_id: str) -> list[Row]:
        """
        List every row belonging to a user.

        Args:
            user_id: Opaque user identifier scoping the rows

        Returns:
            List of wire rows (order is backend-defined)

        Raises:
            StorageError: If the read fails
        """
        pass

    @abstractmethod
    async def insert(self, row: Row) -> Row:
        """
        Insert a row.

        Args:
            row: Wire row including the user_id column

        Returns:
            The stored row, with any generated id / created_at filled in

        Raises:
            StorageError: If insert fails
            DuplicateError: If the key already exists
        """
        pass

    @abstractmethod
    async def update(self, user_id: str, key: str, changes: Row) -> Row:
        """
        Update some columns of an existing row.

        Args:
            user_id: Owner of the row
            key: Value of the key column
            changes: Columns to overwrite

        Returns:
            The full row after the update

        Raises:
            StorageError: If update fails
            NotFoundError: If the row doesn't exist
        """
        pass

    @abstractmethod
    async def delete(self, user_id: str, key: str) -> bool:
        """
        Delete a row by key.

        Returns:
            True if a row was deleted, False if none matched
        """
        pass

    @abstractmethod
    async def delete_where(self, user_id: str, column: str, value: str) -> int:
        """
        Delete every row of a user where column == value.

        Used by the account cascade to remove its transactions.

        Returns:
            Number of rows deleted
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class StorageConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
