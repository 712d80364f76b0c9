"""Services package."""

from duwit.services.storage import (
    DuplicateError,
    GoogleSheetsClient,
    GoogleSheetsTable,
    InMemoryTable,
    NotFoundError,
    StorageConnectionError,
    StorageError,
    TableStorageInterface,
    create_sheets_tables,
)

__all__ = [
    "DuplicateError",
    "GoogleSheetsClient",
    "GoogleSheetsTable",
    "InMemoryTable",
    "NotFoundError",
    "StorageConnectionError",
    "StorageError",
    "TableStorageInterface",
    "create_sheets_tables",
]
