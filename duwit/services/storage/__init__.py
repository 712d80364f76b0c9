"""
Storage Services Package

Provides the abstract table interface, the row mapping layer and the
concrete backends. Google Sheets is the hosted backend; the in-memory
table serves tests and local demos.
"""

from duwit.services.storage.interface import (
    USER_ID_COLUMN,
    DuplicateError,
    NotFoundError,
    Row,
    StorageConnectionError,
    StorageError,
    TableStorageInterface,
)
from duwit.services.storage.memory import InMemoryTable
from duwit.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsTable,
    create_sheets_tables,
)

__all__ = [
    # Interface
    "TableStorageInterface",
    "Row",
    "USER_ID_COLUMN",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "StorageConnectionError",
    "StorageError",
    # Implementations
    "InMemoryTable",
    "GoogleSheetsClient",
    "GoogleSheetsTable",
    "create_sheets_tables",
]
