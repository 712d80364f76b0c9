"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the hosted backend because:
1. Users can view and export their ledger directly in Sheets
2. No database setup required
3. Authentication is handled by Google service accounts

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions across worksheets (the account cascade deletes
  transactions first, then the account)
- Limited query capabilities (we filter by user in Python)

One worksheet per logical table; every row carries a user_id column.
Cells are stored RAW as text and parsed back by mapping.py.
"""

import asyncio
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from duwit.config import GoogleSheetsSettings, get_settings
from duwit.services.storage.interface import (
    USER_ID_COLUMN,
    DuplicateError,
    NotFoundError,
    Row,
    StorageConnectionError,
    StorageError,
    TableStorageInterface,
)
from duwit.services.storage.mapping import (
    ACCOUNT_COLUMNS,
    BUDGET_COLUMNS,
    TRANSACTION_COLUMNS,
    header_for,
)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for the initial
    connection. Individual reads and writes are never retried.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @property
    def settings(self) -> GoogleSheetsSettings:
        return self._settings

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise StorageConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise StorageConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise StorageConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_worksheet(self, title: str, header: list[str]) -> gspread.Worksheet:
        """Get or create a worksheet with the given header row."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=1000,
                cols=len(header),
            )
            sheet.append_row(header)
        return sheet


class GoogleSheetsTable(TableStorageInterface):
    """
    Google Sheets implementation of one backend table.

    The first row of the worksheet is the header; lookups match rows
    by (user_id, key column).
    """

    def __init__(
        self,
        client: GoogleSheetsClient,
        table_name: str,
        sheet_name: str,
        header: list[str],
        key_column: str = "id",
    ):
        self._client = client
        self.table_name = table_name
        self.key_column = key_column
        self._sheet_name = sheet_name
        self._header = header

    def _sheet(self) -> gspread.Worksheet:
        return self._client.get_worksheet(self._sheet_name, self._header)

    def _cell(self, value) -> str:
        return "" if value is None else str(value)

    def _to_values(self, row: Row, header: list[str]) -> list[str]:
        return [self._cell(row.get(column)) for column in header]

    def _records(self, sheet: gspread.Worksheet) -> tuple[list[str], list[tuple[int, Row]]]:
        """The sheet's header row and its data rows as (sheet row number, row dict)."""
        all_rows = sheet.get_all_values()
        if not all_rows:
            return [], []
        header = all_rows[0]
        records = []
        # Row 1 is the header, data starts at row 2
        for idx, values in enumerate(all_rows[1:], start=2):
            if not any(values):
                continue
            padded = values + [""] * (len(header) - len(values))
            records.append((idx, dict(zip(header, padded))))
        return header, records

    def _find(
        self,
        records: list[tuple[int, Row]],
        user_id: str,
        key: str,
    ) -> Optional[tuple[int, Row]]:
        for idx, row in records:
            if row.get(USER_ID_COLUMN) == user_id and row.get(self.key_column) == key:
                return idx, row
        return None

    # gspread is blocking; each operation runs whole in a worker thread

    def _list_sync(self, user_id: str) -> list[Row]:
        _, records = self._records(self._sheet())
        return [row for _, row in records if row.get(USER_ID_COLUMN) == user_id]

    def _insert_sync(self, row: Row) -> Row:
        stored = {column: self._cell(value) for column, value in row.items()}
        if self.key_column == "id" and not stored.get("id"):
            stored["id"] = uuid4().hex
        if "created_at" in self._header and not stored.get("created_at"):
            stored["created_at"] = datetime.now(timezone.utc).isoformat()

        sheet = self._sheet()
        header, records = self._records(sheet)
        if self._find(records, stored[USER_ID_COLUMN], stored[self.key_column]):
            raise DuplicateError(
                f"{self.table_name} row already exists: {stored[self.key_column]}"
            )
        sheet.append_row(self._to_values(stored, header or self._header), value_input_option="RAW")
        return stored

    def _update_sync(self, user_id: str, key: str, changes: Row) -> Row:
        sheet = self._sheet()
        header, records = self._records(sheet)
        found = self._find(records, user_id, key)
        if found is None:
            raise NotFoundError(f"{self.table_name} row not found: {key}")

        missing = [column for column in changes if column not in header]
        if missing:
            raise StorageError(f"{self.table_name} sheet has no column(s): {missing}")

        idx, row = found
        for column, value in changes.items():
            sheet.update_cell(idx, header.index(column) + 1, self._cell(value))
            row[column] = self._cell(value)
        return row

    def _delete_sync(self, user_id: str, key: str) -> bool:
        sheet = self._sheet()
        _, records = self._records(sheet)
        found = self._find(records, user_id, key)
        if found is None:
            return False
        sheet.delete_rows(found[0])
        return True

    def _delete_where_sync(self, user_id: str, column: str, value: str) -> int:
        sheet = self._sheet()
        _, records = self._records(sheet)
        matches = [
            idx
            for idx, row in records
            if row.get(USER_ID_COLUMN) == user_id and row.get(column) == value
        ]
        # Bottom-up so earlier row numbers stay valid
        for idx in reversed(matches):
            sheet.delete_rows(idx)
        return len(matches)

    async def list_for_user(self, user_id: str) -> list[Row]:
        """List every row of a user."""
        try:
            return await asyncio.to_thread(self._list_sync, user_id)
        except Exception as e:
            raise StorageError(f"Failed to list {self.table_name}: {e}")

    async def insert(self, row: Row) -> Row:
        """Append a row, generating id / created_at when missing."""
        try:
            return await asyncio.to_thread(self._insert_sync, row)
        except DuplicateError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to insert into {self.table_name}: {e}")

    async def update(self, user_id: str, key: str, changes: Row) -> Row:
        """Overwrite the changed cells of one row."""
        try:
            return await asyncio.to_thread(self._update_sync, user_id, key, changes)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update {self.table_name}: {e}")

    async def delete(self, user_id: str, key: str) -> bool:
        """Delete one row by key."""
        try:
            return await asyncio.to_thread(self._delete_sync, user_id, key)
        except Exception as e:
            raise StorageError(f"Failed to delete from {self.table_name}: {e}")

    async def delete_where(self, user_id: str, column: str, value: str) -> int:
        """Delete every matching row of a user."""
        try:
            return await asyncio.to_thread(self._delete_where_sync, user_id, column, value)
        except Exception as e:
            raise StorageError(f"Failed to delete from {self.table_name}: {e}")


def create_sheets_tables(
    client: Optional[GoogleSheetsClient] = None,
) -> tuple[GoogleSheetsTable, GoogleSheetsTable, GoogleSheetsTable]:
    """
    Build the accounts, transactions and budgets tables.

    Connects eagerly so a misconfigured backend is detected at startup.

    Raises:
        StorageConnectionError: If the spreadsheet can't be reached
    """
    client = client or GoogleSheetsClient()
    client.get_spreadsheet()
    settings = client.settings
    return (
        GoogleSheetsTable(
            client,
            "accounts",
            settings.accounts_sheet_name,
            header_for(ACCOUNT_COLUMNS),
        ),
        GoogleSheetsTable(
            client,
            "transactions",
            settings.transactions_sheet_name,
            header_for(TRANSACTION_COLUMNS),
        ),
        GoogleSheetsTable(
            client,
            "budgets",
            settings.budgets_sheet_name,
            header_for(BUDGET_COLUMNS),
            key_column="category",
        ),
    )
