"""
In-Memory Storage Implementation

A dict-backed table that honours the same contract as the Google
Sheets backend. Used by the test suite and by the "memory" backend
option for local demos. Data lives only as long as the process.
"""

import asyncio
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from duwit.services.storage.interface import (
    USER_ID_COLUMN,
    DuplicateError,
    NotFoundError,
    Row,
    StorageError,
    TableStorageInterface,
)


class InMemoryTable(TableStorageInterface):
    """
    In-process table keyed by (user_id, key).

    `fail_with` makes every call raise the given error, and `latency`
    delays every call; both exist to exercise the store's failure and
    stale-response paths.
    """

    def __init__(
        self,
        table_name: str,
        key_column: str = "id",
        generate_fields: bool = True,
        latency: float = 0.0,
    ):
        self.table_name = table_name
        self.key_column = key_column
        self._generate_fields = generate_fields
        self._rows: dict[tuple[str, str], Row] = {}
        self.latency = latency
        self.fail_with: Optional[Exception] = None
        self.calls: list[str] = []

    async def _enter(self, operation: str) -> None:
        self.calls.append(operation)
        if self.latency:
            await asyncio.sleep(self.latency)
        if self.fail_with is not None:
            raise self.fail_with

    def seed(self, *rows: Row) -> None:
        """Put rows in place without going through insert()."""
        for row in rows:
            self._rows[(row[USER_ID_COLUMN], str(row[self.key_column]))] = dict(row)

    def all_rows(self) -> list[Row]:
        return [dict(row) for row in self._rows.values()]

    async def list_for_user(self, user_id: str) -> list[Row]:
        await self._enter("list")
        return [
            dict(row)
            for (owner, _), row in self._rows.items()
            if owner == user_id
        ]

    async def insert(self, row: Row) -> Row:
        await self._enter("insert")
        if USER_ID_COLUMN not in row:
            raise StorageError(f"Row for {self.table_name} has no {USER_ID_COLUMN}")
        stored = dict(row)
        if self._generate_fields:
            if not stored.get("id") and self.key_column == "id":
                stored["id"] = uuid4().hex
            if "created_at" in stored and not stored["created_at"]:
                stored["created_at"] = datetime.now(timezone.utc).isoformat()
        key = (stored[USER_ID_COLUMN], str(stored[self.key_column]))
        if key in self._rows:
            raise DuplicateError(f"{self.table_name} row already exists: {key[1]}")
        self._rows[key] = stored
        return dict(stored)

    async def update(self, user_id: str, key: str, changes: Row) -> Row:
        await self._enter("update")
        row = self._rows.get((user_id, key))
        if row is None:
            raise NotFoundError(f"{self.table_name} row not found: {key}")
        row.update(changes)
        return dict(row)

    async def delete(self, user_id: str, key: str) -> bool:
        await self._enter("delete")
        return self._rows.pop((user_id, key), None) is not None

    async def delete_where(self, user_id: str, column: str, value: str) -> int:
        await self._enter("delete_where")
        doomed = [
            key
            for key, row in self._rows.items()
            if key[0] == user_id and str(row.get(column)) == value
        ]
        for key in doomed:
            del self._rows[key]
        return len(doomed)
