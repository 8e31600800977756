from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
import pytest_asyncio

from calliope.config.models import ConnectionPoolConfig, DatabaseConfig, DatabaseType
from calliope.db.adapters.sqlite import SQLiteAdapter
from calliope.db.base import BaseAdapter, TranslatedQuery


class FakeConnection:
    """Stand-in for a checked-out connection."""

    def __init__(self, label: str = "conn") -> None:
        self.label = label

    def __repr__(self) -> str:
        return f"<FakeConnection {self.label}>"


class FakeAdapter(BaseAdapter):
    """In-memory adapter that records every call and fails on request."""

    def __init__(self, rows: Optional[List[Dict[str, Any]]] = None, insert_id: Any = 42) -> None:
        self.rows = rows if rows is not None else []
        self.insert_id = insert_id
        self.connection = FakeConnection()
        self.pool = object()
        self.calls: List[tuple] = []
        self.events: List[str] = []
        self.failures: Dict[str, BaseException] = {}

    def _step(self, operation: str) -> None:
        self.events.append(operation)
        error = self.failures.get(operation)
        if error is not None:
            raise error

    def count(self, operation: str) -> int:
        return self.events.count(operation)

    def translate_query(self, statement: Any) -> TranslatedQuery:
        return TranslatedQuery(f"TRANSLATED {statement}", ["translated"])

    async def execute_query(self, sql, args=None, connection=None):
        self.calls.append(("query", sql, args, connection))
        self._step("execute")
        return self.rows

    async def execute_insert(self, sql, args=None, connection=None):
        self.calls.append(("insert", sql, args, connection))
        self._step("execute")
        return self.insert_id

    async def acquire_connection(self):
        self._step("acquire")
        return self.connection

    async def begin_transaction(self, connection):
        self._step("begin")
        return connection

    async def commit(self, connection):
        self._step("commit")

    async def rollback(self, connection):
        self._step("rollback")

    async def release(self, connection):
        self._step("release")

    def get_pool(self):
        return self.pool


@pytest.fixture
def fake_adapter() -> FakeAdapter:
    return FakeAdapter()


@pytest.fixture
def sqlite_config(tmp_path: Path) -> DatabaseConfig:
    return DatabaseConfig(type=DatabaseType.SQLITE, path=str(tmp_path / "calliope_test.db"))


@pytest_asyncio.fixture
async def sqlite_adapter(sqlite_config: DatabaseConfig):
    """SQLite database with a two-row ``tbl1`` and an empty ``people`` table."""
    adapter = SQLiteAdapter(sqlite_config, ConnectionPoolConfig(max_connections=2))

    await adapter.execute_query("CREATE TABLE tbl1 (one TEXT, two INTEGER)")
    await adapter.execute_query("INSERT INTO tbl1 (one, two) VALUES (?, ?)", ["hello", 10])
    await adapter.execute_query("INSERT INTO tbl1 (one, two) VALUES (?, ?)", ["goodbye", 20])
    await adapter.execute_query(
        "CREATE TABLE people ("
        "id INTEGER PRIMARY KEY AUTOINCREMENT, "
        "name TEXT NOT NULL, "
        "email TEXT, "
        "created_at TEXT)"
    )

    yield adapter
    await adapter.close()
