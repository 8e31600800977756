"""End-to-end tests against a real SQLite database."""

from __future__ import annotations

import asyncio
import logging

import pytest
import pytest_asyncio
from sqlalchemy import column, select, table
from sqlalchemy.pool import Pool

from calliope.config.models import DatabaseConfig, DatabaseType
from calliope.db.adapters.sqlite import SQLiteAdapter
from calliope.db.facade import Db
from calliope.exceptions import AdapterError

tbl1 = table("tbl1", column("one"), column("two"))

QUERIES = [
    {"name": "getTbl1", "sql": "SELECT * FROM tbl1"},
    {"name": "getTbl1ByTwo", "sql": "SELECT * FROM tbl1 WHERE two = ?"},
    {"name": "tbl1"},
    {"name": "tbl1ByTwo", "sql": lambda values: select(tbl1).where(tbl1.c.two == values["two"])},
    {
        "name": "addPerson",
        "type": "INSERT",
        "table": "people",
        "columns": {"name": True, "email": True, "created_at": "CURRENT_TIMESTAMP"},
    },
    {
        "name": "editPerson",
        "type": "UPDATE",
        "table": "people",
        "columns": {"name": True, "email": True},
        "idColumn": "id",
    },
    {"name": "getPeople", "sql": "SELECT * FROM people ORDER BY id"},
]


@pytest.fixture
def db(sqlite_adapter: SQLiteAdapter) -> Db:
    return Db(QUERIES, sqlite_adapter)


class TestQueries:
    """Generated queries against SQLite."""

    @pytest.mark.asyncio
    async def test_select_all(self, db: Db) -> None:
        assert await db.getTbl1() == [
            {"one": "hello", "two": 10},
            {"one": "goodbye", "two": 20},
        ]

    @pytest.mark.asyncio
    async def test_parameterized_select(self, db: Db) -> None:
        assert await db.getTbl1ByTwo([10]) == [{"one": "hello", "two": 10}]
        assert await db.getTbl1ByTwo([999]) == []

    @pytest.mark.asyncio
    async def test_scalar_value(self, db: Db) -> None:
        assert await db.getTbl1ByTwo(20) == [{"one": "goodbye", "two": 20}]

    @pytest.mark.asyncio
    async def test_simple_select_uses_name(self, db: Db) -> None:
        assert len(await db.tbl1()) == 2

    @pytest.mark.asyncio
    async def test_sqlalchemy_statement(self, db: Db) -> None:
        assert await db.tbl1ByTwo({"two": 20}) == [{"one": "goodbye", "two": 20}]

    @pytest.mark.asyncio
    async def test_insert_returns_new_id(self, db: Db) -> None:
        first = await db.addPerson({"name": "Ada", "email": "ada@example.com"})
        second = await db.addPerson({"name": "Grace", "created_at": "ignored"})

        assert (first, second) == (1, 2)
        people = await db.getPeople()
        assert [person["name"] for person in people] == ["Ada", "Grace"]
        assert people[1]["created_at"] is not None
        assert people[1]["created_at"] != "ignored"

    @pytest.mark.asyncio
    async def test_update_returns_row_count(self, db: Db) -> None:
        person_id = await db.addPerson({"name": "Ada"})
        assert await db.editPerson({"id": person_id, "email": "ada@example.com"}) == 1
        assert (await db.getPeople())[0]["email"] == "ada@example.com"

    @pytest.mark.asyncio
    async def test_callback_matches_await(self, db: Db) -> None:
        received = []
        task = db.getTbl1ByTwo.with_callback([10], lambda error, result: received.append((error, result)))
        await task
        await asyncio.sleep(0)
        assert received == [(None, await db.getTbl1ByTwo([10]))]

    @pytest.mark.asyncio
    async def test_driver_error_is_wrapped(self, db: Db) -> None:
        with pytest.raises(AdapterError) as exc_info:
            await db.addPerson({"email": "nobody@example.com"})
        assert exc_info.value.database_type == "sqlite"
        assert exc_info.value.original is not None


class TestTransactions:
    """Transactions on a real connection."""

    @pytest.mark.asyncio
    async def test_commit_persists(self, db: Db) -> None:
        connection = await db.begin_transaction()
        await db.addPerson({"name": "Ada"}, connection)
        await db.commit(connection)

        assert connection.closed
        assert len(await db.getPeople()) == 1

    @pytest.mark.asyncio
    async def test_rollback_discards(self, db: Db) -> None:
        connection = await db.begin_transaction()
        await db.addPerson({"name": "Ada"}, connection)
        assert len(await db.getPeople(None, connection)) == 1
        await db.rollback(connection)

        assert connection.closed
        assert await db.getPeople() == []

    @pytest.mark.asyncio
    async def test_transaction_block_rolls_back_on_error(self, db: Db) -> None:
        with pytest.raises(AdapterError):
            async with db.transaction() as connection:
                await db.addPerson({"name": "Ada"}, connection)
                await db.addPerson({"email": "missing name"}, connection)

        assert await db.getPeople() == []


class TestAdapterContract:
    """SQLite adapter specifics."""

    def test_pool_handle(self, sqlite_adapter: SQLiteAdapter) -> None:
        assert isinstance(sqlite_adapter.get_pool(), Pool)
        assert Db([], sqlite_adapter).get_pool() is sqlite_adapter.get_pool()

    def test_translate_query(self, sqlite_adapter: SQLiteAdapter) -> None:
        translated = sqlite_adapter.translate_query(select(tbl1).where(tbl1.c.two == 10))
        assert translated.sql.endswith("WHERE tbl1.two = ?")
        assert translated.values == [10]

    @pytest.mark.asyncio
    async def test_release_is_idempotent(self, sqlite_adapter: SQLiteAdapter) -> None:
        connection = await sqlite_adapter.acquire_connection()
        await sqlite_adapter.release(connection)
        await sqlite_adapter.release(connection)
        await sqlite_adapter.release(None)
        assert connection.closed

    @pytest.mark.asyncio
    async def test_logs_sql_and_parameters(self, tmp_path, caplog) -> None:
        config = DatabaseConfig(
            type=DatabaseType.SQLITE,
            path=str(tmp_path / "logged.db"),
            options={"log_sql": True, "log_parameters": True},
        )
        adapter = SQLiteAdapter(config)
        try:
            with caplog.at_level(logging.INFO, logger="calliope.db.base"):
                await adapter.execute_query("SELECT ? AS answer", [42])
        finally:
            await adapter.close()

        assert "SELECT ? AS answer : [42]" in caplog.text

    @pytest.mark.asyncio
    async def test_in_memory_database(self) -> None:
        adapter = SQLiteAdapter(DatabaseConfig(type=DatabaseType.SQLITE, path=":memory:"))
        try:
            await adapter.execute_query("CREATE TABLE t (k INTEGER, v TEXT)")
            await adapter.execute_query("INSERT INTO t VALUES (?, ?)", [10, "a"])
            await adapter.execute_query("INSERT INTO t VALUES (?, ?)", [20, "b"])
            db = Db([{"name": "getRows", "sql": "SELECT * FROM t WHERE k = ?"}], adapter)
            assert await db.getRows([10]) == [{"k": 10, "v": "a"}]
            assert await db.getRows([999]) == []
        finally:
            await adapter.close()


class TestInMemoryTransactions:
    """Pooled work on ``:memory:`` does not leak into open transactions."""

    @pytest_asyncio.fixture
    async def memory_db(self):
        adapter = SQLiteAdapter(DatabaseConfig(type=DatabaseType.SQLITE, path=":memory:"))
        await adapter.execute_query("CREATE TABLE t (k INTEGER, v TEXT)")
        yield Db([
            {"name": "add", "type": "INSERT", "table": "t", "columns": {"k": True, "v": True}},
            {"name": "allRows", "sql": "SELECT * FROM t"},
        ], adapter)
        await adapter.close()

    @pytest.mark.asyncio
    async def test_pool_query_between_begin_and_rollback(self, memory_db: Db) -> None:
        connection = await memory_db.begin_transaction()
        await memory_db.add({"k": 1, "v": "a"}, connection)
        await memory_db.allRows()
        await memory_db.rollback(connection)

        assert await memory_db.allRows() == []

    @pytest.mark.asyncio
    async def test_commit_is_visible_to_pool(self, memory_db: Db) -> None:
        async with memory_db.transaction() as connection:
            await memory_db.add({"k": 2, "v": "b"}, connection)

        assert await memory_db.allRows() == [{"k": 2, "v": "b"}]

    @pytest.mark.asyncio
    async def test_separate_adapters_do_not_share_data(self, memory_db: Db) -> None:
        await memory_db.add({"k": 3, "v": "c"})
        other = SQLiteAdapter(DatabaseConfig(type=DatabaseType.SQLITE, path=":memory:"))
        try:
            with pytest.raises(AdapterError):
                await other.execute_query("SELECT * FROM t")
        finally:
            await other.close()
