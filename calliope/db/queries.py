"""Query functions generated from descriptors.

Every generated function has two entry points backed by one implementation:

* ``await query(values, connection=None)`` returns the result, running inside
  the transaction owned by ``connection`` when one is given;
* ``query.with_callback(values, callback)`` schedules the same work on the
  running event loop and calls ``callback(error, result)`` exactly once.

Statements are built, and values validated, synchronously when the function is
called, so a :class:`~calliope.exceptions.ValidationError` is raised before the
backend sees anything.
"""

import asyncio
import logging
from functools import partial
from typing import Any, Callable, Dict, Mapping, NamedTuple, Optional, Type

from calliope.db.base import BaseAdapter, Parameters
from calliope.db.descriptors import QueryDescriptor, QueryType
from calliope.exceptions import ValidationError

logger = logging.getLogger(__name__)

Callback = Callable[[Optional[BaseException], Any], None]


class Statement(NamedTuple):
    """SQL text and parameters ready for the adapter."""
    sql: str
    params: Parameters


def normalize_values(values: Any) -> Parameters:
    """Turn caller-supplied values into adapter parameters.

    ``None`` means no parameters, lists and tuples are positional, mappings are
    named, and a bare scalar is a single positional parameter.
    """
    if values is None:
        return []
    if isinstance(values, Mapping):
        return dict(values)
    if isinstance(values, (list, tuple)):
        return list(values)
    return [values]


def _deliver(callback: Callback, task: asyncio.Task) -> None:
    if task.cancelled():
        callback(asyncio.CancelledError(), None)
        return
    error = task.exception()
    if error is not None:
        callback(error, None)
    else:
        callback(None, task.result())


class QueryFunction:
    """Callable compiled from a :class:`QueryDescriptor`."""

    def __init__(self, descriptor: QueryDescriptor, adapter: BaseAdapter) -> None:
        self.descriptor = descriptor
        self.adapter = adapter

    @property
    def name(self) -> str:
        return self.descriptor.name

    def build(self, values: Any = None) -> Statement:
        """Build the statement for ``values``."""
        raise NotImplementedError

    async def execute(self, statement: Statement, connection: Any = None) -> Any:
        return await self.adapter.execute_query(statement.sql, statement.params, connection)

    def __call__(self, values: Any = None, connection: Any = None):
        statement = self.build(values)
        logger.debug(f"Running query {self.name}")
        return self.execute(statement, connection)

    def with_callback(self, values: Any, callback: Callback) -> asyncio.Task:
        """Run outside any transaction and report through ``callback(error, result)``.

        Must be called while an event loop is running.
        """
        statement = self.build(values)
        logger.debug(f"Running query {self.name} with callback")
        task = asyncio.get_running_loop().create_task(self.execute(statement, None))
        task.add_done_callback(partial(_deliver, callback))
        return task

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"

    def _validation_error(self, message: str, keys: Optional[list] = None) -> ValidationError:
        return ValidationError(
            f"{self.name}: {message}",
            query=self.name,
            table=self.descriptor.table,
            keys=keys,
        )

    def _require_mapping(self, values: Any, kind: str) -> Mapping[str, Any]:
        if not isinstance(values, Mapping) or not values:
            raise self._validation_error(f"{kind} requires a non-empty mapping of column values")
        return values


class InsertQuery(QueryFunction):
    """``INSERT INTO <table> (...) VALUES (...)`` returning the new row id.

    On backends without a driver-reported last row id the id is read back with
    ``RETURNING <id_column>``, so those descriptors must declare ``idColumn``.
    """

    def build(self, values: Any = None) -> Statement:
        values = self._require_mapping(values, "INSERT")
        unknown = [key for key in values if not self.descriptor.is_column(key)]
        if unknown:
            raise self._validation_error(
                f"unrecognized keys on insert: {', '.join(unknown)}", keys=unknown
            )

        expressions = []
        params = []
        for column, value in values.items():
            expression = self.descriptor.column_expression(column)
            if expression is None:
                params.append(value)
                expression = self.adapter.placeholder(len(params))
            expressions.append(expression)

        sql = (
            f"INSERT INTO {self.descriptor.table} ({', '.join(values)}) "
            f"VALUES ({', '.join(expressions)})"
        )
        if self.descriptor.id_column and self.adapter.supports_returning:
            sql += f" RETURNING {self.descriptor.id_column}"
        return Statement(sql, params)

    async def execute(self, statement: Statement, connection: Any = None) -> Any:
        return await self.adapter.execute_insert(statement.sql, statement.params, connection)


class UpdateQuery(QueryFunction):
    """``UPDATE <table> SET ... WHERE <id_column> = ?`` keyed by the id column."""

    def build(self, values: Any = None) -> Statement:
        values = self._require_mapping(values, "UPDATE")
        id_column = self.descriptor.id_column

        unknown = [key for key in values if key != id_column and not self.descriptor.is_column(key)]
        if unknown:
            raise self._validation_error(
                f"unrecognized column names on update: {', '.join(unknown)}", keys=unknown
            )
        if id_column not in values:
            raise self._validation_error(f"missing id column '{id_column}'", keys=[id_column])

        assignments = []
        params = []
        for column, value in values.items():
            if column == id_column:
                continue
            expression = self.descriptor.column_expression(column)
            if expression is None:
                params.append(value)
                expression = self.adapter.placeholder(len(params))
            assignments.append(f"{column} = {expression}")

        if not assignments:
            raise self._validation_error("no columns to update")

        params.append(values[id_column])
        sql = (
            f"UPDATE {self.descriptor.table} SET {', '.join(assignments)} "
            f"WHERE {id_column} = {self.adapter.placeholder(len(params))}"
        )
        return Statement(sql, params)


class SelectQuery(QueryFunction):
    """``SELECT * FROM <table>``, or from the query name when no table is declared."""

    def build(self, values: Any = None) -> Statement:
        source = self.descriptor.table or self.descriptor.name
        return Statement(f"SELECT * FROM {source}", normalize_values(values))


class RawQuery(QueryFunction):
    """Literal SQL, or a callable producing a SQLAlchemy statement from the values."""

    def build(self, values: Any = None) -> Statement:
        sql = self.descriptor.sql
        if callable(sql):
            translated = self.adapter.translate_query(sql(values))
            return Statement(translated.sql, translated.values)
        return Statement(sql, normalize_values(values))


_GENERATORS: Dict[QueryType, Type[QueryFunction]] = {
    QueryType.INSERT: InsertQuery,
    QueryType.UPDATE: UpdateQuery,
}


def create_query_function(descriptor: QueryDescriptor, adapter: BaseAdapter) -> QueryFunction:
    """Compile ``descriptor`` into a query function bound to ``adapter``."""
    generator = _GENERATORS.get(descriptor.type)
    if generator is None:
        generator = RawQuery if descriptor.sql else SelectQuery
    return generator(descriptor, adapter)
