"""The ``Db`` facade: generated query functions plus transaction helpers."""

import logging
from types import MappingProxyType
from typing import Any, AsyncContextManager, Dict, Iterable, Mapping, Optional, Union

from calliope.db.base import BaseAdapter
from calliope.db.descriptors import QueryDescriptor, to_descriptor
from calliope.db.queries import QueryFunction, create_query_function
from calliope.db.transaction_manager import TransactionManager
from calliope.exceptions import ValidationError

logger = logging.getLogger(__name__)

DescriptorSpec = Union[QueryDescriptor, Mapping[str, Any]]


class Db:
    """Application-facing database object.

    Each descriptor becomes an attribute named after it::

        db = Db([{'name': 'get_rows', 'sql': 'SELECT * FROM t WHERE k = ?'}], adapter)
        rows = await db.get_rows([10])

        connection = await db.begin_transaction()
        try:
            await db.add_row({'k': 30, 'v': 'c'}, connection)
        except Exception:
            await db.rollback(connection)
            raise
        await db.commit(connection)

    A malformed descriptor does not prevent construction: the failure is
    logged, kept in :attr:`query_errors`, and raised again whenever that
    query name is looked up.

    The adapter is shared, not owned; closing it is the caller's job.
    """

    def __init__(self, queries: Optional[Iterable[DescriptorSpec]], adapter: BaseAdapter) -> None:
        self._adapter = adapter
        self._transactions = TransactionManager(adapter)

        functions: Dict[str, QueryFunction] = {}
        errors: Dict[str, ValidationError] = {}
        for entry in queries or ():
            try:
                function = self._build(entry, functions)
            except ValidationError as e:
                name = e.query or '<unnamed>'
                logger.error(f"Could not build query {name}: {e}")
                errors[name] = e
                continue
            functions[function.name] = function

        self._queries = MappingProxyType(functions)
        self._query_errors = MappingProxyType(errors)

    def _build(self, entry: DescriptorSpec, existing: Mapping[str, QueryFunction]) -> QueryFunction:
        descriptor = to_descriptor(entry)
        name = descriptor.name
        if name in existing:
            raise ValidationError(f"Duplicate query name '{name}'", query=name)
        if hasattr(type(self), name):
            raise ValidationError(f"Query name '{name}' is reserved by Db", query=name)
        return create_query_function(descriptor, self._adapter)

    def __getattr__(self, name: str) -> QueryFunction:
        # Only called when normal lookup fails; private names never map to queries
        if name.startswith('_'):
            raise AttributeError(name)
        if name in self._queries:
            return self._queries[name]
        if name in self._query_errors:
            raise self._query_errors[name]
        raise AttributeError(f"{type(self).__name__!r} object has no query {name!r}")

    def __dir__(self):
        return list(super().__dir__()) + list(self._queries)

    @property
    def queries(self) -> Mapping[str, QueryFunction]:
        """Read-only mapping of query name to generated function."""
        return self._queries

    @property
    def query_errors(self) -> Mapping[str, ValidationError]:
        """Descriptors that failed to build, by name."""
        return self._query_errors

    @property
    def adapter(self) -> BaseAdapter:
        return self._adapter

    async def begin_transaction(self) -> Any:
        """Begin a transaction, returning the connection for further statements."""
        return await self._transactions.begin_transaction()

    async def commit(self, connection: Any) -> None:
        """Commit and release; rolled back (and ``TransactionError`` raised) on failure."""
        await self._transactions.commit(connection)

    async def rollback(self, connection: Any) -> None:
        """Roll back and release the connection."""
        await self._transactions.rollback(connection)

    def transaction(self) -> AsyncContextManager[Any]:
        """``async with db.transaction() as connection:`` commit-or-rollback block."""
        return self._transactions.transaction()

    def get_pool(self) -> Any:
        """Return the underlying connection pool."""
        return self._adapter.get_pool()
