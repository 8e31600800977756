"""Adapter capability contract and the SQLAlchemy engine implementation of it."""

import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, NamedTuple, Optional, Sequence, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.engine import CursorResult
from sqlalchemy.pool import Pool

from calliope.config.models import DatabaseConfig, ConnectionPoolConfig
from calliope.exceptions import AdapterError

logger = logging.getLogger(__name__)

Parameters = Union[Sequence[Any], Dict[str, Any], None]

_PLACEHOLDERS = {
    'qmark': '?',
    'format': '%s',
    'numeric': ':{position}',
    'numeric_dollar': '${position}',
}


class TranslatedQuery(NamedTuple):
    """Literal SQL text plus the parameters to bind to it."""
    sql: str
    values: Parameters


class BaseAdapter(ABC):
    """Capability contract every database backend must satisfy.

    Connections are opaque to the rest of the library: whatever
    ``acquire_connection`` returns is handed back unchanged to the other
    operations. Passing ``connection=None`` to ``execute_query`` or
    ``execute_insert`` always means "run outside any caller-managed
    transaction and let the pool auto-commit".
    """

    #: DBAPI paramstyle of the SQL this adapter executes.
    paramstyle = 'qmark'

    #: Whether generated inserts may append ``RETURNING <id column>``.
    supports_returning = False

    def placeholder(self, position: int) -> str:
        """Positional placeholder for the 1-based parameter ``position``."""
        try:
            template = _PLACEHOLDERS[self.paramstyle]
        except KeyError:
            raise AdapterError(f"Unsupported positional paramstyle: {self.paramstyle}")
        return template.format(position=position)

    @abstractmethod
    def translate_query(self, statement: Any) -> TranslatedQuery:
        """Translate a dialect-neutral statement into literal SQL and parameters."""

    @abstractmethod
    async def execute_query(self, sql: str, args: Parameters = None, connection: Any = None) -> Any:
        """Run a statement, returning rows (or the affected row count)."""

    @abstractmethod
    async def execute_insert(self, sql: str, args: Parameters = None, connection: Any = None) -> Any:
        """Run an insert, returning the generated row identifier."""

    @abstractmethod
    async def acquire_connection(self) -> Any:
        """Check a connection out of the pool."""

    @abstractmethod
    async def begin_transaction(self, connection: Any) -> Any:
        """Start a transaction on ``connection`` and return the same connection."""

    @abstractmethod
    async def commit(self, connection: Any) -> None:
        """Commit the transaction active on ``connection``."""

    @abstractmethod
    async def rollback(self, connection: Any) -> None:
        """Roll back the transaction active on ``connection``."""

    @abstractmethod
    async def release(self, connection: Any) -> None:
        """Return ``connection`` to the pool.

        Must be safe for connections in an error state and must not raise for
        connections that are already released or closed.
        """

    @abstractmethod
    def get_pool(self) -> Any:
        """Expose the underlying pool handle."""


class SQLAlchemyAdapter(BaseAdapter):
    """Adapter backed by a SQLAlchemy asyncio engine and its connection pool."""

    def __init__(
        self,
        config: DatabaseConfig,
        pool_config: Optional[ConnectionPoolConfig] = None,
    ) -> None:
        """Initialize database adapter.

        Args:
            config: Database configuration.
            pool_config: Connection pool configuration.
        """
        self.config = config
        self.pool_config = pool_config or ConnectionPoolConfig()
        self._engine: Optional[AsyncEngine] = None

    @abstractmethod
    def build_connection_string(self) -> str:
        """Build database connection string.

        Returns:
            Database connection string.
        """

    @abstractmethod
    def get_driver_name(self) -> str:
        """Get the driver name for this adapter."""

    def get_engine(self) -> AsyncEngine:
        """Get or create the SQLAlchemy engine.

        Raises:
            AdapterError: If engine creation fails.
        """
        if self._engine is None:
            try:
                connection_string = self.build_connection_string()

                engine_args = self._get_pool_options()
                engine_args['echo'] = False
                engine_args.update(self._get_engine_options())

                self._engine = create_async_engine(connection_string, **engine_args)
                self._configure_engine(self._engine)

            except AdapterError:
                raise
            except Exception as e:
                raise AdapterError(
                    f"Failed to create database engine: {e}",
                    database_type=self.config.type.value,
                    original=e,
                ) from e

        return self._engine

    def _get_pool_options(self) -> Dict[str, Any]:
        """Pool sizing arguments passed to the engine."""
        return {
            'pool_size': self.pool_config.max_connections,
            'max_overflow': self.pool_config.max_overflow,
            'pool_timeout': self.pool_config.timeout,
            'pool_recycle': self.pool_config.pool_recycle,
            'pool_pre_ping': self.pool_config.pool_pre_ping,
        }

    def _get_engine_options(self) -> Dict[str, Any]:
        """Get database-specific engine options."""
        return {}

    def _configure_engine(self, engine: AsyncEngine) -> None:
        """Hook for backend-specific engine event listeners."""

    def get_pool(self) -> Pool:
        return self.get_engine().sync_engine.pool

    def translate_query(self, statement: Any) -> TranslatedQuery:
        """Compile a SQLAlchemy Core statement for this adapter's dialect."""
        compiled = statement.compile(
            dialect=self.get_engine().dialect,
            compile_kwargs={"render_postcompile": True},
        )
        params = compiled.params
        if compiled.positional:
            values: Parameters = [params[name] for name in compiled.positiontup]
        else:
            values = dict(params)
        return TranslatedQuery(sql=str(compiled), values=values)

    async def execute_query(self, sql: str, args: Parameters = None, connection: Optional[AsyncConnection] = None) -> Any:
        return await self._execute(sql, args, connection, self._collect_rows)

    async def execute_insert(self, sql: str, args: Parameters = None, connection: Optional[AsyncConnection] = None) -> Any:
        return await self._execute(sql, args, connection, self._collect_insert_id)

    async def acquire_connection(self) -> AsyncConnection:
        try:
            return await self.get_engine().connect()
        except SQLAlchemyError as e:
            raise self._wrap_error("Failed to acquire connection", e) from e

    async def begin_transaction(self, connection: AsyncConnection) -> AsyncConnection:
        try:
            await connection.begin()
        except SQLAlchemyError as e:
            raise self._wrap_error("Failed to begin transaction", e) from e
        return connection

    async def commit(self, connection: AsyncConnection) -> None:
        try:
            await connection.commit()
        except SQLAlchemyError as e:
            raise self._wrap_error("Commit failed", e) from e

    async def rollback(self, connection: AsyncConnection) -> None:
        try:
            await connection.rollback()
        except SQLAlchemyError as e:
            raise self._wrap_error("Rollback failed", e) from e

    async def release(self, connection: Optional[AsyncConnection]) -> None:
        if connection is None:
            return
        try:
            await connection.close()
        except Exception as e:
            logger.warning(f"Ignoring error while releasing connection: {e}")

    async def close(self) -> None:
        """Dispose of the engine and every pooled connection."""
        if self._engine:
            await self._engine.dispose()
            self._engine = None

    async def _execute(
        self,
        sql: str,
        args: Parameters,
        connection: Optional[AsyncConnection],
        collect: Callable[[AsyncConnection, CursorResult], Awaitable[Any]],
    ) -> Any:
        self._log_statement(sql, args)
        params = self._bind_parameters(args)
        try:
            if connection is not None:
                result = await connection.exec_driver_sql(sql, params)
                return await collect(connection, result)

            async with self._pooled_connection() as conn:
                result = await conn.exec_driver_sql(sql, params)
                return await collect(conn, result)

        except SQLAlchemyError as e:
            raise self._wrap_error("Query execution failed", e) from e

    @asynccontextmanager
    async def _pooled_connection(self) -> AsyncIterator[AsyncConnection]:
        """Pooled connection that commits on success; closing rolls back otherwise."""
        async with self.get_engine().connect() as conn:
            yield conn
            await conn.commit()

    @staticmethod
    def _bind_parameters(args: Parameters) -> Any:
        # A list would be read as executemany, so positional values go as a tuple
        if args is None:
            return None
        if isinstance(args, dict):
            return args
        return tuple(args)

    async def _collect_rows(self, connection: AsyncConnection, result: CursorResult) -> Union[List[Dict[str, Any]], int]:
        if result.returns_rows:
            return [dict(row) for row in result.mappings().all()]
        return result.rowcount if result.rowcount >= 0 else 0

    async def _collect_insert_id(self, connection: AsyncConnection, result: CursorResult) -> Any:
        return result.lastrowid

    def _log_statement(self, sql: str, args: Parameters) -> None:
        if not self.config.log_sql:
            return
        if self.config.log_parameters:
            logger.info(f"{sql} : {args!r}")
        else:
            logger.info(sql)

    def _wrap_error(self, message: str, error: Exception) -> AdapterError:
        return AdapterError(
            f"{message}: {error}",
            database_type=self.config.type.value,
            original=error,
        )
