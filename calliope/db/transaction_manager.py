"""Transaction lifecycle with guaranteed connection release."""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from calliope.db.base import BaseAdapter
from calliope.exceptions import TransactionError

logger = logging.getLogger(__name__)


class TransactionManager:
    """Runs begin/commit/rollback against an adapter.

    Every operation that ends a transaction releases its connection on every
    exit path. When a commit fails, the commit error is the one the caller
    sees; a failing rollback during that cleanup is only logged.
    """

    def __init__(self, adapter: BaseAdapter) -> None:
        self.adapter = adapter

    async def begin_transaction(self) -> Any:
        """Acquire a connection and begin a transaction on it.

        Returns:
            The active connection, to be passed to queries and then to
            :meth:`commit` or :meth:`rollback`.
        """
        connection = None
        try:
            connection = await self.adapter.acquire_connection()
            await self.adapter.begin_transaction(connection)
        except BaseException:
            if connection is not None:
                await self._release(connection)
            raise

        logger.debug("Transaction started")
        return connection

    async def commit(self, connection: Any) -> None:
        """Commit and release ``connection``.

        Raises:
            TransactionError: If the commit fails. The transaction is rolled
                back and the connection released before this is raised.
        """
        try:
            await self.adapter.commit(connection)
        except Exception as commit_error:
            logger.error(f"Commit failed, rolling back: {commit_error}")
            await self._rollback_quietly(connection)
            await self._release(connection)
            raise TransactionError(
                f"Transaction commit failed: {commit_error}",
                original=commit_error,
            ) from commit_error
        except BaseException:
            await self._release(connection)
            raise

        await self._release(connection)
        logger.debug("Transaction committed")

    async def rollback(self, connection: Any) -> None:
        """Roll back and release ``connection``; rollback failures are logged only."""
        try:
            await self._rollback_quietly(connection)
        finally:
            await self._release(connection)
        logger.debug("Transaction rolled back")

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Any]:
        """Commit when the block exits normally, roll back when it raises."""
        connection = await self.begin_transaction()
        try:
            yield connection
        except BaseException:
            await self.rollback(connection)
            raise
        await self.commit(connection)

    async def _rollback_quietly(self, connection: Any) -> None:
        try:
            await self.adapter.rollback(connection)
        except Exception as e:
            logger.error(f"Error rolling back transaction: {e}")

    async def _release(self, connection: Any) -> None:
        try:
            await self.adapter.release(connection)
        except Exception as e:
            logger.warning(f"Error releasing connection: {e}")
