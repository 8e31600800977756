"""SQLite database adapter."""

import uuid
from pathlib import Path
from typing import Any, Dict, Optional

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.pool import AsyncAdaptedQueuePool

from calliope.config.models import DatabaseConfig, ConnectionPoolConfig
from calliope.db.base import SQLAlchemyAdapter
from calliope.exceptions import AdapterError

MEMORY_DATABASE = ":memory:"


class SQLiteAdapter(SQLAlchemyAdapter):
    """SQLite database adapter running on aiosqlite.

    ``:memory:`` is served as a named shared-cache database so that every
    pooled connection sees the same data while still owning its own
    transaction. The database lives as long as the pool keeps a connection
    open, i.e. until :meth:`close`.
    """

    paramstyle = 'qmark'

    def __init__(
        self,
        config: DatabaseConfig,
        pool_config: Optional[ConnectionPoolConfig] = None,
    ) -> None:
        """Initialize SQLite adapter."""
        super().__init__(config, pool_config)

        if not self.config.path:
            raise AdapterError("SQLite requires a database file path")

        self.memory_name = f"calliope-{uuid.uuid4().hex}"

    @property
    def in_memory(self) -> bool:
        return self.config.path == MEMORY_DATABASE

    def get_driver_name(self) -> str:
        """Get the driver name for SQLite."""
        return "aiosqlite"

    def build_connection_string(self) -> str:
        """Build SQLite connection string.

        Raises:
            AdapterError: If database path is invalid.
        """
        if not self.config.path:
            raise AdapterError("SQLite requires a database file path")

        if self.in_memory:
            return f"sqlite+aiosqlite:///file:{self.memory_name}?mode=memory&cache=shared&uri=true"

        # Convert relative paths to absolute paths
        db_path = Path(self.config.path)
        if not db_path.is_absolute():
            db_path = Path.cwd() / db_path

        # Create directory if it doesn't exist
        db_path.parent.mkdir(parents=True, exist_ok=True)

        return f"sqlite+aiosqlite:///{db_path}"

    def _get_pool_options(self) -> Dict[str, Any]:
        options = super()._get_pool_options()
        options['poolclass'] = AsyncAdaptedQueuePool
        options['pool_recycle'] = -1  # No recycling for SQLite
        return options

    def _get_engine_options(self) -> Dict[str, Any]:
        """Get SQLite-specific engine options."""
        return {
            'connect_args': {
                'check_same_thread': False,
                'timeout': self.config.options.get('timeout', 30),
            }
        }

    def _configure_engine(self, engine: AsyncEngine) -> None:
        if not self.in_memory:
            return

        # Shared-cache readers would otherwise fail with "table is locked"
        # while another pooled connection holds an open write transaction
        @event.listens_for(engine.sync_engine, "connect")
        def _read_uncommitted(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA read_uncommitted = 1")
            cursor.close()
