"""PostgreSQL database adapter."""

from typing import Any, Dict, Optional
from urllib.parse import quote_plus

from sqlalchemy.engine import CursorResult
from sqlalchemy.ext.asyncio import AsyncConnection

from calliope.config.models import DatabaseConfig, ConnectionPoolConfig
from calliope.db.base import SQLAlchemyAdapter
from calliope.exceptions import AdapterError


class PostgreSQLAdapter(SQLAlchemyAdapter):
    """PostgreSQL database adapter running on asyncpg."""

    paramstyle = 'numeric_dollar'
    supports_returning = True

    def __init__(
        self,
        config: DatabaseConfig,
        pool_config: Optional[ConnectionPoolConfig] = None,
    ) -> None:
        """Initialize PostgreSQL adapter."""
        super().__init__(config, pool_config)

        # Set default port if not specified
        if self.config.port is None:
            self.config.port = 5432

    def get_driver_name(self) -> str:
        """Get the driver name for PostgreSQL."""
        return "asyncpg"

    def build_connection_string(self) -> str:
        """Build PostgreSQL connection string.

        Raises:
            AdapterError: If required configuration is missing.
        """
        if not all([self.config.host, self.config.database, self.config.username, self.config.password]):
            raise AdapterError("PostgreSQL requires host, database, username, and password")

        # URL encode password to handle special characters
        password_encoded = quote_plus(self.config.password)

        return (
            f"postgresql+asyncpg://{self.config.username}:{password_encoded}@"
            f"{self.config.host}:{self.config.port}/{self.config.database}"
        )

    def _get_engine_options(self) -> Dict[str, Any]:
        """Get PostgreSQL-specific engine options."""
        return {
            'connect_args': {
                'timeout': self.config.options.get('connect_timeout', 10),
                'server_settings': {
                    'application_name': self.config.options.get('application_name', 'calliope'),
                },
            }
        }

    async def _collect_insert_id(self, connection: AsyncConnection, result: CursorResult) -> Any:
        # asyncpg reports no lastrowid; the id only comes back through RETURNING
        if not result.returns_rows:
            return None
        row = result.first()
        return row[0] if row is not None else None
