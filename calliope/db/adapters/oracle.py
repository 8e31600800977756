"""Oracle database adapter."""

from typing import Any, Dict, List, Optional, Union
from urllib.parse import quote_plus

from sqlalchemy.engine import CursorResult
from sqlalchemy.ext.asyncio import AsyncConnection

from calliope.config.models import DatabaseConfig, ConnectionPoolConfig
from calliope.db.base import SQLAlchemyAdapter
from calliope.exceptions import AdapterError


class OracleAdapter(SQLAlchemyAdapter):
    """Oracle database adapter running on python-oracledb in asyncio mode.

    Oracle reports column names in upper case; rows are returned with
    lower-case keys. Generated inserts return the driver's ``lastrowid``,
    which for Oracle is the ROWID of the new row rather than a key value.
    """

    paramstyle = 'numeric'

    def __init__(
        self,
        config: DatabaseConfig,
        pool_config: Optional[ConnectionPoolConfig] = None,
    ) -> None:
        """Initialize Oracle adapter."""
        super().__init__(config, pool_config)

        if self.config.port is None:
            self.config.port = 1521

    def get_driver_name(self) -> str:
        """Get the driver name for Oracle."""
        return "oracledb"

    def build_connection_string(self) -> str:
        """Build Oracle connection string; ``database`` is the service name.

        Raises:
            AdapterError: If required configuration is missing.
        """
        if not all([self.config.host, self.config.database, self.config.username, self.config.password]):
            raise AdapterError("Oracle requires host, database, username, and password")

        password_encoded = quote_plus(self.config.password)

        return (
            f"oracle+oracledb://{self.config.username}:{password_encoded}@"
            f"{self.config.host}:{self.config.port}/?service_name={self.config.database}"
        )

    def _get_engine_options(self) -> Dict[str, Any]:
        """Get Oracle-specific engine options."""
        return {
            'connect_args': {
                'tcp_connect_timeout': self.config.options.get('connect_timeout', 10),
            }
        }

    async def _collect_rows(self, connection: AsyncConnection, result: CursorResult) -> Union[List[Dict[str, Any]], int]:
        rows = await super()._collect_rows(connection, result)
        if isinstance(rows, int):
            return rows
        return [{key.lower(): value for key, value in row.items()} for row in rows]
