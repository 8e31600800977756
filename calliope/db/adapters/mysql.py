"""MySQL database adapter."""

from typing import Any, Dict, Optional
from urllib.parse import quote_plus

from calliope.config.models import DatabaseConfig, ConnectionPoolConfig
from calliope.db.base import SQLAlchemyAdapter
from calliope.exceptions import AdapterError


class MySQLAdapter(SQLAlchemyAdapter):
    """MySQL database adapter running on aiomysql."""

    paramstyle = 'format'

    def __init__(
        self,
        config: DatabaseConfig,
        pool_config: Optional[ConnectionPoolConfig] = None,
    ) -> None:
        """Initialize MySQL adapter."""
        super().__init__(config, pool_config)

        # Set default port if not specified
        if self.config.port is None:
            self.config.port = 3306

    def get_driver_name(self) -> str:
        """Get the driver name for MySQL."""
        return "aiomysql"

    def build_connection_string(self) -> str:
        """Build MySQL connection string.

        Raises:
            AdapterError: If required configuration is missing.
        """
        if not all([self.config.host, self.config.database, self.config.username, self.config.password]):
            raise AdapterError("MySQL requires host, database, username, and password")

        # URL encode password to handle special characters
        password_encoded = quote_plus(self.config.password)

        connection_string = (
            f"mysql+aiomysql://{self.config.username}:{password_encoded}@"
            f"{self.config.host}:{self.config.port}/{self.config.database}"
        )

        options = self._url_options()
        if 'charset' not in options:
            options['charset'] = 'utf8mb4'

        option_string = "&".join([f"{k}={v}" for k, v in options.items()])
        return f"{connection_string}?{option_string}"

    def _url_options(self) -> Dict[str, Any]:
        reserved = {'log_sql', 'log_parameters', 'connect_timeout'}
        return {k: v for k, v in self.config.options.items() if k not in reserved}

    def _get_engine_options(self) -> Dict[str, Any]:
        """Get MySQL-specific engine options."""
        return {
            'connect_args': {
                'connect_timeout': self.config.options.get('connect_timeout', 10),
            }
        }
