"""Adapter factory: pick the backend adapter for a database configuration."""

from typing import Dict, Optional, Type

from calliope.config.models import CalliopeConfig, ConnectionPoolConfig, DatabaseConfig, DatabaseType
from calliope.db.adapters.mysql import MySQLAdapter
from calliope.db.adapters.oracle import OracleAdapter
from calliope.db.adapters.postgresql import PostgreSQLAdapter
from calliope.db.adapters.sqlite import SQLiteAdapter
from calliope.db.base import SQLAlchemyAdapter
from calliope.exceptions import AdapterError, ConfigurationError


class AdapterFactory:
    """Factory for creating database adapters."""

    _adapters: Dict[DatabaseType, Type[SQLAlchemyAdapter]] = {
        DatabaseType.POSTGRESQL: PostgreSQLAdapter,
        DatabaseType.MYSQL: MySQLAdapter,
        DatabaseType.SQLITE: SQLiteAdapter,
        DatabaseType.ORACLE: OracleAdapter,
    }

    @classmethod
    def create_adapter(
        cls,
        config: DatabaseConfig,
        pool_config: Optional[ConnectionPoolConfig] = None,
    ) -> SQLAlchemyAdapter:
        """Create a database adapter based on configuration.

        Args:
            config: Database configuration.
            pool_config: Connection pool configuration.

        Returns:
            Database adapter instance.

        Raises:
            AdapterError: If database type is not supported.
        """
        adapter_class = cls._adapters.get(config.type)
        if not adapter_class:
            supported_types = [db_type.value for db_type in cls._adapters]
            raise AdapterError(
                f"Unsupported database type: {config.type}. "
                f"Supported types: {supported_types}"
            )

        return adapter_class(config, pool_config)

    @classmethod
    def register_adapter(cls, db_type: DatabaseType, adapter_class: Type[SQLAlchemyAdapter]) -> None:
        """Register a custom database adapter.

        Args:
            db_type: Database type.
            adapter_class: Adapter class to register.
        """
        cls._adapters[db_type] = adapter_class

    @classmethod
    def get_supported_types(cls) -> list[DatabaseType]:
        """Get list of supported database types."""
        return list(cls._adapters.keys())


def create_adapter(config: CalliopeConfig, db_name: Optional[str] = None) -> SQLAlchemyAdapter:
    """Build the adapter for a named database of a loaded configuration.

    Raises:
        ConfigurationError: If the database is not configured.
    """
    db_name = db_name or config.default_database
    if not db_name:
        raise ConfigurationError("No database specified and no default database configured")

    if db_name not in config.databases:
        available_dbs = list(config.databases.keys())
        raise ConfigurationError(
            f"Database '{db_name}' not found in configuration. "
            f"Available databases: {available_dbs}"
        )

    return AdapterFactory.create_adapter(config.databases[db_name], config.get_pool_config())
