"""Configuration management for Calliope."""

from calliope.config.models import (
    DatabaseType,
    DatabaseConfig,
    ConnectionPoolConfig,
    CalliopeConfig,
    EnvironmentSettings,
)
from calliope.config.parser import (
    ConfigParser,
    get_config,
    load_query_descriptors,
    validate_config_file,
    create_sample_config,
    create_sample_queries,
)

__all__ = [
    # Models
    "DatabaseType",
    "DatabaseConfig",
    "ConnectionPoolConfig",
    "CalliopeConfig",
    "EnvironmentSettings",
    # Parser
    "ConfigParser",
    "get_config",
    "load_query_descriptors",
    "validate_config_file",
    "create_sample_config",
    "create_sample_queries",
]
