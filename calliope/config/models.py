"""Pydantic models for Calliope configuration."""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import (
    BaseModel,
    Field,
    field_validator,
    model_validator,
    AliasChoices,
    ConfigDict,
)
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseType(str, Enum):
    """Supported database types."""
    POSTGRESQL = "postgresql"
    MYSQL = "mysql"
    SQLITE = "sqlite"
    ORACLE = "oracle"


class ConnectionPoolConfig(BaseModel):
    """Connection pool settings handed to the SQLAlchemy engine."""
    max_connections: int = Field(default=10, ge=1, le=1000, description="Pool size")
    max_overflow: int = Field(default=0, ge=0, le=100, description="Connections allowed beyond max_connections")
    timeout: int = Field(default=30, ge=1, le=3600, description="Seconds to wait for a pooled connection")
    pool_recycle: int = Field(default=3600, ge=-1, le=86400, description="Connection recycle time in seconds")
    pool_pre_ping: bool = Field(default=True, description="Validate connections before use")

    @model_validator(mode='after')
    def validate_overflow(self):
        """Keep overflow within the pool size."""
        if self.max_overflow > self.max_connections:
            object.__setattr__(self, 'max_overflow', self.max_connections)
        return self


class DatabaseConfig(BaseModel):
    """Database connection configuration."""

    model_config = ConfigDict(populate_by_name=True)

    type: DatabaseType = Field(validation_alias=AliasChoices("type", "driver"))
    host: Optional[str] = None
    port: Optional[int] = None
    database: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    path: Optional[str] = None  # For SQLite
    options: Dict[str, Any] = Field(default_factory=dict)

    @field_validator('port')
    def validate_port(cls, v):
        """Validate port number range."""
        if v is not None and (v < 1 or v > 65535):
            raise ValueError("Port must be between 1 and 65535")
        return v

    @model_validator(mode='after')
    def validate_database_config(self):
        """Validate database-specific required fields."""
        if self.type == DatabaseType.SQLITE:
            if not (self.path or self.database):
                raise ValueError("SQLite databases require a 'path' or 'database' field")
            if not self.path:
                # Allow configs that specify `database` instead of `path`
                object.__setattr__(self, "path", self.database)
            return self

        required_fields = ['host', 'database', 'username', 'password']
        for field in required_fields:
            if not getattr(self, field):
                raise ValueError(f"{self.type.value} databases require '{field}' field")
        return self

    @property
    def log_sql(self) -> bool:
        return bool(self.options.get('log_sql', False))

    @property
    def log_parameters(self) -> bool:
        return bool(self.options.get('log_parameters', False))


class CalliopeConfig(BaseModel):
    """Main configuration model for Calliope."""
    databases: Dict[str, DatabaseConfig]
    connection_pools: Dict[str, ConnectionPoolConfig] = Field(
        default_factory=lambda: {"default": ConnectionPoolConfig()}
    )
    default_database: Optional[str] = None
    queries: Optional[str] = Field(default=None, description="Path to the query descriptor file")

    @model_validator(mode='after')
    def validate_default_database(self):
        """Ensure default_database exists in databases."""
        if self.default_database and self.default_database not in self.databases:
            raise ValueError(f"default_database '{self.default_database}' not found in databases")
        return self

    @model_validator(mode='after')
    def set_default_database(self):
        """Set default database if not specified."""
        if not self.default_database and self.databases:
            self.default_database = next(iter(self.databases))
        return self

    def get_pool_config(self, name: str = "default") -> ConnectionPoolConfig:
        return self.connection_pools.get(name, ConnectionPoolConfig())


class EnvironmentSettings(BaseSettings):
    """Environment-specific settings."""

    model_config = SettingsConfigDict(env_prefix="CALLIOPE_", case_sensitive=False)

    log_level: str = Field(default="WARNING")
    config_file: Optional[str] = Field(default=None)
