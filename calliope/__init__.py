"""Calliope: a simple, generic database interface.

Calliope provides:
- Query functions generated from declarative descriptors
- Awaitable and callback invocation of every query
- Transactions that always return their connection to the pool
- SQLite, MySQL and PostgreSQL adapters on SQLAlchemy's asyncio engine
- YAML-based configuration
"""

__version__ = "0.1.0"
__license__ = "GPL-3.0-or-later"

# Core exports
from calliope.exceptions import (
    CalliopeError,
    ConfigurationError,
    ValidationError,
    AdapterError,
    TransactionError,
)
from calliope.db import Db, QueryDescriptor, BaseAdapter

__all__ = [
    "__version__",
    "CalliopeError",
    "ConfigurationError",
    "ValidationError",
    "AdapterError",
    "TransactionError",
    "Db",
    "QueryDescriptor",
    "BaseAdapter",
]
