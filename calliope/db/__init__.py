"""Query generation, transactions and database adapters."""

from calliope.db.base import BaseAdapter, SQLAlchemyAdapter, TranslatedQuery
from calliope.db.descriptors import QueryDescriptor, QueryType
from calliope.db.queries import (
    QueryFunction,
    InsertQuery,
    UpdateQuery,
    SelectQuery,
    RawQuery,
    create_query_function,
)
from calliope.db.transaction_manager import TransactionManager
from calliope.db.facade import Db
from calliope.db.connection import AdapterFactory, create_adapter
from calliope.db.adapters import (
    PostgreSQLAdapter,
    MySQLAdapter,
    OracleAdapter,
    SQLiteAdapter,
)

__all__ = [
    # Adapter contract
    "BaseAdapter",
    "SQLAlchemyAdapter",
    "TranslatedQuery",
    # Descriptors and generated functions
    "QueryDescriptor",
    "QueryType",
    "QueryFunction",
    "InsertQuery",
    "UpdateQuery",
    "SelectQuery",
    "RawQuery",
    "create_query_function",
    # Facade and transactions
    "Db",
    "TransactionManager",
    # Adapter selection
    "AdapterFactory",
    "create_adapter",
    # Database adapters
    "PostgreSQLAdapter",
    "MySQLAdapter",
    "OracleAdapter",
    "SQLiteAdapter",
]
