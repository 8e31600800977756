"""Database adapters for different database types."""

from calliope.db.adapters.postgresql import PostgreSQLAdapter
from calliope.db.adapters.mysql import MySQLAdapter
from calliope.db.adapters.oracle import OracleAdapter
from calliope.db.adapters.sqlite import SQLiteAdapter

__all__ = [
    "PostgreSQLAdapter",
    "MySQLAdapter",
    "OracleAdapter",
    "SQLiteAdapter",
]
