"""Core exceptions for Calliope."""

from typing import Any, Dict, List, Optional


class CalliopeError(Exception):
    """Base exception for all Calliope errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(CalliopeError):
    """Raised when there's an error in configuration parsing or validation."""
    pass


class ValidationError(CalliopeError):
    """Raised when a query descriptor or the values passed to a query are invalid."""

    def __init__(
        self,
        message: str,
        query: Optional[str] = None,
        table: Optional[str] = None,
        keys: Optional[List[str]] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.query = query
        self.table = table
        self.keys = keys or []


class AdapterError(CalliopeError):
    """Raised when the database driver reports a failure."""

    def __init__(
        self,
        message: str,
        database_type: Optional[str] = None,
        original: Optional[BaseException] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.database_type = database_type
        self.original = original


class TransactionError(CalliopeError):
    """Raised when a commit fails; carries the commit failure, not the rollback outcome."""

    def __init__(
        self,
        message: str,
        original: Optional[BaseException] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.original = original
