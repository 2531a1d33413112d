"""
Centralized error handling utilities for consistent error management across services.
"""
import re
from typing import Optional, Any, Dict

from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError

from src.config.constants import UNDEFINED_COLUMN_SQLSTATE
from src.shared.utils import get_logger


class ServiceError(Exception):
    """Base service error with context"""
    def __init__(self, message: str, original_error: Optional[Exception] = None, context: Optional[Dict[str, Any]] = None):
        self.message = message
        self.original_error = original_error
        self.context = context or {}
        super().__init__(self.message)


class AmbiguousTransactionError(ServiceError):
    """More than one payment transaction matched a webhook's identifiers"""


def get_sqlstate(error: Exception) -> Optional[str]:
    """Extract the driver SQLSTATE (asyncpg: sqlstate, psycopg: pgcode) from a wrapped DB error."""
    orig = getattr(error, "orig", None)
    for candidate in (orig, getattr(orig, "__cause__", None)):
        if candidate is None:
            continue
        code = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if code:
            return str(code)
    return None


def is_missing_column_error(error: Exception, column: str) -> bool:
    """True when the store rejected a write because ``column`` does not exist."""
    if not isinstance(error, DBAPIError):
        return False
    if get_sqlstate(error) == UNDEFINED_COLUMN_SQLSTATE:
        return True
    pattern = rf"{re.escape(column)}.*does not exist"
    return re.search(pattern, str(error), re.IGNORECASE) is not None


class ErrorHandler:
    """Centralized error handler for services"""

    def __init__(self, logger_name: str):
        self.logger = get_logger(logger_name)

    def log_write_failure(self, error: Exception, operation: str, context: Optional[Dict[str, Any]] = None) -> None:
        """Log a failed best-effort write without raising"""
        context = context or {}

        if isinstance(error, IntegrityError):
            error_msg = str(error.orig) if hasattr(error, 'orig') else str(error)
            self.logger.error(f"Database integrity error during {operation}: {error_msg} {context}")
        elif isinstance(error, DBAPIError):
            self.logger.error(
                f"Database error during {operation} (sqlstate={get_sqlstate(error)}): {error} {context}"
            )
        elif isinstance(error, SQLAlchemyError):
            self.logger.error(f"SQLAlchemy error during {operation}: {error} {context}")
        else:
            self.logger.error(f"Unexpected error during {operation}: {error} {context}", exc_info=True)
