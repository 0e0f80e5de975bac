"""
Database error classification for the summary job store.

Raw SQLAlchemy errors raised inside the services are converted into a small
hierarchy of ``DatabaseError`` classes. Each class carries an error code,
severity, category and a recovery hint, and the API maps all of them to 503
so clients retry later.
"""

import logging
from enum import Enum
from typing import Optional, Dict, Any

from sqlalchemy import exc as sa_exc

logger = logging.getLogger(__name__)


class DatabaseErrorSeverity(Enum):
    """Severity levels for database errors."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class DatabaseErrorCategory(Enum):
    """Categories of database errors."""
    CONNECTION = "connection"
    QUERY = "query"
    CONSTRAINT = "constraint"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


_LOG_LEVELS = {
    DatabaseErrorSeverity.CRITICAL: logging.CRITICAL,
    DatabaseErrorSeverity.HIGH: logging.ERROR,
    DatabaseErrorSeverity.MEDIUM: logging.WARNING,
    DatabaseErrorSeverity.LOW: logging.INFO,
}


class DatabaseError(Exception):
    """
    Base class for job store errors.

    Subclasses set the class attributes; instances add the failing operation
    and the original driver error.
    """

    error_code = "DATABASE_ERROR"
    severity = DatabaseErrorSeverity.MEDIUM
    category = DatabaseErrorCategory.UNKNOWN
    recovery_suggestion = "Retry the request later"
    retryable = False

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.original_error = original_error

        logger.log(_LOG_LEVELS[self.severity], f"Database error during {operation or 'unknown operation'}: {message}", extra={
            'error_code': self.error_code,
            'severity': self.severity.value,
            'category': self.category.value,
            'operation': operation,
        })

    def to_dict(self) -> Dict[str, Any]:
        return {
            'error_type': self.__class__.__name__,
            'message': self.message,
            'error_code': self.error_code,
            'operation': self.operation,
            'severity': self.severity.value,
            'category': self.category.value,
            'retryable': self.retryable,
            'recovery_suggestion': self.recovery_suggestion,
        }


class DatabaseConnectionError(DatabaseError):
    """The job store could not be reached."""
    error_code = "DB_CONNECTION_FAILED"
    severity = DatabaseErrorSeverity.HIGH
    category = DatabaseErrorCategory.CONNECTION
    recovery_suggestion = "Check DATABASE_URL and that the database server is running"
    retryable = True


class DatabaseTimeoutError(DatabaseError):
    """A query or pool checkout took too long."""
    error_code = "DB_TIMEOUT"
    severity = DatabaseErrorSeverity.HIGH
    category = DatabaseErrorCategory.TIMEOUT
    recovery_suggestion = "Retry later or raise DATABASE_POOL_SIZE / DATABASE_POOL_TIMEOUT"
    retryable = True


class DatabaseConstraintError(DatabaseError):
    """A write violated a unique, foreign key or not-null constraint."""
    error_code = "DB_CONSTRAINT_VIOLATION"
    severity = DatabaseErrorSeverity.MEDIUM
    category = DatabaseErrorCategory.CONSTRAINT
    recovery_suggestion = "Check that the record does not already exist"


class DatabaseQueryError(DatabaseError):
    """Any other failure executing a statement, usually schema drift."""
    error_code = "DB_QUERY_FAILED"
    severity = DatabaseErrorSeverity.MEDIUM
    category = DatabaseErrorCategory.QUERY
    recovery_suggestion = "Run the migrations with `alembic upgrade head`"


class DatabaseUnavailableError(DatabaseError):
    """The job store is configured but not accepting work."""
    error_code = "DB_UNAVAILABLE"
    severity = DatabaseErrorSeverity.CRITICAL
    category = DatabaseErrorCategory.CONNECTION
    recovery_suggestion = "Check database server status and retry"
    retryable = True

    def __init__(self, message: str = "Database service is unavailable", **kwargs):
        super().__init__(message, **kwargs)


_TIMEOUT_TERMS = ('timed out', 'timeout', 'deadline', 'database is locked')
_CONNECTION_TERMS = ('connection', 'connect', 'unreachable', 'refused', 'unable to open database')


def classify_database_error(error: Exception, operation: Optional[str] = None) -> DatabaseError:
    """
    Convert a raw database error into the matching ``DatabaseError`` subclass.

    SQLAlchemy exception types are checked first; driver messages decide
    between timeouts and connection failures for ``OperationalError``.

    Args:
        error: The original exception
        operation: Service method that was running, for logs

    Returns:
        Classified DatabaseError instance
    """
    if isinstance(error, DatabaseError):
        return error

    message = str(error)
    lowered = message.lower()

    if isinstance(error, sa_exc.IntegrityError):
        error_class = DatabaseConstraintError
    elif isinstance(error, sa_exc.TimeoutError):
        error_class = DatabaseTimeoutError
    elif isinstance(error, (sa_exc.OperationalError, sa_exc.InterfaceError, sa_exc.DisconnectionError)):
        if any(term in lowered for term in _TIMEOUT_TERMS):
            error_class = DatabaseTimeoutError
        elif isinstance(error, sa_exc.OperationalError) and not any(term in lowered for term in _CONNECTION_TERMS):
            # e.g. "no such table" on a database that was never migrated
            error_class = DatabaseQueryError
        else:
            error_class = DatabaseConnectionError
    elif any(term in lowered for term in _CONNECTION_TERMS):
        error_class = DatabaseConnectionError
    else:
        error_class = DatabaseQueryError

    return error_class(message, operation=operation, original_error=error)
