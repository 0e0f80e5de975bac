"""
Database package for the TubeDigest summary service.
Contains database models, connection management, and error classification.
"""

from .models import (
    Base,
    SummaryJob,
    UserCredits,
    JobStatus,
    SummaryFormat,
    SummaryLanguage,
    PlanType,
    generate_job_id,
    classify_legacy_content,
)
from .connection import (
    get_database_session,
    get_database_engine,
    configure_database,
    init_database,
    close_database_connections,
    check_database_health,
)
from .exceptions import (
    DatabaseError,
    DatabaseConnectionError,
    DatabaseQueryError,
    DatabaseConstraintError,
    DatabaseTimeoutError,
    DatabaseUnavailableError,
    classify_database_error
)

__all__ = [
    # Models
    'Base',
    'SummaryJob',
    'UserCredits',
    'JobStatus',
    'SummaryFormat',
    'SummaryLanguage',
    'PlanType',
    'generate_job_id',
    'classify_legacy_content',

    # Connection management
    'get_database_session',
    'get_database_engine',
    'configure_database',
    'init_database',
    'close_database_connections',
    'check_database_health',

    # Exceptions
    'DatabaseError',
    'DatabaseConnectionError',
    'DatabaseQueryError',
    'DatabaseConstraintError',
    'DatabaseTimeoutError',
    'DatabaseUnavailableError',
    'classify_database_error',
]
