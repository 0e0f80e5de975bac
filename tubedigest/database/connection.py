"""
Database connection management for the TubeDigest summary service.

One engine and session factory are shared by the API threads, the job
worker pool and the supervisor thread. They are created lazily on first use
and can be re-pointed at another database with ``configure_database``.
"""

import logging
import threading
import time
from contextlib import contextmanager
from typing import Generator, Optional, Dict, Any

from sqlalchemy import create_engine, Engine, text, inspect
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .models import Base
from ..config import settings

logger = logging.getLogger(__name__)

REQUIRED_TABLES = ('summary_jobs', 'user_credits')
IN_MEMORY_SQLITE_URLS = ('sqlite://', 'sqlite:///:memory:')

_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker[Session]] = None
_database_url: Optional[str] = None
_init_lock = threading.Lock()


def _masked(database_url: str) -> str:
    if '@' not in database_url:
        return database_url
    scheme, _, host = database_url.rpartition('@')
    return f"{scheme.split('://')[0]}://***@{host}"


def create_database_engine(database_url: str) -> Engine:
    """
    Create an engine suited to the database backend.

    SQLite engines allow use from the worker threads, and in-memory SQLite
    keeps one shared connection so every thread sees the same database.
    Server databases get a bounded, pre-pinged connection pool.
    """
    engine_config: Dict[str, Any] = {
        'echo': settings.database_echo,
        'echo_pool': settings.database_echo_pool,
        'pool_pre_ping': True,
    }

    if database_url.startswith('sqlite'):
        engine_config['connect_args'] = {'check_same_thread': False}
        if database_url in IN_MEMORY_SQLITE_URLS:
            engine_config['poolclass'] = StaticPool
    else:
        # Each job worker holds a connection while it records a transition
        engine_config.update({
            'pool_size': max(settings.database_pool_size, settings.job_worker_count),
            'max_overflow': settings.database_max_overflow,
            'pool_timeout': settings.database_pool_timeout,
            'pool_recycle': settings.database_pool_recycle,
        })

    engine = create_engine(database_url, **engine_config)
    logger.info(f"Created database engine for {_masked(database_url)}")
    return engine


def get_database_engine() -> Engine:
    """Get the shared engine, creating it on first use."""
    global _engine, _session_factory
    if _engine is None:
        with _init_lock:
            if _engine is None:
                _engine = create_database_engine(_database_url or settings.database_url)
                _session_factory = sessionmaker(
                    bind=_engine,
                    expire_on_commit=False,
                    autoflush=True,
                )
    return _engine


def configure_database(database_url: str) -> Engine:
    """
    Point the shared engine at a different database.

    Disposes any existing engine. Used by the jobs CLI ``--database-url``
    option and the test suite.
    """
    global _database_url
    close_database_connections()
    _database_url = database_url
    return get_database_engine()


@contextmanager
def get_database_session() -> Generator[Session, None, None]:
    """
    Session scope that commits on success and rolls back on error.

    Usage:
        with get_database_session() as session:
            session.execute(update(SummaryJob)...)

    Returned ORM objects stay readable after the block since sessions do not
    expire on commit.
    """
    get_database_engine()
    session = _session_factory()

    try:
        yield session
        session.commit()
    except Exception as e:
        session.rollback()
        logger.error(f"Database session error: {e}")
        raise
    finally:
        session.close()


def init_database() -> bool:
    """
    Create any of the summary tables that are missing.

    Production schemas are managed with Alembic; this covers SQLite
    development databases and first starts.

    Returns:
        bool: True if successful, False otherwise
    """
    try:
        engine = get_database_engine()
        existing = set(inspect(engine).get_table_names())
        missing = [table for table in REQUIRED_TABLES if table not in existing]

        if missing:
            logger.info(f"Creating database tables: {', '.join(missing)}")
            Base.metadata.create_all(bind=engine)
        else:
            logger.info("Database tables already exist")
        return True

    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        return False


def check_database_health() -> Dict[str, Any]:
    """
    Run a trivial query and report whether the summary tables exist.

    Returns:
        Dict with ``status`` of ``healthy``, ``degraded`` (reachable but
        tables missing) or ``unhealthy``
    """
    health_info: Dict[str, Any] = {
        'status': 'unhealthy',
        'timestamp': time.time(),
        'response_time_ms': None,
        'missing_tables': [],
        'error': None,
    }

    try:
        start_time = time.time()
        engine = get_database_engine()

        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            existing = set(inspect(conn).get_table_names())

        response_time = (time.time() - start_time) * 1000
        missing = [table for table in REQUIRED_TABLES if table not in existing]
        health_info.update({
            'status': 'degraded' if missing else 'healthy',
            'response_time_ms': round(response_time, 2),
            'missing_tables': missing,
        })
        logger.debug(f"Database health check finished in {response_time:.2f}ms")

    except Exception as e:
        health_info['error'] = f"Database health check failed: {e}"
        logger.error(health_info['error'])

    return health_info


def close_database_connections() -> None:
    """Dispose the shared engine; the next session creates a fresh one."""
    global _engine, _session_factory

    with _init_lock:
        if _engine is not None:
            _engine.dispose()
            logger.info("Database engine disposed")
        _engine = None
        _session_factory = None
