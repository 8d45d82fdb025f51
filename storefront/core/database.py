"""
PostgreSQL database access

Two ways into the same database:
- SQLAlchemy metadata (schema definitions in storefront.models, used to create tables)
- psycopg2 connections (raw SQL in the repositories)
"""
import time
from contextlib import contextmanager
import logging

import psycopg2
from psycopg2.extras import RealDictCursor
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base

from .config import settings

logger = logging.getLogger(__name__)


# ============================================================================
# SQLAlchemy Configuration (schema definitions)
# ============================================================================

engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    pool_size=5,
    max_overflow=10,
)

Base = declarative_base()


def create_schema():
    """Create all tables declared in storefront.models (no-op for existing tables)"""
    # Importing the package registers every model on Base.metadata
    import storefront.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("Database schema created")


# ============================================================================
# psycopg2 Direct Connections (raw SQL)
# ============================================================================

def get_db_connection_dict():
    """
    Get a database connection with RealDictCursor (returns dictionaries)

    Every repository uses this: rows come back as dicts that map straight
    onto the pydantic domain models. Connecting retries on OperationalError.

    Example:
        conn = get_db_connection_dict()
        cursor = conn.cursor()
        cursor.execute("SELECT * FROM orders")
        results = cursor.fetchall()  # Returns list of dicts
        cursor.close()
        conn.close()
    """
    return get_db_connection_dict_with_retry(probe=False)


def get_db_connection_dict_with_retry(max_retries=None, retry_delay=None, probe=True):
    """
    Get a psycopg2 connection with RealDictCursor and automatic retry

    Retries on OperationalError (dropped SSL connections, pooler restarts)
    with exponential backoff between attempts.

    Args:
        max_retries: Maximum number of connection attempts (default: DB_CONNECT_RETRIES)
        retry_delay: Initial delay between retries in seconds (default: DB_RETRY_DELAY)
        probe: Run SELECT 1 before returning the connection

    Returns:
        psycopg2 connection with RealDictCursor

    Raises:
        psycopg2.OperationalError: If all retry attempts fail
    """
    max_retries = max_retries or settings.DB_CONNECT_RETRIES
    retry_delay = retry_delay if retry_delay is not None else settings.DB_RETRY_DELAY

    database_url = settings.DATABASE_URL
    if not database_url:
        raise Exception("DATABASE_URL not configured")

    last_error = None

    for attempt in range(1, max_retries + 1):
        try:
            logger.debug(f"Database connection attempt {attempt}/{max_retries}")
            conn = psycopg2.connect(database_url, cursor_factory=RealDictCursor)

            if probe:
                cursor = conn.cursor()
                cursor.execute("SELECT 1")
                cursor.close()

            return conn

        except psycopg2.OperationalError as e:
            last_error = e
            logger.warning(f"Connection error on attempt {attempt}/{max_retries}: {e}")

            if attempt < max_retries:
                delay = retry_delay * (2 ** (attempt - 1))
                logger.info(f"Retrying in {delay:.2f} seconds...")
                time.sleep(delay)
            else:
                logger.error(f"All {max_retries} connection attempts failed")
                raise

    raise last_error if last_error else Exception("Connection failed after all retries")


@contextmanager
def try_advisory_lock(key: int):
    """
    Try to take a PostgreSQL session advisory lock without waiting

    The lock lives on its own connection for the duration of the block, so it
    is shared by every worker process using the same database. Yields True
    when the lock was obtained, False when another session holds it.
    """
    conn = get_db_connection_dict()
    conn.autocommit = True
    cursor = conn.cursor()
    locked = False

    try:
        cursor.execute("SELECT pg_try_advisory_lock(%s) AS locked", (key,))
        locked = bool(cursor.fetchone()['locked'])
        yield locked

    finally:
        if locked:
            cursor.execute("SELECT pg_advisory_unlock(%s)", (key,))
        cursor.close()
        conn.close()
