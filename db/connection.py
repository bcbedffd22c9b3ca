"""
db/connection.py
----------------
Opens PostgreSQL connections for the repositories to use.
Uses psycopg2's SimpleConnectionPool for efficient connection reuse, and
a plain `connect()` for one-off scripts and tests.
"""

from contextlib import contextmanager
from typing import Iterator, Optional

import psycopg2
from psycopg2 import pool
from psycopg2.extensions import connection as PgConnection

from config import DATABASE_URL, DB_POOL_MAX, DB_POOL_MIN, DB_STATEMENT_TIMEOUT_MS
from utils.logger import get_logger

logger = get_logger(__name__)

_pool: pool.SimpleConnectionPool | None = None


def _connect_kwargs() -> dict:
    if DB_STATEMENT_TIMEOUT_MS > 0:
        return {"options": f"-c statement_timeout={DB_STATEMENT_TIMEOUT_MS}"}
    return {}


def connect(dsn: Optional[str] = None) -> PgConnection:
    """
    Open a single, unpooled connection.

    Args:
        dsn: Connection string; defaults to ``config.DATABASE_URL``.

    Raises:
        psycopg2.OperationalError: If the database is unreachable.
    """
    try:
        return psycopg2.connect(dsn or DATABASE_URL, **_connect_kwargs())
    except psycopg2.OperationalError as e:
        logger.error(f"Failed to connect to database: {e}")
        raise


def init_pool(min_conn: int = DB_POOL_MIN, max_conn: int = DB_POOL_MAX) -> None:
    """
    Initialize the database connection pool.

    Args:
        min_conn: Minimum number of connections to keep open.
        max_conn: Maximum number of connections allowed.

    Raises:
        psycopg2.OperationalError: If the database is unreachable.
    """
    global _pool
    if _pool is not None:
        return
    try:
        _pool = pool.SimpleConnectionPool(min_conn, max_conn, DATABASE_URL, **_connect_kwargs())
        logger.info("Database connection pool initialized successfully.")
    except psycopg2.OperationalError as e:
        logger.error(f"Failed to initialize database pool: {e}")
        raise


def get_connection() -> PgConnection:
    """
    Get a connection from the pool.

    Raises:
        RuntimeError: If the pool has not been initialized.
    """
    if _pool is None:
        raise RuntimeError("Database pool not initialized. Call init_pool() first.")
    return _pool.getconn()


def release_connection(conn: PgConnection) -> None:
    """Return a connection back to the pool."""
    if _pool is not None:
        _pool.putconn(conn)


@contextmanager
def connection() -> Iterator[PgConnection]:
    """Borrow a pooled connection for the duration of a ``with`` block."""
    conn = get_connection()
    try:
        yield conn
    finally:
        release_connection(conn)


def close_pool() -> None:
    """Close all connections in the pool."""
    global _pool
    if _pool is not None:
        _pool.closeall()
        _pool = None
        logger.info("Database connection pool closed.")
