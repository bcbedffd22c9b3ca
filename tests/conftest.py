"""
Shared fixtures.

Unit tests run against `FakeConnection` and need no server. Tests that take
the `db` fixture talk to a real PostgreSQL and are skipped unless
TEST_DB_URL points at a disposable database (its tables are truncated).
"""

import threading

import psycopg2
import pytest
from psycopg2.extensions import QueryCanceledError

from config import TEST_DATABASE_URL
from db.init_db import create_tables, truncate_tables


class FakeCursor:
    """Minimal DB-API cursor that records statements and replays canned rows."""

    def __init__(self, conn):
        self.conn = conn
        self.rowcount = -1

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def execute(self, query, params=None):
        self.conn.executed.append((query, params))
        self.conn.started.set()
        if isinstance(query, str) and query in self.conn.hold:
            # Runs until the test releases it.
            self.conn.released.wait(5)
        if self.conn.block:
            # Hang like a slow query until the connection is cancelled.
            self.conn.cancelled.wait(5)
            raise QueryCanceledError("canceling statement due to user request")
        if self.conn.error is not None:
            raise self.conn.error
        self.rowcount = self.conn.rowcount

    def fetchall(self):
        return list(self.conn.rows)

    def fetchone(self):
        return self.conn.rows[0] if self.conn.rows else None


class FakeConnection:
    """Stands in for a psycopg2 connection in tests that need no server."""

    closed = 0

    def __init__(self, rows=(), rowcount=0, error=None, block=False, hold=()):
        self.rows = list(rows)
        self.rowcount = rowcount
        self.error = error
        self.block = block
        self.hold = set(hold)
        self.executed = []
        self.commits = 0
        self.rollbacks = 0
        self.cancelled = threading.Event()
        self.started = threading.Event()
        self.released = threading.Event()

    def cursor(self):
        return FakeCursor(self)

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1

    def cancel(self):
        self.cancelled.set()


@pytest.fixture
def fake_conn():
    return FakeConnection()


@pytest.fixture(scope="session")
def pg_conn():
    """A real PostgreSQL connection; tests using it skip without TEST_DB_URL."""
    if not TEST_DATABASE_URL:
        pytest.skip("TEST_DB_URL not set")
    conn = psycopg2.connect(TEST_DATABASE_URL)
    create_tables(conn)
    yield conn
    conn.close()


@pytest.fixture
def db(pg_conn):
    # Clean slate before and after every scenario
    truncate_tables(pg_conn)
    yield pg_conn
    truncate_tables(pg_conn)


@pytest.fixture
def blocking_conn():
    """A connection whose statements hang until cancel() is called."""
    return FakeConnection(block=True)


@pytest.fixture
def make_conn():
    """Factory for fake connections with custom behaviour."""
    return FakeConnection
