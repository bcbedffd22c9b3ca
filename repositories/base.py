"""
repositories/base.py
--------------------
Query-construction and dispatch helpers shared by the repositories.

Statements are composed with `psycopg2.sql` so table and column names are
quoted as identifiers and every value travels as a bound parameter.
The driver is blocking, so each statement runs in a worker thread and the
caller awaits it without holding up the event loop.
"""

import asyncio
import math
import numbers
import threading
import weakref
from decimal import Decimal
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence

import psycopg2
from psycopg2 import sql
from psycopg2.extensions import connection as PgConnection

from repositories.errors import ConstraintViolation, InvalidArgument
from utils.logger import get_logger

logger = get_logger(__name__)


# ── VALIDATION ───────────────────────────────────────────

def check_fields(fields: Mapping[str, Any], writable: Iterable[str]) -> dict:
    """
    Validate a write mapping against the table's writable columns.

    Raises:
        InvalidArgument: If `fields` is not a mapping, names the primary key,
            or names a column the table does not have.
    """
    if not isinstance(fields, Mapping):
        raise InvalidArgument(f"Expected a mapping of fields, got {type(fields).__name__}")
    if not all(isinstance(key, str) for key in fields):
        raise InvalidArgument("Field names must be strings")
    if "id" in fields:
        raise InvalidArgument("id is assigned by the database and cannot be written")
    unknown = sorted(set(fields) - set(writable))
    if unknown:
        raise InvalidArgument(f"Unknown field(s): {', '.join(unknown)}")
    return dict(fields)


def check_positive_int(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidArgument(f"{name} must be a positive integer, got {value!r}")
    return value


def _is_finite(value: Any) -> bool:
    if isinstance(value, Decimal):
        return value.is_finite()
    return math.isfinite(value)


def check_days(value: Any) -> Any:
    if (
        isinstance(value, bool)
        or not isinstance(value, (numbers.Real, Decimal))
        or not _is_finite(value)
        or value < 0
    ):
        raise InvalidArgument(f"days_ago must be a non-negative number, got {value!r}")
    return value


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so `term` matches literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


# ── STATEMENTS ───────────────────────────────────────────

def _columns(columns: Sequence[str]) -> sql.Composed:
    return sql.SQL(", ").join(map(sql.Identifier, columns))


def select_statement(table: str, columns: Sequence[str]) -> sql.Composed:
    """``SELECT <columns> FROM <table>``; callers append the rest."""
    return sql.SQL("SELECT {} FROM {}").format(_columns(columns), sql.Identifier(table))


def insert_statement(table: str, fields: Mapping[str, Any], returning: Sequence[str]) -> sql.Composed:
    """``INSERT ... RETURNING``; an empty mapping inserts the column defaults."""
    if not fields:
        return sql.SQL("INSERT INTO {} DEFAULT VALUES RETURNING {}").format(
            sql.Identifier(table), _columns(returning)
        )
    return sql.SQL("INSERT INTO {} ({}) VALUES ({}) RETURNING {}").format(
        sql.Identifier(table),
        _columns(list(fields)),
        sql.SQL(", ").join(sql.Placeholder() * len(fields)),
        _columns(returning),
    )


def update_statement(table: str, fields: Mapping[str, Any]) -> sql.Composed:
    """``UPDATE <table> SET a = %s, ... WHERE id = %s``."""
    assignments = sql.SQL(", ").join(
        sql.SQL("{} = {}").format(sql.Identifier(name), sql.Placeholder()) for name in fields
    )
    return sql.SQL("UPDATE {} SET {} WHERE id = %s").format(sql.Identifier(table), assignments)


def delete_statement(table: str) -> sql.Composed:
    return sql.SQL("DELETE FROM {} WHERE id = %s").format(sql.Identifier(table))


# ── EXECUTION (blocking, runs in a worker thread) ────────

def _rollback(conn: PgConnection) -> None:
    if not conn.closed:
        conn.rollback()


def _read(conn: PgConnection, query, params: Sequence, one: bool):
    try:
        with conn.cursor() as cur:
            cur.execute(query, params)
            result = cur.fetchone() if one else cur.fetchall()
        # Close the implicit transaction: NOW() and read locks must not outlive the read.
        conn.commit()
        return result
    except Exception:
        _rollback(conn)
        raise


def fetch_all(conn: PgConnection, query, params: Sequence = ()) -> list[tuple]:
    return _read(conn, query, params, one=False)


def fetch_one(conn: PgConnection, query, params: Sequence = ()) -> Optional[tuple]:
    return _read(conn, query, params, one=True)


def write(conn: PgConnection, query, params: Sequence = (), returning: bool = False):
    """
    Execute a single write statement and commit it.

    Returns:
        The first returned row when `returning` is set, otherwise the
        number of affected rows.

    Raises:
        ConstraintViolation: If the store rejects the data.
    """
    try:
        with conn.cursor() as cur:
            cur.execute(query, params)
            result = cur.fetchone() if returning else cur.rowcount
        conn.commit()
        return result
    except (psycopg2.IntegrityError, psycopg2.DataError) as e:
        _rollback(conn)
        raise ConstraintViolation(str(e).strip(), pgcode=e.pgcode) from e
    except Exception:
        _rollback(conn)
        raise


# ── DISPATCH ─────────────────────────────────────────────

# One statement at a time per connection, so a connection-wide cancel()
# only ever hits the statement of the caller that asked for it.
_statement_locks: "weakref.WeakKeyDictionary[Any, threading.Lock]" = weakref.WeakKeyDictionary()
_statement_locks_guard = threading.Lock()


def _statement_lock(conn: PgConnection) -> threading.Lock:
    with _statement_locks_guard:
        lock = _statement_locks.get(conn)
        if lock is None:
            lock = _statement_locks[conn] = threading.Lock()
        return lock


class _Call:
    """State of one dispatched operation, shared by the caller and its worker thread."""

    def __init__(self):
        self.guard = threading.Lock()
        self.running = False
        self.abandoned = False


def _execute(call: _Call, func: Callable[..., Any], conn: PgConnection, *args: Any, **kwargs: Any) -> Any:
    with _statement_lock(conn):
        with call.guard:
            if call.abandoned:
                return None
            call.running = True
        try:
            return func(conn, *args, **kwargs)
        finally:
            # The next statement cannot start before this flag is cleared.
            with call.guard:
                call.running = False


def _abandon(conn: PgConnection, call: _Call) -> None:
    with call.guard:
        call.abandoned = True
        if call.running:
            logger.warning("Query abandoned by caller; cancelling statement on the server.")
            conn.cancel()
        else:
            logger.warning("Query abandoned by caller before it started; skipping it.")


async def run(
    conn: PgConnection,
    func: Callable[..., Any],
    *args: Any,
    timeout: Optional[float] = None,
    **kwargs: Any,
) -> Any:
    """
    Await ``func(conn, *args, **kwargs)`` in a worker thread.

    Operations sharing a connection run one after another. If `timeout`
    elapses or the awaiting task is cancelled, a statement that is already
    running is cancelled on the server, one still queued is never sent,
    and the asyncio exception propagates. Other callers' statements on the
    same connection are left alone.
    """
    call = _Call()
    try:
        return await asyncio.wait_for(asyncio.to_thread(_execute, call, func, conn, *args, **kwargs), timeout)
    except (asyncio.TimeoutError, asyncio.CancelledError):
        _abandon(conn, call)
        raise
