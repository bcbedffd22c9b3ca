"""
repositories/errors.py
----------------------
Exceptions raised by the repositories.

Absence is not an error: `get_by_id` returns None. Connection failures
are not wrapped either and reach the caller as psycopg2 errors.
"""

from typing import Optional


class RepositoryError(Exception):
    """Base class for repository errors."""


class ConstraintViolation(RepositoryError):
    """
    The store rejected a write (NOT NULL, CHECK, type mismatch, uniqueness).

    The original psycopg2 error is chained as ``__cause__``; its SQLSTATE
    is kept on ``pgcode``.
    """

    def __init__(self, message: str, pgcode: Optional[str] = None):
        super().__init__(message)
        self.pgcode = pgcode


class InvalidArgument(RepositoryError, ValueError):
    """A caller-supplied argument was rejected before reaching the store."""
