"""
repositories/article_repo.py
----------------------------
Data access layer for blog articles.
All SQL queries related to the `blogful_articles` table live here.
"""

from typing import Any, Mapping, Optional

from psycopg2 import sql
from psycopg2.extensions import connection as PgConnection

from models.article import Article
from repositories import base
from repositories.errors import InvalidArgument
from utils.logger import get_logger

logger = get_logger(__name__)

TABLE = "blogful_articles"
COLUMNS = ("id", "title", "content", "date_published")
WRITABLE = COLUMNS[1:]


class ArticleRepository:
    """Repository for CRUD operations on the blogful_articles table."""

    # ── CREATE ────────────────────────────────────────────

    async def insert(
        self, conn: PgConnection, fields: Mapping[str, Any], *, timeout: Optional[float] = None
    ) -> Article:
        """
        Insert a new article.

        Args:
            conn: Open database connection.
            fields: Any of `title`, `content`, `date_published`.

        Returns:
            The persisted Article, including its generated `id`.

        Raises:
            InvalidArgument: If `fields` names `id` or an unknown column.
            ConstraintViolation: If the store rejects the row (e.g. no title).
        """
        fields = base.check_fields(fields, WRITABLE)
        query = base.insert_statement(TABLE, fields, COLUMNS)
        try:
            row = await base.run(
                conn, base.write, query, list(fields.values()), returning=True, timeout=timeout
            )
        except Exception as e:
            logger.error(f"Failed to insert article: {e}")
            raise
        article = self._row_to_article(row)
        logger.info(f"Inserted article #{article.id}")
        return article

    # ── READ ──────────────────────────────────────────────

    async def list_all(self, conn: PgConnection, *, timeout: Optional[float] = None) -> list[Article]:
        """Return every article, oldest id first. Empty list when the table is empty."""
        query = sql.SQL("{} ORDER BY id").format(base.select_statement(TABLE, COLUMNS))
        rows = await base.run(conn, base.fetch_all, query, timeout=timeout)
        return [self._row_to_article(r) for r in rows]

    async def get_by_id(
        self, conn: PgConnection, article_id: int, *, timeout: Optional[float] = None
    ) -> Optional[Article]:
        """
        Fetch a single article by primary key.

        Returns:
            An Article, or None if no row has that id.
        """
        query = sql.SQL("{} WHERE id = %s").format(base.select_statement(TABLE, COLUMNS))
        row = await base.run(conn, base.fetch_one, query, (article_id,), timeout=timeout)
        return self._row_to_article(row) if row else None

    # ── UPDATE ────────────────────────────────────────────

    async def update_by_id(
        self,
        conn: PgConnection,
        article_id: int,
        fields: Mapping[str, Any],
        *,
        timeout: Optional[float] = None,
    ) -> int:
        """
        Replace only the supplied fields of an article.

        Returns:
            Number of rows updated (0 if the id does not exist).

        Raises:
            InvalidArgument: If `fields` is empty, names `id` or an unknown column.
            ConstraintViolation: If the store rejects the new values.
        """
        fields = base.check_fields(fields, WRITABLE)
        if not fields:
            raise InvalidArgument("No fields to update")
        query = base.update_statement(TABLE, fields)
        try:
            return await base.run(
                conn, base.write, query, [*fields.values(), article_id], timeout=timeout
            )
        except Exception as e:
            logger.error(f"Failed to update article #{article_id}: {e}")
            raise

    # ── DELETE ────────────────────────────────────────────

    async def delete_by_id(
        self, conn: PgConnection, article_id: int, *, timeout: Optional[float] = None
    ) -> int:
        """
        Delete an article by primary key.

        Returns:
            Number of rows removed (0 or 1).
        """
        try:
            deleted = await base.run(
                conn, base.write, base.delete_statement(TABLE), (article_id,), timeout=timeout
            )
        except Exception as e:
            logger.error(f"Failed to delete article #{article_id}: {e}")
            raise
        if deleted:
            logger.info(f"Deleted article #{article_id}")
        return deleted

    # ── HELPERS ───────────────────────────────────────────

    @staticmethod
    def _row_to_article(row: tuple) -> Article:
        """Convert a database row tuple to an Article domain object."""
        return Article(
            id=row[0],
            title=row[1],
            content=row[2],
            date_published=row[3],
        )
