"""
repositories/product_repo.py
----------------------------
Data access layer for the shopping list.
All SQL queries related to the `shopping_list` table live here, including
the read-only reporting queries (search, pagination, date windows, totals).
"""

from typing import Any, Mapping, Optional

from psycopg2 import sql
from psycopg2.extensions import connection as PgConnection

from config import DEFAULT_PAGE_SIZE
from models.product import Product
from repositories import base
from repositories.errors import InvalidArgument
from utils.logger import get_logger

logger = get_logger(__name__)

TABLE = "shopping_list"
COLUMNS = ("id", "name", "price", "date_added", "checked", "category")
WRITABLE = COLUMNS[1:]

# Rolling window measured against the database clock, not ours.
_ADDED_WITHIN = sql.SQL("date_added > NOW() - (%s * INTERVAL '1 day')")


class ProductRepository:
    """Repository for CRUD and reporting queries on the shopping_list table."""

    def _select(self, tail: str) -> sql.Composed:
        return sql.SQL(" ").join([base.select_statement(TABLE, COLUMNS), sql.SQL(tail)])

    # ── CREATE ────────────────────────────────────────────

    async def insert(
        self, conn: PgConnection, fields: Mapping[str, Any], *, timeout: Optional[float] = None
    ) -> Product:
        """
        Insert a new product. `date_added` and `checked` fall back to the
        column defaults (now() and false) when omitted.

        Returns:
            The persisted Product, including its generated `id`.

        Raises:
            InvalidArgument: If `fields` names `id` or an unknown column.
            ConstraintViolation: If the store rejects the row.
        """
        fields = base.check_fields(fields, WRITABLE)
        query = base.insert_statement(TABLE, fields, COLUMNS)
        try:
            row = await base.run(
                conn, base.write, query, list(fields.values()), returning=True, timeout=timeout
            )
        except Exception as e:
            logger.error(f"Failed to insert product: {e}")
            raise
        product = self._row_to_product(row)
        logger.info(f"Inserted product #{product.id} ({product.name})")
        return product

    # ── READ ──────────────────────────────────────────────

    async def list_all(self, conn: PgConnection, *, timeout: Optional[float] = None) -> list[Product]:
        """Return every product, oldest id first."""
        rows = await base.run(conn, base.fetch_all, self._select("ORDER BY id"), timeout=timeout)
        return [self._row_to_product(r) for r in rows]

    async def get_by_id(
        self, conn: PgConnection, product_id: int, *, timeout: Optional[float] = None
    ) -> Optional[Product]:
        """Fetch a single product by primary key, or None if absent."""
        row = await base.run(
            conn, base.fetch_one, self._select("WHERE id = %s"), (product_id,), timeout=timeout
        )
        return self._row_to_product(row) if row else None

    async def search_by_name(
        self, conn: PgConnection, term: str, *, timeout: Optional[float] = None
    ) -> list[Product]:
        """
        Case-insensitive substring search on `name`.

        Wildcards in `term` are matched literally; an empty term matches
        every row.
        """
        if not isinstance(term, str):
            raise InvalidArgument(f"term must be a string, got {type(term).__name__}")
        rows = await base.run(
            conn,
            base.fetch_all,
            self._select("WHERE name ILIKE %s ORDER BY id"),
            (f"%{base.escape_like(term)}%",),
            timeout=timeout,
        )
        return [self._row_to_product(r) for r in rows]

    async def paginate(
        self,
        conn: PgConnection,
        page_number: int,
        page_size: int = DEFAULT_PAGE_SIZE,
        *,
        timeout: Optional[float] = None,
    ) -> list[Product]:
        """
        Return one page of products ordered by id.

        Args:
            page_number: 1-based page index.
            page_size: Rows per page.

        Returns:
            Rows ``[(page_number - 1) * page_size, page_number * page_size)``;
            an empty list past the last page.

        Raises:
            InvalidArgument: If either argument is not a positive integer.
        """
        base.check_positive_int(page_number, "page_number")
        base.check_positive_int(page_size, "page_size")
        offset = page_size * (page_number - 1)
        rows = await base.run(
            conn,
            base.fetch_all,
            self._select("ORDER BY id LIMIT %s OFFSET %s"),
            (page_size, offset),
            timeout=timeout,
        )
        return [self._row_to_product(r) for r in rows]

    async def added_since(
        self, conn: PgConnection, days_ago: float, *, timeout: Optional[float] = None
    ) -> list[Product]:
        """
        Products whose `date_added` falls within the last `days_ago` days.

        Raises:
            InvalidArgument: If `days_ago` is negative or not a number.
        """
        base.check_days(days_ago)
        query = sql.SQL(" ").join([
            base.select_statement(TABLE, COLUMNS),
            sql.SQL("WHERE"),
            _ADDED_WITHIN,
            sql.SQL("ORDER BY id"),
        ])
        rows = await base.run(conn, base.fetch_all, query, (days_ago,), timeout=timeout)
        return [self._row_to_product(r) for r in rows]

    async def list_by_checked(
        self, conn: PgConnection, checked: bool, *, timeout: Optional[float] = None
    ) -> list[Product]:
        """Products that are (or are not) ticked off."""
        if not isinstance(checked, bool):
            raise InvalidArgument(f"checked must be a bool, got {checked!r}")
        rows = await base.run(
            conn, base.fetch_all, self._select("WHERE checked = %s ORDER BY id"), (checked,),
            timeout=timeout,
        )
        return [self._row_to_product(r) for r in rows]

    async def total_cost_by_category(
        self, conn: PgConnection, *, timeout: Optional[float] = None
    ) -> list[dict]:
        """
        Sum of prices per category, computed by the database.

        Returns:
            List of dicts: [{'category': str, 'total': Decimal}, ...] ordered
            by category. Categories without rows do not appear.
        """
        query = sql.SQL(
            "SELECT category, SUM(price) AS total FROM {} GROUP BY category ORDER BY category"
        ).format(sql.Identifier(TABLE))
        rows = await base.run(conn, base.fetch_all, query, timeout=timeout)
        return [{"category": r[0], "total": r[1]} for r in rows]

    async def count_added_by_category(
        self, conn: PgConnection, days_ago: float, *, timeout: Optional[float] = None
    ) -> list[dict]:
        """
        Count products added in the last `days_ago` days per category and
        checked state.

        Returns:
            List of dicts: [{'category': str, 'checked': bool, 'items': int}, ...]
            ordered by category ascending, then item count descending.
        """
        base.check_days(days_ago)
        query = sql.SQL(
            "SELECT category, checked, COUNT(*) AS items FROM {} WHERE {} "
            "GROUP BY category, checked ORDER BY category ASC, items DESC"
        ).format(sql.Identifier(TABLE), _ADDED_WITHIN)
        rows = await base.run(conn, base.fetch_all, query, (days_ago,), timeout=timeout)
        return [{"category": r[0], "checked": r[1], "items": r[2]} for r in rows]

    # ── UPDATE ────────────────────────────────────────────

    async def update_by_id(
        self,
        conn: PgConnection,
        product_id: int,
        fields: Mapping[str, Any],
        *,
        timeout: Optional[float] = None,
    ) -> int:
        """
        Replace only the supplied fields of a product, matched on its id.

        Returns:
            Number of rows updated (0 if the id does not exist).
        """
        fields = base.check_fields(fields, WRITABLE)
        if not fields:
            raise InvalidArgument("No fields to update")
        query = base.update_statement(TABLE, fields)
        try:
            return await base.run(
                conn, base.write, query, [*fields.values(), product_id], timeout=timeout
            )
        except Exception as e:
            logger.error(f"Failed to update product #{product_id}: {e}")
            raise

    # ── DELETE ────────────────────────────────────────────

    async def delete_by_id(
        self, conn: PgConnection, product_id: int, *, timeout: Optional[float] = None
    ) -> int:
        """Delete a product by id. Returns the number of rows removed (0 or 1)."""
        try:
            deleted = await base.run(
                conn, base.write, base.delete_statement(TABLE), (product_id,), timeout=timeout
            )
        except Exception as e:
            logger.error(f"Failed to delete product #{product_id}: {e}")
            raise
        if deleted:
            logger.info(f"Deleted product #{product_id}")
        return deleted

    # ── HELPERS ───────────────────────────────────────────

    @staticmethod
    def _row_to_product(row: tuple) -> Product:
        """Convert a database row tuple to a Product domain object."""
        return Product(
            id=row[0],
            name=row[1],
            price=row[2],
            date_added=row[3],
            checked=row[4],
            category=row[5],
        )
