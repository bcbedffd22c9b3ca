"""
Tests for ProductRepository: CRUD plus the reporting queries.

Unit tests use a fake connection; the rest need PostgreSQL (TEST_DB_URL).
"""

import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from psycopg2.extensions import TRANSACTION_STATUS_IDLE

from models.product import Product
from repositories.errors import ConstraintViolation, InvalidArgument
from repositories.product_repo import ProductRepository

repo = ProductRepository()

TEST_PRODUCTS = [
    {
        "name": "Dorncogs",
        "price": Decimal("5.99"),
        "date_added": datetime(2029, 1, 22, 16, 28, 32, 615000, tzinfo=timezone.utc),
        "checked": False,
        "category": "Lunch",
    },
    {
        "name": "Creamice",
        "price": Decimal("4.99"),
        "date_added": datetime(2100, 5, 22, 16, 28, 32, 615000, tzinfo=timezone.utc),
        "checked": True,
        "category": "Snack",
    },
    {
        "name": "Bamhurgers",
        "price": Decimal("7.99"),
        "date_added": datetime(1919, 12, 22, 16, 28, 32, 615000, tzinfo=timezone.utc),
        "checked": False,
        "category": "Main",
    },
]


def seed(conn, rows=TEST_PRODUCTS):
    return [asyncio.run(repo.insert(conn, row)) for row in rows]


def seed_numbered(conn, count):
    return seed(conn, [
        {"name": f"Item {n}", "price": Decimal(n), "category": "Main"}
        for n in range(1, count + 1)
    ])


class TestProductRepositoryUnit:

    @pytest.mark.parametrize("page_number, page_size", [(0, 6), (-1, 6), (1, 0), ("2", 6), (1.5, 6)])
    def test_paginate_rejects_bad_arguments_locally(self, fake_conn, page_number, page_size):
        with pytest.raises(InvalidArgument):
            asyncio.run(repo.paginate(fake_conn, page_number, page_size))
        assert fake_conn.executed == []

    def test_paginate_binds_limit_and_offset(self, fake_conn):
        asyncio.run(repo.paginate(fake_conn, 4, 6))
        assert fake_conn.executed[0][1] == (6, 18)

    def test_paginate_defaults_to_six_per_page(self, fake_conn):
        asyncio.run(repo.paginate(fake_conn, 2))
        assert fake_conn.executed[0][1] == (6, 6)

    @pytest.mark.parametrize("days", [-1, "30", None, True])
    def test_added_since_rejects_bad_days(self, fake_conn, days):
        with pytest.raises(InvalidArgument):
            asyncio.run(repo.added_since(fake_conn, days))
        assert fake_conn.executed == []

    def test_reads_do_not_leave_a_transaction_open(self, fake_conn):
        asyncio.run(repo.added_since(fake_conn, 30))
        asyncio.run(repo.list_all(fake_conn))
        assert (fake_conn.commits, fake_conn.rollbacks) == (2, 0)

    def test_search_wraps_and_escapes_term(self, fake_conn):
        asyncio.run(repo.search_by_name(fake_conn, "50%"))
        assert fake_conn.executed[0][1] == ("%50\\%%",)

    def test_list_by_checked_requires_bool(self, fake_conn):
        with pytest.raises(InvalidArgument):
            asyncio.run(repo.list_by_checked(fake_conn, "yes"))

    def test_update_never_filters_on_unknown_column(self, fake_conn):
        with pytest.raises(InvalidArgument):
            asyncio.run(repo.update_by_id(fake_conn, 1, {"productId": 1}))

    def test_rows_map_to_products(self, fake_conn):
        when = TEST_PRODUCTS[0]["date_added"]
        fake_conn.rows = [(1, "Dorncogs", Decimal("5.99"), when, False, "Lunch")]
        assert asyncio.run(repo.list_all(fake_conn)) == [Product(id=1, **TEST_PRODUCTS[0])]

    def test_totals_map_to_dicts(self, fake_conn):
        fake_conn.rows = [("Lunch", Decimal("5.99"))]
        assert asyncio.run(repo.total_cost_by_category(fake_conn)) == [
            {"category": "Lunch", "total": Decimal("5.99")}
        ]


class TestProductRepositoryCrud:

    def test_list_all_empty(self, db):
        assert asyncio.run(repo.list_all(db)) == []

    def test_insert_then_get_by_id(self, db):
        inserted = asyncio.run(repo.insert(db, TEST_PRODUCTS[0]))
        assert inserted == Product(id=1, **TEST_PRODUCTS[0])
        assert asyncio.run(repo.get_by_id(db, inserted.id)) == inserted

    def test_insert_defaults_date_and_checked(self, db):
        product = asyncio.run(repo.insert(db, {"name": "Tofurkey", "price": Decimal("12.50"), "category": "Main"}))
        assert product.checked is False
        assert product.date_added is not None

    def test_insert_negative_price_is_constraint_violation(self, db):
        with pytest.raises(ConstraintViolation):
            asyncio.run(repo.insert(db, {"name": "Refund", "price": Decimal("-1"), "category": "Main"}))

    def test_insert_bad_price_type_is_constraint_violation(self, db):
        with pytest.raises(ConstraintViolation):
            asyncio.run(repo.insert(db, {"name": "Odd", "price": "cheap", "category": "Main"}))

    def test_get_by_id_missing(self, db):
        seed(db)
        assert asyncio.run(repo.get_by_id(db, 99)) is None

    def test_update_by_primary_key(self, db):
        seed(db)
        assert asyncio.run(repo.update_by_id(db, 2, {"checked": False, "price": Decimal("3.50")})) == 1
        product = asyncio.run(repo.get_by_id(db, 2))
        assert product == Product(
            id=2,
            name="Creamice",
            price=Decimal("3.50"),
            date_added=TEST_PRODUCTS[1]["date_added"],
            checked=False,
            category="Snack",
        )

    def test_update_missing_id_returns_zero(self, db):
        seed(db)
        assert asyncio.run(repo.update_by_id(db, 99, {"name": "ghost"})) == 0

    def test_delete_by_primary_key(self, db):
        seed(db)
        assert asyncio.run(repo.delete_by_id(db, 1)) == 1
        assert [p.name for p in asyncio.run(repo.list_all(db))] == ["Creamice", "Bamhurgers"]

    def test_delete_missing_id_leaves_table_unchanged(self, db):
        before = seed(db)
        assert asyncio.run(repo.delete_by_id(db, 99)) == 0
        assert asyncio.run(repo.list_all(db)) == before


class TestProductRepositoryReports:

    def test_search_is_case_insensitive(self, db):
        seed(db)
        lower = asyncio.run(repo.search_by_name(db, "e"))
        upper = asyncio.run(repo.search_by_name(db, "E"))
        assert [p.name for p in lower] == ["Creamice", "Bamhurgers"]
        assert upper == lower

    def test_search_empty_term_matches_all(self, db):
        assert asyncio.run(repo.search_by_name(db, "")) == seed(db)

    def test_search_treats_wildcards_literally(self, db):
        seed(db)
        assert asyncio.run(repo.search_by_name(db, "%")) == []

    def test_paginate_partial_last_page(self, db):
        seed_numbered(db, 10)
        page = asyncio.run(repo.paginate(db, 2, 6))
        assert [p.id for p in page] == [7, 8, 9, 10]

    def test_paginate_beyond_last_page_is_empty(self, db):
        seed_numbered(db, 10)
        assert asyncio.run(repo.paginate(db, 3, 6)) == []

    def test_added_since_uses_rolling_window(self, db):
        now = datetime.now(timezone.utc)
        seed(db, [
            {"name": "Fresh", "price": Decimal("1"), "category": "Snack", "date_added": now - timedelta(days=2)},
            {"name": "Stale", "price": Decimal("1"), "category": "Snack", "date_added": now - timedelta(days=40)},
        ])
        assert [p.name for p in asyncio.run(repo.added_since(db, 30))] == ["Fresh"]
        assert asyncio.run(repo.added_since(db, 1)) == []

    def test_reads_leave_the_handle_idle(self, db):
        seed(db)
        asyncio.run(repo.added_since(db, 30))
        assert db.get_transaction_status() == TRANSACTION_STATUS_IDLE

    def test_list_by_checked(self, db):
        seed(db)
        assert [p.name for p in asyncio.run(repo.list_by_checked(db, True))] == ["Creamice"]

    def test_total_cost_by_category(self, db):
        seed(db)
        assert asyncio.run(repo.total_cost_by_category(db)) == [
            {"category": "Lunch", "total": Decimal("5.99")},
            {"category": "Main", "total": Decimal("7.99")},
            {"category": "Snack", "total": Decimal("4.99")},
        ]

    def test_total_cost_adds_up_per_category(self, db):
        seed(db)
        asyncio.run(repo.insert(db, {"name": "Sides", "price": Decimal("2.00"), "category": "Main"}))
        totals = {t["category"]: t["total"] for t in asyncio.run(repo.total_cost_by_category(db))}
        assert totals == {"Lunch": Decimal("5.99"), "Main": Decimal("9.99"), "Snack": Decimal("4.99")}

    def test_total_cost_empty_table(self, db):
        assert asyncio.run(repo.total_cost_by_category(db)) == []

    def test_count_added_by_category_sorts_by_category_then_count(self, db):
        now = datetime.now(timezone.utc)
        rows = [
            ("Apple", "Snack", False), ("Pear", "Snack", True), ("Plum", "Snack", True),
            ("Soup", "Lunch", False), ("Old", "Lunch", False),
        ]
        seed(db, [
            {
                "name": name,
                "price": Decimal("1"),
                "category": category,
                "checked": checked,
                "date_added": now - timedelta(days=60 if name == "Old" else 1),
            }
            for name, category, checked in rows
        ])
        assert asyncio.run(repo.count_added_by_category(db, 30)) == [
            {"category": "Lunch", "checked": False, "items": 1},
            {"category": "Snack", "checked": True, "items": 2},
            {"category": "Snack", "checked": False, "items": 1},
        ]

    def test_concurrent_reports_on_one_connection(self, db):
        seed(db)

        async def both():
            return await asyncio.gather(
                repo.total_cost_by_category(db),
                repo.search_by_name(db, "cream"),
            )

        totals, found = asyncio.run(both())
        assert len(totals) == 3
        assert [p.name for p in found] == ["Creamice"]
