"""
main.py
-------
Entry point for the shopping list drills.

Responsibilities:
    - Open the database connection (the repositories never do).
    - Optionally create the schema.
    - Run one reporting query and print the rows.

Usage:
    python main.py init-db
    python main.py search Tofurkey
    python main.py page 4 [--size 6]
    python main.py since 30
    python main.py totals
    python main.py counts 30
"""

import argparse
import asyncio
from typing import Optional, Sequence

from db.connection import close_pool, connection, init_pool
from db.init_db import create_tables
from repositories.product_repo import ProductRepository
from config import DEFAULT_PAGE_SIZE
from utils.logger import get_logger

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Shopping list reporting drills.")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create the tables if they do not exist.")

    search = sub.add_parser("search", help="Products whose name contains TERM (any case).")
    search.add_argument("term")

    page = sub.add_parser("page", help="One page of products.")
    page.add_argument("number", type=int)
    page.add_argument("--size", type=int, default=DEFAULT_PAGE_SIZE)

    since = sub.add_parser("since", help="Products added in the last DAYS days.")
    since.add_argument("days", type=float)

    sub.add_parser("totals", help="Total cost per category.")

    counts = sub.add_parser("counts", help="Items added per category in the last DAYS days.")
    counts.add_argument("days", type=float)
    return parser


async def run_drill(conn, args: argparse.Namespace) -> list:
    """Dispatch one parsed command to the repository and return its rows."""
    repo = ProductRepository()
    if args.command == "search":
        return await repo.search_by_name(conn, args.term)
    if args.command == "page":
        return await repo.paginate(conn, args.number, args.size)
    if args.command == "since":
        return await repo.added_since(conn, args.days)
    if args.command == "totals":
        return await repo.total_cost_by_category(conn)
    if args.command == "counts":
        return await repo.count_added_by_category(conn, args.days)
    raise ValueError(f"Unknown command: {args.command}")


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    init_pool()
    try:
        with connection() as conn:
            if args.command == "init-db":
                create_tables(conn)
                return
            rows = asyncio.run(run_drill(conn, args))
            logger.info(f"{args.command}: {len(rows)} row(s)")
            for row in rows:
                print(row)
    finally:
        close_pool()


if __name__ == "__main__":
    main()
