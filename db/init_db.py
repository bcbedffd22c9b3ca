"""
db/init_db.py
-------------
Creates the database schema (tables) if they do not already exist.
Run this module directly to initialize a fresh database:
    python -m db.init_db
"""

from psycopg2.extensions import connection as PgConnection

from utils.logger import get_logger

logger = get_logger(__name__)

TABLES = ("blogful_articles", "shopping_list")

SCHEMA_SQL = """
-- Articles table: blog posts
CREATE TABLE IF NOT EXISTS blogful_articles (
    id              SERIAL PRIMARY KEY,
    title           TEXT NOT NULL,
    content         TEXT,
    date_published  TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

-- Shopping list table: one row per product to buy
CREATE TABLE IF NOT EXISTS shopping_list (
    id              SERIAL PRIMARY KEY,
    name            TEXT NOT NULL,
    price           NUMERIC(12,2) NOT NULL CHECK (price >= 0),
    date_added      TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    checked         BOOLEAN NOT NULL DEFAULT FALSE,
    category        TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_shopping_list_date_added ON shopping_list(date_added);
CREATE INDEX IF NOT EXISTS idx_shopping_list_category ON shopping_list(category);
"""


def create_tables(conn: PgConnection) -> None:
    """
    Execute the schema SQL to create all tables.
    Safe to call multiple times (uses IF NOT EXISTS).
    """
    try:
        with conn.cursor() as cur:
            cur.execute(SCHEMA_SQL)
        conn.commit()
        logger.info("Database schema initialized successfully.")
    except Exception as e:
        conn.rollback()
        logger.error(f"Failed to initialize schema: {e}")
        raise


def truncate_tables(conn: PgConnection) -> None:
    """Empty every table and reset the id sequences."""
    try:
        with conn.cursor() as cur:
            cur.execute(f"TRUNCATE {', '.join(TABLES)} RESTART IDENTITY;")
        conn.commit()
    except Exception as e:
        conn.rollback()
        logger.error(f"Failed to truncate tables: {e}")
        raise


if __name__ == "__main__":
    from db.connection import connect
    conn = connect()
    try:
        create_tables(conn)
    finally:
        conn.close()
    print("Database schema created successfully.")
