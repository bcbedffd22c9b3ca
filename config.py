"""
config.py
---------
Central configuration module. Loads all environment variables
from the .env file and exposes them as typed constants.
"""

import os
from dotenv import load_dotenv

load_dotenv()


# ── PostgreSQL ────────────────────────────────────────────
DB_HOST: str = os.getenv("DB_HOST", "localhost")
DB_PORT: int = int(os.getenv("DB_PORT", "5432"))
DB_NAME: str = os.getenv("DB_NAME", "knex_practice")
DB_USER: str = os.getenv("DB_USER", "dunder_mifflin")
DB_PASS: str = os.getenv("DB_PASS", "")

# A full connection string in DB_URL wins over the individual parts.
DATABASE_URL: str = os.getenv("DB_URL") or (
    f"postgresql://{DB_USER}:{DB_PASS}@{DB_HOST}:{DB_PORT}/{DB_NAME}"
)

# Integration tests only run when this is set.
TEST_DATABASE_URL: str = os.getenv("TEST_DB_URL", "")

# ── Connection pool ───────────────────────────────────────
DB_POOL_MIN: int = int(os.getenv("DB_POOL_MIN", "1"))
DB_POOL_MAX: int = int(os.getenv("DB_POOL_MAX", "5"))

# Server-side statement_timeout for connections opened by db.connection (0 = off)
DB_STATEMENT_TIMEOUT_MS: int = int(os.getenv("DB_STATEMENT_TIMEOUT_MS", "0"))

# ── Logging ───────────────────────────────────────────────
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

# ── Reporting ─────────────────────────────────────────────
DEFAULT_PAGE_SIZE: int = int(os.getenv("DEFAULT_PAGE_SIZE", "6"))
