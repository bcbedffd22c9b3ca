"""
repositories/ - Data Access Layer
==================================
Each repository encapsulates all SQL queries for one table.
Every operation is a coroutine that takes an open psycopg2 connection as
its first argument; repositories never open, share or close connections.
"""

from repositories.article_repo import ArticleRepository
from repositories.errors import ConstraintViolation, InvalidArgument, RepositoryError
from repositories.product_repo import ProductRepository

__all__ = [
    "ArticleRepository",
    "ProductRepository",
    "RepositoryError",
    "ConstraintViolation",
    "InvalidArgument",
]
