"""
models/article.py
-----------------
Domain model for blog articles.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class Article:
    """
    Represents a single row of the `blogful_articles` table.

    Attributes:
        title: Headline of the article.
        content: Body text (may be empty).
        date_published: Publication timestamp.
        id: Database primary key, assigned by the store.
    """
    title: str
    content: Optional[str] = None
    date_published: Optional[datetime] = None
    id: Optional[int] = None

    def __str__(self) -> str:
        return f"#{self.id} {self.title} ({self.date_published})"
