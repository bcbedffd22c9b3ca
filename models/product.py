"""
models/product.py
-----------------
Domain model for shopping list items.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional


@dataclass
class Product:
    """
    Represents a single row of the `shopping_list` table.

    Attributes:
        name: Product name.
        price: Unit price, never negative.
        category: Free-form label used for grouping (e.g., 'Main', 'Snack').
        checked: Whether the item has been ticked off the list.
        date_added: When the item was added; the store defaults it to now().
        id: Database primary key, assigned by the store.
    """
    name: str
    price: Decimal
    category: str
    checked: bool = False
    date_added: Optional[datetime] = None
    id: Optional[int] = None

    def __str__(self) -> str:
        mark = "x" if self.checked else " "
        return f"[{mark}] #{self.id} {self.name}: {self.price:.2f} | {self.category}"
