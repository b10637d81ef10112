"""
Cart Module
===========
Cashier cart aggregate: line items, running totals, open/closed flag.

Totals are pure functions of the item list:
    total      = round(sum((price + modifiers_total) * quantity), 2)
    item_count = sum(quantity)

Rounding happens once, after summation. None of the operations can fail;
a non-positive quantity is treated as delete intent. Every mutation is
written through the storage port and the cart reloads from it on start.
"""

import logging
from typing import Dict, List, Any, Optional, Iterable

from models import CartItem
from modifiers import item_identity
from storage import Storage, MemoryStorage


logger = logging.getLogger(__name__)


DEFAULT_STORAGE_KEY = "cart"


def calculate_total(items: Iterable[CartItem]) -> float:
    """Cart total, rounded after summation."""
    total = sum(
        (item.price + item.modifiers_total) * item.quantity for item in items
    )
    return round(total, 2)


def calculate_item_count(items: Iterable[CartItem]) -> int:
    """Number of units across all lines."""
    return sum(item.quantity for item in items)


class Cart:
    """
    Cart for one device/session.

    is_open is a presentation flag: it opens when the first item lands in
    an empty cart and closes when the cart empties.
    """

    def __init__(
        self,
        storage: Optional[Storage] = None,
        storage_key: str = DEFAULT_STORAGE_KEY
    ):
        self.storage = storage or MemoryStorage()
        self.storage_key = storage_key

        self._items: List[CartItem] = []
        self.total = 0.0
        self.item_count = 0
        self.is_open = False

        self.load()

    # ========================================================================
    # ITEM OPERATIONS
    # ========================================================================

    def add_item(self, item: CartItem) -> CartItem:
        """
        Add one unit of an item.

        A line with the same identity (id, name, modifier combination) gets
        its quantity incremented; otherwise a new line with quantity 1 is
        appended. The incoming quantity is ignored.

        Args:
            item: Item to add

        Returns:
            The resulting cart line
        """
        was_empty = len(self._items) == 0
        identity = item_identity(item)

        for index, existing in enumerate(self._items):
            if item_identity(existing) == identity:
                updated = existing.with_quantity(existing.quantity + 1)
                self._items[index] = updated
                self._commit()
                logger.debug(f"Incremented {updated.name} to {updated.quantity}")
                return updated

        line = item.with_quantity(1)
        self._items.append(line)

        if was_empty:
            self.is_open = True

        self._commit()
        logger.debug(f"Added {line.name} to cart")

        return line

    def remove_item(self, item_id: str):
        """Remove the line(s) with this id. Closes the cart when it empties."""
        self._items = [item for item in self._items if item.id != item_id]

        if not self._items:
            self.is_open = False

        self._commit()

    def update_quantity(self, item_id: str, quantity: int):
        """
        Set a line's quantity.

        quantity <= 0 removes the line. No upper bound is enforced.
        """
        if quantity <= 0:
            self.remove_item(item_id)
            return

        self._items = [
            item.with_quantity(quantity) if item.id == item_id else item
            for item in self._items
        ]
        self._commit()

    def clear_cart(self):
        """Empty the cart and close it."""
        self._items = []
        self.is_open = False
        self._commit()

    def restore(self, items: Iterable[CartItem]):
        """Replace the cart contents (used when resuming a parked order)."""
        self._items = list(items)
        self.is_open = bool(self._items)
        self._commit()

    # ========================================================================
    # PRESENTATION FLAG
    # ========================================================================

    def open_cart(self):
        self.is_open = True

    def close_cart(self):
        self.is_open = False

    def toggle_cart(self):
        self.is_open = not self.is_open

    # ========================================================================
    # ACCESSORS
    # ========================================================================

    @property
    def items(self) -> List[CartItem]:
        return list(self._items)

    def get_item(self, item_id: str) -> Optional[CartItem]:
        for item in self._items:
            if item.id == item_id:
                return item
        return None

    def is_empty(self) -> bool:
        return len(self._items) == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": [item.to_dict() for item in self._items],
            "total": self.total,
            "item_count": self.item_count,
        }

    # ========================================================================
    # PERSISTENCE
    # ========================================================================

    def load(self):
        """Reload cart contents from storage. Totals are recomputed, not trusted."""
        try:
            saved = self.storage.get(self.storage_key)
        except Exception as e:
            logger.error(f"Error loading cart from storage: {str(e)}")
            saved = None

        if saved:
            try:
                self._items = [
                    CartItem.from_dict(item) for item in saved.get("items", [])
                ]
            except (KeyError, TypeError, ValueError) as e:
                logger.error(f"Discarding unreadable saved cart: {str(e)}")
                self._items = []

        self._recompute_totals()

    def _commit(self):
        self._recompute_totals()

        try:
            self.storage.set(self.storage_key, self.to_dict())
        except Exception as e:
            logger.error(f"Error saving cart to storage: {str(e)}")

    def _recompute_totals(self):
        self.total = calculate_total(self._items)
        self.item_count = calculate_item_count(self._items)
