"""
Parked Orders
=============
Carts put aside at the till and resumed later.

Parked orders live in the storage port (one document, key
"parked_orders"). Entries older than the parking window are dropped the
next time the list is loaded.
"""

import logging
import uuid
from datetime import datetime, timezone, timedelta
from typing import Dict, List, Any, Optional, Callable
from dataclasses import dataclass

from cart import Cart, calculate_total, calculate_item_count
from errors import ValidationError, NotFoundError, PersistenceError
from models import CartItem, PaymentMethod
from storage import Storage


logger = logging.getLogger(__name__)


PARKED_ORDERS_STORAGE_KEY = "parked_orders"
MAX_PARKED_ORDERS = 50
MAX_PARKING_HOURS = 24


@dataclass
class ParkedOrder:
    """A cart snapshot waiting to be resumed."""
    id: str
    parked_at: datetime
    parked_by: str
    items: List[CartItem]
    payment_method: PaymentMethod = PaymentMethod.CASH
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_address: Optional[str] = None
    discount: Optional[Dict[str, Any]] = None
    note: Optional[str] = None

    @property
    def total(self) -> float:
        return calculate_total(self.items)

    @property
    def item_count(self) -> int:
        return calculate_item_count(self.items)

    def duration_label(self, now: datetime) -> str:
        """Time since parking, e.g. 45m or 2h 5m."""
        minutes = int((now - self.parked_at).total_seconds() // 60)
        if minutes < 60:
            return f"{minutes}m"
        return f"{minutes // 60}h {minutes % 60}m"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "parked_at": self.parked_at.isoformat(),
            "parked_by": self.parked_by,
            "cart": {
                "items": [item.to_dict() for item in self.items],
                "total": self.total,
                "item_count": self.item_count,
            },
            "payment_method": self.payment_method.value,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "customer_address": self.customer_address,
            "discount": self.discount,
            "note": self.note,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ParkedOrder":
        parked_at = datetime.fromisoformat(data["parked_at"])
        if parked_at.tzinfo is None:
            parked_at = parked_at.replace(tzinfo=timezone.utc)

        return cls(
            id=data["id"],
            parked_at=parked_at,
            parked_by=data.get("parked_by") or "",
            items=[CartItem.from_dict(item) for item in data["cart"]["items"]],
            payment_method=PaymentMethod(data.get("payment_method") or PaymentMethod.CASH.value),
            customer_name=data.get("customer_name"),
            customer_phone=data.get("customer_phone"),
            customer_address=data.get("customer_address"),
            discount=data.get("discount"),
            note=data.get("note"),
        )


class ParkedOrderStore:
    """Parked orders for one device, persisted through a storage port."""

    def __init__(
        self,
        storage: Storage,
        max_orders: int = MAX_PARKED_ORDERS,
        max_hours: int = MAX_PARKING_HOURS,
        now: Optional[Callable[[], datetime]] = None
    ):
        self.storage = storage
        self.max_orders = max_orders
        self.max_age = timedelta(hours=max_hours)
        self._now = now or (lambda: datetime.now(timezone.utc))

    def list(self) -> List[ParkedOrder]:
        """Unexpired parked orders, oldest first. Expired ones are purged."""
        try:
            saved = self.storage.get(PARKED_ORDERS_STORAGE_KEY) or []
        except Exception as e:
            logger.error(f"Error loading parked orders: {str(e)}")
            return []

        orders = []
        for entry in saved:
            try:
                orders.append(ParkedOrder.from_dict(entry))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Dropping unreadable parked order: {str(e)}")

        now = self._now()
        valid = [o for o in orders if now - o.parked_at < self.max_age]

        if len(valid) != len(saved):
            logger.info(f"Cleaned up {len(saved) - len(valid)} expired parked orders")
            self._save(valid)

        return valid

    def park(
        self,
        cart: Cart,
        parked_by: str,
        payment_method: PaymentMethod = PaymentMethod.CASH,
        customer_name: Optional[str] = None,
        customer_phone: Optional[str] = None,
        customer_address: Optional[str] = None,
        discount: Optional[Dict[str, Any]] = None,
        note: Optional[str] = None,
        clear_cart: bool = True
    ) -> ParkedOrder:
        """
        Park the cart's current contents.

        The cart is cleared only once the parked list has been written.

        Raises:
            ValidationError: Empty cart or parking limit reached
            PersistenceError: Parked list could not be written
        """
        if cart.is_empty():
            raise ValidationError("Cannot park an empty cart", field="items")

        orders = self.list()
        if len(orders) >= self.max_orders:
            raise ValidationError(
                f"Cannot park more than {self.max_orders} orders",
                field="parked_orders"
            )

        parked = ParkedOrder(
            id=f"parked_{uuid.uuid4().hex[:12]}",
            parked_at=self._now(),
            parked_by=parked_by,
            items=cart.items,
            payment_method=PaymentMethod(payment_method),
            customer_name=customer_name,
            customer_phone=customer_phone,
            customer_address=customer_address,
            discount=discount,
            note=note,
        )

        orders.append(parked)
        if not self._save(orders):
            raise PersistenceError(
                f"Failed to park order {parked.id}",
                operation="park_order"
            )

        if clear_cart:
            cart.clear_cart()

        logger.info(
            f"Order parked: {parked.id} ({len(orders)}/{self.max_orders})"
        )

        return parked

    def get(self, parked_id: str) -> ParkedOrder:
        for order in self.list():
            if order.id == parked_id:
                return order
        raise NotFoundError(f"Parked order not found: {parked_id}")

    def resume(self, parked_id: str, cart: Cart) -> ParkedOrder:
        """Load a parked order back into the cart and remove it from the list."""
        parked = self.get(parked_id)
        self.remove(parked_id)
        cart.restore(parked.items)
        return parked

    def remove(self, parked_id: str):
        orders = self.list()
        remaining = [o for o in orders if o.id != parked_id]
        if len(remaining) == len(orders):
            raise NotFoundError(f"Parked order not found: {parked_id}")
        if not self._save(remaining):
            raise PersistenceError(
                f"Failed to remove parked order {parked_id}",
                operation="remove_parked_order"
            )

    def search(self, query: str) -> List[ParkedOrder]:
        """Match customer name, phone or note."""
        orders = self.list()
        query = (query or "").strip()
        if not query:
            return orders

        lowered = query.lower()
        return [
            o for o in orders
            if lowered in (o.customer_name or "").lower()
            or query in (o.customer_phone or "")
            or lowered in (o.note or "").lower()
        ]

    def clear(self):
        try:
            self.storage.clear(PARKED_ORDERS_STORAGE_KEY)
        except Exception as e:
            logger.error(f"Error clearing parked orders: {str(e)}")

    def _save(self, orders: List[ParkedOrder]) -> bool:
        try:
            self.storage.set(
                PARKED_ORDERS_STORAGE_KEY,
                [o.to_dict() for o in orders]
            )
            return True
        except Exception as e:
            logger.error(f"Error saving parked orders: {str(e)}")
            return False
