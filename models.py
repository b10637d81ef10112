"""
Order Domain Models
===================
Records shared by the cart, checkout and mutation layers.

Persisted rows use snake_case column names. Numeric columns coming back
from the database may be strings (Postgres numeric) and are parsed here.
Timestamps are ISO-8601 strings in UTC.
"""

from typing import Dict, List, Any, Optional, Tuple
from datetime import datetime, timezone
from dataclasses import dataclass, field, asdict, replace
from enum import Enum

from modifiers import modifiers_total, effective_unit_price


def utc_now() -> str:
    """Current UTC time as ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def _to_float(value: Any, default: Optional[float] = None) -> Optional[float]:
    if value is None or value == "":
        return default
    return float(value)


# ============================================================================
# ENUMS
# ============================================================================

class OrderStatus(str, Enum):
    """Live order status."""
    COMPLETED = "completed"
    CANCELED = "canceled"
    MODIFIED = "modified"


class PaymentMethod(str, Enum):
    """How an order was settled."""
    CASH = "cash"
    CARD = "card"
    MIXED = "mixed"


class DiscountType(str, Enum):
    """Order-scoped discount kind."""
    PERCENTAGE = "percentage"
    AMOUNT = "amount"


class ModifierType(str, Enum):
    """Extras are priced, withouts are informational only."""
    EXTRA = "extra"
    WITHOUT = "without"


class ModificationType(str, Enum):
    """Tag stored on every ModifiedOrder audit record."""
    ITEM_ADDED = "item_added"
    ITEM_REMOVED = "item_removed"
    QUANTITY_CHANGED = "quantity_changed"
    ITEM_REPLACED = "item_replaced"
    MULTIPLE_CHANGES = "multiple_changes"


class ItemType(str, Enum):
    """Menu category recorded on frozen order items."""
    PIZZA = "pizza"
    PIE = "pie"
    MINI_PIE = "mini_pie"
    SANDWICH = "sandwich"
    BURGER = "burger"
    SHAWERMA = "shawerma"
    APPETIZER = "appetizer"
    BEVERAGE = "beverage"
    DESSERT = "dessert"
    SIDE_ORDER = "side_order"
    OTHER = "other"


# Checked in order
_CATEGORY_KEYWORDS: Tuple[Tuple[str, ItemType], ...] = (
    ("pizza", ItemType.PIZZA),
    ("pie", ItemType.PIE),
    ("sandwich", ItemType.SANDWICH),
    ("burger", ItemType.BURGER),
    ("shawerma", ItemType.SHAWERMA),
    ("shawarma", ItemType.SHAWERMA),
    ("appetizer", ItemType.APPETIZER),
    ("beverage", ItemType.BEVERAGE),
    ("drink", ItemType.BEVERAGE),
    ("dessert", ItemType.DESSERT),
    ("side", ItemType.SIDE_ORDER),
)


def item_type_for_category(category: str) -> ItemType:
    """Map a free-form cart category onto the order item type enum."""
    normalized = (category or "").lower()

    if "mini" in normalized and "pie" in normalized:
        return ItemType.MINI_PIE

    for keyword, item_type in _CATEGORY_KEYWORDS:
        if keyword in normalized:
            return item_type

    return ItemType.OTHER


# ============================================================================
# CART RECORDS
# ============================================================================

@dataclass(frozen=True)
class Modifier:
    """Per-item customization selected at the till."""
    id: str
    name: str
    type: ModifierType
    price: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type.value,
            "price": self.price,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Modifier":
        return cls(
            id=str(data["id"]),
            name=data["name"],
            type=ModifierType(data["type"]),
            price=_to_float(data.get("price"), 0.0),
        )


@dataclass(frozen=True)
class CartItem:
    """
    Line item held by the cart.

    Immutable: quantity changes produce a new instance via with_quantity().
    """
    id: str
    name: str
    price: float
    category: str
    quantity: int = 1
    modifiers: Tuple[Modifier, ...] = field(default_factory=tuple)
    description: Optional[str] = None
    image: Optional[str] = None

    @property
    def modifiers_total(self) -> float:
        return modifiers_total(self.modifiers)

    @property
    def unit_price(self) -> float:
        return effective_unit_price(self)

    def with_quantity(self, quantity: int) -> "CartItem":
        return replace(self, quantity=quantity)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "price": self.price,
            "quantity": self.quantity,
            "category": self.category,
            "description": self.description,
            "image": self.image,
            "modifiers": [m.to_dict() for m in self.modifiers],
            "modifiers_total": self.modifiers_total,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CartItem":
        return cls(
            id=str(data["id"]),
            name=data["name"],
            price=_to_float(data.get("price"), 0.0),
            category=data.get("category", ""),
            quantity=int(data.get("quantity", 1)),
            modifiers=tuple(
                Modifier.from_dict(m) for m in (data.get("modifiers") or [])
            ),
            description=data.get("description"),
            image=data.get("image"),
        )


# ============================================================================
# ORDER RECORDS
# ============================================================================

@dataclass(frozen=True)
class OrderItem:
    """
    Order line frozen at order-creation time.

    unit_price already includes extra modifiers.
    """
    id: str
    type: ItemType
    name: str
    name_ar: str
    quantity: int
    unit_price: float
    total_price: float
    details: Dict[str, Any] = field(default_factory=dict)

    def with_quantity(self, quantity: int) -> "OrderItem":
        return replace(
            self,
            quantity=quantity,
            total_price=round(self.unit_price * quantity, 2)
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["type"] = self.type.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OrderItem":
        unit_price = _to_float(data.get("unit_price"), 0.0)
        quantity = int(data.get("quantity", 1))
        total_price = _to_float(data.get("total_price"))
        return cls(
            id=str(data["id"]),
            type=ItemType(data.get("type", ItemType.OTHER.value)),
            name=data["name"],
            name_ar=data.get("name_ar") or data["name"],
            quantity=quantity,
            unit_price=unit_price,
            total_price=(
                total_price if total_price is not None
                else round(unit_price * quantity, 2)
            ),
            details=dict(data.get("details") or {}),
        )

    @classmethod
    def from_cart_item(cls, item: CartItem) -> "OrderItem":
        """Freeze a cart line into an order line."""
        unit_price = round(item.unit_price, 2)
        return cls(
            id=item.id,
            type=item_type_for_category(item.category),
            name=item.name,
            name_ar=item.name,
            quantity=item.quantity,
            unit_price=unit_price,
            total_price=round(unit_price * item.quantity, 2),
            details={
                "description": item.description,
                "image": item.image,
                "modifiers": [m.to_dict() for m in item.modifiers],
                "category": item.category,
            },
        )


@dataclass(frozen=True)
class Order:
    """Live order row."""
    id: str
    order_number: str
    items: Tuple[OrderItem, ...]
    total_amount: float
    payment_method: PaymentMethod
    status: OrderStatus
    created_by: str
    created_at: str
    updated_at: str
    customer_name: Optional[str] = None
    daily_serial: Optional[str] = None
    serial_date: Optional[str] = None
    discount_type: Optional[DiscountType] = None
    discount_value: Optional[float] = None
    discount_amount: float = 0.0
    event_discount_name: Optional[str] = None
    event_discount_percentage: Optional[float] = None
    event_discount_amount: float = 0.0
    cash_amount: Optional[float] = None
    card_amount: Optional[float] = None
    cash_received: Optional[float] = None
    change_amount: Optional[float] = None

    @property
    def subtotal(self) -> float:
        """Sum of item totals before any discount."""
        return round(sum(item.total_price for item in self.items), 2)

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    def to_dict(self) -> Dict[str, Any]:
        """Full JSON-safe snapshot (used for audit records)."""
        return {
            "id": self.id,
            "order_number": self.order_number,
            "daily_serial": self.daily_serial,
            "serial_date": self.serial_date,
            "customer_name": self.customer_name,
            "items": [item.to_dict() for item in self.items],
            "total_amount": self.total_amount,
            "payment_method": self.payment_method.value,
            "status": self.status.value,
            "discount_type": self.discount_type.value if self.discount_type else None,
            "discount_value": self.discount_value,
            "discount_amount": self.discount_amount,
            "event_discount_name": self.event_discount_name,
            "event_discount_percentage": self.event_discount_percentage,
            "event_discount_amount": self.event_discount_amount,
            "cash_amount": self.cash_amount,
            "card_amount": self.card_amount,
            "cash_received": self.cash_received,
            "change_amount": self.change_amount,
            "created_by": self.created_by,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def to_row(self) -> Dict[str, Any]:
        return self.to_dict()

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Order":
        discount_type = row.get("discount_type")
        return cls(
            id=str(row["id"]),
            order_number=row["order_number"],
            daily_serial=row.get("daily_serial") or None,
            serial_date=row.get("serial_date") or None,
            customer_name=row.get("customer_name"),
            items=tuple(
                OrderItem.from_dict(item) for item in (row.get("items") or [])
            ),
            total_amount=_to_float(row.get("total_amount"), 0.0),
            payment_method=PaymentMethod(row["payment_method"]),
            status=OrderStatus(row.get("status") or OrderStatus.COMPLETED.value),
            discount_type=DiscountType(discount_type) if discount_type else None,
            discount_value=_to_float(row.get("discount_value")),
            discount_amount=_to_float(row.get("discount_amount"), 0.0),
            event_discount_name=row.get("event_discount_name"),
            event_discount_percentage=_to_float(row.get("event_discount_percentage")),
            event_discount_amount=_to_float(row.get("event_discount_amount"), 0.0),
            cash_amount=_to_float(row.get("cash_amount")),
            card_amount=_to_float(row.get("card_amount")),
            cash_received=_to_float(row.get("cash_received")),
            change_amount=_to_float(row.get("change_amount")),
            created_by=str(row.get("created_by") or ""),
            created_at=str(row.get("created_at") or ""),
            updated_at=str(row.get("updated_at") or row.get("created_at") or ""),
        )


@dataclass(frozen=True)
class CanceledOrder:
    """Append-only cancellation audit record."""
    id: str
    original_order_id: str
    canceled_at: str
    canceled_by: str
    order_data: Dict[str, Any]
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "CanceledOrder":
        return cls(
            id=str(row["id"]),
            original_order_id=str(row["original_order_id"]),
            canceled_at=str(row.get("canceled_at") or ""),
            canceled_by=str(row["canceled_by"]),
            reason=row.get("reason"),
            order_data=dict(row.get("order_data") or {}),
        )


@dataclass(frozen=True)
class ModifiedOrder:
    """Append-only modification audit record holding both snapshots."""
    id: str
    original_order_id: str
    modified_at: str
    modified_by: str
    modification_type: ModificationType
    original_data: Dict[str, Any]
    new_data: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["modification_type"] = self.modification_type.value
        return data

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "ModifiedOrder":
        return cls(
            id=str(row["id"]),
            original_order_id=str(row["original_order_id"]),
            modified_at=str(row.get("modified_at") or ""),
            modified_by=str(row["modified_by"]),
            modification_type=ModificationType(row["modification_type"]),
            original_data=dict(row.get("original_data") or {}),
            new_data=dict(row.get("new_data") or {}),
        )


@dataclass(frozen=True)
class DailySerial:
    """Receipt sequence number that resets every calendar day."""
    serial: str
    serial_date: str


# ============================================================================
# CUSTOMER
# ============================================================================

@dataclass(frozen=True)
class Customer:
    """Customer record keyed by phone number."""
    id: str
    phone: str
    name: str
    address: Optional[str] = None
    total_purchases: float = 0.0
    order_count: int = 0
    last_order_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    created_by: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Customer":
        return cls(
            id=str(row["id"]),
            phone=row["phone"],
            name=row["name"],
            address=row.get("address") or None,
            total_purchases=_to_float(row.get("total_purchases"), 0.0),
            order_count=int(row.get("order_count") or 0),
            last_order_at=row.get("last_order_at"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
            created_by=row.get("created_by"),
        )


@dataclass
class OrderFilters:
    """Filters for order listing (all optional)."""
    status: Optional[OrderStatus] = None
    payment_method: Optional[PaymentMethod] = None
    customer_name: Optional[str] = None
    order_number: Optional[str] = None
    created_by: Optional[str] = None
    date_from: Optional[str] = None
    date_to: Optional[str] = None


@dataclass
class OrderPage:
    """One page of orders plus the unpaginated count."""
    orders: List[Order]
    total: int
    page: int
    limit: int
