"""
Discount Module
===============
Order-scoped discounts, the event ("site-wide") discount, and the
resolver that turns a subtotal into the payable amount.

Both deductions are taken from the same subtotal (not compounded):

    payable = max(0, subtotal - discount_amount - event_discount_amount)

The event discount lives in an EventDiscountSettings object that callers
pass in explicitly; there is no module-level discount state.
"""

import logging
from typing import Dict, Any, Optional
from dataclasses import dataclass, asdict

from errors import InvalidDiscountConfig
from models import DiscountType, utc_now
from storage import Storage


logger = logging.getLogger(__name__)


EVENT_DISCOUNT_STORAGE_KEY = "event-discount-store"
DEFAULT_EVENT_NAME = "Special Event"


# ============================================================================
# RECORDS
# ============================================================================

@dataclass(frozen=True)
class OrderDiscount:
    """Per-order discount chosen at the till."""
    type: DiscountType
    value: float

    def validate(self):
        """
        Raises:
            InvalidDiscountConfig: percentage outside [0, 100] or negative amount
        """
        if self.type == DiscountType.PERCENTAGE:
            if not 0 <= self.value <= 100:
                raise InvalidDiscountConfig(
                    f"Discount percentage must be between 0 and 100: {self.value}",
                    field="discount_value"
                )
        elif self.value < 0:
            raise InvalidDiscountConfig(
                f"Discount amount must not be negative: {self.value}",
                field="discount_value"
            )


@dataclass(frozen=True)
class EventDiscount:
    """Snapshot of the event discount at a point in time."""
    percentage: float = 0.0
    event_name: str = ""
    activated_by: Optional[str] = None
    activated_at: Optional[str] = None
    is_active: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


INACTIVE_EVENT_DISCOUNT = EventDiscount()


@dataclass(frozen=True)
class DiscountResolution:
    """Result of applying discounts to a subtotal."""
    subtotal: float
    payable: float
    discount_amount: float = 0.0
    event_discount_amount: float = 0.0

    @property
    def total_discount(self) -> float:
        return round(self.discount_amount + self.event_discount_amount, 2)


# ============================================================================
# RESOLVER
# ============================================================================

def order_discount_amount(subtotal: float, discount: Optional[OrderDiscount]) -> float:
    """Amount taken off by an order discount, never more than the subtotal."""
    if discount is None:
        return 0.0

    discount.validate()

    if discount.type == DiscountType.PERCENTAGE:
        amount = subtotal * discount.value / 100
    else:
        amount = discount.value

    return round(min(amount, subtotal), 2)


def event_discount_amount(subtotal: float, event: Optional[EventDiscount]) -> float:
    """Amount taken off by the event discount (0 unless active)."""
    if event is None or not event.is_active or event.percentage <= 0:
        return 0.0

    return round(min(subtotal * event.percentage / 100, subtotal), 2)


def resolve_payable(
    subtotal: float,
    order_discount: Optional[OrderDiscount] = None,
    event_discount: Optional[EventDiscount] = None
) -> DiscountResolution:
    """
    Apply the order discount and the event discount to a subtotal.

    Args:
        subtotal: Cart total before discounts
        order_discount: Optional per-order discount
        event_discount: Optional event discount snapshot

    Returns:
        DiscountResolution with payable clamped at zero

    Raises:
        InvalidDiscountConfig: If the order discount is out of range
    """
    subtotal = round(max(subtotal, 0.0), 2)

    discount = order_discount_amount(subtotal, order_discount)
    event = event_discount_amount(subtotal, event_discount)

    payable = round(max(0.0, subtotal - discount - event), 2)

    return DiscountResolution(
        subtotal=subtotal,
        payable=payable,
        discount_amount=discount,
        event_discount_amount=event,
    )


# ============================================================================
# EVENT DISCOUNT SETTINGS
# ============================================================================

def _validate_event(percentage: float, event_name: str):
    if not event_name or not event_name.strip():
        raise InvalidDiscountConfig(
            "Event name is required",
            field="event_name"
        )

    if not 0 < percentage <= 100:
        raise InvalidDiscountConfig(
            f"Event discount percentage must be in (0, 100]: {percentage}",
            field="percentage"
        )


class EventDiscountSettings:
    """
    Holder of the single event discount.

    Pass one instance to checkout; tests create their own instances so
    different discount configurations never interfere. With a storage
    port, the active state survives restarts and an inactive state is
    stored as cleared.
    """

    def __init__(self, storage: Optional[Storage] = None):
        self.storage = storage
        self._current = INACTIVE_EVENT_DISCOUNT
        self._load()

    def current(self) -> EventDiscount:
        return self._current

    @property
    def is_active(self) -> bool:
        return self._current.is_active

    def activate(
        self,
        percentage: float,
        event_name: str,
        activated_by: str
    ) -> EventDiscount:
        """
        Activate (or replace) the event discount.

        Raises:
            InvalidDiscountConfig: Empty name or percentage outside (0, 100].
                No state change happens in that case.
        """
        _validate_event(percentage, event_name)

        self._current = EventDiscount(
            percentage=float(percentage),
            event_name=event_name.strip(),
            activated_by=activated_by,
            activated_at=utc_now(),
            is_active=True,
        )
        self._save()

        logger.info(
            f"Event discount activated: {self._current.event_name} "
            f"({self._current.percentage}%) by {activated_by}"
        )

        return self._current

    def update_percentage(self, percentage: float) -> EventDiscount:
        """
        Change the percentage of the active event discount.

        Ignored while inactive.
        """
        if not self._current.is_active:
            logger.warning("Event discount update ignored: not active")
            return self._current

        _validate_event(percentage, self._current.event_name)

        self._current = EventDiscount(
            percentage=float(percentage),
            event_name=self._current.event_name,
            activated_by=self._current.activated_by,
            activated_at=self._current.activated_at,
            is_active=True,
        )
        self._save()

        return self._current

    def deactivate(self) -> EventDiscount:
        """Turn the event discount off and forget its settings."""
        previous = self._current
        self._current = INACTIVE_EVENT_DISCOUNT
        self._save()

        if previous.is_active:
            logger.info(f"Event discount deactivated: {previous.event_name}")

        return self._current

    def _load(self):
        if self.storage is None:
            return

        try:
            saved = self.storage.get(EVENT_DISCOUNT_STORAGE_KEY)
        except Exception as e:
            logger.error(f"Error loading event discount: {str(e)}")
            return

        if saved and saved.get("is_active"):
            self._current = EventDiscount(
                percentage=float(saved.get("percentage", 0)),
                event_name=saved.get("event_name") or DEFAULT_EVENT_NAME,
                activated_by=saved.get("activated_by"),
                activated_at=saved.get("activated_at"),
                is_active=True,
            )

    def _save(self):
        if self.storage is None:
            return

        try:
            self.storage.set(EVENT_DISCOUNT_STORAGE_KEY, self._current.to_dict())
        except Exception as e:
            logger.error(f"Error saving event discount: {str(e)}")
