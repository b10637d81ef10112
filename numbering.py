"""
Order Numbering
===============
Human-readable order numbers (ORD-0001, ORD-0002, ...) and the daily
receipt serial.

The order number is derived from the most recently created order: read,
parse, increment. Two checkouts that read the same "last number" before
either insert completes get the same number; nothing here detects that.
Only a uniqueness constraint on orders.order_number would turn it into a
PersistenceError.

The daily serial comes from the gateway's atomic counter and resets at
the day boundary.
"""

import re
import logging
from typing import Optional

from models import DailySerial


logger = logging.getLogger(__name__)


ORDER_NUMBER_PREFIX = "ORD-"
ORDER_NUMBER_WIDTH = 4
FIRST_ORDER_NUMBER = f"{ORDER_NUMBER_PREFIX}{1:0{ORDER_NUMBER_WIDTH}d}"

_ORDER_NUMBER_PATTERN = re.compile(r"ORD-(\d+)")


def format_order_number(sequence: int) -> str:
    """ORD- prefix, zero-padded to four digits, wider when needed."""
    return f"{ORDER_NUMBER_PREFIX}{sequence:0{ORDER_NUMBER_WIDTH}d}"


def parse_order_number(order_number: Optional[str]) -> Optional[int]:
    """Numeric suffix of an order number, or None if it does not match."""
    if not order_number:
        return None

    match = _ORDER_NUMBER_PATTERN.search(order_number)
    if not match:
        return None

    return int(match.group(1))


def next_order_number(last_order_number: Optional[str]) -> str:
    """
    Number following last_order_number.

    Restarts at ORD-0001 when there is no previous number or it does not
    follow the ORD-<digits> pattern.
    """
    last = parse_order_number(last_order_number)

    if last is None:
        if last_order_number:
            logger.warning(
                f"Unrecognized order number {last_order_number!r}, restarting sequence"
            )
        return FIRST_ORDER_NUMBER

    return format_order_number(last + 1)


def display_order_number(order_number: str) -> str:
    """Short form for receipts and toasts: ORD-0042 -> #0042."""
    if order_number.startswith(ORDER_NUMBER_PREFIX):
        return "#" + order_number[len(ORDER_NUMBER_PREFIX):]
    return order_number


class OrderNumberService:
    """Order number and daily serial source backed by the order gateway."""

    def __init__(self, gateway):
        self.gateway = gateway

    async def next_order_number(self) -> str:
        """
        Next order number based on the latest persisted order.

        Raises:
            PersistenceError: If the latest order cannot be read
        """
        last = await self.gateway.latest_order_number()
        number = next_order_number(last)

        logger.debug(f"Next order number: {number} (last: {last})")

        return number

    async def next_daily_serial(self) -> DailySerial:
        """
        Atomic next value of today's serial.

        Raises:
            PersistenceError: If the counter cannot be advanced
        """
        return await self.gateway.next_daily_serial()
