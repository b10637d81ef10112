"""
Order Status Machine
====================
Allowed transitions of the live order status.

State flow:
    completed -> modified -> modified ...
    completed -> canceled
    modified  -> canceled

canceled is terminal; no transition ever returns to completed.
"""

import logging
from typing import Dict, Set

from errors import OrderStateError
from models import OrderStatus

logger = logging.getLogger(__name__)


VALID_TRANSITIONS: Dict[OrderStatus, Set[OrderStatus]] = {
    OrderStatus.COMPLETED: {OrderStatus.MODIFIED, OrderStatus.CANCELED},
    OrderStatus.MODIFIED: {OrderStatus.MODIFIED, OrderStatus.CANCELED},
    OrderStatus.CANCELED: set(),  # Terminal state
}


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    """Check if the status may move from current to target."""
    return target in VALID_TRANSITIONS.get(current, set())


def ensure_transition(order_id: str, current: OrderStatus, target: OrderStatus):
    """
    Validate a status transition.

    Raises:
        OrderStateError: If the transition is not allowed
    """
    if not can_transition(current, target):
        error_msg = (
            f"Invalid transition for order {order_id}: "
            f"{current.value} -> {target.value}"
        )
        logger.error(
            error_msg,
            extra={
                "order_id": order_id,
                "from_status": current.value,
                "to_status": target.value,
            }
        )
        raise OrderStateError(error_msg, field="status")


def is_terminal(status: OrderStatus) -> bool:
    return not VALID_TRANSITIONS.get(status)
