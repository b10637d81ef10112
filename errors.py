"""
Error Taxonomy
==============
Exceptions raised by the order engine.

ValidationError  - client-correctable, surfaced inline, never retried
NotFoundError    - referenced order/customer does not exist
PersistenceError - gateway call failed, propagated without retry
"""

from typing import Any, Dict, Optional


class OrderEngineError(Exception):
    """Base class for all order engine errors."""
    pass


# ============================================================================
# VALIDATION
# ============================================================================

class ValidationError(OrderEngineError):
    """Raised when caller input is invalid and can be corrected."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class InvalidDiscountConfig(ValidationError):
    """Raised when an order or event discount is misconfigured."""
    pass


class PaymentSplitError(ValidationError):
    """Raised when a mixed payment does not reconcile with the payable total."""
    pass


class EmptyCartError(ValidationError):
    """Raised when checkout is attempted with no items."""
    pass


class OrderStateError(ValidationError):
    """Raised when an order status transition is not allowed."""
    pass


# ============================================================================
# NOT FOUND
# ============================================================================

class NotFoundError(OrderEngineError):
    """Raised when a referenced record does not exist."""
    pass


class OrderNotFound(NotFoundError):
    """Raised when an order id does not resolve to an order row."""

    def __init__(self, order_id: str):
        super().__init__(f"Order not found: {order_id}")
        self.order_id = order_id


class CustomerNotFound(NotFoundError):
    """Raised when a customer id does not resolve to a customer row."""

    def __init__(self, customer_id: str):
        super().__init__(f"Customer not found: {customer_id}")
        self.customer_id = customer_id


# ============================================================================
# PERSISTENCE
# ============================================================================

class PersistenceError(OrderEngineError):
    """Raised when the persistence gateway fails."""

    def __init__(self, message: str, operation: Optional[str] = None):
        super().__init__(message)
        self.operation = operation


class IncompleteMutationError(PersistenceError):
    """
    Audit record was written but the live order update failed.

    The order row and its audit trail disagree until the pending update
    is re-issued (see OrderMutationEngine.resume). Re-running the whole
    cancel/modify would insert a duplicate audit row.
    """

    def __init__(
        self,
        order_id: str,
        audit_record: Any,
        pending_update: Dict[str, Any],
        cause: Optional[Exception] = None
    ):
        super().__init__(
            f"Audit record written but order {order_id} was not updated",
            operation="update_order"
        )
        self.order_id = order_id
        self.audit_record = audit_record
        self.pending_update = pending_update
        self.cause = cause
