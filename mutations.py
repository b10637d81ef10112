"""
Order Mutation Engine
=====================
Cancel and modify completed orders while keeping an audit trail.

Every mutation is two gateway writes in this order:
    1. append the audit record (canceled_orders / modified_orders)
    2. update the live order row

The pair is not transactional. If step 2 fails after step 1 succeeded,
IncompleteMutationError carries the audit record and the pending update
so the caller can resume() without writing a second audit row.

Concurrent mutations of the same order are last-write-wins.
"""

import structlog
from typing import Dict, List, Any, Optional
from dataclasses import dataclass

from prometheus_client import Counter

from discount import OrderDiscount, EventDiscount, resolve_payable
from errors import IncompleteMutationError, PersistenceError, ValidationError
from models import (
    Order,
    OrderItem,
    OrderStatus,
    PaymentMethod,
    ModificationType,
    CanceledOrder,
    ModifiedOrder,
)
from order_state import ensure_transition
from payment import PaymentSplit, build_breakdown


logger = structlog.get_logger(__name__)


EMPTY_EDIT_REASON = "All items removed during edit"


# ============================================================================
# METRICS
# ============================================================================

order_mutations_total = Counter(
    'pos_order_mutations_total',
    'Order mutations',
    ['kind', 'result']
)
incomplete_mutations_total = Counter(
    'pos_order_mutations_incomplete_total',
    'Mutations whose audit record was written but order update failed',
    ['kind']
)


@dataclass
class OrderChanges:
    """
    Requested edits to an order. None means "leave unchanged".

    When items change, the discount amounts are re-resolved from the new
    items and the discounts stored on the order. total_amount, when given,
    overrides the resolved payable; the discount amounts still describe the
    new items.

    A split is applied whenever it is given, even with an unchanged total.
    """
    customer_name: Optional[str] = None
    items: Optional[List[OrderItem]] = None
    total_amount: Optional[float] = None
    payment_method: Optional[PaymentMethod] = None
    split: Optional[PaymentSplit] = None


# ============================================================================
# MODIFICATION TYPE
# ============================================================================

def _quantities(items: List[Dict[str, Any]]) -> Dict[str, int]:
    quantities: Dict[str, int] = {}
    for item in items:
        quantities[str(item["id"])] = quantities.get(str(item["id"]), 0) + int(item["quantity"])
    return quantities


def infer_modification_type(
    original: Dict[str, Any],
    new: Dict[str, Any]
) -> ModificationType:
    """
    Classify an edit from the original and new order snapshots.

    Payment method, line count, per-item quantity and a swap of item ids at
    the same line count are the compared dimensions; more than one
    differing gives multiple_changes.
    """
    original_items = original.get("items") or []
    new_items = new.get("items") or []

    payment_changed = original.get("payment_method") != new.get("payment_method")
    count_delta = len(new_items) - len(original_items)

    original_quantities = _quantities(original_items)
    new_quantities = _quantities(new_items)
    shared = set(original_quantities) & set(new_quantities)
    quantities_changed = any(
        original_quantities[item_id] != new_quantities[item_id] for item_id in shared
    )

    replaced = count_delta == 0 and set(original_quantities) != set(new_quantities)

    changed_dimensions = sum(
        [payment_changed, count_delta != 0, quantities_changed, replaced]
    )
    if changed_dimensions > 1:
        return ModificationType.MULTIPLE_CHANGES

    if count_delta > 0:
        return ModificationType.ITEM_ADDED
    if count_delta < 0:
        return ModificationType.ITEM_REMOVED
    if quantities_changed:
        return ModificationType.QUANTITY_CHANGED
    if replaced:
        return ModificationType.ITEM_REPLACED

    return ModificationType.MULTIPLE_CHANGES


# ============================================================================
# ENGINE
# ============================================================================

class OrderMutationEngine:
    """Cancel / modify orchestration over an OrderGateway."""

    def __init__(self, gateway):
        self.gateway = gateway

    async def cancel(
        self,
        order_id: str,
        canceled_by: str,
        reason: Optional[str] = None
    ) -> Order:
        """
        Cancel an order.

        Args:
            order_id: Order to cancel
            canceled_by: User id
            reason: Optional free-text reason

        Returns:
            The order with status canceled

        Raises:
            OrderNotFound: Unknown order id
            OrderStateError: Order already canceled
            PersistenceError: Audit insert failed (nothing written)
            IncompleteMutationError: Audit written, status update failed
        """
        order = await self.gateway.get_order_by_id(order_id)
        ensure_transition(order.id, order.status, OrderStatus.CANCELED)

        try:
            audit = await self.gateway.insert_canceled_order({
                "original_order_id": order.id,
                "canceled_by": canceled_by,
                "reason": reason,
                "order_data": order.to_dict(),
            })
        except PersistenceError:
            order_mutations_total.labels(kind="cancel", result="failed").inc()
            logger.error("order_cancel_failed", order_id=order.id, stage="audit")
            raise

        pending_update = {"status": OrderStatus.CANCELED.value}
        updated = await self._apply_update("cancel", order.id, audit, pending_update)

        order_mutations_total.labels(kind="cancel", result="success").inc()
        logger.info(
            "order_canceled",
            order_id=order.id,
            order_number=order.order_number,
            canceled_by=canceled_by,
            reason=reason
        )

        return updated

    async def modify(
        self,
        order_id: str,
        modified_by: str,
        changes: OrderChanges,
        modification_type: Optional[ModificationType] = None
    ) -> Order:
        """
        Modify an order.

        An edit that leaves no items cancels the order instead.

        Args:
            order_id: Order to modify
            modified_by: User id
            changes: Fields to change
            modification_type: Audit tag; inferred when omitted

        Returns:
            The updated order (status modified, or canceled for empty edits)

        Raises:
            OrderNotFound: Unknown order id
            OrderStateError: Order is canceled
            ValidationError: Negative total or bad payment split
            PersistenceError: Audit insert failed (nothing written)
            IncompleteMutationError: Audit written, order update failed
        """
        order = await self.gateway.get_order_by_id(order_id)
        ensure_transition(order.id, order.status, OrderStatus.MODIFIED)

        items = None
        if changes.items is not None:
            items = [item.with_quantity(item.quantity) for item in changes.items if item.quantity > 0]
            if not items:
                logger.info("order_edit_emptied", order_id=order.id)
                return await self.cancel(order.id, modified_by, reason=EMPTY_EDIT_REASON)

        update = self._build_update(order, changes, items)

        original_data = order.to_dict()
        new_data = {**original_data, **update}

        if modification_type is None:
            modification_type = infer_modification_type(original_data, new_data)

        try:
            audit = await self.gateway.insert_modified_order({
                "original_order_id": order.id,
                "modified_by": modified_by,
                "modification_type": ModificationType(modification_type).value,
                "original_data": original_data,
                "new_data": new_data,
            })
        except PersistenceError:
            order_mutations_total.labels(kind="modify", result="failed").inc()
            logger.error("order_modify_failed", order_id=order.id, stage="audit")
            raise

        updated = await self._apply_update("modify", order.id, audit, update)

        order_mutations_total.labels(kind="modify", result="success").inc()
        logger.info(
            "order_modified",
            order_id=order.id,
            order_number=order.order_number,
            modified_by=modified_by,
            modification_type=audit.modification_type.value,
            total_amount=updated.total_amount
        )

        return updated

    async def resume(self, error: IncompleteMutationError) -> Order:
        """
        Re-issue the pending order update of an incomplete mutation.

        Raises:
            PersistenceError: Update failed again
        """
        order = await self.gateway.update_order(error.order_id, error.pending_update)

        logger.info(
            "order_mutation_resumed",
            order_id=error.order_id,
            status=order.status.value
        )

        return order

    # ========================================================================
    # READS
    # ========================================================================

    async def get_order_history(self, order_id: str) -> Dict[str, Any]:
        """Order plus its cancellation and modification records, newest first."""
        order = await self.gateway.get_order_by_id(order_id)
        cancellations = await self.gateway.list_canceled_orders(order_id=order_id)
        modifications = await self.gateway.list_modified_orders(order_id=order_id)

        return {
            "order": order,
            "cancellations": cancellations,
            "modifications": modifications,
        }

    async def list_canceled_orders(self) -> List[CanceledOrder]:
        return await self.gateway.list_canceled_orders()

    async def list_modified_orders(self) -> List[ModifiedOrder]:
        return await self.gateway.list_modified_orders()

    # ========================================================================
    # INTERNALS
    # ========================================================================

    def _build_update(
        self,
        order: Order,
        changes: OrderChanges,
        items: Optional[List[OrderItem]]
    ) -> Dict[str, Any]:
        update: Dict[str, Any] = {"status": OrderStatus.MODIFIED.value}

        if changes.customer_name is not None:
            update["customer_name"] = changes.customer_name.strip() or None

        total = order.total_amount

        if items is not None:
            update["items"] = [item.to_dict() for item in items]

            resolution = self._re_resolve(order, items)
            total = resolution.payable
            update["discount_amount"] = resolution.discount_amount
            update["event_discount_amount"] = resolution.event_discount_amount

        if changes.total_amount is not None:
            if changes.total_amount < 0:
                raise ValidationError(
                    f"Order total must not be negative: {changes.total_amount}",
                    field="total_amount"
                )
            total = round(changes.total_amount, 2)

        update["total_amount"] = total

        payment_method = PaymentMethod(changes.payment_method or order.payment_method)
        if (
            payment_method != order.payment_method
            or total != order.total_amount
            or changes.split is not None
        ):
            update.update(self._rebuild_payment(order, payment_method, total, changes.split))

        return update

    @staticmethod
    def _re_resolve(order: Order, items: List[OrderItem]):
        subtotal = round(sum(item.total_price for item in items), 2)

        order_discount = None
        if order.discount_type is not None and order.discount_value is not None:
            order_discount = OrderDiscount(order.discount_type, order.discount_value)

        event_discount = None
        if order.event_discount_percentage:
            event_discount = EventDiscount(
                percentage=order.event_discount_percentage,
                event_name=order.event_discount_name or "",
                is_active=True,
            )

        return resolve_payable(subtotal, order_discount, event_discount)

    @staticmethod
    def _rebuild_payment(
        order: Order,
        payment_method: PaymentMethod,
        total: float,
        split: Optional[PaymentSplit]
    ) -> Dict[str, Any]:
        breakdown = build_breakdown(payment_method, total, split=split)

        # keep the recorded tender if it still covers the cash portion
        received = order.cash_received
        if (
            received is not None
            and breakdown.cash_amount is not None
            and received >= breakdown.cash_amount
        ):
            breakdown = build_breakdown(
                payment_method, total, split=split, cash_received=received
            )

        return breakdown.to_dict()

    async def _apply_update(
        self,
        kind: str,
        order_id: str,
        audit,
        pending_update: Dict[str, Any]
    ) -> Order:
        try:
            return await self.gateway.update_order(order_id, pending_update)
        except PersistenceError as e:
            order_mutations_total.labels(kind=kind, result="incomplete").inc()
            incomplete_mutations_total.labels(kind=kind).inc()
            logger.error(
                "order_mutation_incomplete",
                kind=kind,
                order_id=order_id,
                audit_id=audit.id,
                pending_update=pending_update,
                error=str(e)
            )
            raise IncompleteMutationError(
                order_id,
                audit_record=audit,
                pending_update=pending_update,
                cause=e
            ) from e
