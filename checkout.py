"""
Checkout Module
===============
Turns a cart into a persisted order.

Flow:
    cart items -> discount resolution -> payment breakdown
    -> order number + daily serial -> insert order row
    -> customer purchase totals (best-effort)

Validation happens before any gateway call, so a rejected checkout
leaves nothing behind. Once the order row is inserted the checkout is
successful; a failed customer update is logged and never undoes it.
"""

import structlog
from typing import Dict, List, Any, Optional, Iterable

from prometheus_client import Counter, Histogram

from cart import Cart, calculate_total
from customers import CustomerInfo
from discount import (
    OrderDiscount,
    EventDiscount,
    EventDiscountSettings,
    resolve_payable,
)
from errors import EmptyCartError, ValidationError, PersistenceError, NotFoundError
from models import CartItem, Order, OrderItem, OrderStatus, PaymentMethod
from numbering import OrderNumberService
from payment import PaymentSplit, build_breakdown


logger = structlog.get_logger(__name__)


# ============================================================================
# METRICS
# ============================================================================

orders_created_total = Counter(
    'pos_orders_created_total',
    'Orders created',
    ['payment_method']
)
order_value = Histogram(
    'pos_order_value',
    'Payable amount per order',
    buckets=(5, 10, 25, 50, 100, 200, 500, 1000)
)
checkout_rejections_total = Counter(
    'pos_checkout_rejections_total',
    'Checkouts rejected before persistence',
    ['reason']
)


class CheckoutService:
    """
    Checkout orchestration.

    The event discount is read from the injected EventDiscountSettings at
    checkout time unless an explicit snapshot is passed in.
    """

    def __init__(
        self,
        gateway,
        numbering: Optional[OrderNumberService] = None,
        customers=None,
        event_discounts: Optional[EventDiscountSettings] = None,
        enable_daily_serial: bool = True
    ):
        self.gateway = gateway
        self.numbering = numbering or OrderNumberService(gateway)
        self.customers = customers
        self.event_discounts = event_discounts
        self.enable_daily_serial = enable_daily_serial

    async def checkout(
        self,
        cart: Cart,
        payment_method: PaymentMethod,
        created_by: str,
        order_discount: Optional[OrderDiscount] = None,
        split: Optional[PaymentSplit] = None,
        cash_received: Optional[float] = None,
        customer_name: Optional[str] = None,
        customer: Optional[CustomerInfo] = None,
        event_discount: Optional[EventDiscount] = None
    ) -> Order:
        """
        Check out a cart and clear it on success.

        Args:
            cart: Cart to convert
            payment_method: cash, card or mixed
            created_by: Cashier user id
            order_discount: Optional per-order discount
            split: Cash/card amounts (mixed only)
            cash_received: Cash tendered (cash and mixed)
            customer_name: Name printed on the order
            customer: Customer details for purchase tracking
            event_discount: Event discount snapshot (defaults to the settings)

        Returns:
            Persisted order

        Raises:
            EmptyCartError: Cart has no items
            InvalidDiscountConfig: Bad order discount
            PaymentSplitError: Mixed payment does not reconcile
            PersistenceError: Numbering or insert failed
        """
        order = await self.checkout_items(
            cart.items,
            payment_method=payment_method,
            created_by=created_by,
            order_discount=order_discount,
            split=split,
            cash_received=cash_received,
            customer_name=customer_name,
            customer=customer,
            event_discount=event_discount,
        )

        cart.clear_cart()

        return order

    async def checkout_items(
        self,
        items: Iterable[CartItem],
        payment_method: PaymentMethod,
        created_by: str,
        order_discount: Optional[OrderDiscount] = None,
        split: Optional[PaymentSplit] = None,
        cash_received: Optional[float] = None,
        customer_name: Optional[str] = None,
        customer: Optional[CustomerInfo] = None,
        event_discount: Optional[EventDiscount] = None
    ) -> Order:
        """Check out a list of cart items. Same contract as checkout()."""
        items = list(items)

        try:
            fields = self._build_order_fields(
                items,
                payment_method=payment_method,
                created_by=created_by,
                order_discount=order_discount,
                split=split,
                cash_received=cash_received,
                customer_name=customer_name or (customer.name if customer else None),
                event_discount=event_discount,
            )
        except ValidationError as e:
            checkout_rejections_total.labels(reason=type(e).__name__).inc()
            logger.warning(
                "checkout_rejected",
                reason=type(e).__name__,
                field=e.field,
                error=str(e)
            )
            raise

        fields["order_number"] = await self.numbering.next_order_number()

        if self.enable_daily_serial:
            fields.update(await self._daily_serial_fields())

        order = await self.gateway.insert_order(fields)

        orders_created_total.labels(payment_method=order.payment_method.value).inc()
        order_value.observe(order.total_amount)

        logger.info(
            "order_created",
            order_id=order.id,
            order_number=order.order_number,
            daily_serial=order.daily_serial,
            total_amount=order.total_amount,
            payment_method=order.payment_method.value,
            created_by=created_by
        )

        if customer is not None and self.customers is not None:
            await self._record_customer_purchase(customer, order, created_by)

        return order

    def _build_order_fields(
        self,
        items: List[CartItem],
        payment_method: PaymentMethod,
        created_by: str,
        order_discount: Optional[OrderDiscount],
        split: Optional[PaymentSplit],
        cash_received: Optional[float],
        customer_name: Optional[str],
        event_discount: Optional[EventDiscount]
    ) -> Dict[str, Any]:
        if not items:
            raise EmptyCartError("Cannot check out an empty cart", field="items")

        if not created_by:
            raise ValidationError("Cashier id is required", field="created_by")

        try:
            payment_method = PaymentMethod(payment_method)
        except ValueError:
            raise ValidationError(
                f"Unknown payment method: {payment_method}",
                field="payment_method"
            )

        if event_discount is None and self.event_discounts is not None:
            event_discount = self.event_discounts.current()

        resolution = resolve_payable(
            calculate_total(items),
            order_discount=order_discount,
            event_discount=event_discount,
        )

        breakdown = build_breakdown(
            payment_method,
            resolution.payable,
            split=split,
            cash_received=cash_received,
        )

        fields: Dict[str, Any] = {
            "customer_name": customer_name.strip() if customer_name else None,
            "items": [OrderItem.from_cart_item(item).to_dict() for item in items],
            "total_amount": resolution.payable,
            "status": OrderStatus.COMPLETED.value,
            "created_by": created_by,
            **breakdown.to_dict(),
        }

        if resolution.discount_amount > 0:
            fields["discount_type"] = order_discount.type.value
            fields["discount_value"] = order_discount.value
            fields["discount_amount"] = resolution.discount_amount

        if resolution.event_discount_amount > 0:
            fields["event_discount_name"] = event_discount.event_name
            fields["event_discount_percentage"] = event_discount.percentage
            fields["event_discount_amount"] = resolution.event_discount_amount

        return fields

    async def _daily_serial_fields(self) -> Dict[str, Any]:
        try:
            serial = await self.numbering.next_daily_serial()
        except PersistenceError as e:
            logger.warning("daily_serial_unavailable", error=str(e))
            return {}

        return {"daily_serial": serial.serial, "serial_date": serial.serial_date}

    async def _record_customer_purchase(
        self,
        customer: CustomerInfo,
        order: Order,
        created_by: str
    ):
        try:
            record = await self.customers.ensure_customer(
                customer.phone,
                customer.name,
                address=customer.address,
                created_by=created_by,
            )
            await self.customers.record_purchase(
                record.id,
                order.total_amount,
                order.order_number
            )
        except (ValidationError, NotFoundError, PersistenceError) as e:
            logger.warning(
                "customer_purchase_not_recorded",
                order_id=order.id,
                order_number=order.order_number,
                phone=customer.phone,
                error=str(e)
            )
