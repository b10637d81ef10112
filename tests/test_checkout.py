import pytest

from checkout import CheckoutService
from customers import CustomerInfo
from db import MemoryDatabase
from discount import EventDiscountSettings, OrderDiscount
from errors import EmptyCartError, InvalidDiscountConfig, PaymentSplitError, PersistenceError
from models import DiscountType, ItemType, OrderStatus, PaymentMethod
from payment import PaymentSplit

from conftest import make_item, extra


@pytest.mark.asyncio
async def test_cash_checkout_with_order_discount(cart, checkout_service, db):
    cart.add_item(make_item(price=20.0, modifiers=[extra("m1", "Cheese", 5.0)]))
    cart.update_quantity("p1", 2)
    assert cart.total == 50.0

    order = await checkout_service.checkout(
        cart,
        PaymentMethod.CASH,
        created_by="cashier-1",
        order_discount=OrderDiscount(DiscountType.PERCENTAGE, 10),
        cash_received=45.0,
    )

    assert order.total_amount == 45.0
    assert order.payment_method == PaymentMethod.CASH
    assert order.status == OrderStatus.COMPLETED
    assert order.order_number == "ORD-0001"
    assert order.discount_amount == 5.0
    assert order.discount_type == DiscountType.PERCENTAGE
    assert order.cash_amount == 45.0
    assert order.change_amount == 0.0
    assert order.items[0].unit_price == 25.0
    assert order.items[0].total_price == 50.0
    assert order.items[0].type == ItemType.PIZZA
    assert cart.is_empty()
    assert len(db.orders) == 1


@pytest.mark.asyncio
async def test_event_discount_recorded_on_order(cart, db):
    events = EventDiscountSettings()
    events.activate(20, "Grand Opening", activated_by="admin")
    service = CheckoutService(db, event_discounts=events)

    cart.add_item(make_item(price=100.0))
    order = await service.checkout(cart, PaymentMethod.CARD, created_by="cashier-1")

    assert order.total_amount == 80.0
    assert order.event_discount_amount == 20.0
    assert order.event_discount_name == "Grand Opening"
    assert order.event_discount_percentage == 20.0
    assert order.card_amount == 80.0


@pytest.mark.asyncio
async def test_discount_fields_omitted_when_zero(cart, checkout_service):
    cart.add_item(make_item())
    order = await checkout_service.checkout(cart, PaymentMethod.CARD, created_by="u1")

    assert order.discount_type is None
    assert order.event_discount_name is None
    assert order.total_amount == 10.0


@pytest.mark.asyncio
async def test_order_numbers_and_daily_serials_increase(checkout_service):
    first = await checkout_service.checkout_items([make_item()], PaymentMethod.CASH, created_by="u1")
    second = await checkout_service.checkout_items([make_item()], PaymentMethod.CASH, created_by="u1")

    assert (first.order_number, second.order_number) == ("ORD-0001", "ORD-0002")
    assert (first.daily_serial, second.daily_serial) == ("001", "002")


@pytest.mark.asyncio
async def test_mixed_payment_checkout(checkout_service):
    order = await checkout_service.checkout_items(
        [make_item(price=100.0)],
        PaymentMethod.MIXED,
        created_by="u1",
        split=PaymentSplit(cash_amount=60.0, card_amount=40.0),
        cash_received=100.0,
    )

    assert order.cash_amount == 60.0
    assert order.card_amount == 40.0
    assert order.change_amount == 40.0


@pytest.mark.asyncio
async def test_empty_cart_rejected_before_persistence(cart, checkout_service, db):
    with pytest.raises(EmptyCartError):
        await checkout_service.checkout(cart, PaymentMethod.CASH, created_by="u1")
    assert db.orders == {}


@pytest.mark.asyncio
async def test_bad_split_rejected_and_cart_kept(cart, checkout_service, db):
    cart.add_item(make_item(price=100.0))
    with pytest.raises(PaymentSplitError):
        await checkout_service.checkout(
            cart,
            PaymentMethod.MIXED,
            created_by="u1",
            split=PaymentSplit(cash_amount=60.0, card_amount=30.0),
        )
    assert db.orders == {}
    assert not cart.is_empty()


@pytest.mark.asyncio
async def test_invalid_discount_rejected(checkout_service):
    with pytest.raises(InvalidDiscountConfig):
        await checkout_service.checkout_items(
            [make_item()],
            PaymentMethod.CASH,
            created_by="u1",
            order_discount=OrderDiscount(DiscountType.PERCENTAGE, 150),
        )


@pytest.mark.asyncio
async def test_customer_purchase_recorded(checkout_service, db):
    customer = CustomerInfo(phone="0500000001", name="Sara")
    order = await checkout_service.checkout_items(
        [make_item(price=30.0)], PaymentMethod.CASH, created_by="u1", customer=customer
    )

    record = await db.find_customer_by_phone("0500000001")
    assert order.customer_name == "Sara"
    assert record.total_purchases == 30.0
    assert record.order_count == 1
    assert db.customer_orders[0]["order_number"] == order.order_number


class BrokenCustomers(MemoryDatabase):
    async def find_customer_by_phone(self, phone):
        raise PersistenceError("customers down", operation="search_customer")


@pytest.mark.asyncio
async def test_customer_failure_does_not_undo_order():
    from customers import CustomerService

    db = BrokenCustomers()
    service = CheckoutService(db, customers=CustomerService(db))
    order = await service.checkout_items(
        [make_item()],
        PaymentMethod.CASH,
        created_by="u1",
        customer=CustomerInfo(phone="0500000001", name="Sara"),
    )

    assert order.id in db.orders


class NoSerial(MemoryDatabase):
    async def next_daily_serial(self):
        raise PersistenceError("rpc missing", operation="next_daily_serial")


@pytest.mark.asyncio
async def test_daily_serial_failure_is_not_fatal():
    service = CheckoutService(NoSerial())
    order = await service.checkout_items([make_item()], PaymentMethod.CASH, created_by="u1")

    assert order.daily_serial is None
    assert order.order_number == "ORD-0001"


class FailingInsert(MemoryDatabase):
    async def insert_order(self, fields):
        raise PersistenceError("insert failed", operation="create_order")


@pytest.mark.asyncio
async def test_insert_failure_keeps_cart(cart):
    service = CheckoutService(FailingInsert())
    cart.add_item(make_item())

    with pytest.raises(PersistenceError):
        await service.checkout(cart, PaymentMethod.CASH, created_by="u1")
    assert not cart.is_empty()
