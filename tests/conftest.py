import pytest

from cart import Cart
from checkout import CheckoutService
from customers import CustomerService
from db import MemoryDatabase
from discount import EventDiscountSettings
from models import CartItem, Modifier, ModifierType
from mutations import OrderMutationEngine
from storage import MemoryStorage


def make_item(item_id="p1", name="Margherita", price=10.0, category="Pizza", modifiers=()):
    return CartItem(
        id=item_id,
        name=name,
        price=price,
        category=category,
        modifiers=tuple(modifiers),
    )


def extra(mod_id, name, price):
    return Modifier(id=mod_id, name=name, type=ModifierType.EXTRA, price=price)


def without(mod_id, name, price=0.0):
    return Modifier(id=mod_id, name=name, type=ModifierType.WITHOUT, price=price)


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def cart(storage):
    return Cart(storage=storage)


@pytest.fixture
def db():
    return MemoryDatabase()


@pytest.fixture
def event_discounts():
    return EventDiscountSettings()


@pytest.fixture
def customers(db):
    return CustomerService(db)


@pytest.fixture
def checkout_service(db, customers, event_discounts):
    return CheckoutService(db, customers=customers, event_discounts=event_discounts)


@pytest.fixture
def engine(db):
    return OrderMutationEngine(db)
