from datetime import datetime, timedelta, timezone

import pytest

from cart import Cart
from errors import NotFoundError, PersistenceError, ValidationError
from parked_orders import PARKED_ORDERS_STORAGE_KEY, ParkedOrderStore
from storage import MemoryStorage

from conftest import make_item, extra


class Clock:
    def __init__(self):
        self.value = datetime(2026, 2, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.value


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def store(storage, clock):
    return ParkedOrderStore(storage, now=clock)


def test_park_and_resume(store, cart):
    cart.add_item(make_item(modifiers=[extra("m1", "Cheese", 2.0)]))
    cart.update_quantity("p1", 2)

    parked = store.park(cart, parked_by="u1", customer_name="Sara", note="table 4")

    assert cart.is_empty()
    assert parked.total == 24.0
    assert [p.id for p in store.list()] == [parked.id]

    store.resume(parked.id, cart)

    assert cart.total == 24.0
    assert cart.is_open is True
    assert store.list() == []


def test_park_empty_cart_rejected(store, cart):
    with pytest.raises(ValidationError):
        store.park(cart, parked_by="u1")


def test_park_limit(storage, clock):
    store = ParkedOrderStore(storage, max_orders=2, now=clock)
    for _ in range(2):
        cart = Cart(storage=MemoryStorage())
        cart.add_item(make_item())
        store.park(cart, parked_by="u1")

    cart = Cart(storage=MemoryStorage())
    cart.add_item(make_item())
    with pytest.raises(ValidationError):
        store.park(cart, parked_by="u1")


def test_expired_orders_purged(store, cart, clock, storage):
    cart.add_item(make_item())
    store.park(cart, parked_by="u1")

    clock.value += timedelta(hours=24)

    assert store.list() == []
    assert storage.get(PARKED_ORDERS_STORAGE_KEY) == []


def test_remove_unknown(store):
    with pytest.raises(NotFoundError):
        store.remove("parked_missing")


def test_search(store, clock):
    for name, phone in (("Sara", "0500000001"), ("Omar", "0500000002")):
        cart = Cart(storage=MemoryStorage())
        cart.add_item(make_item())
        store.park(cart, parked_by="u1", customer_name=name, customer_phone=phone)

    assert [p.customer_name for p in store.search("sar")] == ["Sara"]
    assert [p.customer_name for p in store.search("0002")] == ["Omar"]
    assert len(store.search("")) == 2


def test_duration_label(store, cart, clock):
    cart.add_item(make_item())
    parked = store.park(cart, parked_by="u1")

    assert parked.duration_label(clock.value + timedelta(minutes=45)) == "45m"
    assert parked.duration_label(clock.value + timedelta(minutes=125)) == "2h 5m"


class FailingParkedStorage(MemoryStorage):
    def __init__(self):
        super().__init__()
        self.fail_writes = False

    def set(self, key, value):
        if key == PARKED_ORDERS_STORAGE_KEY and self.fail_writes:
            raise OSError("disk full")
        super().set(key, value)


def test_failed_park_keeps_cart(clock):
    storage = FailingParkedStorage()
    storage.fail_writes = True
    store = ParkedOrderStore(storage, now=clock)
    cart = Cart(storage=MemoryStorage())
    cart.add_item(make_item(price=12.0))

    with pytest.raises(PersistenceError):
        store.park(cart, parked_by="u1")

    assert not cart.is_empty()
    assert cart.total == 12.0
    assert store.list() == []


def test_failed_resume_leaves_parked_order(clock):
    storage = FailingParkedStorage()
    store = ParkedOrderStore(storage, now=clock)
    cart = Cart(storage=MemoryStorage())
    cart.add_item(make_item())
    parked = store.park(cart, parked_by="u1")

    storage.fail_writes = True
    with pytest.raises(PersistenceError):
        store.resume(parked.id, cart)

    assert cart.is_empty()
    assert [p.id for p in store.list()] == [parked.id]
