import pytest

from cart import Cart, calculate_total
from storage import MemoryStorage

from conftest import make_item, extra, without


def test_total_includes_extras_times_quantity(cart):
    item = make_item(price=10.0, modifiers=[extra("m1", "Cheese", 2.5), without("m2", "Onion")])
    cart.add_item(item)
    cart.update_quantity("p1", 3)

    assert cart.total == 37.5
    assert cart.item_count == 3


def test_total_rounded_once_after_summation():
    items = [make_item(item_id=str(i), name=f"Item {i}", price=0.1) for i in range(3)]
    assert calculate_total(items) == 0.3


def test_duplicate_add_increments_quantity(cart):
    cart.add_item(make_item())
    cart.add_item(make_item())

    assert len(cart.items) == 1
    assert cart.items[0].quantity == 2


def test_same_item_with_different_modifiers_is_separate_line(cart):
    cart.add_item(make_item())
    cart.add_item(make_item(modifiers=[extra("m1", "Cheese", 2.0)]))

    assert len(cart.items) == 2
    assert cart.total == 22.0


def test_modifier_order_does_not_change_identity(cart):
    a = extra("m1", "Cheese", 2.0)
    b = extra("m2", "Olives", 1.0)
    cart.add_item(make_item(modifiers=[a, b]))
    cart.add_item(make_item(modifiers=[b, a]))

    assert len(cart.items) == 1
    assert cart.items[0].quantity == 2


def test_add_to_empty_cart_opens_it(cart):
    assert cart.is_open is False
    cart.add_item(make_item())
    assert cart.is_open is True


def test_update_quantity_to_zero_equals_remove(storage):
    first = Cart(storage=MemoryStorage())
    second = Cart(storage=MemoryStorage())
    for c in (first, second):
        c.add_item(make_item())
        c.add_item(make_item(item_id="p2", name="Cola", price=3.0, category="Beverages"))

    first.update_quantity("p1", 0)
    second.remove_item("p1")

    assert [i.id for i in first.items] == [i.id for i in second.items] == ["p2"]
    assert first.total == second.total == 3.0


def test_negative_quantity_removes(cart):
    cart.add_item(make_item())
    cart.update_quantity("p1", -2)

    assert cart.is_empty()
    assert cart.is_open is False
    assert cart.total == 0


def test_clear_cart_closes(cart):
    cart.add_item(make_item())
    cart.clear_cart()

    assert cart.items == []
    assert cart.is_open is False


def test_toggle_cart(cart):
    cart.toggle_cart()
    assert cart.is_open is True
    cart.toggle_cart()
    assert cart.is_open is False


def test_cart_reloads_from_storage(storage):
    cart = Cart(storage=storage)
    cart.add_item(make_item(modifiers=[extra("m1", "Cheese", 2.0)]))
    cart.update_quantity("p1", 2)

    reloaded = Cart(storage=storage)

    assert reloaded.total == 24.0
    assert reloaded.items[0].modifiers[0].name == "Cheese"


class BrokenStorage(MemoryStorage):
    def set(self, key, value):
        raise OSError("disk full")


def test_storage_failure_does_not_break_cart():
    cart = Cart(storage=BrokenStorage())
    cart.add_item(make_item())

    assert cart.total == 10.0


@pytest.mark.parametrize("quantity, expected_total", [(1, 10.0), (5, 50.0), (100, 1000.0)])
def test_no_upper_bound_on_quantity(cart, quantity, expected_total):
    cart.add_item(make_item())
    cart.update_quantity("p1", quantity)
    assert cart.total == expected_total
