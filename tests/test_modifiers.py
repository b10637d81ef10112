from modifiers import (
    effective_unit_price,
    item_identity,
    modifiers_total,
    split_modifiers,
    toggle_modifier,
)

from conftest import make_item, extra, without


def test_without_modifiers_never_priced():
    mods = [extra("m1", "Cheese", 2.0), without("m2", "Onion", 5.0)]
    assert modifiers_total(mods) == 2.0


def test_effective_unit_price():
    item = make_item(price=8.0, modifiers=[extra("m1", "Cheese", 2.0), extra("m3", "Egg", 1.5)])
    assert effective_unit_price(item) == 11.5


def test_toggle_twice_restores_selection():
    cheese = extra("m1", "Cheese", 2.0)
    selected = toggle_modifier([], cheese)
    assert selected == [cheese]
    assert toggle_modifier(selected, cheese) == []


def test_toggle_never_duplicates():
    cheese = extra("m1", "Cheese", 2.0)
    selected = toggle_modifier([cheese], extra("m2", "Olives", 1.0))
    assert [m.id for m in selected] == ["m1", "m2"]


def test_identity_ignores_modifier_order():
    a = extra("m1", "Cheese", 2.0)
    b = without("m2", "Onion")
    assert item_identity(make_item(modifiers=[a, b])) == item_identity(make_item(modifiers=[b, a]))
    assert item_identity(make_item(modifiers=[a])) != item_identity(make_item())


def test_split_modifiers():
    grouped = split_modifiers([extra("m1", "Cheese", 2.0), without("m2", "Onion")])
    assert grouped == {"extra": ["Cheese"], "without": ["Onion"]}
