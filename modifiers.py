"""
Modifier Pricing Rules
======================
Per-item add-ons ("extra", priced) and removals ("without", unpriced).

effective unit price = base price + sum(extra modifier prices)

"Without" modifiers exist for the kitchen ticket and the receipt only;
whatever price they carry is never summed.
"""

from typing import Any, Iterable, List


EXTRA = "extra"
WITHOUT = "without"


def modifiers_total(modifiers: Iterable[Any]) -> float:
    """
    Sum the priced modifiers of one item.

    Args:
        modifiers: Modifier records (anything with .type and .price)

    Returns:
        Total of extra modifiers
    """
    return sum(
        (m.price or 0.0) for m in (modifiers or ()) if m.type == EXTRA
    )


def effective_unit_price(item: Any) -> float:
    """Base price plus extras for a single unit of a cart item."""
    return item.price + modifiers_total(item.modifiers)


def toggle_modifier(selected: Iterable[Any], modifier: Any) -> List[Any]:
    """
    Select or deselect a modifier by identity.

    Toggling the same modifier twice restores the original selection; a
    modifier is never added twice.

    Args:
        selected: Currently selected modifiers for one item instance
        modifier: Modifier being toggled

    Returns:
        New selection list
    """
    current = list(selected or ())

    if any(m.id == modifier.id for m in current):
        return [m for m in current if m.id != modifier.id]

    return current + [modifier]


def item_identity(item: Any) -> str:
    """
    Identity of a cart line: base item plus its modifier combination.

    Modifiers are sorted by name so selection order does not matter.
    """
    base = f"{item.id}-{item.name}"

    parts = [
        f"{m.name}-{getattr(m.type, 'value', m.type)}-{m.price}"
        for m in sorted(item.modifiers or (), key=lambda m: m.name)
    ]

    return f"{base}|{','.join(parts)}"


def split_modifiers(modifiers: Iterable[Any]) -> dict:
    """Group modifier names for kitchen/receipt display."""
    extras = [m.name for m in (modifiers or ()) if m.type == EXTRA]
    withouts = [m.name for m in (modifiers or ()) if m.type == WITHOUT]
    return {"extra": extras, "without": withouts}
