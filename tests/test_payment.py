import pytest

from errors import PaymentSplitError, ValidationError
from models import PaymentMethod
from payment import PaymentSplit, build_breakdown, calculate_change, validate_split


@pytest.mark.parametrize("cash, card, expected", [
    (60, 40, True),
    (60, 39.995, True),
    (60, 39.98, False),
    (60, 30, False),
    (0, 100, False),
    (100, 0, False),
    (-10, 110, False),
    (110, -10, False),
])
def test_validate_split(cash, card, expected):
    assert validate_split(100, cash, card) is expected


def test_cash_breakdown_with_change():
    breakdown = build_breakdown(PaymentMethod.CASH, 45.0, cash_received=50.0)
    assert breakdown.cash_amount == 45.0
    assert breakdown.card_amount is None
    assert breakdown.change_amount == 5.0


def test_card_breakdown():
    breakdown = build_breakdown(PaymentMethod.CARD, 45.0)
    assert breakdown.card_amount == 45.0
    assert breakdown.cash_amount is None


def test_mixed_breakdown_change_against_cash_portion():
    breakdown = build_breakdown(
        PaymentMethod.MIXED, 100.0, PaymentSplit(60, 40), cash_received=70
    )
    assert breakdown.cash_amount == 60
    assert breakdown.card_amount == 40
    assert breakdown.change_amount == 10.0


def test_mixed_requires_split():
    with pytest.raises(PaymentSplitError):
        build_breakdown(PaymentMethod.MIXED, 100.0)


def test_mixed_rejects_unbalanced_split():
    with pytest.raises(PaymentSplitError):
        build_breakdown(PaymentMethod.MIXED, 100.0, PaymentSplit(50, 40))


def test_insufficient_cash():
    with pytest.raises(ValidationError):
        calculate_change(45.0, 40.0)
