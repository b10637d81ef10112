"""
Payment Module
==============
Recording (not processing) how an order is settled.

Mixed payments must reconcile with the payable total to within one
cent, with both tenders strictly positive and neither above the total.
Single-method payments bypass the split check entirely.
"""

import logging
from typing import Dict, Any, Optional
from dataclasses import dataclass, asdict

from errors import PaymentSplitError, ValidationError
from models import PaymentMethod


logger = logging.getLogger(__name__)


SPLIT_TOLERANCE = 0.01


@dataclass(frozen=True)
class PaymentSplit:
    """Cash and card portions of a mixed payment."""
    cash_amount: float
    card_amount: float


@dataclass(frozen=True)
class PaymentBreakdown:
    """Amounts recorded on the order row."""
    payment_method: PaymentMethod
    cash_amount: Optional[float] = None
    card_amount: Optional[float] = None
    cash_received: Optional[float] = None
    change_amount: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["payment_method"] = self.payment_method.value
        return data


def validate_split(payable: float, cash_amount: float, card_amount: float) -> bool:
    """
    Check a mixed cash/card split.

    Args:
        payable: Amount due after discounts
        cash_amount: Cash portion
        card_amount: Card portion

    Returns:
        True if the split reconciles with payable
    """
    return (
        abs(cash_amount + card_amount - payable) < SPLIT_TOLERANCE
        and cash_amount > 0
        and card_amount > 0
        and cash_amount <= payable
        and card_amount <= payable
    )


def calculate_change(amount_due: float, cash_received: float) -> float:
    """
    Change to hand back for a cash tender.

    Raises:
        ValidationError: If the cash received does not cover the amount due
    """
    if cash_received < amount_due:
        raise ValidationError(
            f"Insufficient cash received: {cash_received:.2f} < {amount_due:.2f}",
            field="cash_received"
        )

    return round(cash_received - amount_due, 2)


def build_breakdown(
    payment_method: PaymentMethod,
    payable: float,
    split: Optional[PaymentSplit] = None,
    cash_received: Optional[float] = None
) -> PaymentBreakdown:
    """
    Build the payment fields stored on the order.

    Args:
        payment_method: cash, card or mixed
        payable: Amount due after discounts
        split: Required for mixed payments
        cash_received: Optional cash tendered (cash and mixed only)

    Returns:
        PaymentBreakdown

    Raises:
        PaymentSplitError: Mixed payment without a valid split
        ValidationError: Cash received below the cash portion
    """
    payment_method = PaymentMethod(payment_method)

    if payment_method == PaymentMethod.CARD:
        return PaymentBreakdown(payment_method=payment_method, card_amount=payable)

    if payment_method == PaymentMethod.CASH:
        cash_portion = payable
        card_portion = None
    else:
        if split is None:
            raise PaymentSplitError(
                "Mixed payment requires cash and card amounts",
                field="split"
            )

        if not validate_split(payable, split.cash_amount, split.card_amount):
            logger.warning(
                f"Rejected payment split: cash={split.cash_amount} "
                f"card={split.card_amount} payable={payable}"
            )
            raise PaymentSplitError(
                f"Cash {split.cash_amount:.2f} + card {split.card_amount:.2f} "
                f"does not match total {payable:.2f}",
                field="split"
            )

        cash_portion = split.cash_amount
        card_portion = split.card_amount

    change = None
    if cash_received is not None:
        change = calculate_change(cash_portion, cash_received)

    return PaymentBreakdown(
        payment_method=payment_method,
        cash_amount=cash_portion,
        card_amount=card_portion,
        cash_received=cash_received,
        change_amount=change,
    )
