"""
Receipt Module
==============
VAT extraction and the e-invoice QR payload printed on receipts.

Prices are VAT-inclusive, so VAT is extracted rather than added:

    vat = total * rate / (1 + rate)
    net = total - vat

The QR payload is the TLV (tag, length, value) byte string, base64
encoded. Rendering the QR image is the printer's job, not ours.
"""

import base64
import hashlib
import logging
import re
from datetime import datetime, timezone
from typing import Dict, List, Any, Optional
from dataclasses import dataclass, asdict

from errors import ValidationError
from models import Order


logger = logging.getLogger(__name__)


DEFAULT_VAT_RATE = 0.15

# TLV tags
TAG_SELLER_NAME = 1
TAG_VAT_REGISTRATION = 2
TAG_TIMESTAMP = 3
TAG_INVOICE_TOTAL = 4
TAG_VAT_TOTAL = 5
TAG_INVOICE_HASH = 6
TAG_DIGITAL_SIGNATURE = 7
TAG_PUBLIC_KEY = 8
TAG_SIGNATURE_ALGORITHM = 9

MAX_TLV_VALUE_LENGTH = 255

_VAT_NUMBER_PATTERN = re.compile(r"^\d{15}$")


# ============================================================================
# VAT
# ============================================================================

def extract_vat(total: float, vat_rate: float = DEFAULT_VAT_RATE) -> float:
    """VAT contained in a VAT-inclusive total."""
    return total * vat_rate / (1 + vat_rate)


@dataclass(frozen=True)
class ReceiptTotals:
    """Money lines printed at the bottom of a receipt."""
    subtotal: float
    discount_amount: float
    event_discount_amount: float
    total: float
    vat_amount: float
    net_amount: float
    vat_rate: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def receipt_totals(order: Order, vat_rate: float = DEFAULT_VAT_RATE) -> ReceiptTotals:
    """Summarize an order for printing; VAT is taken from the payable total."""
    vat = extract_vat(order.total_amount, vat_rate)

    return ReceiptTotals(
        subtotal=order.subtotal,
        discount_amount=order.discount_amount,
        event_discount_amount=order.event_discount_amount,
        total=round(order.total_amount, 2),
        vat_amount=round(vat, 2),
        net_amount=round(order.total_amount - vat, 2),
        vat_rate=vat_rate,
    )


# ============================================================================
# E-INVOICE QR PAYLOAD
# ============================================================================

@dataclass(frozen=True)
class InvoiceQRData:
    """Fields encoded into the receipt QR payload."""
    seller_name: str
    vat_registration_number: str
    timestamp: datetime
    invoice_total: float
    vat_total: float
    invoice_hash: Optional[str] = None
    digital_signature: Optional[str] = None
    public_key: Optional[str] = None
    signature_algorithm: Optional[str] = None


def format_timestamp(value: datetime) -> str:
    """UTC ISO-8601 with milliseconds and a Z suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def _plain_number(value: float) -> str:
    # 45.0 -> "45", 45.5 -> "45.5"
    text = repr(float(value))
    return text[:-2] if text.endswith(".0") else text


def fallback_invoice_hash(invoice: InvoiceQRData) -> str:
    """sha256 over the concatenated required fields, hex encoded."""
    source = (
        f"{invoice.seller_name}"
        f"{invoice.vat_registration_number}"
        f"{format_timestamp(invoice.timestamp)}"
        f"{_plain_number(invoice.invoice_total)}"
        f"{_plain_number(invoice.vat_total)}"
    )
    return hashlib.sha256(source.encode("utf-8")).hexdigest()


def validate_invoice(invoice: InvoiceQRData) -> List[str]:
    """
    Check invoice fields before encoding.

    Returns:
        List of problems (empty when valid)
    """
    errors: List[str] = []

    if not invoice.seller_name or not invoice.seller_name.strip():
        errors.append("Seller name is required")

    if not invoice.vat_registration_number or not invoice.vat_registration_number.strip():
        errors.append("VAT registration number is required")
    elif not _VAT_NUMBER_PATTERN.match(invoice.vat_registration_number):
        errors.append("VAT registration number must be 15 digits")

    if not isinstance(invoice.timestamp, datetime):
        errors.append("Valid timestamp is required")

    if invoice.invoice_total < 0:
        errors.append("Invoice total must be non-negative")

    if invoice.vat_total < 0:
        errors.append("VAT total must be non-negative")

    if invoice.vat_total > invoice.invoice_total:
        errors.append("VAT total cannot exceed invoice total")

    return errors


def _tlv(tag: int, value: str) -> bytes:
    encoded = value.encode("utf-8")
    if len(encoded) > MAX_TLV_VALUE_LENGTH:
        raise ValidationError(
            f"TLV value for tag {tag} too long ({len(encoded)} bytes)",
            field="invoice"
        )
    return bytes([tag, len(encoded)]) + encoded


def build_tlv(invoice: InvoiceQRData) -> bytes:
    """Concatenated TLV records for the invoice (hash generated when absent)."""
    parts = [
        _tlv(TAG_SELLER_NAME, invoice.seller_name),
        _tlv(TAG_VAT_REGISTRATION, invoice.vat_registration_number),
        _tlv(TAG_TIMESTAMP, format_timestamp(invoice.timestamp)),
        _tlv(TAG_INVOICE_TOTAL, f"{invoice.invoice_total:.2f}"),
        _tlv(TAG_VAT_TOTAL, f"{invoice.vat_total:.2f}"),
        _tlv(TAG_INVOICE_HASH, invoice.invoice_hash or fallback_invoice_hash(invoice)),
    ]

    optional = (
        (TAG_DIGITAL_SIGNATURE, invoice.digital_signature),
        (TAG_PUBLIC_KEY, invoice.public_key),
        (TAG_SIGNATURE_ALGORITHM, invoice.signature_algorithm),
    )
    for tag, value in optional:
        if value:
            parts.append(_tlv(tag, value))

    return b"".join(parts)


def encode_qr_payload(invoice: InvoiceQRData) -> str:
    """
    Validate and encode the invoice as a base64 TLV string.

    Raises:
        ValidationError: If any invoice field is invalid
    """
    errors = validate_invoice(invoice)
    if errors:
        logger.warning(f"Invalid invoice QR data: {'; '.join(errors)}")
        raise ValidationError("; ".join(errors), field="invoice")

    return base64.b64encode(build_tlv(invoice)).decode("ascii")


def decode_qr_payload(payload: str) -> Dict[int, str]:
    """Parse a base64 TLV payload back into {tag: value}."""
    data = base64.b64decode(payload)
    records: Dict[int, str] = {}

    offset = 0
    while offset + 2 <= len(data):
        tag = data[offset]
        length = data[offset + 1]
        value = data[offset + 2:offset + 2 + length]
        if len(value) != length:
            raise ValidationError("Truncated TLV payload", field="payload")
        records[tag] = value.decode("utf-8")
        offset += 2 + length

    return records


def invoice_for_order(
    order: Order,
    seller_name: str,
    vat_registration_number: str,
    vat_rate: float = DEFAULT_VAT_RATE
) -> InvoiceQRData:
    """QR fields for a persisted order."""
    created_at = order.created_at
    try:
        timestamp = datetime.fromisoformat(created_at.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        timestamp = datetime.now(timezone.utc)

    return InvoiceQRData(
        seller_name=seller_name,
        vat_registration_number=vat_registration_number,
        timestamp=timestamp,
        invoice_total=order.total_amount,
        vat_total=extract_vat(order.total_amount, vat_rate),
    )
