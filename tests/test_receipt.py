import base64
import hashlib
from datetime import datetime, timezone

import pytest

from errors import ValidationError
from models import Order, OrderStatus, PaymentMethod
from receipt import (
    InvoiceQRData,
    TAG_INVOICE_HASH,
    TAG_INVOICE_TOTAL,
    TAG_SELLER_NAME,
    TAG_TIMESTAMP,
    TAG_VAT_TOTAL,
    build_tlv,
    decode_qr_payload,
    encode_qr_payload,
    extract_vat,
    format_timestamp,
    invoice_for_order,
    receipt_totals,
    validate_invoice,
)


def invoice(**overrides):
    fields = dict(
        seller_name="Lazaza",
        vat_registration_number="123456789012345",
        timestamp=datetime(2026, 1, 5, 18, 30, 0, tzinfo=timezone.utc),
        invoice_total=115.0,
        vat_total=15.0,
    )
    fields.update(overrides)
    return InvoiceQRData(**fields)


def test_extract_vat_from_inclusive_total():
    assert round(extract_vat(115.0), 2) == 15.0


def test_receipt_totals():
    order = Order(
        id="o1",
        order_number="ORD-0001",
        items=(),
        total_amount=46.0,
        payment_method=PaymentMethod.CASH,
        status=OrderStatus.COMPLETED,
        created_by="u1",
        created_at="2026-01-05T18:30:00+00:00",
        updated_at="2026-01-05T18:30:00+00:00",
        discount_amount=4.0,
    )
    totals = receipt_totals(order)

    assert totals.vat_amount == 6.0
    assert totals.net_amount == 40.0
    assert totals.discount_amount == 4.0


def test_format_timestamp():
    assert format_timestamp(datetime(2026, 1, 5, 18, 30, tzinfo=timezone.utc)) == "2026-01-05T18:30:00.000Z"


def test_tlv_layout():
    data = build_tlv(invoice(invoice_hash="abc"))

    assert data[0] == TAG_SELLER_NAME
    assert data[1] == len("Lazaza")
    assert data[2:8] == b"Lazaza"


def test_payload_round_trip_fields():
    records = decode_qr_payload(encode_qr_payload(invoice()))

    assert records[TAG_SELLER_NAME] == "Lazaza"
    assert records[TAG_TIMESTAMP] == "2026-01-05T18:30:00.000Z"
    assert records[TAG_INVOICE_TOTAL] == "115.00"
    assert records[TAG_VAT_TOTAL] == "15.00"


def test_generated_hash_when_absent():
    records = decode_qr_payload(encode_qr_payload(invoice()))
    expected = hashlib.sha256(
        b"Lazaza1234567890123452026-01-05T18:30:00.000Z11515"
    ).hexdigest()

    assert records[TAG_INVOICE_HASH] == expected


def test_arabic_seller_name_length_is_bytes():
    data = build_tlv(invoice(seller_name="لزازة", invoice_hash="x"))
    assert data[1] == len("لزازة".encode("utf-8"))


@pytest.mark.parametrize("overrides, message", [
    ({"seller_name": " "}, "Seller name is required"),
    ({"vat_registration_number": "12345"}, "VAT registration number must be 15 digits"),
    ({"invoice_total": -1.0, "vat_total": -2.0}, "Invoice total must be non-negative"),
    ({"vat_total": 200.0}, "VAT total cannot exceed invoice total"),
])
def test_validation(overrides, message):
    assert message in validate_invoice(invoice(**overrides))


def test_encode_rejects_invalid():
    with pytest.raises(ValidationError):
        encode_qr_payload(invoice(vat_registration_number="abc"))


def test_invoice_for_order():
    order = Order(
        id="o1",
        order_number="ORD-0001",
        items=(),
        total_amount=115.0,
        payment_method=PaymentMethod.CARD,
        status=OrderStatus.COMPLETED,
        created_by="u1",
        created_at="2026-01-05T18:30:00+00:00",
        updated_at="2026-01-05T18:30:00+00:00",
    )
    data = invoice_for_order(order, "Lazaza", "123456789012345")

    assert round(data.vat_total, 2) == 15.0
    payload = encode_qr_payload(data)
    assert base64.b64decode(payload)[0] == TAG_SELLER_NAME
