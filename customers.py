"""
Customer Module
===============
Customer records keyed by phone number and their purchase totals.

Totals only ever grow: a canceled order is not subtracted from
total_purchases or order_count.
"""

import logging
from typing import Dict, List, Any, Optional
from dataclasses import dataclass

from errors import ValidationError
from models import Customer, utc_now


logger = logging.getLogger(__name__)


MAX_SEARCH_RESULTS = 20


@dataclass(frozen=True)
class CustomerInfo:
    """Customer details captured at the till."""
    phone: str
    name: str
    address: Optional[str] = None


def normalize_phone(phone: Optional[str]) -> str:
    """Strip whitespace and separators from a phone number."""
    if not phone:
        return ""
    return "".join(ch for ch in phone.strip() if ch.isdigit() or ch == "+")


class CustomerService:
    """Customer operations on top of a CustomerGateway."""

    def __init__(self, gateway):
        self.gateway = gateway

    async def get(self, customer_id: str) -> Customer:
        return await self.gateway.get_customer(customer_id)

    async def find_by_phone(self, phone: str) -> Optional[Customer]:
        phone = normalize_phone(phone)
        if not phone:
            return None
        return await self.gateway.find_customer_by_phone(phone)

    async def ensure_customer(
        self,
        phone: str,
        name: str,
        address: Optional[str] = None,
        created_by: Optional[str] = None
    ) -> Customer:
        """
        Find a customer by phone, or create one.

        Raises:
            ValidationError: Missing phone or name
            PersistenceError: Gateway failure
        """
        phone = normalize_phone(phone)
        if not phone:
            raise ValidationError("Customer phone is required", field="phone")

        existing = await self.gateway.find_customer_by_phone(phone)
        if existing is not None:
            return existing

        if not name or not name.strip():
            raise ValidationError("Customer name is required", field="name")

        customer = await self.gateway.insert_customer({
            "phone": phone,
            "name": name.strip(),
            "address": address.strip() if address else None,
            "created_by": created_by,
        })

        logger.info(f"Customer created: {customer.id} ({phone})")

        return customer

    async def record_purchase(
        self,
        customer_id: str,
        order_total: float,
        order_number: str
    ) -> Customer:
        """
        Add an order to the customer's running totals.

        Args:
            customer_id: Customer id
            order_total: Payable amount of the order
            order_number: Order number to link

        Returns:
            Updated customer

        Raises:
            CustomerNotFound: Unknown customer id
            PersistenceError: Gateway failure
        """
        customer = await self.gateway.get_customer(customer_id)
        now = utc_now()

        updated = await self.gateway.update_customer(customer_id, {
            "total_purchases": round(customer.total_purchases + order_total, 2),
            "order_count": customer.order_count + 1,
            "last_order_at": now,
        })

        await self.gateway.insert_customer_order({
            "customer_id": customer_id,
            "order_number": order_number,
            "order_total": order_total,
        })

        logger.debug(
            f"Customer {customer_id} purchase recorded: {order_number} "
            f"({order_total:.2f})"
        )

        return updated

    async def search(self, term: str, limit: int = MAX_SEARCH_RESULTS) -> List[Customer]:
        term = (term or "").strip()
        if not term:
            return []
        return await self.gateway.search_customers(term, limit=limit)

    async def list(self, offset: int = 0, limit: int = 50) -> Dict[str, Any]:
        return await self.gateway.list_customers(offset=offset, limit=limit)

    async def update(
        self,
        customer_id: str,
        name: Optional[str] = None,
        address: Optional[str] = None
    ) -> Customer:
        """Update name and/or address."""
        fields: Dict[str, Any] = {}
        if name is not None:
            if not name.strip():
                raise ValidationError("Customer name is required", field="name")
            fields["name"] = name.strip()
        if address is not None:
            fields["address"] = address.strip() or None

        if not fields:
            return await self.gateway.get_customer(customer_id)

        return await self.gateway.update_customer(customer_id, fields)
