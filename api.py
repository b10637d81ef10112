"""
HTTP API
========
FastAPI surface over checkout, the mutation engine and the event discount.

The calling user is identified by the X-User-Id header; authenticating
that user happens upstream. Engine errors map to status codes:

    ValidationError  -> 400
    NotFoundError    -> 404
    PersistenceError -> 500 (generic message, details only in logs)
"""

import structlog
from datetime import datetime, timezone
from typing import List, Optional, Dict, Any

from fastapi import FastAPI, Header, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from checkout import CheckoutService
from customers import CustomerService
from discount import EventDiscountSettings
from errors import (
    ValidationError,
    NotFoundError,
    PersistenceError,
    IncompleteMutationError,
)
from models import OrderFilters, OrderStatus, PaymentMethod
from mutations import OrderMutationEngine, OrderChanges
from numbering import OrderNumberService, display_order_number
from receipt import (
    DEFAULT_VAT_RATE,
    receipt_totals,
    invoice_for_order,
    encode_qr_payload,
)
from schemas import (
    OrderCreate,
    OrderCancel,
    OrderModify,
    EventDiscountIn,
)


logger = structlog.get_logger(__name__)


DEFAULT_SELLER_NAME = "Restaurant"
DEFAULT_VAT_NUMBER = "000000000000000"


def _failure_message(request: Request) -> str:
    path = request.url.path.rstrip("/")
    if path.endswith("/cancel"):
        return "Failed to cancel order"
    if path.endswith("/modify"):
        return "Failed to modify order"
    if request.method == "POST" and path.endswith("/orders"):
        return "Failed to create order"
    return "Failed to fetch data"


def _require_user(user_id: Optional[str]) -> str:
    if not user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user_id


def create_app(
    gateway,
    event_discounts: Optional[EventDiscountSettings] = None,
    restaurant=None,
    enable_daily_serial: bool = True,
    enable_customer_tracking: bool = True,
    cors_origins: Optional[List[str]] = None
) -> FastAPI:
    """
    Build the API application around a gateway.

    Args:
        gateway: Object implementing OrderGateway and CustomerGateway
        event_discounts: Event discount settings shared by checkouts
        restaurant: config.RestaurantConfig for receipts (optional)
        enable_daily_serial: Assign daily serials at checkout
        enable_customer_tracking: Record customer purchases at checkout
        cors_origins: Allowed CORS origins
    """
    event_discounts = event_discounts or EventDiscountSettings()
    customers = CustomerService(gateway)
    numbering = OrderNumberService(gateway)
    checkout = CheckoutService(
        gateway,
        numbering=numbering,
        customers=customers if enable_customer_tracking else None,
        event_discounts=event_discounts,
        enable_daily_serial=enable_daily_serial,
    )
    mutations = OrderMutationEngine(gateway)

    seller_name = getattr(restaurant, "name", DEFAULT_SELLER_NAME)
    vat_number = getattr(restaurant, "vat_registration_number", DEFAULT_VAT_NUMBER)
    vat_rate = getattr(restaurant, "vat_rate", DEFAULT_VAT_RATE)

    app = FastAPI(title="POS Order Service")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.gateway = gateway
    app.state.checkout = checkout
    app.state.mutations = mutations
    app.state.customers = customers
    app.state.event_discounts = event_discounts

    # ========================================================================
    # ERROR MAPPING
    # ========================================================================

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return JSONResponse(
            status_code=400,
            content={"error": str(exc), "field": exc.field},
        )

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content={"error": str(exc)})

    @app.exception_handler(PersistenceError)
    async def persistence_error_handler(request: Request, exc: PersistenceError):
        logger.error(
            "request_persistence_failed",
            path=request.url.path,
            method=request.method,
            operation=exc.operation,
            error=str(exc)
        )
        content: Dict[str, Any] = {"error": _failure_message(request)}
        if isinstance(exc, IncompleteMutationError):
            content["incomplete"] = True
            content["audit_id"] = getattr(exc.audit_record, "id", None)
        return JSONResponse(status_code=500, content=content)

    # ========================================================================
    # HEALTH & METRICS
    # ========================================================================

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        healthy = gateway.is_healthy()
        return {
            "status": "healthy" if healthy else "degraded",
            "database": gateway.get_stats(),
            "timestamp": datetime.now(timezone.utc).isoformat()
        }

    @app.get("/metrics")
    async def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # ========================================================================
    # ORDERS
    # ========================================================================

    @app.post("/orders", status_code=201)
    async def create_order(
        payload: OrderCreate,
        x_user_id: Optional[str] = Header(None)
    ):
        user_id = _require_user(x_user_id)

        order = await checkout.checkout_items(
            [item.to_cart_item() for item in payload.items],
            payment_method=payload.payment_method,
            created_by=user_id,
            order_discount=payload.discount.to_discount() if payload.discount else None,
            split=payload.split.to_split() if payload.split else None,
            cash_received=payload.cash_received,
            customer_name=payload.customer_name,
            customer=payload.customer.to_info() if payload.customer else None,
        )

        return {
            "order": order.to_dict(),
            "display_number": display_order_number(order.order_number),
        }

    @app.get("/orders")
    async def list_orders(
        status: Optional[OrderStatus] = None,
        payment_method: Optional[PaymentMethod] = None,
        customer_name: Optional[str] = None,
        order_number: Optional[str] = None,
        created_by: Optional[str] = None,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        page: int = Query(1, ge=1),
        limit: int = Query(10, ge=1, le=100),
        x_user_id: Optional[str] = Header(None)
    ):
        _require_user(x_user_id)

        filters = OrderFilters(
            status=status,
            payment_method=payment_method,
            customer_name=customer_name,
            order_number=order_number,
            created_by=created_by,
            date_from=date_from,
            date_to=date_to,
        )
        result = await gateway.list_orders(filters, page=page, limit=limit)

        return {
            "orders": [order.to_dict() for order in result.orders],
            "total": result.total,
            "page": result.page,
            "limit": result.limit,
        }

    # Fixed paths before /orders/{order_id}
    @app.get("/orders/canceled")
    async def list_canceled_orders(x_user_id: Optional[str] = Header(None)):
        _require_user(x_user_id)
        records = await mutations.list_canceled_orders()
        return {"canceled_orders": [r.to_dict() for r in records]}

    @app.get("/orders/modified")
    async def list_modified_orders(x_user_id: Optional[str] = Header(None)):
        _require_user(x_user_id)
        records = await mutations.list_modified_orders()
        return {"modified_orders": [r.to_dict() for r in records]}

    @app.get("/orders/{order_id}")
    async def get_order(order_id: str, x_user_id: Optional[str] = Header(None)):
        _require_user(x_user_id)
        order = await gateway.get_order_by_id(order_id)
        return {"order": order.to_dict()}

    @app.get("/orders/{order_id}/history")
    async def get_order_history(order_id: str, x_user_id: Optional[str] = Header(None)):
        _require_user(x_user_id)
        history = await mutations.get_order_history(order_id)
        return {
            "order": history["order"].to_dict(),
            "cancellations": [r.to_dict() for r in history["cancellations"]],
            "modifications": [r.to_dict() for r in history["modifications"]],
        }

    @app.get("/orders/{order_id}/receipt")
    async def get_order_receipt(order_id: str, x_user_id: Optional[str] = Header(None)):
        _require_user(x_user_id)
        order = await gateway.get_order_by_id(order_id)
        invoice = invoice_for_order(order, seller_name, vat_number, vat_rate)
        return {
            "order_number": order.order_number,
            "daily_serial": order.daily_serial,
            "totals": receipt_totals(order, vat_rate).to_dict(),
            "qr_payload": encode_qr_payload(invoice),
        }

    @app.post("/orders/{order_id}/cancel")
    async def cancel_order(
        order_id: str,
        payload: Optional[OrderCancel] = None,
        x_user_id: Optional[str] = Header(None)
    ):
        user_id = _require_user(x_user_id)
        reason = payload.reason if payload else None
        order = await mutations.cancel(order_id, user_id, reason=reason)
        return {"success": True, "order": order.to_dict()}

    @app.post("/orders/{order_id}/modify")
    async def modify_order(
        order_id: str,
        payload: OrderModify,
        x_user_id: Optional[str] = Header(None)
    ):
        user_id = _require_user(x_user_id)

        changes = OrderChanges(
            customer_name=payload.customer_name,
            items=(
                [item.to_order_item() for item in payload.items]
                if payload.items is not None else None
            ),
            total_amount=payload.total_amount,
            payment_method=payload.payment_method,
            split=payload.split.to_split() if payload.split else None,
        )
        order = await mutations.modify(
            order_id,
            user_id,
            changes,
            modification_type=payload.modification_type,
        )
        return {"success": True, "order": order.to_dict()}

    # ========================================================================
    # EVENT DISCOUNT
    # ========================================================================

    @app.get("/event-discount")
    async def get_event_discount():
        return event_discounts.current().to_dict()

    @app.post("/event-discount")
    async def activate_event_discount(
        payload: EventDiscountIn,
        x_user_id: Optional[str] = Header(None)
    ):
        user_id = _require_user(x_user_id)
        discount = event_discounts.activate(
            payload.percentage,
            payload.event_name,
            activated_by=user_id,
        )
        logger.info(
            "event_discount_activated",
            event_name=discount.event_name,
            percentage=discount.percentage,
            activated_by=user_id
        )
        return discount.to_dict()

    @app.delete("/event-discount")
    async def deactivate_event_discount(x_user_id: Optional[str] = Header(None)):
        user_id = _require_user(x_user_id)
        discount = event_discounts.deactivate()
        logger.info("event_discount_deactivated", deactivated_by=user_id)
        return discount.to_dict()

    # ========================================================================
    # CUSTOMERS
    # ========================================================================

    @app.get("/customers")
    async def list_customers(
        search: Optional[str] = None,
        offset: int = Query(0, ge=0),
        limit: int = Query(50, ge=1, le=200),
        x_user_id: Optional[str] = Header(None)
    ):
        _require_user(x_user_id)

        if search:
            found = await customers.search(search)
            return {
                "customers": [c.to_dict() for c in found],
                "total_count": len(found),
                "has_more": False,
            }

        result = await customers.list(offset=offset, limit=limit)
        return {
            "customers": [c.to_dict() for c in result["customers"]],
            "total_count": result["total_count"],
            "has_more": result["has_more"],
        }

    return app
