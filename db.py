"""
Database Module
===============
Order persistence gateway with Supabase and in-memory adapters.

The engine only knows the CRUD-shaped contracts below (OrderGateway,
CustomerGateway). Gateway failures surface as PersistenceError and are
never retried here; timeouts and the circuit breaker live in the
Supabase adapter.
"""

import asyncio
import logging
import time
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone, date
from enum import Enum
from typing import Dict, List, Any, Optional, Callable

from prometheus_client import Counter, Histogram
from supabase import create_client, Client
from postgrest.exceptions import APIError

from errors import PersistenceError, OrderNotFound, CustomerNotFound
from models import (
    Order,
    CanceledOrder,
    ModifiedOrder,
    Customer,
    DailySerial,
    OrderFilters,
    OrderPage,
    OrderStatus,
    utc_now,
)


logger = logging.getLogger(__name__)


# Configuration
DEFAULT_TIMEOUT = 10.0  # seconds
CIRCUIT_BREAKER_THRESHOLD = 5
CIRCUIT_BREAKER_TIMEOUT = 30  # seconds
DAILY_SERIAL_WIDTH = 3

# Tables
ORDERS_TABLE = "orders"
CANCELED_ORDERS_TABLE = "canceled_orders"
MODIFIED_ORDERS_TABLE = "modified_orders"
CUSTOMERS_TABLE = "customers"
CUSTOMER_ORDERS_TABLE = "customer_orders"
DAILY_SERIAL_RPC = "get_next_daily_serial"


# ============================================================================
# METRICS
# ============================================================================

gateway_errors = Counter(
    'order_gateway_errors_total',
    'Persistence gateway failures',
    ['operation']
)
gateway_latency = Histogram(
    'order_gateway_latency_seconds',
    'Persistence gateway call latency',
    ['operation']
)


# ============================================================================
# CIRCUIT BREAKER
# ============================================================================

class CircuitState(Enum):
    """Circuit breaker states."""
    CLOSED = "closed"    # Normal operation
    OPEN = "open"        # Failing, reject requests
    HALF_OPEN = "half_open"  # Testing recovery


class CircuitBreaker:
    """Circuit breaker for database operations."""

    def __init__(
        self,
        threshold: int = CIRCUIT_BREAKER_THRESHOLD,
        timeout: int = CIRCUIT_BREAKER_TIMEOUT
    ):
        self.threshold = threshold
        self.timeout = timeout
        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.last_failure_time: Optional[datetime] = None
        self.success_count = 0

    def record_success(self):
        """Record successful operation."""
        self.failure_count = 0

        if self.state == CircuitState.HALF_OPEN:
            self.success_count += 1
            if self.success_count >= 2:
                self.state = CircuitState.CLOSED
                self.success_count = 0
                logger.info("Circuit breaker closed (recovered)")

    def record_failure(self):
        """Record failed operation."""
        self.failure_count += 1
        self.last_failure_time = datetime.now(timezone.utc)

        if self.state == CircuitState.HALF_OPEN or self.failure_count >= self.threshold:
            self.state = CircuitState.OPEN
            logger.error(
                f"Circuit breaker opened "
                f"(failures: {self.failure_count})"
            )

    def can_execute(self) -> bool:
        """Check if operation can execute."""
        if self.state == CircuitState.CLOSED:
            return True

        if self.state == CircuitState.OPEN:
            # Check if timeout expired
            if self.last_failure_time:
                elapsed = (
                    datetime.now(timezone.utc) - self.last_failure_time
                ).total_seconds()
                if elapsed >= self.timeout:
                    self.state = CircuitState.HALF_OPEN
                    self.success_count = 0
                    logger.info("Circuit breaker half-open (testing)")
                    return True
            return False

        # HALF_OPEN - allow test requests
        return True

    def get_state(self) -> str:
        """Get current state."""
        return self.state.value


# ============================================================================
# GATEWAY CONTRACTS
# ============================================================================

class OrderGateway(ABC):
    """CRUD contract for orders and their audit tables."""

    @abstractmethod
    async def insert_order(self, fields: Dict[str, Any]) -> Order:
        """Insert a new order row (id and timestamps are assigned)."""

    @abstractmethod
    async def get_order_by_id(self, order_id: str) -> Order:
        """Fetch one order. Raises OrderNotFound."""

    @abstractmethod
    async def update_order(self, order_id: str, fields: Dict[str, Any]) -> Order:
        """Apply partial fields and stamp updated_at. Raises OrderNotFound."""

    @abstractmethod
    async def insert_canceled_order(self, fields: Dict[str, Any]) -> CanceledOrder:
        """Append a cancellation audit record."""

    @abstractmethod
    async def insert_modified_order(self, fields: Dict[str, Any]) -> ModifiedOrder:
        """Append a modification audit record."""

    @abstractmethod
    async def next_daily_serial(self) -> DailySerial:
        """Atomically advance today's serial."""

    @abstractmethod
    async def latest_order_number(self) -> Optional[str]:
        """Order number of the most recently created order, if any."""

    @abstractmethod
    async def list_orders(
        self,
        filters: Optional[OrderFilters] = None,
        page: int = 1,
        limit: int = 10
    ) -> OrderPage:
        """Newest-first page of orders."""

    @abstractmethod
    async def list_canceled_orders(
        self,
        order_id: Optional[str] = None
    ) -> List[CanceledOrder]:
        """Cancellation records, newest first, optionally for one order."""

    @abstractmethod
    async def list_modified_orders(
        self,
        order_id: Optional[str] = None
    ) -> List[ModifiedOrder]:
        """Modification records, newest first, optionally for one order."""


class CustomerGateway(ABC):
    """CRUD contract for customers."""

    @abstractmethod
    async def get_customer(self, customer_id: str) -> Customer:
        """Fetch one customer. Raises CustomerNotFound."""

    @abstractmethod
    async def find_customer_by_phone(self, phone: str) -> Optional[Customer]:
        """Exact phone lookup."""

    @abstractmethod
    async def search_customers(self, term: str, limit: int = 20) -> List[Customer]:
        """Substring search over phone, name and address."""

    @abstractmethod
    async def list_customers(self, offset: int = 0, limit: int = 50) -> Dict[str, Any]:
        """Page of customers: {customers, total_count, has_more}."""

    @abstractmethod
    async def insert_customer(self, fields: Dict[str, Any]) -> Customer:
        """Insert a customer row."""

    @abstractmethod
    async def update_customer(self, customer_id: str, fields: Dict[str, Any]) -> Customer:
        """Apply partial fields. Raises CustomerNotFound."""

    @abstractmethod
    async def insert_customer_order(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Link a customer to an order number."""


# ============================================================================
# SUPABASE ADAPTER
# ============================================================================

class SupabaseDatabase(OrderGateway, CustomerGateway):
    """
    Supabase-backed gateway.

    The supabase client is synchronous; each call runs in the default
    executor under asyncio.wait_for so the event loop never blocks.
    """

    def __init__(
        self,
        client: Optional[Client] = None,
        url: Optional[str] = None,
        key: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        circuit_breaker: Optional[CircuitBreaker] = None
    ):
        if client is None:
            if not url or not key:
                raise PersistenceError(
                    "SUPABASE_URL and SUPABASE_KEY required",
                    operation="connect"
                )
            client = create_client(url, key)
            logger.info("Supabase client initialized")

        self.client = client
        self.timeout = timeout
        self.circuit_breaker = circuit_breaker or CircuitBreaker()

        # Stats
        self.read_count = 0
        self.write_count = 0
        self.error_count = 0

    async def _execute(
        self,
        operation: str,
        request: Callable[[], Any],
        write: bool = False
    ) -> Any:
        """
        Run one blocking Supabase request.

        Raises:
            PersistenceError: On timeout, API error, or open circuit
        """
        if not self.circuit_breaker.can_execute():
            logger.warning(f"Circuit breaker open, rejecting {operation}")
            gateway_errors.labels(operation=operation).inc()
            raise PersistenceError(
                f"Database unavailable (circuit open) during {operation}",
                operation=operation
            )

        loop = asyncio.get_running_loop()
        started = time.monotonic()

        try:
            result = await asyncio.wait_for(
                loop.run_in_executor(None, request),
                timeout=self.timeout
            )

        except asyncio.TimeoutError as e:
            self._record_error(operation)
            logger.error(f"Database timeout during {operation}")
            raise PersistenceError(
                f"Database timeout during {operation}",
                operation=operation
            ) from e

        except APIError as e:
            self._record_error(operation)
            logger.error(f"Database error during {operation}: {e.message}")
            raise PersistenceError(
                f"Failed to {operation.replace('_', ' ')}: {e.message}",
                operation=operation
            ) from e

        except Exception as e:
            self._record_error(operation)
            logger.error(f"Database error during {operation}: {str(e)}")
            raise PersistenceError(
                f"Failed to {operation.replace('_', ' ')}: {str(e)}",
                operation=operation
            ) from e

        finally:
            gateway_latency.labels(operation=operation).observe(
                time.monotonic() - started
            )

        if write:
            self.write_count += 1
        else:
            self.read_count += 1
        self.circuit_breaker.record_success()

        return result

    def _record_error(self, operation: str):
        self.error_count += 1
        self.circuit_breaker.record_failure()
        gateway_errors.labels(operation=operation).inc()

    @staticmethod
    def _first(result: Any) -> Optional[Dict[str, Any]]:
        data = result.data
        if isinstance(data, list):
            return data[0] if data else None
        return data or None

    # ========================================================================
    # ORDERS
    # ========================================================================

    async def insert_order(self, fields: Dict[str, Any]) -> Order:
        result = await self._execute(
            "create_order",
            lambda: self.client.table(ORDERS_TABLE).insert(fields).execute(),
            write=True
        )
        row = self._first(result)
        if row is None:
            raise PersistenceError("Insert returned no order row", operation="create_order")
        return Order.from_row(row)

    async def get_order_by_id(self, order_id: str) -> Order:
        result = await self._execute(
            "fetch_order",
            lambda: self.client.table(ORDERS_TABLE)
                .select("*")
                .eq("id", order_id)
                .limit(1)
                .execute()
        )
        row = self._first(result)
        if row is None:
            raise OrderNotFound(order_id)
        return Order.from_row(row)

    async def update_order(self, order_id: str, fields: Dict[str, Any]) -> Order:
        update = {**fields, "updated_at": utc_now()}
        result = await self._execute(
            "update_order",
            lambda: self.client.table(ORDERS_TABLE)
                .update(update)
                .eq("id", order_id)
                .execute(),
            write=True
        )
        row = self._first(result)
        if row is None:
            raise OrderNotFound(order_id)
        return Order.from_row(row)

    async def insert_canceled_order(self, fields: Dict[str, Any]) -> CanceledOrder:
        result = await self._execute(
            "cancel_order",
            lambda: self.client.table(CANCELED_ORDERS_TABLE).insert(fields).execute(),
            write=True
        )
        row = self._first(result)
        if row is None:
            raise PersistenceError("Insert returned no cancellation row", operation="cancel_order")
        return CanceledOrder.from_row(row)

    async def insert_modified_order(self, fields: Dict[str, Any]) -> ModifiedOrder:
        result = await self._execute(
            "modify_order",
            lambda: self.client.table(MODIFIED_ORDERS_TABLE).insert(fields).execute(),
            write=True
        )
        row = self._first(result)
        if row is None:
            raise PersistenceError("Insert returned no modification row", operation="modify_order")
        return ModifiedOrder.from_row(row)

    async def next_daily_serial(self) -> DailySerial:
        result = await self._execute(
            "next_daily_serial",
            lambda: self.client.rpc(DAILY_SERIAL_RPC).execute(),
            write=True
        )
        row = self._first(result)
        if row is None:
            raise PersistenceError("Daily serial function returned nothing", operation="next_daily_serial")
        return DailySerial(serial=str(row["serial"]), serial_date=str(row["serial_date"]))

    async def latest_order_number(self) -> Optional[str]:
        result = await self._execute(
            "latest_order_number",
            lambda: self.client.table(ORDERS_TABLE)
                .select("order_number")
                .order("created_at", desc=True)
                .limit(1)
                .execute()
        )
        row = self._first(result)
        return row["order_number"] if row else None

    async def list_orders(
        self,
        filters: Optional[OrderFilters] = None,
        page: int = 1,
        limit: int = 10
    ) -> OrderPage:
        filters = filters or OrderFilters()
        start = (page - 1) * limit
        end = start + limit - 1

        def request():
            query = (
                self.client.table(ORDERS_TABLE)
                .select("*", count="exact")
                .order("created_at", desc=True)
            )
            if filters.status:
                query = query.eq("status", filters.status.value)
            if filters.payment_method:
                query = query.eq("payment_method", filters.payment_method.value)
            if filters.customer_name:
                query = query.ilike("customer_name", f"%{filters.customer_name}%")
            if filters.order_number:
                query = query.ilike("order_number", f"%{filters.order_number}%")
            if filters.created_by:
                query = query.eq("created_by", filters.created_by)
            if filters.date_from:
                query = query.gte("created_at", filters.date_from)
            if filters.date_to:
                query = query.lte("created_at", filters.date_to)
            return query.range(start, end).execute()

        result = await self._execute("fetch_orders", request)

        return OrderPage(
            orders=[Order.from_row(row) for row in (result.data or [])],
            total=result.count or 0,
            page=page,
            limit=limit,
        )

    async def list_canceled_orders(
        self,
        order_id: Optional[str] = None
    ) -> List[CanceledOrder]:
        def request():
            query = self.client.table(CANCELED_ORDERS_TABLE).select("*")
            if order_id:
                query = query.eq("original_order_id", order_id)
            return query.order("canceled_at", desc=True).execute()

        result = await self._execute("fetch_canceled_orders", request)
        return [CanceledOrder.from_row(row) for row in (result.data or [])]

    async def list_modified_orders(
        self,
        order_id: Optional[str] = None
    ) -> List[ModifiedOrder]:
        def request():
            query = self.client.table(MODIFIED_ORDERS_TABLE).select("*")
            if order_id:
                query = query.eq("original_order_id", order_id)
            return query.order("modified_at", desc=True).execute()

        result = await self._execute("fetch_modified_orders", request)
        return [ModifiedOrder.from_row(row) for row in (result.data or [])]

    # ========================================================================
    # CUSTOMERS
    # ========================================================================

    async def get_customer(self, customer_id: str) -> Customer:
        result = await self._execute(
            "fetch_customer",
            lambda: self.client.table(CUSTOMERS_TABLE)
                .select("*")
                .eq("id", customer_id)
                .limit(1)
                .execute()
        )
        row = self._first(result)
        if row is None:
            raise CustomerNotFound(customer_id)
        return Customer.from_row(row)

    async def find_customer_by_phone(self, phone: str) -> Optional[Customer]:
        result = await self._execute(
            "search_customer",
            lambda: self.client.table(CUSTOMERS_TABLE)
                .select("*")
                .eq("phone", phone)
                .limit(1)
                .execute()
        )
        row = self._first(result)
        return Customer.from_row(row) if row else None

    async def search_customers(self, term: str, limit: int = 20) -> List[Customer]:
        pattern = f"%{term}%"
        result = await self._execute(
            "search_customers",
            lambda: self.client.table(CUSTOMERS_TABLE)
                .select("*")
                .or_(f"phone.ilike.{pattern},name.ilike.{pattern},address.ilike.{pattern}")
                .order("last_order_at", desc=True)
                .limit(limit)
                .execute()
        )
        return [Customer.from_row(row) for row in (result.data or [])]

    async def list_customers(self, offset: int = 0, limit: int = 50) -> Dict[str, Any]:
        result = await self._execute(
            "fetch_customers",
            lambda: self.client.table(CUSTOMERS_TABLE)
                .select("*", count="exact")
                .order("last_order_at", desc=True)
                .range(offset, offset + limit - 1)
                .execute()
        )
        total = result.count or 0
        return {
            "customers": [Customer.from_row(row) for row in (result.data or [])],
            "total_count": total,
            "has_more": offset + limit < total,
        }

    async def insert_customer(self, fields: Dict[str, Any]) -> Customer:
        result = await self._execute(
            "create_customer",
            lambda: self.client.table(CUSTOMERS_TABLE).insert(fields).execute(),
            write=True
        )
        row = self._first(result)
        if row is None:
            raise PersistenceError("Insert returned no customer row", operation="create_customer")
        return Customer.from_row(row)

    async def update_customer(self, customer_id: str, fields: Dict[str, Any]) -> Customer:
        update = {**fields, "updated_at": utc_now()}
        result = await self._execute(
            "update_customer",
            lambda: self.client.table(CUSTOMERS_TABLE)
                .update(update)
                .eq("id", customer_id)
                .execute(),
            write=True
        )
        row = self._first(result)
        if row is None:
            raise CustomerNotFound(customer_id)
        return Customer.from_row(row)

    async def insert_customer_order(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        result = await self._execute(
            "link_customer_order",
            lambda: self.client.table(CUSTOMER_ORDERS_TABLE).insert(fields).execute(),
            write=True
        )
        return self._first(result) or {}

    # ========================================================================
    # STATS & MONITORING
    # ========================================================================

    def get_stats(self) -> Dict[str, Any]:
        """Get database statistics."""
        return {
            "backend": "supabase",
            "reads": self.read_count,
            "writes": self.write_count,
            "errors": self.error_count,
            "circuit_breaker": self.circuit_breaker.get_state(),
            "circuit_failures": self.circuit_breaker.failure_count
        }

    def is_healthy(self) -> bool:
        """Check if database is healthy."""
        return (
            self.client is not None and
            self.circuit_breaker.state != CircuitState.OPEN
        )


# ============================================================================
# IN-MEMORY ADAPTER
# ============================================================================

def _ilike(value: Optional[str], needle: str) -> bool:
    return needle.lower() in (value or "").lower()


class MemoryDatabase(OrderGateway, CustomerGateway):
    """
    Process-local gateway for development runs and tests.

    Rows are stored in the same snake_case shape the Supabase tables use,
    in insertion order. The daily serial is advanced under a lock.
    """

    def __init__(self, today: Optional[Callable[[], date]] = None):
        self.orders: Dict[str, Dict[str, Any]] = {}
        self.canceled_orders: List[Dict[str, Any]] = []
        self.modified_orders: List[Dict[str, Any]] = []
        self.customers: Dict[str, Dict[str, Any]] = {}
        self.customer_orders: List[Dict[str, Any]] = []

        self._today = today or (lambda: datetime.now(timezone.utc).date())
        self._serials: Dict[str, int] = {}
        self._serial_lock = asyncio.Lock()

        self.read_count = 0
        self.write_count = 0

    # ------------------------------------------------------------------ orders

    async def insert_order(self, fields: Dict[str, Any]) -> Order:
        now = utc_now()
        row = {
            "status": OrderStatus.COMPLETED.value,
            **fields,
            "id": str(uuid.uuid4()),
            "created_at": now,
            "updated_at": now,
        }
        self.orders[row["id"]] = row
        self.write_count += 1
        return Order.from_row(row)

    async def get_order_by_id(self, order_id: str) -> Order:
        self.read_count += 1
        row = self.orders.get(order_id)
        if row is None:
            raise OrderNotFound(order_id)
        return Order.from_row(row)

    async def update_order(self, order_id: str, fields: Dict[str, Any]) -> Order:
        row = self.orders.get(order_id)
        if row is None:
            raise OrderNotFound(order_id)
        row.update(fields)
        row["updated_at"] = utc_now()
        self.write_count += 1
        return Order.from_row(row)

    async def insert_canceled_order(self, fields: Dict[str, Any]) -> CanceledOrder:
        row = {**fields, "id": str(uuid.uuid4()), "canceled_at": utc_now()}
        self.canceled_orders.append(row)
        self.write_count += 1
        return CanceledOrder.from_row(row)

    async def insert_modified_order(self, fields: Dict[str, Any]) -> ModifiedOrder:
        row = {**fields, "id": str(uuid.uuid4()), "modified_at": utc_now()}
        self.modified_orders.append(row)
        self.write_count += 1
        return ModifiedOrder.from_row(row)

    async def next_daily_serial(self) -> DailySerial:
        async with self._serial_lock:
            today = self._today().isoformat()
            value = self._serials.get(today, 0) + 1
            self._serials[today] = value
        return DailySerial(
            serial=f"{value:0{DAILY_SERIAL_WIDTH}d}",
            serial_date=today
        )

    async def latest_order_number(self) -> Optional[str]:
        self.read_count += 1
        if not self.orders:
            return None
        # dicts keep insertion order, which is creation order here
        last = list(self.orders.values())[-1]
        return last.get("order_number")

    async def list_orders(
        self,
        filters: Optional[OrderFilters] = None,
        page: int = 1,
        limit: int = 10
    ) -> OrderPage:
        filters = filters or OrderFilters()
        self.read_count += 1

        rows = list(reversed(list(self.orders.values())))

        if filters.status:
            rows = [r for r in rows if r.get("status") == filters.status.value]
        if filters.payment_method:
            rows = [r for r in rows if r.get("payment_method") == filters.payment_method.value]
        if filters.customer_name:
            rows = [r for r in rows if _ilike(r.get("customer_name"), filters.customer_name)]
        if filters.order_number:
            rows = [r for r in rows if _ilike(r.get("order_number"), filters.order_number)]
        if filters.created_by:
            rows = [r for r in rows if r.get("created_by") == filters.created_by]
        if filters.date_from:
            rows = [r for r in rows if r["created_at"] >= filters.date_from]
        if filters.date_to:
            rows = [r for r in rows if r["created_at"] <= filters.date_to]

        start = (page - 1) * limit
        return OrderPage(
            orders=[Order.from_row(r) for r in rows[start:start + limit]],
            total=len(rows),
            page=page,
            limit=limit,
        )

    async def list_canceled_orders(
        self,
        order_id: Optional[str] = None
    ) -> List[CanceledOrder]:
        rows = [
            r for r in reversed(self.canceled_orders)
            if order_id is None or r["original_order_id"] == order_id
        ]
        return [CanceledOrder.from_row(r) for r in rows]

    async def list_modified_orders(
        self,
        order_id: Optional[str] = None
    ) -> List[ModifiedOrder]:
        rows = [
            r for r in reversed(self.modified_orders)
            if order_id is None or r["original_order_id"] == order_id
        ]
        return [ModifiedOrder.from_row(r) for r in rows]

    # --------------------------------------------------------------- customers

    async def get_customer(self, customer_id: str) -> Customer:
        row = self.customers.get(customer_id)
        if row is None:
            raise CustomerNotFound(customer_id)
        return Customer.from_row(row)

    async def find_customer_by_phone(self, phone: str) -> Optional[Customer]:
        for row in self.customers.values():
            if row["phone"] == phone:
                return Customer.from_row(row)
        return None

    async def search_customers(self, term: str, limit: int = 20) -> List[Customer]:
        rows = [
            row for row in self.customers.values()
            if _ilike(row.get("phone"), term)
            or _ilike(row.get("name"), term)
            or _ilike(row.get("address"), term)
        ]
        rows.sort(key=lambda r: r.get("last_order_at") or "", reverse=True)
        return [Customer.from_row(r) for r in rows[:limit]]

    async def list_customers(self, offset: int = 0, limit: int = 50) -> Dict[str, Any]:
        rows = sorted(
            self.customers.values(),
            key=lambda r: r.get("last_order_at") or "",
            reverse=True
        )
        return {
            "customers": [Customer.from_row(r) for r in rows[offset:offset + limit]],
            "total_count": len(rows),
            "has_more": offset + limit < len(rows),
        }

    async def insert_customer(self, fields: Dict[str, Any]) -> Customer:
        now = utc_now()
        row = {
            "total_purchases": 0,
            "order_count": 0,
            **fields,
            "id": str(uuid.uuid4()),
            "created_at": now,
            "updated_at": now,
        }
        self.customers[row["id"]] = row
        return Customer.from_row(row)

    async def update_customer(self, customer_id: str, fields: Dict[str, Any]) -> Customer:
        row = self.customers.get(customer_id)
        if row is None:
            raise CustomerNotFound(customer_id)
        row.update(fields)
        row["updated_at"] = utc_now()
        return Customer.from_row(row)

    async def insert_customer_order(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        row = {**fields, "id": str(uuid.uuid4()), "created_at": utc_now()}
        self.customer_orders.append(row)
        return row

    # ------------------------------------------------------------------- stats

    def get_stats(self) -> Dict[str, Any]:
        return {
            "backend": "memory",
            "reads": self.read_count,
            "writes": self.write_count,
            "orders": len(self.orders),
        }

    def is_healthy(self) -> bool:
        return True


# ============================================================================
# FACTORY
# ============================================================================

def create_database(database_config) -> OrderGateway:
    """
    Build the gateway selected by configuration.

    Args:
        database_config: config.DatabaseConfig

    Returns:
        Gateway implementing both OrderGateway and CustomerGateway
    """
    if database_config.backend == "memory":
        logger.info("Using in-memory database")
        return MemoryDatabase()

    return SupabaseDatabase(
        url=database_config.url,
        key=database_config.key,
        timeout=database_config.timeout
    )
