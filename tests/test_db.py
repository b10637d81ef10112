from types import SimpleNamespace

import pytest
from postgrest.exceptions import APIError

from db import CircuitBreaker, CircuitState, MemoryDatabase, SupabaseDatabase, create_database
from errors import OrderNotFound, PersistenceError
from models import OrderFilters, OrderStatus, PaymentMethod


ORDER_ROW = {
    "id": "o1",
    "order_number": "ORD-0007",
    "items": [],
    "total_amount": "45.00",
    "payment_method": "cash",
    "status": "completed",
    "created_by": "u1",
    "created_at": "2026-01-05T18:30:00+00:00",
    "updated_at": "2026-01-05T18:30:00+00:00",
}


class FakeQuery:
    """Chainable stand-in for the supabase query builder."""

    def __init__(self, client, table):
        self.client = client
        self.table = table
        self.calls = []

    def __getattr__(self, name):
        def method(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            return self
        return method

    def execute(self):
        self.client.executed.append((self.table, self.calls))
        if self.client.error:
            raise self.client.error
        return SimpleNamespace(data=self.client.data, count=len(self.client.data))


class FakeClient:
    def __init__(self, data=None, error=None):
        self.data = data if data is not None else []
        self.error = error
        self.executed = []

    def table(self, name):
        return FakeQuery(self, name)

    def rpc(self, name):
        return FakeQuery(self, f"rpc:{name}")


@pytest.mark.asyncio
async def test_supabase_get_order_parses_numeric_strings():
    db = SupabaseDatabase(client=FakeClient(data=[ORDER_ROW]))
    order = await db.get_order_by_id("o1")

    assert order.total_amount == 45.0
    assert order.payment_method == PaymentMethod.CASH
    assert db.get_stats()["reads"] == 1


@pytest.mark.asyncio
async def test_supabase_missing_order():
    db = SupabaseDatabase(client=FakeClient(data=[]))
    with pytest.raises(OrderNotFound):
        await db.get_order_by_id("o1")


@pytest.mark.asyncio
async def test_supabase_api_error_becomes_persistence_error():
    client = FakeClient(error=APIError({"message": "permission denied", "code": "42501"}))
    db = SupabaseDatabase(client=client)

    with pytest.raises(PersistenceError) as exc_info:
        await db.insert_order({"order_number": "ORD-0001"})

    assert exc_info.value.operation == "create_order"
    assert db.get_stats()["errors"] == 1


@pytest.mark.asyncio
async def test_supabase_circuit_opens_after_failures():
    client = FakeClient(error=APIError({"message": "down"}))
    db = SupabaseDatabase(client=client, circuit_breaker=CircuitBreaker(threshold=2))

    for _ in range(2):
        with pytest.raises(PersistenceError):
            await db.latest_order_number()

    assert not db.is_healthy()
    calls_before = len(client.executed)
    with pytest.raises(PersistenceError):
        await db.latest_order_number()
    assert len(client.executed) == calls_before


@pytest.mark.asyncio
async def test_supabase_daily_serial_rpc():
    client = FakeClient(data=[{"serial": "004", "serial_date": "2026-01-05"}])
    serial = await SupabaseDatabase(client=client).next_daily_serial()

    assert serial.serial == "004"
    assert client.executed[0][0] == "rpc:get_next_daily_serial"


@pytest.mark.asyncio
async def test_supabase_list_orders_applies_filters():
    client = FakeClient(data=[ORDER_ROW])
    db = SupabaseDatabase(client=client)

    page = await db.list_orders(
        OrderFilters(status=OrderStatus.COMPLETED, customer_name="sar"), page=2, limit=10
    )

    calls = client.executed[0][1]
    assert ("eq", ("status", "completed"), {}) in calls
    assert ("ilike", ("customer_name", "%sar%"), {}) in calls
    assert ("range", (10, 19), {}) in calls
    assert page.total == 1


def test_circuit_breaker_half_open_recovery():
    breaker = CircuitBreaker(threshold=1, timeout=0)
    breaker.record_failure()
    assert breaker.state == CircuitState.OPEN

    assert breaker.can_execute()
    assert breaker.state == CircuitState.HALF_OPEN
    breaker.record_success()
    breaker.record_success()
    assert breaker.state == CircuitState.CLOSED


@pytest.mark.asyncio
async def test_memory_list_orders_filters_and_pages():
    db = MemoryDatabase()
    for index, name in enumerate(["Sara", "Omar", "sarah"]):
        await db.insert_order({
            "order_number": f"ORD-000{index + 1}",
            "customer_name": name,
            "items": [],
            "total_amount": 10,
            "payment_method": "card",
            "created_by": "u1",
        })

    page = await db.list_orders(OrderFilters(customer_name="SAR"), page=1, limit=1)

    assert page.total == 2
    assert [o.customer_name for o in page.orders] == ["sarah"]


@pytest.mark.asyncio
async def test_memory_update_missing_order():
    with pytest.raises(OrderNotFound):
        await MemoryDatabase().update_order("nope", {"status": "canceled"})


def test_create_database_memory():
    database_config = SimpleNamespace(backend="memory", url=None, key=None, timeout=1.0)
    assert isinstance(create_database(database_config), MemoryDatabase)
