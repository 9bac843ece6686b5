import asyncio
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select

from smart_pos.database import session_scope
from smart_pos.models import (
    DiningTable,
    KitchenOrder,
    MenuItem,
    Order,
    OrderStatus,
    PaymentStatus,
)
from smart_pos.realtime import simulator
from smart_pos.seed import seed_store
from smart_pos.services import analytics


@pytest.mark.asyncio
async def test_seed_contents(store):
    async with session_scope() as db:
        menu_count = await db.scalar(select(func.count()).select_from(MenuItem))
        tables = list((await db.execute(select(DiningTable))).scalars().all())
        orders = list((await db.execute(select(Order))).scalars().all())
        tickets = list((await db.execute(select(KitchenOrder))).scalars().all())

    assert menu_count == 10
    assert sorted(t.qr_code for t in tables)[0] == "QR-TABLE-01"
    assert len(tables) == 20

    by_status = {o.status: o for o in orders}
    assert by_status[OrderStatus.PENDING].total_amount == 13000
    assert by_status[OrderStatus.CONFIRMED].total_amount == 31000
    assert by_status[OrderStatus.CONFIRMED].payment_status == PaymentStatus.PAID
    assert by_status[OrderStatus.PREPARING].total_amount == 25000

    ticketed = {t.order_id for t in tickets}
    assert ticketed == {
        by_status[OrderStatus.CONFIRMED].id,
        by_status[OrderStatus.PREPARING].id,
    }
    preparing_ticket = next(
        t for t in tickets if t.order_id == by_status[OrderStatus.PREPARING].id
    )
    assert preparing_ticket.start_time is not None


@pytest.mark.asyncio
async def test_seed_skips_filled_store(store):
    async with session_scope() as db:
        assert await seed_store(db) is False
        assert await db.scalar(select(func.count()).select_from(MenuItem)) == 10


@pytest.mark.asyncio
async def test_dashboard_on_seeded_store(store):
    async with session_scope() as db:
        data = await analytics.dashboard(db)

    assert data.total_sales == 56000
    assert data.total_orders == 3
    assert data.average_order_value == 28000
    assert data.orders_by_status["delivered"] == 0
    assert data.orders_by_status["cancelled"] == 0
    assert data.popular_items[0].count == 2
    # Newest first: the sample orders were placed 5, 10 and 20 minutes ago
    assert [o.id[-3:] for o in data.recent_orders] == ["001", "002", "003"]


@pytest.mark.asyncio
async def test_simulator_step_advances_an_order(store, emitted):
    with patch.object(simulator.random, "random", return_value=0.0):
        await simulator.simulate_once()

    assert "order:status-changed" in emitted.events


@pytest.mark.asyncio
async def test_simulator_step_usually_idles(store, emitted):
    with patch.object(simulator.random, "random", return_value=0.9):
        await simulator.simulate_once()

    assert emitted.events == []


@pytest.mark.asyncio
async def test_simulator_survives_unexpected_errors(monkeypatch, caplog):
    steps = AsyncMock(side_effect=[RuntimeError("store went away"), None, asyncio.CancelledError()])
    monkeypatch.setattr(simulator, "simulate_once", steps)

    with caplog.at_level("ERROR", logger="smart_pos.realtime.simulator"):
        with pytest.raises(asyncio.CancelledError):
            await simulator.run_status_simulator(0)

    assert steps.await_count == 3
    assert "Simulator step failed" in caplog.text
