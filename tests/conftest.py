import os
import sys
from unittest.mock import AsyncMock

# Must be set before smart_pos reads its settings
os.environ["ENV_MODE"] = "development"
os.environ["EXPORT_LEDGER"] = "false"
os.environ["SEED_SAMPLE_DATA"] = "true"
os.environ["SIMULATE_STATUS_CHANGES"] = "false"
os.environ["MOCK_PAYMENT_LATENCY"] = "0"
os.environ["MOCK_PAYMENT_FAILURE_RATE"] = "0"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"

# Ensure project root in path
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy import select

from smart_pos.core.config import get_settings
from smart_pos.database import dispose_db, init_db, session_scope
from smart_pos.main import app
from smart_pos.models import MenuItem, Order, OrderStatus
from smart_pos.realtime.hub import sio
from smart_pos.seed import seed_store
from smart_pos.services.payment import reset_payment_gateway


class EmitRecorder:
    """Wraps the AsyncMock that replaces ``sio.emit``."""

    def __init__(self, mock: AsyncMock):
        self.mock = mock

    @property
    def events(self) -> list[str]:
        return [c.args[0] for c in self.mock.call_args_list]

    def calls(self, event: str) -> list[tuple]:
        """(payload, room) for every emit of ``event``."""
        return [
            (c.args[1], c.kwargs.get("to"))
            for c in self.mock.call_args_list
            if c.args[0] == event
        ]

    def reset(self) -> None:
        self.mock.reset_mock()


@pytest.fixture(autouse=True)
def fresh_caches():
    get_settings.cache_clear()
    reset_payment_gateway()
    yield
    get_settings.cache_clear()
    reset_payment_gateway()


@pytest.fixture()
def emitted(monkeypatch):
    mock = AsyncMock()
    monkeypatch.setattr(sio, "emit", mock)
    return EmitRecorder(mock)


@pytest.fixture()
def client(emitted):
    # A new lifespan per test, so each test starts from a fresh seeded store
    with TestClient(app) as test_client:
        emitted.reset()
        yield test_client


@pytest_asyncio.fixture()
async def store(emitted):
    await init_db()
    async with session_scope() as db:
        await seed_store(db)
    emitted.reset()
    try:
        yield
    finally:
        await dispose_db()


@pytest_asyncio.fixture()
async def menu_items(store) -> dict[str, MenuItem]:
    """Seeded menu keyed by name."""
    async with session_scope() as db:
        result = await db.execute(select(MenuItem))
        return {item.name: item for item in result.scalars().all()}


@pytest_asyncio.fixture()
async def seeded_orders(store) -> dict[OrderStatus, Order]:
    """The three sample orders keyed by status."""
    async with session_scope() as db:
        result = await db.execute(select(Order))
        return {order.status: order for order in result.scalars().all()}


def menu_by_name(client: TestClient) -> dict[str, dict]:
    response = client.get("/api/menu")
    return {item["name"]: item for item in response.json()["data"]}


def place_order(client: TestClient, lines: list[tuple[str, int]], **fields) -> dict:
    """POST an order for ``[(menu item name, quantity), ...]``."""
    menu = menu_by_name(client)
    payload = {
        "items": [{"id": menu[name]["id"], "quantity": qty} for name, qty in lines],
        **fields,
    }
    response = client.post("/api/orders", json=payload)
    assert response.status_code == 201, response.text
    return response.json()["data"]
