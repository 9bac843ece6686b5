import asyncio
from unittest.mock import MagicMock

import pytest

from conftest import place_order
from smart_pos.core.config import get_settings
from smart_pos.core.exceptions import ConflictError
from smart_pos.database import session_scope
from smart_pos.models import OrderStatus, PaymentStatus
from smart_pos.schemas import RefundRequest
from smart_pos.services import orders, settlement
from smart_pos.services.payment import MockPaymentGateway, get_payment_gateway


def pay(client, order, method="cash", amount=None):
    return client.post(
        "/api/payments/process",
        json={
            "orderId": order["id"],
            "method": method,
            "amount": order["totalAmount"] if amount is None else amount,
        },
    )


def test_development_uses_mock_gateway():
    gateway = get_payment_gateway()

    assert isinstance(gateway, MockPaymentGateway)
    assert gateway.latency == 0
    assert gateway.failure_rate == 0


@pytest.mark.parametrize("method", ["cash", "qris", "card"])
def test_payment_settles_after_response(client, emitted, method):
    order = place_order(client, [("Ayam Bakar", 2)])

    response = pay(client, order, method)

    assert response.status_code == 200
    payment = response.json()["data"]
    assert payment["status"] == "processing"
    assert payment["transactionId"].startswith("TXN-")
    assert payment["method"] == method

    # TestClient returns once the background settlement has run
    settled = client.get(f"/api/payments/{payment['transactionId']}").json()["data"]
    assert settled["status"] == "completed"
    assert settled["completedAt"] is not None

    paid = client.get(f"/api/orders/{order['id']}").json()["data"]
    assert paid["paymentStatus"] == "paid"
    assert paid["paymentMethod"] == method

    assert "payment:completed" in emitted.events
    assert "order:updated" in emitted.events


def test_gateway_reference_recorded_for_card(client):
    order = place_order(client, [("Mie Ayam", 1)])

    payment = pay(client, order, "card").json()["data"]

    settled = client.get(f"/api/payments/{payment['transactionId']}").json()["data"]
    assert settled["providerReference"].startswith("pi_mock_")


def test_cash_never_calls_gateway(client, monkeypatch):
    gateway = get_payment_gateway()
    monkeypatch.setattr(gateway, "failure_rate", 1.0)
    order = place_order(client, [("Mie Ayam", 1)])

    payment = pay(client, order, "cash").json()["data"]

    settled = client.get(f"/api/payments/{payment['transactionId']}").json()["data"]
    assert settled["status"] == "completed"
    assert settled["providerReference"] is None


def test_declined_payment(client, emitted, monkeypatch):
    monkeypatch.setattr(get_payment_gateway(), "failure_rate", 1.0)
    order = place_order(client, [("Mie Ayam", 1)])

    payment = pay(client, order, "qris").json()["data"]

    failed = client.get(f"/api/payments/{payment['transactionId']}").json()["data"]
    assert failed["status"] == "failed"
    assert failed["errorMessage"]

    after = client.get(f"/api/orders/{order['id']}").json()["data"]
    assert after["paymentStatus"] == "failed"
    assert "payment:failed" in emitted.events

    # A failed attempt can be retried
    monkeypatch.setattr(get_payment_gateway(), "failure_rate", 0.0)
    retry = pay(client, order, "cash")
    assert retry.status_code == 200
    assert client.get(f"/api/orders/{order['id']}").json()["data"]["paymentStatus"] == "paid"


def test_amount_must_match_total(client):
    order = place_order(client, [("Mie Ayam", 1)])

    response = pay(client, order, amount=order["totalAmount"] - 1000)

    assert response.status_code == 400
    assert "does not match" in response.json()["error"]


def test_paid_order_cannot_be_paid_twice(client):
    order = place_order(client, [("Mie Ayam", 1)])
    pay(client, order)

    response = pay(client, order)

    assert response.status_code == 409


def test_payment_for_unknown_order(client):
    response = client.post(
        "/api/payments/process",
        json={"orderId": "ORD-missing", "method": "cash", "amount": 1000},
    )

    assert response.status_code == 404


def test_payment_validation(client):
    order = place_order(client, [("Mie Ayam", 1)])

    bad_method = pay(client, order, method="bitcoin")
    negative = pay(client, order, amount=-5)

    assert bad_method.status_code == 400
    assert negative.status_code == 400


def test_unknown_transaction(client):
    response = client.get("/api/payments/TXN-0-missing")

    assert response.status_code == 404
    assert response.json()["error"] == "Payment not found"


def test_settled_payment_is_queued_for_ledger(client, monkeypatch):
    from smart_pos import tasks

    delay = MagicMock()
    monkeypatch.setattr(tasks.export_settlement_to_ledger, "delay", delay)
    monkeypatch.setattr(get_settings(), "export_ledger", True)
    order = place_order(client, [("Es Campur", 2)], customerName="Ayu", tableNumber=11)

    payment = pay(client, order, "cash").json()["data"]

    delay.assert_called_once()
    entry = delay.call_args.args[0]
    assert entry["transaction_id"] == payment["transactionId"]
    assert entry["order_id"] == order["id"]
    assert entry["total_amount"] == 18000
    assert entry["payment_method"] == "cash"
    assert entry["items"][0]["name"] == "Es Campur"


def test_broker_outage_does_not_fail_settlement(client, monkeypatch):
    from smart_pos import tasks

    monkeypatch.setattr(
        tasks.export_settlement_to_ledger,
        "delay",
        MagicMock(side_effect=ConnectionError("broker down")),
    )
    monkeypatch.setattr(get_settings(), "export_ledger", True)
    order = place_order(client, [("Es Campur", 1)])

    payment = pay(client, order, "cash").json()["data"]

    settled = client.get(f"/api/payments/{payment['transactionId']}").json()["data"]
    assert settled["status"] == "completed"


def test_refund_cancels_paid_order(client, emitted):
    order = place_order(client, [("Nasi Goreng Spesial", 1)])
    pay(client, order, "card")
    client.post(f"/api/orders/{order['id']}/send-to-kitchen")
    emitted.reset()

    response = client.post(
        "/api/payments/refund",
        json={"orderId": order["id"], "reason": "Customer left"},
    )

    assert response.status_code == 200
    refund = response.json()["data"]
    assert refund["refundId"].startswith("REF-")
    assert refund["amount"] == 15000
    assert refund["reason"] == "Customer left"

    after = client.get(f"/api/orders/{order['id']}").json()["data"]
    assert after["status"] == "cancelled"
    assert after["paymentStatus"] == "refunded"

    assert emitted.events == [
        "payment:refunded",
        "order:updated",
        "kitchen:order-updated",
        "order:status-changed",
    ]


def test_refund_delivered_order(client):
    delivered = place_order(client, [("Kerupuk", 1)])
    pay(client, delivered)
    for status in ("confirmed", "ready", "delivered"):
        client.put(f"/api/orders/{delivered['id']}/status", json={"status": status})

    response = client.post("/api/payments/refund", json={"orderId": delivered["id"]})

    assert response.status_code == 200
    after = client.get(f"/api/orders/{delivered['id']}").json()["data"]
    assert after["status"] == "cancelled"


def test_refund_requires_paid_order(client):
    order = place_order(client, [("Kerupuk", 1)])

    response = client.post("/api/payments/refund", json={"orderId": order["id"]})

    assert response.status_code == 409
    assert response.json() == {"success": False, "error": f"Order {order['id']} has not been paid"}
    assert client.get(f"/api/orders/{order['id']}").json()["data"]["status"] == "pending"


def test_refund_amount_cannot_exceed_total(client):
    order = place_order(client, [("Kerupuk", 1)])
    pay(client, order)

    response = client.post(
        "/api/payments/refund",
        json={"orderId": order["id"], "amount": 5000},
    )

    assert response.status_code == 400


def test_refund_unknown_order(client):
    response = client.post("/api/payments/refund", json={"orderId": "ORD-missing"})

    assert response.status_code == 404


def test_refunded_order_cannot_be_paid_again(client):
    order = place_order(client, [("Kerupuk", 1)])
    pay(client, order)
    client.post("/api/payments/refund", json={"orderId": order["id"]})

    response = pay(client, order)

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_gateway_refund_runs_outside_store_session(seeded_orders, emitted, monkeypatch):
    confirmed = seeded_orders[OrderStatus.CONFIRMED]
    async with session_scope() as db:
        order = await orders.get_order(db, confirmed.id)
        order.payment_reference = "pi_mock_seeded"
        await db.commit()

    gateway = get_payment_gateway()
    original_refund = gateway.refund_payment
    seen_during_refund = []

    async def refund_while_store_is_used(payment_intent_id, amount=None, reason=None):
        # Deadlocks if the caller still holds the store session
        async with session_scope() as db:
            listed = await orders.list_orders(db)
            seen_during_refund.extend(o.id for o in listed)
        return await original_refund(payment_intent_id, amount=amount, reason=reason)

    monkeypatch.setattr(gateway, "refund_payment", refund_while_store_is_used)

    refund = await asyncio.wait_for(
        settlement.refund_order(RefundRequest(order_id=confirmed.id, reason="Wrong table")),
        timeout=2,
    )

    assert refund.refund_id.startswith("REF-")
    assert confirmed.id in seen_during_refund
    async with session_scope() as db:
        order = await orders.get_order(db, confirmed.id)
        assert order.status == OrderStatus.CANCELLED
        assert order.payment_status == PaymentStatus.REFUNDED
    assert emitted.events[:2] == ["payment:refunded", "order:updated"]


@pytest.mark.asyncio
async def test_rejected_gateway_refund_keeps_order_paid(seeded_orders, emitted, monkeypatch):
    confirmed = seeded_orders[OrderStatus.CONFIRMED]
    async with session_scope() as db:
        order = await orders.get_order(db, confirmed.id)
        order.payment_reference = "not-a-charge"
        await db.commit()

    with pytest.raises(ConflictError):
        await settlement.refund_order(RefundRequest(order_id=confirmed.id))

    async with session_scope() as db:
        order = await orders.get_order(db, confirmed.id)
        assert order.status == OrderStatus.CONFIRMED
        assert order.payment_status == PaymentStatus.PAID
    assert emitted.events == []
