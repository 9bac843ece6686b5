from conftest import menu_by_name, place_order


def test_health(client):
    response = client.get("/api/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] in ("operational", "degraded")
    assert data["database"] == "healthy"
    assert data["paymentService"] == "healthy"
    assert data["uptime"] >= 0
    assert "timestamp" in data


def test_security_headers(client):
    response = client.get("/api/health")

    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"


def test_unknown_route_uses_error_envelope(client):
    response = client.get("/api/nothing-here")

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Route not found"}


def test_list_orders_returns_sample_orders(client):
    response = client.get("/api/orders")

    body = response.json()
    assert response.status_code == 200
    assert body["success"] is True
    assert body["total"] == 3
    assert {o["status"] for o in body["data"]} == {"pending", "confirmed", "preparing"}


def test_list_orders_filters(client):
    by_table = client.get("/api/orders", params={"tableNumber": 12}).json()
    assert [o["tableNumber"] for o in by_table["data"]] == [12]

    pending = client.get("/api/orders", params={"status": "pending"}).json()
    assert [o["customerName"] for o in pending["data"]] == ["John Doe"]

    limited = client.get("/api/orders", params={"limit": 1}).json()
    assert limited["total"] == 1


def test_list_orders_rejects_bad_status(client):
    response = client.get("/api/orders", params={"status": "lost"})

    assert response.status_code == 400
    assert response.json()["success"] is False


def test_create_order(client, emitted):
    order = place_order(
        client,
        [("Nasi Goreng Spesial", 2), ("Es Jeruk", 1)],
        tableNumber=5,
        customerName="Siti",
        notes="No chili",
    )

    assert order["status"] == "pending"
    assert order["paymentStatus"] == "pending"
    assert order["totalAmount"] == 2 * 15000 + 7000
    assert order["tableNumber"] == 5
    assert order["items"][0]["name"] == "Nasi Goreng Spesial"
    assert order["items"][0]["estimatedTime"] == 20
    assert "order:created" in emitted.events

    fetched = client.get(f"/api/orders/{order['id']}").json()["data"]
    assert fetched["id"] == order["id"]
    assert fetched["notes"] == "No chili"


def test_create_order_with_qr_code(client):
    order = place_order(client, [("Kerupuk", 3)], qrCode="QR-TABLE-15")

    assert order["tableNumber"] == 15
    assert order["qrCode"] == "QR-TABLE-15"


def test_create_order_validation(client):
    empty = client.post("/api/orders", json={"items": []})
    assert empty.status_code == 400
    assert empty.json()["success"] is False

    unknown = client.post("/api/orders", json={"items": [{"id": "nope", "quantity": 1}]})
    assert unknown.status_code == 400
    assert "nope" in unknown.json()["error"]

    item_id = next(iter(menu_by_name(client).values()))["id"]
    zero = client.post("/api/orders", json={"items": [{"id": item_id, "quantity": 0}]})
    assert zero.status_code == 400


def test_get_unknown_order(client):
    response = client.get("/api/orders/ORD-0-missing")

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Order not found"}


def test_status_flow_through_api(client, emitted):
    order = place_order(client, [("Mie Ayam", 1)], tableNumber=2)

    for status in ("confirmed", "preparing", "ready", "delivered"):
        response = client.put(f"/api/orders/{order['id']}/status", json={"status": status})
        assert response.status_code == 200, response.text
        assert response.json()["data"]["status"] == status

    assert emitted.events.count("order:status-changed") == 4
    assert emitted.calls("order:ready")[0][1] == "waitress"


def test_status_update_rejects_invalid_transition(client):
    order = place_order(client, [("Mie Ayam", 1)])

    response = client.put(f"/api/orders/{order['id']}/status", json={"status": "ready"})

    assert response.status_code == 409
    assert "cannot move" in response.json()["error"]


def test_status_update_rejects_unknown_status(client):
    order = place_order(client, [("Mie Ayam", 1)])

    response = client.put(f"/api/orders/{order['id']}/status", json={"status": "eaten"})

    assert response.status_code == 400


def test_send_to_kitchen(client, emitted):
    order = place_order(client, [("Gado-gado", 2)])

    response = client.post(f"/api/orders/{order['id']}/send-to-kitchen")
    again = client.post(f"/api/orders/{order['id']}/send-to-kitchen")

    assert response.status_code == 200
    ticket = response.json()["data"]
    assert ticket["id"] == order["id"]
    assert ticket["status"] == "confirmed"
    assert ticket["priority"] == "normal"
    assert again.status_code == 200
    assert emitted.events.count("kitchen:new-order") == 1

    queue = client.get("/api/orders/kitchen/queue").json()
    assert [t["id"] for t in queue["data"]].count(order["id"]) == 1


def test_kitchen_queue_and_priority(client, emitted):
    queue = client.get("/api/orders/kitchen/queue").json()
    assert queue["total"] == 2

    older = client.get("/api/orders", params={"status": "preparing"}).json()["data"][0]
    client.put(f"/api/orders/kitchen/{older['id']}/priority", json={"priority": "normal"})

    newest = client.get("/api/orders", params={"status": "confirmed"}).json()["data"][0]
    response = client.put(
        f"/api/orders/kitchen/{newest['id']}/priority",
        json={"priority": "urgent"},
    )
    assert response.status_code == 200
    assert response.json()["data"]["priority"] == "urgent"

    queue = client.get("/api/orders/kitchen/queue").json()
    assert queue["data"][0]["id"] == newest["id"]

    preparing = client.get("/api/orders/kitchen/queue", params={"status": "preparing"}).json()
    assert [t["status"] for t in preparing["data"]] == ["preparing"]


def test_priority_for_order_without_ticket(client):
    pending = client.get("/api/orders", params={"status": "pending"}).json()["data"][0]

    response = client.put(
        f"/api/orders/kitchen/{pending['id']}/priority",
        json={"priority": "urgent"},
    )

    assert response.status_code == 404
    assert response.json()["error"] == "Kitchen order not found"


def test_dashboard(client):
    place_order(client, [("Es Teh Manis", 3)])

    response = client.get("/api/orders/analytics/dashboard")

    assert response.status_code == 200
    data = response.json()["data"]
    # Seeded paid orders: 31000 + 25000
    assert data["totalSales"] == 56000
    assert data["totalOrders"] == 4
    assert data["averageOrderValue"] == 28000
    assert set(data["ordersByStatus"]) == {
        "pending", "confirmed", "preparing", "ready", "delivered", "cancelled",
    }
    assert data["ordersByStatus"]["pending"] == 2
    assert data["popularItems"][0] == {"name": "Es Teh Manis", "count": 5}
    assert len(data["popularItems"]) <= 5
    assert len(data["recentOrders"]) == 4
