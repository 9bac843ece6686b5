"""
Rush Hour Simulation Script

Drives many orders at once through the whole restaurant flow against a
running server: place order, pay, send to the kitchen, prepare, serve.
Run from project root: python scripts/simulate.py

Start the server first:
    uvicorn smart_pos.main:asgi_app --port 3000
"""

import argparse
import asyncio
import random
import sys
import time
from typing import Any

import httpx

# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Configuration
API_BASE_URL = "http://localhost:3000"
TOTAL_ORDERS = 30
TABLE_COUNT = 20

FIRST_NAMES = ["Budi", "Siti", "Agus", "Dewi", "Rina", "Andi", "Putri", "Joko", "Ayu", "Rudi"]
PAYMENT_METHODS = ["cash", "qris", "card"]
KITCHEN_STEPS = ["preparing", "ready", "delivered"]


async def fetch_menu(client: httpx.AsyncClient) -> list[dict[str, Any]]:
    response = await client.get(f"{API_BASE_URL}/api/menu", params={"available": "true"})
    response.raise_for_status()
    return response.json()["data"]


def generate_order_payload(menu: list[dict[str, Any]]) -> dict[str, Any]:
    """Random order for a random table."""
    lines = random.sample(menu, k=random.randint(1, min(4, len(menu))))
    return {
        "tableNumber": random.randint(1, TABLE_COUNT),
        "customerName": random.choice(FIRST_NAMES),
        "items": [
            {"id": item["id"], "quantity": random.randint(1, 3)}
            for item in lines
        ],
        "notes": random.choice([None, "Less spicy", "No ice", "Extra sambal"]),
    }


async def wait_for_payment(
    client: httpx.AsyncClient,
    transaction_id: str,
    timeout: float = 30.0,
) -> str:
    """Poll a payment until it leaves "processing"."""
    deadline = time.time() + timeout
    while time.time() < deadline:
        response = await client.get(f"{API_BASE_URL}/api/payments/{transaction_id}")
        status = response.json()["data"]["status"]
        if status not in ("pending", "processing"):
            return status
        await asyncio.sleep(0.5)
    return "timeout"


async def run_order_flow(
    client: httpx.AsyncClient,
    menu: list[dict[str, Any]],
    order_num: int,
) -> dict[str, Any]:
    """Take one order from placement to delivery."""
    start_time = time.time()
    result: dict[str, Any] = {"order_num": order_num, "success": False}

    try:
        response = await client.post(
            f"{API_BASE_URL}/api/orders",
            json=generate_order_payload(menu),
        )
        if response.status_code != 201:
            result["error"] = response.json().get("error", response.text[:100])
            return result

        order = response.json()["data"]
        result["order_id"] = order["id"]
        result["total"] = order["totalAmount"]

        method = random.choice(PAYMENT_METHODS)
        response = await client.post(
            f"{API_BASE_URL}/api/payments/process",
            json={"orderId": order["id"], "method": method, "amount": order["totalAmount"]},
        )
        if response.status_code != 200:
            result["error"] = response.json().get("error", response.text[:100])
            return result

        payment_status = await wait_for_payment(client, response.json()["data"]["transactionId"])
        result["payment"] = payment_status
        if payment_status != "completed":
            result["error"] = f"{method} payment {payment_status}"
            return result

        response = await client.post(f"{API_BASE_URL}/api/orders/{order['id']}/send-to-kitchen")
        if response.status_code != 200:
            result["error"] = response.json().get("error", response.text[:100])
            return result

        for status in KITCHEN_STEPS:
            await asyncio.sleep(random.uniform(0.1, 0.5))
            response = await client.put(
                f"{API_BASE_URL}/api/orders/{order['id']}/status",
                json={"status": status},
            )
            if response.status_code != 200:
                result["error"] = response.json().get("error", response.text[:100])
                return result

        result["success"] = True
        return result

    except httpx.HTTPError as e:
        result["error"] = str(e)[:100]
        return result

    finally:
        result["time"] = round(time.time() - start_time, 3)


async def run_simulation(num_orders: int = TOTAL_ORDERS) -> dict[str, Any]:
    print("\n" + "=" * 70)
    print("🔥 RUSH HOUR SIMULATION")
    print("=" * 70)
    print(f"   Target: {API_BASE_URL}")
    print(f"   Orders: {num_orders}")
    print("=" * 70)

    start_time = time.time()

    async with httpx.AsyncClient(timeout=30.0) as client:
        menu = await fetch_menu(client)
        if not menu:
            print("❌ Menu is empty, nothing to order")
            return {"total": 0, "successful": 0, "failed": 0}

        results = await asyncio.gather(*[
            run_order_flow(client, menu, i + 1) for i in range(num_orders)
        ])

    total_time = round(time.time() - start_time, 2)
    successful = [r for r in results if r["success"]]
    failed = [r for r in results if not r["success"]]

    print("\n" + "=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)
    print(f"✅ Delivered: {len(successful)}/{num_orders}")
    print(f"❌ Failed: {len(failed)}/{num_orders}")
    print(f"⏱️  Total Time: {total_time}s")

    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        revenue = sum(r.get("total", 0) for r in successful)
        print(f"\n📈 Average flow time: {avg_time}s")
        print(f"   💰 Revenue: Rp {revenue:,.0f}")

    if failed:
        print("\n⚠️  Failed Order Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Order #{f['order_num']}: {f.get('error', 'Unknown error')}")

    print("\n" + "=" * 70)
    print("🔍 VERIFICATION STEPS")
    print("=" * 70)
    print("1. Check Celery terminal - all ledger exports should complete")
    print("2. Run: python scripts/verify.py")
    print(f"3. Check {API_BASE_URL}/api/orders/analytics/dashboard")
    print("=" * 70)

    return {
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "total_time": total_time,
        "results": results,
    }


async def check_health() -> bool:
    async with httpx.AsyncClient() as client:
        try:
            response = await client.get(f"{API_BASE_URL}/api/health")
        except httpx.HTTPError as e:
            print(f"❌ Server not reachable: {e}")
            return False

    data = response.json()
    print(f"🏥 Status: {data.get('status')}")
    print(f"   Database: {data.get('database')}")
    print(f"   Redis: {data.get('redis')}")
    print(f"   Payments: {data.get('paymentService')}")
    return response.status_code == 200


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Rush Hour Simulation Script")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    parser.add_argument("--url", default=API_BASE_URL, help="API base URL")
    args = parser.parse_args()

    API_BASE_URL = args.url.rstrip("/")

    if not asyncio.run(check_health()):
        sys.exit(1)

    asyncio.run(run_simulation(args.orders))
