"""
Concurrency Simulation Script

Fires a burst of customer orders at one restaurant, then races two kitchen
stations issuing the same transitions for every order. Every order must end
COMPLETED with both stations reporting success: one station commits each
step, the other sees a no-op.

Run from project root (API running, restaurant seeded):
    python scripts/simulate.py --orders 50 --slug demo-restaurant
"""

import argparse
import asyncio
import os
import random
import sys
import time
from datetime import datetime
from typing import Any

import httpx

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from menucraft.core.config import get_settings  # noqa: E402

# Configuration
API_BASE_URL = get_settings().api_base_url
TOTAL_ORDERS = 50

# Sample data for random orders
FIRST_NAMES = ["John", "Jane", "Mike", "Sarah", "Tom", "Emma", "David", "Lisa", "Chris", "Amy"]
LAST_NAMES = ["Smith", "Johnson", "Williams", "Brown", "Jones", "Garcia", "Miller", "Davis"]
CAR_COLORS = ["Red", "Blue", "Black", "White", "Silver"]
MENU_ITEMS = [
    {"id": "m-margherita", "name": "Pizza Margherita", "price": 14.99},
    {"id": "m-pepperoni", "name": "Pepperoni Pizza", "price": 16.99},
    {"id": "m-caesar", "name": "Caesar Salad", "price": 8.99},
    {"id": "m-garlic", "name": "Garlic Bread", "price": 5.99},
    {"id": "m-carbonara", "name": "Pasta Carbonara", "price": 13.99},
    {"id": "m-tiramisu", "name": "Tiramisu", "price": 7.99},
    {"id": "m-coke", "name": "Coke", "price": 2.99},
]


def generate_random_items() -> list[dict]:
    """Generate random order items."""
    items = []
    for _ in range(random.randint(1, 4)):
        item = random.choice(MENU_ITEMS).copy()
        item["quantity"] = random.randint(1, 3)
        if random.random() < 0.3:
            item["customizations"] = [random.choice(["No onions", "Extra cheese", "Spicy"])]
        items.append(item)
    return items


def generate_order_payload() -> dict[str, Any]:
    """Generate payload for POST /api/orders/restaurant/{slug}."""
    order_type = random.choice(["DINE_IN", "DRIVE_IN", "TAKEOUT"])
    payload: dict[str, Any] = {
        "customerName": f"{random.choice(FIRST_NAMES)} {random.choice(LAST_NAMES)}",
        "customerPhone": f"555-{random.randint(100, 999)}-{random.randint(1000, 9999)}",
        "orderType": order_type,
        "items": generate_random_items(),
        "specialNotes": random.choice([None, "Extra napkins", "Allergic to nuts"]),
    }
    if order_type == "DINE_IN":
        payload["tableNumber"] = str(random.randint(1, 30))
    elif order_type == "DRIVE_IN":
        payload["carColor"] = random.choice(CAR_COLORS)
        payload["licensePlate"] = f"{random.choice('ABCDEFG')}{random.randint(1000, 9999)}"
    return payload


async def place_order(client: httpx.AsyncClient, slug: str, order_num: int) -> dict[str, Any]:
    """Send one customer order."""
    start_time = time.time()
    try:
        response = await client.post(
            f"/api/orders/restaurant/{slug}",
            json=generate_order_payload(),
        )
        elapsed = round(time.time() - start_time, 3)
        if response.status_code == 201:
            data = response.json()
            return {
                "order_num": order_num,
                "success": True,
                "order_id": data["id"],
                "order_number": data["orderNumber"],
                "total": data["total"],
                "time": elapsed,
            }
        return {"order_num": order_num, "success": False, "error": response.text[:100], "time": elapsed}
    except httpx.HTTPError as e:
        elapsed = round(time.time() - start_time, 3)
        return {"order_num": order_num, "success": False, "error": str(e)[:100], "time": elapsed}


async def station_transition(
    client: httpx.AsyncClient,
    station: str,
    order_id: str,
    status: str,
) -> dict[str, Any]:
    """One kitchen station requesting a status change."""
    try:
        response = await client.put(f"/api/orders/{order_id}/status", json={"status": status})
    except httpx.HTTPError as e:
        return {"station": station, "order_id": order_id, "status": status, "ok": False, "error": str(e)[:100]}
    return {
        "station": station,
        "order_id": order_id,
        "status": status,
        "ok": response.status_code == 200,
        "error": None if response.status_code == 200 else response.text[:100],
    }


async def race_stations(client: httpx.AsyncClient, order_id: str) -> list[dict[str, Any]]:
    """Two stations click the same buttons on the same order at the same time."""
    results = []
    for status in ("IN_PROGRESS", "COMPLETED"):
        results.extend(await asyncio.gather(
            station_transition(client, "station-A", order_id, status),
            station_transition(client, "station-B", order_id, status),
        ))
    return results


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def run_simulation(slug: str, num_orders: int = TOTAL_ORDERS) -> dict[str, Any]:
    print("=" * 70)
    print("🔥 CONCURRENCY SIMULATION - ORDERS + RACING KITCHEN STATIONS")
    print("=" * 70)
    print(f"📋 Total Orders: {num_orders}")
    print(f"🎯 Target: {API_BASE_URL} ({slug})")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    start_time = time.time()

    async with httpx.AsyncClient(base_url=API_BASE_URL, timeout=30.0) as client:
        print("\n🚀 Firing customer orders...\n")
        placed = await asyncio.gather(*(place_order(client, slug, i + 1) for i in range(num_orders)))
        successful = [r for r in placed if r["success"]]
        failed = [r for r in placed if not r["success"]]

        print("👩‍🍳 Racing two stations on every order...\n")
        races = await asyncio.gather(*(race_stations(client, r["order_id"]) for r in successful))
        transitions = [t for race in races for t in race]

        listing = await client.get(f"/api/orders/slug/{slug}", params={"limit": 200})
        final_status = {o["id"]: o["status"] for o in listing.json()} if listing.status_code == 200 else {}

    total_time = round(time.time() - start_time, 2)

    rejected = [t for t in transitions if not t["ok"]]
    not_completed = [r for r in successful if final_status.get(r["order_id"]) != "COMPLETED"]
    numbers = sorted(r["order_number"] for r in successful)

    print("=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)
    print(f"\n✅ Orders placed: {len(successful)}/{num_orders}")
    print(f"❌ Orders failed: {len(failed)}/{num_orders}")
    print(f"🔢 Order numbers unique: {len(numbers) == len(set(numbers))}")
    print(f"🏁 Transitions accepted: {len(transitions) - len(rejected)}/{len(transitions)}")
    print(f"🍽️  Orders not COMPLETED: {len(not_completed)}")
    print(f"⏱️  Total Time: {total_time}s")

    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        total_revenue = sum(r["total"] for r in successful)
        print("\n📈 Performance Metrics:")
        print(f"   Average Placement: {avg_time}s")
        print(f"   💰 Total Revenue: ${total_revenue:.2f}")

    for f in failed[:5]:
        print(f"   Order #{f['order_num']}: {f.get('error')}")
    for t in rejected[:5]:
        print(f"   {t['station']} {t['status']} on {t['order_id']}: {t['error']}")

    print("=" * 70)
    return {
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "rejected_transitions": len(rejected),
        "total_time": total_time,
    }


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Concurrency Simulation Script")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    parser.add_argument("--slug", default="demo-restaurant", help="Restaurant slug")
    args = parser.parse_args()

    summary = asyncio.run(run_simulation(args.slug, args.orders))
    sys.exit(0 if summary["failed"] == 0 and summary["rejected_transitions"] == 0 else 1)
