"""
Checkout Rush Simulation

Fires many concurrent checkouts at a single menu product to check that
stock is never oversold. Every simulated customer has its own HTTP client
(and therefore its own cart session cookie).

Run from project root (API must be running, product must exist):
    python scripts/simulate.py --product-id 1 --customers 20 --quantity 3
"""

import argparse
import asyncio
import os
import sys
import time
from datetime import datetime
from typing import Any

import httpx

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Configuration
API_BASE_URL = "http://localhost:8001"
TOTAL_CUSTOMERS = 20


async def get_stock(client: httpx.AsyncClient, product_id: int) -> int:
    response = await client.get(f"{API_BASE_URL}/api/products/{product_id}")
    response.raise_for_status()
    return response.json()["stock_quantity"]


async def run_customer(customer_num: int, product_id: int, quantity: int) -> dict[str, Any]:
    """Fill a cart and check out, as one customer."""
    start_time = time.time()
    user_id = f"sim-user-{customer_num}"

    async with httpx.AsyncClient(base_url=API_BASE_URL, timeout=30.0) as client:
        try:
            response = await client.post(
                "/api/cart/items",
                json={"product_id": product_id, "quantity": quantity},
            )
            if response.status_code != 200:
                return {
                    "customer_num": customer_num,
                    "outcome": "cart_error",
                    "error": response.text[:100],
                    "time": round(time.time() - start_time, 3),
                }

            response = await client.post("/api/orders", headers={"X-User-Id": user_id})
            elapsed = round(time.time() - start_time, 3)

            if response.status_code == 201:
                order = response.json()["order"]
                return {
                    "customer_num": customer_num,
                    "outcome": "placed",
                    "order_id": order["id"],
                    "total": float(order["total_amount"]),
                    "time": elapsed,
                }
            body = response.json()
            return {
                "customer_num": customer_num,
                "outcome": body.get("error", f"http_{response.status_code}"),
                "error": body.get("detail", "")[:100],
                "time": elapsed,
            }
        except httpx.HTTPError as e:
            return {
                "customer_num": customer_num,
                "outcome": "transport_error",
                "error": str(e)[:100],
                "time": round(time.time() - start_time, 3),
            }


async def run_simulation(product_id: int, num_customers: int, quantity: int) -> dict[str, Any]:
    """
    Run the checkout rush.

    Args:
        product_id: Product every customer fights over
        num_customers: Number of concurrent checkouts
        quantity: Units each customer orders
    """
    print("=" * 70)
    print("🔥 CHECKOUT RUSH - CONCURRENT STOCK TEST")
    print("=" * 70)
    print(f"📋 Customers: {num_customers} x {quantity} unit(s) of product #{product_id}")
    print(f"🎯 Target: {API_BASE_URL}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    async with httpx.AsyncClient() as client:
        stock_before = await get_stock(client, product_id)
    print(f"\n📦 Stock before: {stock_before}")

    start_time = time.time()
    results = await asyncio.gather(
        *[run_customer(i + 1, product_id, quantity) for i in range(num_customers)]
    )
    total_time = round(time.time() - start_time, 2)

    async with httpx.AsyncClient() as client:
        stock_after = await get_stock(client, product_id)

    placed = [r for r in results if r["outcome"] == "placed"]
    rejected = [r for r in results if r["outcome"] == "insufficient_stock"]
    retriable = [r for r in results if r["outcome"] == "transaction_failure"]
    other = [r for r in results if r not in placed + rejected + retriable]

    print("\n" + "=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)
    print(f"\n✅ Placed: {len(placed)}/{num_customers}")
    print(f"⛔ Insufficient stock: {len(rejected)}/{num_customers}")
    print(f"🔁 Retriable failures: {len(retriable)}/{num_customers}")
    print(f"❌ Other errors: {len(other)}/{num_customers}")
    print(f"⏱️  Total Time: {total_time}s")
    print(f"\n📦 Stock after: {stock_after}")

    expected_after = stock_before - len(placed) * quantity
    consistent = stock_after == expected_after and stock_after >= 0
    if consistent:
        print(f"✅ Stock consistent ({stock_before} - {len(placed)} x {quantity} = {stock_after})")
    else:
        print(f"❌ Stock mismatch: expected {expected_after}, found {stock_after}")

    if placed:
        avg_time = round(sum(r["time"] for r in placed) / len(placed), 3)
        revenue = sum(r["total"] for r in placed)
        print(f"\n📈 Average checkout: {avg_time}s")
        print(f"   💰 Revenue: ${revenue:.2f}")

    if other:
        print("\n⚠️  Error details (showing first 5):")
        for r in other[:5]:
            print(f"   Customer #{r['customer_num']} [{r['outcome']}]: {r.get('error', '')}")

    print("\n" + "=" * 70)
    print("🔍 NEXT: python scripts/verify.py  (after Celery drains the export queue)")
    print("=" * 70)

    return {
        "placed": len(placed),
        "rejected": len(rejected),
        "stock_before": stock_before,
        "stock_after": stock_after,
        "consistent": consistent,
        "total_time": total_time,
        "results": results,
    }


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Checkout Rush Simulation")
    parser.add_argument("--product-id", type=int, required=True, help="Product to order")
    parser.add_argument("--customers", type=int, default=TOTAL_CUSTOMERS, help="Concurrent customers")
    parser.add_argument("--quantity", type=int, default=1, help="Units per customer")
    args = parser.parse_args()

    summary = asyncio.run(run_simulation(args.product_id, args.customers, args.quantity))
    sys.exit(0 if summary["consistent"] else 1)
