"""
Order Ledger Verification Script

Verifies data integrity of the Excel order ledger.
Run from project root: python scripts/verify.py
"""

import os
import sys
from datetime import datetime

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pandas as pd

from app.services.excel_manager import ExcelManager

REQUIRED_COLUMNS = ['order_id', 'product_id', 'quantity', 'unit_price', 'line_total', 'order_total']


def check_ledger(df: pd.DataFrame) -> list[str]:
    """
    Run integrity checks on the ledger.

    Returns:
        List of problems found (empty if the ledger is consistent)
    """
    problems = []

    missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        return [f"Missing columns: {missing}"]

    duplicates = df.duplicated(subset=['order_id', 'product_id']).sum()
    if duplicates > 0:
        problems.append(f"{duplicates} duplicate (order_id, product_id) rows")

    for order_id, rows in df.groupby('order_id'):
        line_sum = round(rows['line_total'].sum(), 2)
        order_total = round(rows['order_total'].iloc[0], 2)
        if abs(line_sum - order_total) > 0.005:
            problems.append(f"Order #{order_id}: items sum to {line_sum}, order total is {order_total}")

    return problems


def verify_excel() -> bool:
    """Verify ledger integrity after a simulation."""
    ledger = ExcelManager.ORDERS_FILE

    print("=" * 60)
    print("🔍 ORDER LEDGER VERIFICATION REPORT")
    print("=" * 60)
    print(f"⏰ Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"📄 File: {ledger}")
    print("=" * 60)

    if not ledger.exists():
        print("\n❌ Ledger file not found!")
        print("   Place some orders and let the Celery worker export them first.")
        return False

    df = pd.DataFrame(ExcelManager.get_all_orders())
    print("\n✅ File loaded successfully!")

    print("\n📊 STATISTICS:")
    print(f"   Rows: {len(df)}")
    if 'order_id' in df.columns:
        print(f"   Orders: {df['order_id'].nunique()}")

    problems = check_ledger(df)
    if problems:
        print("\n⚠️ PROBLEMS:")
        for problem in problems:
            print(f"   - {problem}")
    else:
        print("\n✅ No duplicate lines, every order total matches its items")

    if 'order_total' in df.columns and len(df) > 0:
        totals = df.groupby('order_id')['order_total'].first()
        print("\n💰 REVENUE:")
        print(f"   Total: ${totals.sum():.2f}")
        print(f"   Average: ${totals.mean():.2f}")

    print("\n" + "=" * 60)
    print("✅ VERIFICATION COMPLETE" if not problems else "❌ VERIFICATION FAILED")
    print("=" * 60)

    return not problems


if __name__ == "__main__":
    sys.exit(0 if verify_excel() else 1)
