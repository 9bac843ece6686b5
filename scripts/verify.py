"""
Ledger Verification Script

Verifies data integrity of the Excel sales ledger.
Run from project root: python scripts/verify.py
"""

import os
import sys
from datetime import datetime

import pandas as pd

from smart_pos.services.ledger import ExcelLedger

REQUIRED_COLUMNS = ["transaction_id", "order_id", "total_amount", "payment_method"]


def verify_ledger() -> bool:
    """Verify the ledger file after a simulation."""
    ledger_file = ExcelLedger.ledger_path()

    print("=" * 60)
    print("🔍 LEDGER VERIFICATION REPORT")
    print("=" * 60)
    print(f"⏰ Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"📄 File: {ledger_file}")
    print("=" * 60)

    if not os.path.exists(ledger_file):
        print("\n❌ Ledger file not found!")
        print("   Run the simulation first: python scripts/simulate.py")
        return False

    try:
        df = pd.read_excel(ledger_file, engine="openpyxl")
        print("\n✅ File loaded successfully!")
    except (OSError, ValueError) as e:
        print(f"\n❌ Could not read ledger: {e}")
        return False

    print("\n📊 STATISTICS:")
    print(f"   Settled payments: {len(df)}")
    print(f"   Columns: {len(df.columns)}")

    ok = True
    missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        print(f"\n⚠️ Missing Columns: {missing}")
        ok = False
    else:
        print("\n✅ All required columns present")

    if "transaction_id" in df.columns:
        duplicates = df["transaction_id"].duplicated().sum()
        if duplicates > 0:
            print(f"⚠️ {duplicates} duplicate transaction IDs found!")
            ok = False
        else:
            print("✅ No duplicate transaction IDs")

    if "order_id" in df.columns:
        paid_twice = df["order_id"].duplicated().sum()
        if paid_twice > 0:
            print(f"⚠️ {paid_twice} orders settled more than once!")
            ok = False
        else:
            print("✅ Every order settled once")

    if "total_amount" in df.columns and len(df) > 0:
        print("\n💰 REVENUE:")
        print(f"   Total: Rp {df['total_amount'].sum():,.0f}")
        print(f"   Average: Rp {df['total_amount'].mean():,.0f}")
        if "payment_method" in df.columns:
            by_method = df.groupby("payment_method")["total_amount"].sum()
            for method, amount in by_method.items():
                print(f"   {method}: Rp {amount:,.0f}")

    print("\n📋 RECENT SETTLEMENTS:")
    print("-" * 60)
    if len(df) > 0:
        cols = ["transaction_id", "order_id", "total_amount", "payment_method"]
        cols = [c for c in cols if c in df.columns]
        print(df[cols].tail(5).to_string(index=False))

    print("\n" + "=" * 60)
    print("✅ VERIFICATION COMPLETE" if ok else "⚠️ VERIFICATION FOUND PROBLEMS")
    print("=" * 60)

    return ok


if __name__ == "__main__":
    sys.exit(0 if verify_ledger() else 1)
