import pandas as pd
import pytest

from smart_pos.core.config import get_settings
from smart_pos.services.ledger import ExcelLedger
from smart_pos.tasks import export_settlement_to_ledger


@pytest.fixture()
def ledger_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("DATA_DIRECTORY", str(tmp_path / "data"))
    monkeypatch.setenv("LEDGER_FILENAME", "test_ledger.xlsx")
    get_settings.cache_clear()
    return tmp_path / "data"


def settlement(transaction_id="TXN-1-aaaa", **fields):
    entry = {
        "transaction_id": transaction_id,
        "order_id": "ORD-1-0001",
        "order_time": "2026-10-19T12:00:00",
        "table_number": 3,
        "customer_name": "John Doe",
        "items": [
            {"name": "Es Teh Manis", "quantity": 2, "price": 5000},
            {"name": "Kerupuk", "quantity": 1, "price": 3000},
        ],
        "total_amount": 13000,
        "payment_method": "cash",
        "payment_reference": None,
        "order_status": "pending",
        "settled_at": "2026-10-19T12:05:00",
    }
    entry.update(fields)
    return entry


def test_summarize_items():
    summary = ExcelLedger.summarize_items(settlement()["items"])

    assert summary == "2x Es Teh Manis, 1x Kerupuk"


def test_export_creates_ledger(ledger_dir):
    result = ExcelLedger.export_settlement(settlement())

    assert result["success"] is True
    assert result["exported_at"] is not None
    assert (ledger_dir / "test_ledger.xlsx").exists()

    rows = ExcelLedger.get_all_entries()
    assert len(rows) == 1
    assert rows[0]["transaction_id"] == "TXN-1-aaaa"
    assert rows[0]["items"] == "2x Es Teh Manis, 1x Kerupuk"
    assert rows[0]["total_amount"] == 13000


def test_export_is_idempotent_per_transaction(ledger_dir):
    ExcelLedger.export_settlement(settlement())
    again = ExcelLedger.export_settlement(settlement())
    other = ExcelLedger.export_settlement(settlement("TXN-2-bbbb", total_amount=7000))

    assert again["success"] is True
    assert "already exported" in again["message"]
    assert other["success"] is True
    assert [r["transaction_id"] for r in ExcelLedger.get_all_entries()] == [
        "TXN-1-aaaa",
        "TXN-2-bbbb",
    ]


def test_clear_removes_ledger(ledger_dir):
    ExcelLedger.export_settlement(settlement())

    assert ExcelLedger.clear() is True
    assert ExcelLedger.get_all_entries() == []


def test_celery_task_exports(ledger_dir):
    result = export_settlement_to_ledger.apply(args=[settlement("TXN-3-cccc")]).get()

    assert result["success"] is True
    assert result["transaction_id"] == "TXN-3-cccc"
    assert "processing_time_seconds" in result
    assert ExcelLedger.get_all_entries()[0]["transaction_id"] == "TXN-3-cccc"


def test_write_failure_is_raised_for_retry(ledger_dir, monkeypatch):
    def disk_full(self, *args, **kwargs):
        raise OSError(28, "No space left on device")

    monkeypatch.setattr(pd.DataFrame, "to_excel", disk_full)

    with pytest.raises(OSError):
        ExcelLedger.export_settlement(settlement())

    assert OSError in export_settlement_to_ledger.autoretry_for
