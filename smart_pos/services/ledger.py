"""
Excel Sales Ledger with Concurrency Control

Appends one row per settled payment to an Excel workbook so the day's
takings survive a restart of the (in-memory) store. Writes are guarded
by a file lock because several Celery workers may export at once.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any

import pandas as pd
from filelock import FileLock, Timeout

from smart_pos.core.config import get_settings

logger = logging.getLogger(__name__)


class ExcelLedger:
    """Process- and thread-safe Excel ledger."""

    COLUMNS = [
        "transaction_id",
        "order_id",
        "date_time",
        "table_number",
        "customer_name",
        "items",
        "total_amount",
        "payment_method",
        "payment_reference",
        "order_status",
        "settled_at",
        "exported_at",
    ]

    @classmethod
    def ledger_path(cls) -> Path:
        settings = get_settings()
        return Path(settings.data_directory) / settings.ledger_filename

    @classmethod
    def _lock(cls) -> FileLock:
        path = cls.ledger_path()
        return FileLock(str(path) + ".lock", timeout=get_settings().ledger_lock_timeout)

    @classmethod
    def _ensure_data_dir(cls) -> None:
        data_dir = cls.ledger_path().parent
        if not data_dir.exists():
            data_dir.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created data directory: {data_dir}")

    @classmethod
    def _load_or_create_df(cls, file_path: Path) -> pd.DataFrame:
        if file_path.exists():
            try:
                return pd.read_excel(file_path, engine="openpyxl")
            except Exception as e:
                logger.warning(f"Error reading {file_path}: {e}")
        return pd.DataFrame(columns=cls.COLUMNS)

    @staticmethod
    def summarize_items(items: list[dict[str, Any]]) -> str:
        """``2x Es Teh Manis, 1x Kerupuk``"""
        return ", ".join(f"{line.get('quantity', 0)}x {line.get('name', '?')}" for line in items)

    @classmethod
    def export_settlement(cls, entry: dict[str, Any]) -> dict[str, Any]:
        """
        Append a settled payment to the ledger with file locking.

        Raises:
            OSError: The workbook could not be written
        """
        cls._ensure_data_dir()

        transaction_id = entry.get("transaction_id", "unknown")
        result = {
            "success": False,
            "message": "",
            "transaction_id": transaction_id,
            "exported_at": None,
        }

        ledger_file = cls.ledger_path()

        try:
            with cls._lock():
                df = cls._load_or_create_df(ledger_file)

                if transaction_id in set(df["transaction_id"].astype(str)):
                    result["success"] = True
                    result["message"] = f"Transaction {transaction_id} already exported"
                    return result

                export_time = datetime.now().isoformat()
                items = entry.get("items") or []
                new_row = {
                    "transaction_id": transaction_id,
                    "order_id": entry.get("order_id"),
                    "date_time": entry.get("order_time", export_time),
                    "table_number": entry.get("table_number"),
                    "customer_name": entry.get("customer_name"),
                    "items": cls.summarize_items(items) if isinstance(items, list) else items,
                    "total_amount": entry.get("total_amount"),
                    "payment_method": entry.get("payment_method"),
                    "payment_reference": entry.get("payment_reference"),
                    "order_status": entry.get("order_status"),
                    "settled_at": entry.get("settled_at"),
                    "exported_at": export_time,
                }

                df = pd.concat([df, pd.DataFrame([new_row])], ignore_index=True)
                df.to_excel(str(ledger_file), index=False, engine="openpyxl")

                logger.info(f"Transaction {transaction_id} exported to ledger")

                result["success"] = True
                result["message"] = f"Transaction {transaction_id} exported"
                result["exported_at"] = export_time

        except Timeout:
            result["message"] = f"Lock timeout ({get_settings().ledger_lock_timeout}s)"
            logger.error(f"Lock timeout for transaction {transaction_id}")

        except OSError:
            # Retried by the Celery task
            logger.exception(f"I/O error exporting transaction {transaction_id}")
            raise

        except Exception as e:
            result["message"] = str(e)
            logger.exception(f"Error exporting transaction {transaction_id}")

        return result

    @classmethod
    def get_all_entries(cls) -> list[dict[str, Any]]:
        ledger_file = cls.ledger_path()
        if not ledger_file.exists():
            return []

        try:
            df = pd.read_excel(ledger_file, engine="openpyxl")
            return df.to_dict("records")
        except Exception as e:
            logger.error(f"Error reading ledger: {e}")
            return []

    @classmethod
    def clear(cls) -> bool:
        """Delete the ledger and its lock file."""
        ledger_file = cls.ledger_path()
        try:
            for f in (ledger_file, Path(str(ledger_file) + ".lock")):
                if f.exists():
                    f.unlink()
            logger.info("Ledger cleared")
            return True
        except OSError as e:
            logger.error(f"Error clearing ledger: {e}")
            return False
