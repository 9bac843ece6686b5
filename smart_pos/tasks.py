"""
Celery Tasks
Background work that must not run inside the API process.
"""

import logging
import time

from smart_pos.celery_worker import celery_app
from smart_pos.services.ledger import ExcelLedger

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(OSError,),
    retry_backoff=True,
)
def export_settlement_to_ledger(self, entry: dict) -> dict:
    """
    Append a settled payment to the Excel ledger.

    Disk errors from the ledger are retried with backoff.

    Args:
        entry: Settlement data (transaction, order and payment fields)

    Returns:
        dict: Result of the export operation
    """
    task_id = self.request.id
    transaction_id = entry.get("transaction_id", "unknown")

    logger.info(f"Task {task_id}: exporting transaction {transaction_id}")
    start_time = time.time()

    result = ExcelLedger.export_settlement(entry)

    elapsed = round(time.time() - start_time, 3)
    result["task_id"] = task_id
    result["processing_time_seconds"] = elapsed

    if result["success"]:
        logger.info(f"Task {task_id}: transaction {transaction_id} done in {elapsed}s")
    else:
        logger.warning(f"Task {task_id}: transaction {transaction_id} failed - {result['message']}")

    return result

