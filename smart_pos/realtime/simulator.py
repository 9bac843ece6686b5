"""
Order Status Simulator

Demo helper: every interval there is a one-in-five chance that a random
active order moves one step along the lifecycle. Enabled with
SIMULATE_STATUS_CHANGES=true.
"""

import asyncio
import logging
import random

from smart_pos.core.exceptions import PosError
from smart_pos.database import session_scope
from smart_pos.services.orders import advance_random_order

logger = logging.getLogger(__name__)

ADVANCE_PROBABILITY = 0.2


async def simulate_once() -> None:
    if random.random() >= ADVANCE_PROBABILITY:
        return

    async with session_scope() as db:
        order = await advance_random_order(db)

    if order is not None:
        logger.info(f"Simulator moved {order.id} to {order.status.value}")


async def run_status_simulator(interval: float) -> None:
    """Run until cancelled."""
    logger.info(f"Status simulator running every {interval}s")
    while True:
        await asyncio.sleep(interval)
        try:
            await simulate_once()
        except PosError as e:
            logger.warning(f"Simulator step rejected: {e.message}")
        except Exception:
            logger.exception("Simulator step failed")
