"""Dining table lookups and status changes."""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from smart_pos.core.exceptions import NotFoundError
from smart_pos.models import DiningTable, TableStatus
from smart_pos.realtime.hub import hub

logger = logging.getLogger(__name__)


async def list_tables(
    db: AsyncSession,
    status: Optional[TableStatus] = None,
) -> list[DiningTable]:
    query = select(DiningTable).order_by(DiningTable.number)
    if status is not None:
        query = query.where(DiningTable.status == status)

    result = await db.execute(query)
    return list(result.scalars().all())


async def get_table(db: AsyncSession, table_id: str) -> DiningTable:
    table = await db.get(DiningTable, table_id)
    if table is None:
        raise NotFoundError("Table not found")
    return table


async def get_table_by_qr(db: AsyncSession, qr_code: str) -> DiningTable:
    result = await db.execute(select(DiningTable).where(DiningTable.qr_code == qr_code))
    table = result.scalar_one_or_none()
    if table is None:
        raise NotFoundError("Table not found")
    return table


async def update_status(
    db: AsyncSession,
    table_id: str,
    status: TableStatus,
) -> DiningTable:
    table = await get_table(db, table_id)
    table.status = status
    await db.commit()

    logger.info(f"Table #{table.number} -> {status.value}")
    await hub.table_updated(table)
    return table
