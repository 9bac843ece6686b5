"""Menu catalogue operations."""

import logging
import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from smart_pos.core.exceptions import InvalidRequestError, NotFoundError
from smart_pos.models import MenuCategory, MenuItem
from smart_pos.realtime.hub import hub
from smart_pos.schemas import MenuItemCreate, MenuItemUpdate

logger = logging.getLogger(__name__)


async def list_items(
    db: AsyncSession,
    category: Optional[str] = None,
    available: Optional[bool] = None,
) -> list[MenuItem]:
    """Menu items, optionally filtered. ``category="all"`` means no filter."""
    query = select(MenuItem).order_by(MenuItem.category, MenuItem.name)

    if category and category != "all":
        try:
            query = query.where(MenuItem.category == MenuCategory(category))
        except ValueError:
            valid = [c.value for c in MenuCategory]
            raise InvalidRequestError(f"Invalid category. Options: {valid}")
    if available is not None:
        query = query.where(MenuItem.available == available)

    result = await db.execute(query)
    return list(result.scalars().all())


async def get_item(db: AsyncSession, item_id: str) -> MenuItem:
    item = await db.get(MenuItem, item_id)
    if item is None:
        raise NotFoundError("Menu item not found")
    return item


async def create_item(db: AsyncSession, data: MenuItemCreate) -> MenuItem:
    item = MenuItem(id=str(uuid.uuid4()), available=True, **data.model_dump())
    db.add(item)
    await db.commit()

    logger.info(f"Menu item created: {item.name}")
    await hub.menu_changed("created", item)
    return item


async def update_item(db: AsyncSession, item_id: str, data: MenuItemUpdate) -> MenuItem:
    item = await get_item(db, item_id)

    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(item, field, value)
    await db.commit()

    logger.info(f"Menu item updated: {item.name}")
    await hub.menu_changed("updated", item)
    return item


async def delete_item(db: AsyncSession, item_id: str) -> MenuItem:
    item = await get_item(db, item_id)
    await db.delete(item)
    await db.commit()

    logger.info(f"Menu item deleted: {item.name}")
    await hub.menu_changed("deleted", item)
    return item
