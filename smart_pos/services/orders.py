"""
Order Lifecycle

Creation, status transitions and the kitchen view of an order.

Workflow:
    pending -> confirmed -> preparing -> ready -> delivered
    any non-terminal status -> cancelled

Confirming an order opens its kitchen ticket (one per order). Every
accepted change is committed first and then broadcast through the hub:

    order:status-changed   everyone
    kitchen:new-order      room "kitchen"   (ticket opened)
    kitchen:order-updated  room "kitchen"   (ticket exists)
    order:ready            room "waitress"  (-> ready)
"""

import logging
import random
import time
import uuid
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from smart_pos.core.exceptions import (
    ConflictError,
    InvalidRequestError,
    InvalidTransitionError,
    NotFoundError,
)
from smart_pos.models import (
    DiningTable,
    KitchenOrder,
    KitchenPriority,
    MenuItem,
    Order,
    OrderStatus,
    PaymentStatus,
)
from smart_pos.realtime.hub import hub
from smart_pos.schemas import OrderCreate

logger = logging.getLogger(__name__)


TRANSITIONS: dict[OrderStatus, tuple[OrderStatus, ...]] = {
    OrderStatus.PENDING: (OrderStatus.CONFIRMED, OrderStatus.CANCELLED),
    OrderStatus.CONFIRMED: (
        OrderStatus.PREPARING,
        OrderStatus.READY,
        OrderStatus.CANCELLED,
    ),
    OrderStatus.PREPARING: (OrderStatus.READY, OrderStatus.CANCELLED),
    OrderStatus.READY: (OrderStatus.DELIVERED, OrderStatus.CANCELLED),
    OrderStatus.DELIVERED: (),
    OrderStatus.CANCELLED: (),
}

# Forward path used by the status simulator
NEXT_STATUS: dict[OrderStatus, OrderStatus] = {
    OrderStatus.PENDING: OrderStatus.CONFIRMED,
    OrderStatus.CONFIRMED: OrderStatus.PREPARING,
    OrderStatus.PREPARING: OrderStatus.READY,
    OrderStatus.READY: OrderStatus.DELIVERED,
}

CHEF_COUNT = 3


def can_transition(current: OrderStatus, requested: OrderStatus) -> bool:
    """Return ``True`` if an order may move from ``current`` to ``requested``."""
    return requested in TRANSITIONS.get(current, ())


def generate_order_id() -> str:
    return f"ORD-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


def open_kitchen_ticket(
    order: Order,
    priority: KitchenPriority = KitchenPriority.NORMAL,
) -> KitchenOrder:
    """Build the kitchen ticket for ``order`` and attach it."""
    return KitchenOrder(
        order=order,
        priority=priority,
        assigned_chef=f"Chef {random.randint(1, CHEF_COUNT)}",
    )


def preparation_minutes(order: Order) -> int:
    """Kitchen time for an order: its slowest item."""
    return max((line.get("estimated_time") or 0 for line in order.items), default=0)


# =============================================================================
# QUERIES
# =============================================================================

async def get_order(db: AsyncSession, order_id: str) -> Order:
    result = await db.execute(select(Order).where(Order.id == order_id))
    order = result.scalar_one_or_none()

    if order is None:
        raise NotFoundError("Order not found")

    return order


async def list_orders(
    db: AsyncSession,
    status: Optional[OrderStatus] = None,
    table_number: Optional[int] = None,
    limit: int = 50,
) -> list[Order]:
    """Orders newest first, optionally filtered."""
    query = select(Order).order_by(Order.order_time.desc())

    if status is not None:
        query = query.where(Order.status == status)
    if table_number is not None:
        query = query.where(Order.table_number == table_number)

    result = await db.execute(query.limit(limit))
    return list(result.scalars().all())


async def kitchen_queue(
    db: AsyncSession,
    status: Optional[OrderStatus] = None,
) -> list[KitchenOrder]:
    """Kitchen tickets, urgent first, then oldest order first."""
    query = select(KitchenOrder).join(Order)

    if status is not None:
        query = query.where(Order.status == status)

    result = await db.execute(query)
    tickets = list(result.scalars().all())
    tickets.sort(
        key=lambda t: (t.priority != KitchenPriority.URGENT, t.order.order_time)
    )
    return tickets


# =============================================================================
# COMMANDS
# =============================================================================

async def create_order(db: AsyncSession, data: OrderCreate) -> Order:
    """
    Place a new order.

    Every line must reference an available menu item. Lines are
    snapshotted, so later menu edits do not change this order. When only a
    table QR code is given the table number is taken from that table.

    Raises:
        InvalidRequestError: Unknown or unavailable menu item, unknown QR code
    """
    item_ids = {line.id for line in data.items}
    result = await db.execute(select(MenuItem).where(MenuItem.id.in_(list(item_ids))))
    menu = {item.id: item for item in result.scalars().all()}

    lines = []
    total = 0.0
    for line in data.items:
        item = menu.get(line.id)
        if item is None:
            raise InvalidRequestError(f"Menu item not found: {line.id}")
        if not item.available:
            raise InvalidRequestError(f"Menu item not available: {item.name}")

        lines.append({
            "id": item.id,
            "name": item.name,
            "description": item.description,
            "price": item.price,
            "category": item.category.value,
            "estimated_time": item.estimated_time,
            "image": item.image,
            "available": item.available,
            "ingredients": item.ingredients,
            "quantity": line.quantity,
            "notes": line.notes,
        })
        total += item.price * line.quantity

    table_number = data.table_number
    if table_number is None and data.qr_code:
        table_result = await db.execute(
            select(DiningTable).where(DiningTable.qr_code == data.qr_code)
        )
        table = table_result.scalar_one_or_none()
        if table is None:
            raise InvalidRequestError(f"Unknown table QR code: {data.qr_code}")
        table_number = table.number

    order = Order(
        id=generate_order_id(),
        table_number=table_number,
        customer_name=data.customer_name,
        items=lines,
        status=OrderStatus.PENDING,
        total_amount=round(total, 2),
        payment_status=PaymentStatus.PENDING,
        order_time=datetime.now(),
        notes=data.notes,
        qr_code=data.qr_code,
        kitchen_order=None,
    )
    db.add(order)
    await db.commit()

    logger.info(f"Order {order.id} created ({len(lines)} lines, total {order.total_amount})")

    await hub.order_created(order)
    return order


async def update_status(
    db: AsyncSession,
    order_id: str,
    status: OrderStatus,
) -> Order:
    """
    Move an order to ``status`` and broadcast the change.

    Re-sending the current status is a no-op and broadcasts nothing.

    Raises:
        NotFoundError: Unknown order
        InvalidTransitionError: The lifecycle does not allow the change
    """
    order = await get_order(db, order_id)
    current = order.status

    if status == current:
        logger.debug(f"Order {order.id} already {status.value}")
        return order

    if not can_transition(current, status):
        raise InvalidTransitionError(order.id, current.value, status.value)

    now = datetime.now()
    ticket = order.kitchen_order
    opened = False

    order.status = status

    if status == OrderStatus.CONFIRMED:
        if ticket is None:
            ticket = open_kitchen_ticket(order)
            db.add(ticket)
            opened = True
        order.estimated_ready_time = now + timedelta(minutes=preparation_minutes(order))
    elif status == OrderStatus.PREPARING and ticket is not None:
        ticket.start_time = now
    elif status == OrderStatus.READY and ticket is not None:
        ticket.completed_time = now

    await db.commit()

    logger.info(f"Order {order.id}: {current.value} -> {status.value}")

    if opened:
        await hub.kitchen_new_order(ticket)
    elif ticket is not None:
        await hub.kitchen_order_updated(ticket)

    if status == OrderStatus.READY:
        await hub.order_ready(order)

    await hub.order_status_changed(order)
    return order


async def send_to_kitchen(db: AsyncSession, order_id: str) -> KitchenOrder:
    """
    Cashier action: hand a pending order to the kitchen.

    An order that already has a ticket is returned unchanged, so repeated
    clicks never create duplicate tickets.

    Raises:
        NotFoundError: Unknown order
        ConflictError: Order is neither pending nor already ticketed
    """
    order = await get_order(db, order_id)

    if order.kitchen_order is not None:
        return order.kitchen_order

    if order.status != OrderStatus.PENDING:
        raise ConflictError(
            f"Order {order.id} is {order.status.value} and cannot be sent to the kitchen"
        )

    order = await update_status(db, order_id, OrderStatus.CONFIRMED)
    return order.kitchen_order


async def set_priority(
    db: AsyncSession,
    order_id: str,
    priority: KitchenPriority,
) -> KitchenOrder:
    order = await get_order(db, order_id)
    ticket = order.kitchen_order

    if ticket is None:
        raise NotFoundError("Kitchen order not found")

    if ticket.priority != priority:
        ticket.priority = priority
        await db.commit()
        logger.info(f"Kitchen order {order.id} priority -> {priority.value}")
        await hub.kitchen_order_updated(ticket)

    return ticket


async def advance_random_order(db: AsyncSession) -> Optional[Order]:
    """Move one random active order a step forward (demo simulator)."""
    result = await db.execute(
        select(Order).where(Order.status.in_(list(NEXT_STATUS)))
    )
    active = list(result.scalars().all())

    if not active:
        return None

    order = random.choice(active)
    return await update_status(db, order.id, NEXT_STATUS[order.status])
