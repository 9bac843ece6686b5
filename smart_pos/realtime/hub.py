"""
Socket Hub

One Socket.IO server for the whole process and the ``EventHub`` that the
service layer calls after every committed state change. Events go either
to every connected client or to a role room (``kitchen``, ``waitress``).

Usage:
    from smart_pos.realtime.hub import hub

    await hub.order_created(order)
"""

import logging
from datetime import datetime
from typing import Any, Optional

import socketio

from smart_pos.core.config import get_settings
from smart_pos.schemas import (
    KitchenOrderResponse,
    MenuItemResponse,
    OrderResponse,
    PaymentResponse,
    RefundResponse,
    StatusChange,
    TableResponse,
)

logger = logging.getLogger(__name__)
settings = get_settings()

KITCHEN_ROOM = "kitchen"
WAITRESS_ROOM = "waitress"

sio = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins=settings.cors_origins_list,
    logger=False,
    engineio_logger=False,
)


class EventHub:
    """Broadcasts store changes to connected role screens."""

    def __init__(self, server: socketio.AsyncServer):
        self.server = server

    async def emit(self, event: str, payload: Any, room: Optional[str] = None) -> None:
        await self.server.emit(event, payload, to=room)
        logger.debug(f"Emitted {event} to {room or 'all'}")

    # -------------------------------------------------------------------------
    # Orders
    # -------------------------------------------------------------------------

    async def order_created(self, order) -> None:
        await self.emit("order:created", OrderResponse.model_validate(order).to_payload())

    async def order_updated(self, order) -> None:
        await self.emit("order:updated", OrderResponse.model_validate(order).to_payload())

    async def order_status_changed(self, order) -> None:
        change = StatusChange(
            order_id=order.id,
            status=order.status,
            order=OrderResponse.model_validate(order),
        )
        await self.emit("order:status-changed", change.to_payload())

    async def order_ready(self, order) -> None:
        """Tell the waitress screens an order can be picked up."""
        if order.kitchen_order is not None:
            payload = KitchenOrderResponse.from_kitchen_order(order.kitchen_order).to_payload()
        else:
            payload = OrderResponse.model_validate(order).to_payload()
        await self.emit("order:ready", payload, room=WAITRESS_ROOM)

    # -------------------------------------------------------------------------
    # Kitchen
    # -------------------------------------------------------------------------

    async def kitchen_new_order(self, kitchen_order) -> None:
        payload = KitchenOrderResponse.from_kitchen_order(kitchen_order).to_payload()
        await self.emit("kitchen:new-order", payload, room=KITCHEN_ROOM)

    async def kitchen_order_updated(self, kitchen_order) -> None:
        payload = KitchenOrderResponse.from_kitchen_order(kitchen_order).to_payload()
        await self.emit("kitchen:order-updated", payload, room=KITCHEN_ROOM)

    # -------------------------------------------------------------------------
    # Payments
    # -------------------------------------------------------------------------

    async def payment_completed(self, payment) -> None:
        await self.emit("payment:completed", PaymentResponse.model_validate(payment).to_payload())

    async def payment_failed(self, payment) -> None:
        await self.emit("payment:failed", PaymentResponse.model_validate(payment).to_payload())

    async def payment_refunded(self, refund) -> None:
        await self.emit("payment:refunded", RefundResponse.model_validate(refund).to_payload())

    # -------------------------------------------------------------------------
    # Menu, tables, notifications
    # -------------------------------------------------------------------------

    async def menu_changed(self, action: str, item) -> None:
        await self.emit(
            "menu:changed",
            {"action": action, "item": MenuItemResponse.model_validate(item).to_payload()},
        )

    async def table_updated(self, table) -> None:
        await self.emit("table:updated", TableResponse.model_validate(table).to_payload())

    async def notify(self, notification: dict[str, Any], room: Optional[str] = None) -> None:
        await self.emit("notification", notification, room=room)

    async def welcome(self, sid: str) -> None:
        await self.emit(
            "connection-established",
            {
                "message": f"Connected to {settings.app_name}",
                "timestamp": datetime.now().isoformat(),
            },
            room=sid,
        )


hub = EventHub(sio)
