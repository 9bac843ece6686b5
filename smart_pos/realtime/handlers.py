"""
Socket Event Handlers

Client-to-server events from the role screens. Each handler returns an
acknowledgement:

    {"success": True, "data": ...}
    {"success": False, "error": "..."}

Store changes go through the same service functions as the REST API, so
a status change from the kitchen tablet broadcasts exactly what the REST
call would.
"""

import logging
from typing import Any, Optional

import socketio
from pydantic import ValidationError

from smart_pos.core.config import get_settings
from smart_pos.core.exceptions import PosError
from smart_pos.database import session_scope
from smart_pos.realtime.hub import hub
from smart_pos.schemas import (
    KitchenOrderResponse,
    KitchenStatusUpdate,
    NotificationMessage,
    OrderResponse,
)
from smart_pos.services import orders

logger = logging.getLogger(__name__)


def ack(data: Any = None) -> dict:
    response = {"success": True}
    if data is not None:
        response["data"] = data
    return response


def nack(error: str) -> dict:
    return {"success": False, "error": error}


def _validation_message(exc: ValidationError) -> str:
    first = exc.errors()[0]
    field = ".".join(str(part) for part in first.get("loc", ()))
    return f"{field}: {first.get('msg')}" if field else first.get("msg", "Invalid payload")


def _check_room(room: Any) -> Optional[str]:
    """Return an error message if ``room`` is not a configured role room."""
    rooms = get_settings().socket_rooms_list
    if not isinstance(room, str) or room not in rooms:
        return f"Unknown room. Options: {rooms}"
    return None


def setup_socket_handlers(server: socketio.AsyncServer) -> None:
    """Register every client event on ``server``."""

    @server.on("connect")
    async def connect(sid, environ, auth=None):
        logger.info(f"Client connected: {sid}")
        await hub.welcome(sid)

    @server.on("disconnect")
    async def disconnect(sid, reason=None):
        logger.info(f"Client disconnected: {sid} ({reason or 'unknown reason'})")

    @server.on("join-room")
    async def join_room(sid, room=None):
        error = _check_room(room)
        if error:
            return nack(error)

        await server.enter_room(sid, room)
        logger.info(f"Client {sid} joined room: {room}")
        return ack({"room": room})

    @server.on("leave-room")
    async def leave_room(sid, room=None):
        error = _check_room(room)
        if error:
            return nack(error)

        await server.leave_room(sid, room)
        logger.info(f"Client {sid} left room: {room}")
        return ack({"room": room})

    @server.on("kitchen:update-status")
    async def kitchen_update_status(sid, data=None):
        try:
            update = KitchenStatusUpdate.model_validate(data or {})
        except ValidationError as e:
            return nack(_validation_message(e))

        try:
            async with session_scope() as db:
                order = await orders.update_status(db, update.order_id, update.status)
                payload = OrderResponse.model_validate(order).to_payload()
        except PosError as e:
            logger.warning(f"kitchen:update-status from {sid} rejected: {e.message}")
            return nack(e.message)

        return ack(payload)

    @server.on("cashier:send-to-kitchen")
    async def cashier_send_to_kitchen(sid, data=None):
        # Accepts a bare order id or {"orderId": ...}
        order_id = data.get("orderId") if isinstance(data, dict) else data
        if not isinstance(order_id, str) or not order_id:
            return nack("orderId is required")

        try:
            async with session_scope() as db:
                ticket = await orders.send_to_kitchen(db, order_id)
                payload = KitchenOrderResponse.from_kitchen_order(ticket).to_payload()
        except PosError as e:
            logger.warning(f"cashier:send-to-kitchen from {sid} rejected: {e.message}")
            return nack(e.message)

        return ack(payload)

    @server.on("send-notification")
    async def send_notification(sid, data=None):
        try:
            notification = NotificationMessage.model_validate(data or {})
        except ValidationError as e:
            return nack(_validation_message(e))

        if notification.target is not None:
            error = _check_room(notification.target)
            if error:
                return nack(error)

        payload = notification.model_dump(mode="json", exclude_none=True)
        await hub.notify(payload, room=notification.target)
        logger.info(f"Notification from {sid} to {notification.target or 'all'}")
        return ack(payload)
