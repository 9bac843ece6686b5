"""
Payment Settlement

Cashier payment flow on top of the payment gateway:

    start_payment()   record a "processing" payment, answer the cashier
    settle_payment()  charge (cash settles locally), then mark the order
                      paid or failed and broadcast the outcome
    refund_order()    refund a paid order and cancel it

``settle_payment`` runs after the HTTP response. It and ``refund_order``
take the store lock twice, before and after the gateway call, so a slow
gateway never blocks other screens.
"""

import asyncio
import logging
import time
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from smart_pos.core.config import get_settings
from smart_pos.core.exceptions import ConflictError, InvalidRequestError, NotFoundError
from smart_pos.database import session_scope
from smart_pos.models import (
    Order,
    OrderStatus,
    Payment,
    PaymentMethod,
    PaymentStatus,
    Refund,
    TransactionStatus,
)
from smart_pos.realtime.hub import hub
from smart_pos.schemas import PaymentRequest, RefundRequest
from smart_pos.services import orders
from smart_pos.services.payment import PaymentResult, get_payment_gateway

logger = logging.getLogger(__name__)

AMOUNT_TOLERANCE = 0.005


def _reference(prefix: str) -> str:
    return f"{prefix}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


async def get_payment(db: AsyncSession, transaction_id: str) -> Payment:
    payment = await db.get(Payment, transaction_id)
    if payment is None:
        raise NotFoundError("Payment not found")
    return payment


async def start_payment(db: AsyncSession, request: PaymentRequest) -> Payment:
    """
    Record a payment attempt for an order.

    Raises:
        NotFoundError: Unknown order
        InvalidRequestError: Amount does not match the order total
        ConflictError: Order already paid or cancelled
    """
    order = await orders.get_order(db, request.order_id)

    if order.payment_status == PaymentStatus.PAID:
        raise ConflictError(f"Order {order.id} is already paid")
    if order.status == OrderStatus.CANCELLED:
        raise ConflictError(f"Order {order.id} is cancelled")
    if abs(request.amount - order.total_amount) > AMOUNT_TOLERANCE:
        raise InvalidRequestError("Payment amount does not match order total")

    payment = Payment(
        transaction_id=_reference("TXN"),
        order_id=order.id,
        amount=request.amount,
        method=request.method,
        status=TransactionStatus.PROCESSING,
        created_at=datetime.now(),
    )
    db.add(payment)
    await db.commit()

    logger.info(
        f"Payment {payment.transaction_id} started for order {order.id} "
        f"({request.method.value}, {request.amount:.2f})"
    )
    return payment


async def _charge(payment: Payment, payment_method_id: Optional[str] = None) -> PaymentResult:
    if payment.method == PaymentMethod.CASH:
        return PaymentResult(success=True, amount=payment.amount)

    gateway = get_payment_gateway()
    return await gateway.process_payment(
        amount=payment.amount,
        currency=get_settings().currency,
        description=f"Order {payment.order_id}",
        metadata={
            "order_id": payment.order_id,
            "transaction_id": payment.transaction_id,
        },
        payment_method=payment_method_id,
    )


async def settle_payment(
    transaction_id: str,
    payment_method_id: Optional[str] = None,
) -> Payment:
    """
    Charge a processing payment and record the outcome on the order.

    If the order was paid or cancelled while the charge was in flight the
    payment is marked failed instead.
    """
    async with session_scope() as db:
        payment = await get_payment(db, transaction_id)

    result = await _charge(payment, payment_method_id)

    async with session_scope() as db:
        payment = await get_payment(db, transaction_id)
        order = await orders.get_order(db, payment.order_id)
        now = datetime.now()

        if result.success and order.payment_status == PaymentStatus.PAID:
            result = PaymentResult(success=False, error_message="Order was already paid")
        elif result.success and order.status == OrderStatus.CANCELLED:
            result = PaymentResult(success=False, error_message="Order was cancelled")

        payment.completed_at = now
        if result.success:
            payment.status = TransactionStatus.COMPLETED
            payment.provider_reference = result.payment_intent_id
            order.payment_status = PaymentStatus.PAID
            order.payment_method = payment.method
            order.payment_reference = result.payment_intent_id
        else:
            payment.status = TransactionStatus.FAILED
            payment.provider_reference = result.payment_intent_id
            payment.error_message = result.error_message
            if order.payment_status != PaymentStatus.PAID:
                order.payment_status = PaymentStatus.FAILED

        await db.commit()

        if result.success:
            logger.info(f"Payment {transaction_id} completed for order {order.id}")
            await hub.payment_completed(payment)
            await hub.order_updated(order)
        else:
            logger.warning(f"Payment {transaction_id} failed: {result.error_message}")
            await hub.payment_failed(payment)
            await hub.order_updated(order)

    if result.success and get_settings().export_ledger:
        await queue_ledger_export(payment, order)

    return payment


async def queue_ledger_export(payment: Payment, order: Order) -> None:
    """Hand a settled payment to the Celery ledger worker."""
    from smart_pos.tasks import export_settlement_to_ledger

    entry = {
        "transaction_id": payment.transaction_id,
        "order_id": order.id,
        "order_time": order.order_time.isoformat(),
        "table_number": order.table_number,
        "customer_name": order.customer_name,
        "items": order.items,
        "total_amount": order.total_amount,
        "payment_method": payment.method.value,
        "payment_reference": payment.provider_reference,
        "order_status": order.status.value,
        "settled_at": payment.completed_at.isoformat(),
    }

    try:
        # Publishing blocks while the broker is unreachable
        await asyncio.to_thread(export_settlement_to_ledger.delay, entry)
        logger.debug(f"Ledger export queued for {payment.transaction_id}")
    except Exception as e:
        logger.error(f"Could not queue ledger export for {payment.transaction_id}: {e}")


async def refund_order(request: RefundRequest) -> Refund:
    """
    Refund a paid order and cancel it, whatever its kitchen status.

    The gateway refund runs between two store sessions, like settlement.

    Raises:
        NotFoundError: Unknown order
        ConflictError: Order is not paid, or the gateway refused the refund
        InvalidRequestError: Refund amount exceeds the order total
    """
    async with session_scope() as db:
        order = await orders.get_order(db, request.order_id)

        if order.payment_status != PaymentStatus.PAID:
            raise ConflictError(f"Order {order.id} has not been paid")

        amount = request.amount if request.amount is not None else order.total_amount
        if amount - order.total_amount > AMOUNT_TOLERANCE:
            raise InvalidRequestError("Refund amount exceeds order total")

        method = order.payment_method
        reference = order.payment_reference

    if method != PaymentMethod.CASH and reference:
        gateway_refund = await get_payment_gateway().refund_payment(
            reference,
            amount=amount,
            reason=request.reason,
        )
        if not gateway_refund.success:
            raise ConflictError(gateway_refund.error_message or "Refund was rejected")

    async with session_scope() as db:
        order = await orders.get_order(db, request.order_id)

        # Another refund may have completed while the gateway call was running
        if order.payment_status != PaymentStatus.PAID:
            raise ConflictError(f"Order {order.id} has not been paid")

        previous_status = order.status
        order.status = OrderStatus.CANCELLED
        order.payment_status = PaymentStatus.REFUNDED

        refund = Refund(
            refund_id=_reference("REF"),
            order_id=order.id,
            amount=amount,
            reason=request.reason,
            status="completed",
            processed_at=datetime.now(),
        )
        db.add(refund)
        await db.commit()

        logger.info(f"Refund {refund.refund_id} for order {order.id} ({amount:.2f})")

        await hub.payment_refunded(refund)
        await hub.order_updated(order)
        if previous_status != OrderStatus.CANCELLED:
            if order.kitchen_order is not None:
                await hub.kitchen_order_updated(order.kitchen_order)
            await hub.order_status_changed(order)

    return refund
