"""
Mock Payment Gateway

Simulates card and QRIS settlement without calling any provider.
Used in development mode (ENV_MODE=development) to:
    - Run the cashier payment flow locally
    - Show the "processing" state on screens (configurable delay)
    - Exercise the failure path (configurable decline rate)

Behavior:
    - Waits ``latency`` seconds before answering
    - Declines ``failure_rate`` of payments with a random decline reason
    - Generates Stripe-like IDs (pi_mock_xxx, re_mock_xxx)
"""

import asyncio
import random
import uuid
import logging
from datetime import datetime
from typing import Optional

from smart_pos.services.payment.base import (
    BasePaymentGateway,
    PaymentResult,
    RefundResult,
)

logger = logging.getLogger(__name__)


class MockPaymentGateway(BasePaymentGateway):
    """
    Mock implementation of the payment gateway.

    Attributes:
        failure_rate: Probability of simulated payment failure (0.0-1.0)
        latency: Simulated settlement time in seconds

    Example:
        >>> gateway = MockPaymentGateway(failure_rate=0.0, latency=0)
        >>> result = await gateway.process_payment(25000)
        >>> result.success
        True
    """

    # Simulated failure reasons (mimics real decline codes)
    DECLINE_REASONS = [
        ("card_declined", "Your card was declined."),
        ("insufficient_funds", "Your card has insufficient funds."),
        ("expired_card", "Your card has expired."),
        ("qris_timeout", "The QRIS payment was not confirmed in time."),
        ("processing_error", "An error occurred while processing the payment."),
    ]

    def __init__(self, failure_rate: float = 0.10, latency: float = 2.0):
        self.failure_rate = failure_rate
        self.latency = latency

        logger.info(
            f"MockPaymentGateway initialized "
            f"(failure_rate={failure_rate:.0%}, latency={latency}s)"
        )

    @property
    def provider_name(self) -> str:
        return "mock"

    async def _simulate_latency(self) -> float:
        """Wait out the simulated latency; returns it in milliseconds."""
        if self.latency > 0:
            await asyncio.sleep(self.latency)
        return self.latency * 1000

    def _should_fail(self) -> bool:
        return random.random() < self.failure_rate

    async def process_payment(
        self,
        amount: float,
        currency: str = "idr",
        description: Optional[str] = None,
        metadata: Optional[dict] = None,
        payment_method: Optional[str] = None,
    ) -> PaymentResult:
        """
        Simulate a charge.

        Behavior:
            - Validates amount is positive
            - Simulates network latency
            - Randomly fails based on failure_rate
        """
        logger.debug(f"Mock: Processing payment of {amount:.2f} {currency.upper()}")

        if amount <= 0:
            return PaymentResult(
                success=False,
                error_message="Amount must be greater than 0",
                error_code="invalid_amount",
            )

        latency_ms = await self._simulate_latency()

        if self._should_fail():
            error_code, error_message = random.choice(self.DECLINE_REASONS)
            logger.info(f"Mock: Payment declined - {error_code}")

            return PaymentResult(
                success=False,
                amount=amount,
                currency=currency,
                error_message=error_message,
                error_code=error_code,
                response_time_ms=latency_ms,
            )

        payment_intent_id = f"pi_mock_{uuid.uuid4().hex[:24]}"

        logger.info(f"Mock: Payment successful - {payment_intent_id} - {amount:.2f}")

        return PaymentResult(
            success=True,
            payment_intent_id=payment_intent_id,
            amount=amount,
            currency=currency,
            response_time_ms=latency_ms,
            metadata={
                "description": description,
                "processed_at": datetime.now().isoformat(),
                "mock": True,
                **(metadata or {}),
            },
        )

    async def refund_payment(
        self,
        payment_intent_id: str,
        amount: Optional[float] = None,
        reason: Optional[str] = None,
    ) -> RefundResult:
        """Simulate refunding a payment."""
        await self._simulate_latency()

        if not payment_intent_id.startswith("pi_"):
            return RefundResult(
                success=False,
                error_message="Invalid payment intent ID",
            )

        refund_id = f"re_mock_{uuid.uuid4().hex[:24]}"
        logger.info(f"Mock: Refund processed - {refund_id}")

        return RefundResult(
            success=True,
            refund_id=refund_id,
            amount=amount,
            status="succeeded",
        )

    async def health_check(self) -> bool:
        """Mock health check always returns True."""
        return True
