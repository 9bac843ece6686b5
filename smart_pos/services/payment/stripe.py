"""
Stripe Payment Gateway

Production implementation using the official Stripe Python SDK.
Used when ENV_MODE=production or ENV_MODE=staging.

Requirements:
    - STRIPE_SECRET_KEY must be set in environment

SDK calls are blocking, so they run in a worker thread.
"""

import asyncio
import logging
from datetime import datetime
from typing import Optional

import stripe
from stripe import (
    APIConnectionError,
    AuthenticationError,
    CardError,
    InvalidRequestError,
    StripeError,
)

from smart_pos.core.config import get_settings
from smart_pos.services.payment.base import (
    BasePaymentGateway,
    PaymentResult,
    RefundResult,
)

logger = logging.getLogger(__name__)


class StripePaymentGateway(BasePaymentGateway):
    """
    Production Stripe gateway.

    Configuration:
        Requires STRIPE_SECRET_KEY; charges use the CURRENCY setting.
    """

    def __init__(self):
        """
        Initialize Stripe with API key from settings.

        Raises:
            ValueError: If STRIPE_SECRET_KEY is not configured
        """
        settings = get_settings()

        if not settings.stripe_secret_key:
            raise ValueError(
                "STRIPE_SECRET_KEY is required for staging/production mode. "
                "Set it in your .env file or environment variables."
            )

        stripe.api_key = settings.stripe_secret_key
        self._currency = settings.currency

        logger.info("StripePaymentGateway initialized")

    @property
    def provider_name(self) -> str:
        return "stripe"

    def _convert_to_minor(self, amount: float) -> int:
        """Stripe expects amounts in the smallest currency unit."""
        return int(round(amount * 100))

    def _convert_from_minor(self, minor: int) -> float:
        return minor / 100.0

    async def process_payment(
        self,
        amount: float,
        currency: str = "idr",
        description: Optional[str] = None,
        metadata: Optional[dict] = None,
        payment_method: Optional[str] = None,
    ) -> PaymentResult:
        """
        Create and confirm a PaymentIntent for the order.

        The charge only counts as settled when Stripe reports the intent as
        "succeeded". Any other status is returned as an unsuccessful result
        carrying the intent status as its error code.
        """
        start_time = datetime.now()

        if amount <= 0:
            return PaymentResult(
                success=False,
                error_message="Amount must be greater than 0",
                error_code="invalid_amount",
            )

        params = {
            "amount": self._convert_to_minor(amount),
            "currency": currency or self._currency,
            "description": description or "Restaurant order",
            "metadata": {
                "source": "smart_pos",
                **(metadata or {}),
            },
        }
        if payment_method:
            params["payment_method"] = payment_method
            params["confirm"] = True
            params["automatic_payment_methods"] = {
                "enabled": True,
                "allow_redirects": "never",
            }

        try:
            intent = await asyncio.to_thread(stripe.PaymentIntent.create, **params)

            elapsed_ms = (datetime.now() - start_time).total_seconds() * 1000

            logger.info(
                f"Stripe: PaymentIntent created - {intent.id} - "
                f"status={intent.status}"
            )

            if intent.status != "succeeded":
                return PaymentResult(
                    success=False,
                    payment_intent_id=intent.id,
                    amount=self._convert_from_minor(intent.amount),
                    currency=intent.currency,
                    error_message=f"Payment not completed (status: {intent.status})",
                    error_code=intent.status,
                    response_time_ms=elapsed_ms,
                )

            return PaymentResult(
                success=True,
                payment_intent_id=intent.id,
                amount=self._convert_from_minor(intent.amount),
                currency=intent.currency,
                response_time_ms=elapsed_ms,
                metadata={"status": intent.status},
            )

        except CardError as e:
            elapsed_ms = (datetime.now() - start_time).total_seconds() * 1000
            logger.warning(f"Stripe: Card declined - {e.code}: {e.user_message}")

            return PaymentResult(
                success=False,
                error_message=e.user_message,
                error_code=e.code,
                response_time_ms=elapsed_ms,
            )

        except InvalidRequestError as e:
            logger.error(f"Stripe: Invalid request - {e}")

            return PaymentResult(
                success=False,
                error_message=str(e),
                error_code="invalid_request",
            )

        except AuthenticationError as e:
            logger.critical(f"Stripe: Authentication failed - {e}")

            return PaymentResult(
                success=False,
                error_message="Payment service configuration error",
                error_code="authentication_error",
            )

        except APIConnectionError as e:
            logger.error(f"Stripe: Connection error - {e}")

            return PaymentResult(
                success=False,
                error_message="Payment service temporarily unavailable",
                error_code="connection_error",
            )

        except StripeError as e:
            logger.error(f"Stripe: Error - {e}")

            return PaymentResult(
                success=False,
                error_message="Payment processing error",
                error_code="stripe_error",
            )

    async def refund_payment(
        self,
        payment_intent_id: str,
        amount: Optional[float] = None,
        reason: Optional[str] = None,
    ) -> RefundResult:
        """
        Refund a payment through Stripe.

        Args:
            payment_intent_id: The PaymentIntent to refund
            amount: Partial refund amount (None = full refund)
            reason: Free-text reason, stored as metadata
        """
        try:
            refund_params = {"payment_intent": payment_intent_id}

            if amount is not None:
                refund_params["amount"] = self._convert_to_minor(amount)
            if reason:
                refund_params["metadata"] = {"reason": reason}

            refund = await asyncio.to_thread(stripe.Refund.create, **refund_params)

            logger.info(f"Stripe: Refund processed - {refund.id} - status={refund.status}")

            return RefundResult(
                success=True,
                refund_id=refund.id,
                amount=self._convert_from_minor(refund.amount),
                status=refund.status,
            )

        except StripeError as e:
            logger.error(f"Stripe: Refund failed - {e}")

            return RefundResult(
                success=False,
                error_message=str(e),
            )

    async def health_check(self) -> bool:
        """Make a lightweight API call to verify credentials and connectivity."""
        try:
            await asyncio.to_thread(stripe.Account.retrieve)
            return True

        except StripeError as e:
            logger.error(f"Stripe: Health check failed - {e}")
            return False
