"""
Payment Gateway Factory

Provides a single entry point for obtaining a payment gateway instance.
The rest of the application stays agnostic about which one is in use.

Usage:
    from smart_pos.services.payment import get_payment_gateway

    gateway = get_payment_gateway()
    result = await gateway.process_payment(25000)

Environment Switching:
    - ENV_MODE=development → MockPaymentGateway (no API calls)
    - ENV_MODE=staging → StripePaymentGateway (test keys)
    - ENV_MODE=production → StripePaymentGateway (live keys)
"""

import logging
from functools import lru_cache

from smart_pos.core.config import get_settings
from smart_pos.services.payment.base import (
    BasePaymentGateway,
    PaymentResult,
    RefundResult,
)
from smart_pos.services.payment.mock import MockPaymentGateway
from smart_pos.services.payment.stripe import StripePaymentGateway

logger = logging.getLogger(__name__)


@lru_cache()
def get_payment_gateway() -> BasePaymentGateway:
    """
    Get the configured payment gateway instance (cached).

    Raises:
        ValueError: If staging/production mode but Stripe key not configured
    """
    settings = get_settings()

    if settings.is_development:
        logger.info("Payment Gateway: Using MockPaymentGateway (development mode)")
        return MockPaymentGateway(
            failure_rate=settings.mock_payment_failure_rate,
            latency=settings.mock_payment_latency,
        )

    logger.info(
        f"Payment Gateway: Using StripePaymentGateway "
        f"({settings.env_mode.value} mode)"
    )
    return StripePaymentGateway()


def reset_payment_gateway() -> None:
    """
    Clear the cached gateway instance.

    The next call to get_payment_gateway() builds a new one from the
    current settings.
    """
    get_payment_gateway.cache_clear()
    logger.debug("Payment gateway cache cleared")


__all__ = [
    "get_payment_gateway",
    "reset_payment_gateway",
    "BasePaymentGateway",
    "PaymentResult",
    "RefundResult",
    "MockPaymentGateway",
    "StripePaymentGateway",
]
