"""
Payment Gateway Abstract Base Class

Defines the interface contract for all payment gateway implementations.
Both MockPaymentGateway and StripePaymentGateway implement these methods,
so settlement works the same whichever one is active.

Design Pattern: Strategy Pattern
    - Runtime switching between gateways via ENV_MODE
    - Tests swap in a mock with fixed latency and failure rate
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class PaymentResult:
    """
    Standardized result from a gateway charge.

    Attributes:
        success: Whether the payment was successful
        payment_intent_id: Gateway reference for the charge
        amount: Amount charged
        currency: Currency code (e.g., "idr")
        error_message: Error description if payment failed
        error_code: Machine-readable error code
        response_time_ms: Time taken to process the payment
        metadata: Additional data from the gateway
    """
    success: bool
    payment_intent_id: Optional[str] = None
    amount: Optional[float] = None
    currency: str = "idr"
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    response_time_ms: float = 0.0
    metadata: Optional[dict] = None


@dataclass
class RefundResult:
    """
    Standardized result from a gateway refund.

    Attributes:
        success: Whether the refund was successful
        refund_id: Gateway reference for the refund
        amount: Amount refunded
        status: Refund status (pending, succeeded, failed)
        error_message: Error description if refund failed
    """
    success: bool
    refund_id: Optional[str] = None
    amount: Optional[float] = None
    status: str = "pending"
    error_message: Optional[str] = None


class BasePaymentGateway(ABC):
    """Abstract base class for payment gateways."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Gateway name (e.g., "mock", "stripe")."""
        pass

    @abstractmethod
    async def process_payment(
        self,
        amount: float,
        currency: str = "idr",
        description: Optional[str] = None,
        metadata: Optional[dict] = None,
        payment_method: Optional[str] = None,
    ) -> PaymentResult:
        """
        Charge ``amount``.

        Args:
            amount: Amount in the major currency unit
            currency: Three-letter currency code
            description: Description of the charge
            metadata: Additional key-value data to attach
            payment_method: Provider token for the card or QRIS payment
                method captured by the terminal

        Returns:
            PaymentResult: Standardized result object
        """
        pass

    @abstractmethod
    async def refund_payment(
        self,
        payment_intent_id: str,
        amount: Optional[float] = None,
        reason: Optional[str] = None,
    ) -> RefundResult:
        """
        Refund a previous charge.

        Args:
            payment_intent_id: The charge to refund
            amount: Amount to refund (None = full refund)
            reason: Reason for the refund
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Verify connectivity to the gateway."""
        pass
