"""Base payment gateway interface.

All gateway adapters must implement this interface.
Business logic should NOT live in adapters - only gateway communication:
building the provider's request payload, calling its API, verifying and
translating its webhooks.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import httpx


class GatewayType(str, Enum):
    """Supported payment gateways."""

    PAYSTACK = "PAYSTACK"
    FLUTTERWAVE = "FLUTTERWAVE"


@dataclass
class PaymentRequest:
    """Everything an adapter needs to build a provider payload."""

    reference: str
    escrow_id: str
    booking_id: str
    amount_minor: int
    currency: str
    email: str
    customer_name: str | None = None
    vessel_name: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class PaymentResult:
    """Result of a payment operation."""

    success: bool
    transaction_id: str | None = None
    status: str | None = None  # escrow status implied by the provider's answer
    payment_url: str | None = None
    error_message: str | None = None
    raw_response: dict | None = None


@dataclass
class WebhookEvent:
    """Provider webhook translated into escrow terms."""

    event_type: str
    status: str | None  # None when the event does not move the escrow
    reference: str | None = None
    escrow_id: str | None = None
    provider_reference: str | None = None
    raw: dict | None = None


class PaymentGateway(ABC):
    """Abstract base class for payment gateways."""

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._transport = transport

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport, timeout=timeout)

    @property
    @abstractmethod
    def gateway_type(self) -> GatewayType:
        """Return the gateway type."""
        pass

    @abstractmethod
    def build_payload(self, request: PaymentRequest) -> dict:
        """Build the provider's initialization payload. Nothing is sent.

        Args:
            request: Escrow details to encode

        Returns:
            JSON-serializable payload in the provider's format
        """
        pass

    @abstractmethod
    async def initialize_payment(self, payload: dict) -> PaymentResult:
        """Send a previously built payload to the provider.

        Args:
            payload: Result of build_payload

        Returns:
            PaymentResult with the provider's checkout link
        """
        pass

    @abstractmethod
    async def verify_payment(self, reference: str) -> PaymentResult:
        """Ask the provider for the current state of a charge.

        Args:
            reference: Escrow reference sent with the payload

        Returns:
            PaymentResult whose status is FUNDED, FAILED or None (still open)
        """
        pass

    @abstractmethod
    def verify_webhook(self, payload: bytes, signature: str | None) -> bool:
        """Check a webhook signature against the raw request body."""
        pass

    @abstractmethod
    def parse_webhook(self, data: dict) -> WebhookEvent:
        """Translate a verified webhook body into a WebhookEvent."""
        pass
