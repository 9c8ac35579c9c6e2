"""Payment gateway service.

Routes payment operations to the appropriate gateway adapter.
No business logic here - only gateway coordination.
"""

import httpx

from app.core.exceptions import ValidationError
from app.gateways.base import (
    GatewayType,
    PaymentGateway,
    PaymentRequest,
    PaymentResult,
    WebhookEvent,
)
from app.gateways.flutterwave import FlutterwaveGateway
from app.gateways.paystack import PaystackGateway


class GatewayService:
    """Service for managing payment gateway operations."""

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None):
        self._transport = transport
        self._gateways: dict[GatewayType, PaymentGateway] = {}

    def _get_gateway(self, gateway_type: str | GatewayType) -> PaymentGateway:
        """Get or create gateway instance."""
        if isinstance(gateway_type, str):
            try:
                gateway_type = GatewayType(gateway_type.upper())
            except ValueError:
                raise ValidationError(f"Unsupported payment provider: {gateway_type}")

        if gateway_type not in self._gateways:
            if gateway_type == GatewayType.PAYSTACK:
                self._gateways[gateway_type] = PaystackGateway(self._transport)
            else:
                self._gateways[gateway_type] = FlutterwaveGateway(self._transport)

        return self._gateways[gateway_type]

    def build_payload(self, gateway_type: str | GatewayType, request: PaymentRequest) -> dict:
        """Build the provider payload for an escrow (not sent)."""
        return self._get_gateway(gateway_type).build_payload(request)

    async def initialize_payment(self, gateway_type: str | GatewayType, payload: dict) -> PaymentResult:
        """Send an initialization payload to the provider."""
        gateway = self._get_gateway(gateway_type)
        return await gateway.initialize_payment(payload)

    async def verify_payment(self, gateway_type: str | GatewayType, reference: str) -> PaymentResult:
        """Verify payment status via gateway."""
        gateway = self._get_gateway(gateway_type)
        return await gateway.verify_payment(reference)

    def verify_webhook(
        self,
        gateway_type: str | GatewayType,
        payload: bytes,
        signature: str | None,
    ) -> bool:
        """Verify webhook from gateway."""
        gateway = self._get_gateway(gateway_type)
        return gateway.verify_webhook(payload, signature)

    def parse_webhook(self, gateway_type: str | GatewayType, data: dict) -> WebhookEvent:
        gateway = self._get_gateway(gateway_type)
        return gateway.parse_webhook(data)


# Singleton instance
gateway_service = GatewayService()
