"""Paystack payment gateway adapter.

Amounts are sent in minor units (kobo / cents).
Documentation: https://paystack.com/docs/api/
"""

import hashlib
import hmac
import logging

import httpx

from app.config import settings
from app.gateways.base import (
    GatewayType,
    PaymentGateway,
    PaymentRequest,
    PaymentResult,
    WebhookEvent,
)

logger = logging.getLogger(__name__)

# Paystack event → escrow status
EVENT_STATUS = {
    "charge.success": "FUNDED",
    "charge.failed": "FAILED",
    "charge.dispute.create": "DISPUTED",
    "refund.processed": "REFUNDED",
}

# Transaction status from /transaction/verify → escrow status
VERIFY_STATUS = {
    "success": "FUNDED",
    "failed": "FAILED",
    "abandoned": "FAILED",
    "reversed": "REFUNDED",
}


class PaystackGateway(PaymentGateway):
    """Paystack payment gateway implementation."""

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        super().__init__(transport)
        self.secret_key = settings.paystack_secret_key
        self.base_url = settings.paystack_base_url.rstrip("/")

    @property
    def gateway_type(self) -> GatewayType:
        return GatewayType.PAYSTACK

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.secret_key}",
            "Content-Type": "application/json",
        }

    def build_payload(self, request: PaymentRequest) -> dict:
        booking_url = f"{settings.app_public_url}/bookings/{request.booking_id}"
        return {
            "email": request.email,
            "amount": request.amount_minor,
            "currency": request.currency,
            "reference": request.reference,
            "callback_url": f"{booking_url}/payment/callback",
            "metadata": {
                "booking_id": request.booking_id,
                "escrow_id": request.escrow_id,
                "vessel_name": request.vessel_name,
                **request.metadata,
                "cancel_action": booking_url,
            },
        }

    async def initialize_payment(self, payload: dict) -> PaymentResult:
        if not self.secret_key:
            return PaymentResult(success=False, error_message="Paystack credentials not configured")

        try:
            async with self._client(settings.gateway_timeout) as client:
                response = await client.post(
                    f"{self.base_url}/transaction/initialize",
                    json=payload,
                    headers=self._headers(),
                )
        except httpx.HTTPError as e:
            logger.error(f"Paystack initialize failed for {payload.get('reference')}: {e}")
            return PaymentResult(success=False, error_message=str(e))

        body = response.json()
        if response.status_code != 200 or not body.get("status"):
            return PaymentResult(
                success=False,
                error_message=body.get("message") or f"API returned {response.status_code}",
                raw_response=body,
            )

        data = body.get("data") or {}
        return PaymentResult(
            success=True,
            transaction_id=data.get("access_code"),
            status="PROCESSING",
            payment_url=data.get("authorization_url"),
            raw_response=body,
        )

    async def verify_payment(self, reference: str) -> PaymentResult:
        if not self.secret_key:
            return PaymentResult(success=False, error_message="Paystack credentials not configured")

        try:
            async with self._client(settings.gateway_timeout) as client:
                response = await client.get(
                    f"{self.base_url}/transaction/verify/{reference}",
                    headers=self._headers(),
                )
        except httpx.HTTPError as e:
            return PaymentResult(success=False, error_message=str(e))

        if response.status_code != 200:
            return PaymentResult(
                success=False,
                error_message=f"API returned {response.status_code}",
                raw_response={"status_code": response.status_code},
            )

        data = response.json().get("data") or {}
        return PaymentResult(
            success=True,
            transaction_id=str(data["id"]) if data.get("id") is not None else None,
            status=VERIFY_STATUS.get(data.get("status", "")),
            raw_response=data,
        )

    def verify_webhook(self, payload: bytes, signature: str | None) -> bool:
        """x-paystack-signature is the HMAC-SHA512 of the body keyed with the secret key."""
        if not self.secret_key or not signature:
            return False
        expected = hmac.new(self.secret_key.encode(), payload, hashlib.sha512).hexdigest()
        return hmac.compare_digest(expected, signature)

    def parse_webhook(self, data: dict) -> WebhookEvent:
        event_type = data.get("event", "")
        body = data.get("data") or {}
        metadata = body.get("metadata") or {}
        provider_reference = body.get("id")
        return WebhookEvent(
            event_type=event_type,
            status=EVENT_STATUS.get(event_type),
            reference=body.get("reference"),
            escrow_id=metadata.get("escrow_id") if isinstance(metadata, dict) else None,
            provider_reference=str(provider_reference) if provider_reference is not None else None,
            raw=data,
        )
