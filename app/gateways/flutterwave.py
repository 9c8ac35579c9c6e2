"""Flutterwave payment gateway adapter.

Flutterwave takes amounts in major units.
Documentation: https://developer.flutterwave.com/docs
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

# Charge status on charge.completed / verify → escrow status
CHARGE_STATUS = {
    "successful": "FUNDED",
    "failed": "FAILED",
}


class FlutterwaveGateway(PaymentGateway):
    """Flutterwave payment gateway implementation."""

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        super().__init__(transport)
        self.secret_key = settings.flutterwave_secret_key
        self.secret_hash = settings.flutterwave_secret_hash
        self.base_url = settings.flutterwave_base_url.rstrip("/")

    @property
    def gateway_type(self) -> GatewayType:
        return GatewayType.FLUTTERWAVE

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.secret_key}",
            "Content-Type": "application/json",
        }

    def build_payload(self, request: PaymentRequest) -> dict:
        amount = request.amount_minor / 100
        if amount.is_integer():
            amount = int(amount)

        return {
            "tx_ref": request.reference,
            "amount": amount,
            "currency": request.currency,
            "redirect_url": (
                f"{settings.app_public_url}/bookings/{request.booking_id}/payment/callback"
            ),
            "customer": {
                "email": request.email,
                "name": request.customer_name,
            },
            "customizations": {
                "title": f"{settings.app_name} Escrow Payment",
                "description": f"Charter of {request.vessel_name}" if request.vessel_name else "Vessel charter",
                "logo": f"{settings.app_public_url}/logo.png",
            },
            "meta": {
                "booking_id": request.booking_id,
                "escrow_id": request.escrow_id,
                **request.metadata,
            },
        }

    async def initialize_payment(self, payload: dict) -> PaymentResult:
        if not self.secret_key:
            return PaymentResult(success=False, error_message="Flutterwave credentials not configured")

        try:
            async with self._client(settings.gateway_timeout) as client:
                response = await client.post(
                    f"{self.base_url}/payments",
                    json=payload,
                    headers=self._headers(),
                )
        except httpx.HTTPError as e:
            logger.error(f"Flutterwave initialize failed for {payload.get('tx_ref')}: {e}")
            return PaymentResult(success=False, error_message=str(e))

        body = response.json()
        if response.status_code != 200 or body.get("status") != "success":
            return PaymentResult(
                success=False,
                error_message=body.get("message") or f"API returned {response.status_code}",
                raw_response=body,
            )

        data = body.get("data") or {}
        return PaymentResult(
            success=True,
            transaction_id=payload.get("tx_ref"),
            status="PROCESSING",
            payment_url=data.get("link"),
            raw_response=body,
        )

    async def verify_payment(self, reference: str) -> PaymentResult:
        if not self.secret_key:
            return PaymentResult(success=False, error_message="Flutterwave credentials not configured")

        try:
            async with self._client(settings.gateway_timeout) as client:
                response = await client.get(
                    f"{self.base_url}/transactions/verify_by_reference",
                    params={"tx_ref": reference},
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
            status=CHARGE_STATUS.get(data.get("status", "")),
            raw_response=data,
        )

    def verify_webhook(self, payload: bytes, signature: str | None) -> bool:
        """verif-hash is the sha256 hex of the body followed by the secret hash."""
        if not self.secret_hash or not signature:
            return False
        expected = hashlib.sha256(payload + self.secret_hash.encode()).hexdigest()
        return hmac.compare_digest(expected, signature)

    def parse_webhook(self, data: dict) -> WebhookEvent:
        event_type = data.get("event", "")
        body = data.get("data") or {}
        meta = data.get("meta_data") or body.get("meta") or {}

        status = None
        if event_type == "charge.completed":
            status = CHARGE_STATUS.get(body.get("status", ""))
        elif event_type == "charge.dispute":
            status = "DISPUTED"
        elif event_type == "refund.completed":
            status = "REFUNDED"

        provider_reference = body.get("id")
        return WebhookEvent(
            event_type=event_type,
            status=status,
            reference=body.get("tx_ref"),
            escrow_id=meta.get("escrow_id") if isinstance(meta, dict) else None,
            provider_reference=str(provider_reference) if provider_reference is not None else None,
            raw=data,
        )
