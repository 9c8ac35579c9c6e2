"""Tests for the payment gateway adapters and the document renderer client."""

import hashlib
import hmac
import json

import httpx
import pytest

from app.config import settings
from app.core.exceptions import ExternalServiceError, ValidationError
from app.gateways.base import PaymentRequest
from app.gateways.flutterwave import FlutterwaveGateway
from app.gateways.paystack import PaystackGateway
from app.services.document_service import DocumentService
from app.services.gateway_service import GatewayService


@pytest.fixture
def payment_request():
    return PaymentRequest(
        reference="BF-1A2B3C4D-1718000000000-K9M2X7",
        escrow_id="0b5c1b9e-6f41-4c1e-9a53-4b8a1f1d2c3e",
        booking_id="1a2b3c4d-0000-4000-8000-000000000000",
        amount_minor=4_500_050,
        currency="NGN",
        email="ops@example.com",
        customer_name="Tunde Operator",
        vessel_name="MV Atlantic Pride",
        metadata={"platform_fee": 315_000},
    )


class TestPaystack:
    def test_payload_uses_minor_units(self, payment_request):
        payload = PaystackGateway().build_payload(payment_request)

        assert payload["amount"] == 4_500_050
        assert payload["reference"] == payment_request.reference
        assert payload["callback_url"].endswith(
            f"/bookings/{payment_request.booking_id}/payment/callback"
        )
        assert payload["metadata"]["escrow_id"] == payment_request.escrow_id
        assert payload["metadata"]["platform_fee"] == 315_000

    def test_webhook_signature(self):
        gateway = PaystackGateway()
        body = b'{"event":"charge.success"}'
        signature = hmac.new(
            settings.paystack_secret_key.encode(), body, hashlib.sha512
        ).hexdigest()

        assert gateway.verify_webhook(body, signature)
        assert not gateway.verify_webhook(body, "0" * 128)
        assert not gateway.verify_webhook(body, None)

    def test_parse_webhook(self):
        event = PaystackGateway().parse_webhook(
            {
                "event": "charge.success",
                "data": {
                    "id": 302961,
                    "reference": "BF-REF",
                    "metadata": {"escrow_id": "abc"},
                },
            }
        )

        assert event.status == "FUNDED"
        assert event.reference == "BF-REF"
        assert event.escrow_id == "abc"
        assert event.provider_reference == "302961"

    def test_unrelated_event_has_no_status(self):
        event = PaystackGateway().parse_webhook({"event": "customeridentification.success", "data": {}})
        assert event.status is None

    async def test_initialize_payment(self, payment_request):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/transaction/initialize"
            assert request.headers["Authorization"] == f"Bearer {settings.paystack_secret_key}"
            assert json.loads(request.content)["reference"] == payment_request.reference
            return httpx.Response(
                200,
                json={
                    "status": True,
                    "data": {
                        "authorization_url": "https://checkout.paystack.com/abc",
                        "access_code": "abc",
                    },
                },
            )

        gateway = PaystackGateway(transport=httpx.MockTransport(handler))
        result = await gateway.initialize_payment(gateway.build_payload(payment_request))

        assert result.success
        assert result.status == "PROCESSING"
        assert result.payment_url == "https://checkout.paystack.com/abc"

    async def test_verify_payment(self):
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, json={"status": True, "data": {"id": 77, "status": "success"}})
        )
        result = await PaystackGateway(transport=transport).verify_payment("BF-REF")

        assert result.success
        assert result.status == "FUNDED"
        assert result.transaction_id == "77"


class TestFlutterwave:
    def test_payload_uses_major_units(self, payment_request):
        payload = FlutterwaveGateway().build_payload(payment_request)

        assert payload["tx_ref"] == payment_request.reference
        assert payload["amount"] == 45000.5
        assert payload["customer"] == {"email": "ops@example.com", "name": "Tunde Operator"}
        assert payload["meta"]["escrow_id"] == payment_request.escrow_id
        assert "Escrow Payment" in payload["customizations"]["title"]

    def test_whole_amounts_are_integers(self, payment_request):
        payment_request.amount_minor = 4_500_000
        assert FlutterwaveGateway().build_payload(payment_request)["amount"] == 45000

    def test_webhook_signature(self):
        gateway = FlutterwaveGateway()
        body = b'{"event":"charge.completed"}'
        signature = hashlib.sha256(body + settings.flutterwave_secret_hash.encode()).hexdigest()

        assert gateway.verify_webhook(body, signature)
        assert not gateway.verify_webhook(body, "deadbeef")

    def test_parse_charge_completed(self):
        event = FlutterwaveGateway().parse_webhook(
            {
                "event": "charge.completed",
                "data": {"id": 4421, "tx_ref": "BF-REF", "status": "failed"},
            }
        )

        assert event.status == "FAILED"
        assert event.reference == "BF-REF"
        assert event.provider_reference == "4421"


class TestGatewayService:
    def test_unknown_provider(self, payment_request):
        with pytest.raises(ValidationError):
            GatewayService().build_payload("PAYPAL", payment_request)

    async def test_provider_error_is_reported_not_raised(self, payment_request):
        transport = httpx.MockTransport(
            lambda request: httpx.Response(400, json={"status": False, "message": "Invalid key"})
        )
        service = GatewayService(transport=transport)
        result = await service.initialize_payment("PAYSTACK", {"reference": "BF-REF"})

        assert not result.success
        assert result.error_message == "Invalid key"


class TestDocumentService:
    async def test_render_hashes_content(self):
        pdf = b"%PDF-1.7 charter party"

        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            assert body["template"] == "charter_contract"
            assert body["data"] == {"charter": {"duration_days": 7}}
            return httpx.Response(200, content=pdf, headers={"content-type": "application/pdf"})

        service = DocumentService(transport=httpx.MockTransport(handler))
        rendered = await service.render({"charter": {"duration_days": 7}})

        assert rendered.content == pdf
        assert rendered.hash == hashlib.sha256(pdf).hexdigest()

    async def test_renderer_failure(self):
        service = DocumentService(transport=httpx.MockTransport(lambda request: httpx.Response(502)))

        with pytest.raises(ExternalServiceError):
            await service.render({})
