"""End-to-end tests through the HTTP API."""

import hashlib
import hmac
import json

import httpx
import pytest

from app import tasks
from app.config import settings
from app.core.middleware import booking_limiter, escrow_limiter
from app.core.security import create_access_token
from app.database import get_db
from app.main import app
from app.services.escrow_service import escrow_service
from tests.conftest import TERMS, future

API = settings.api_prefix


def auth(user) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token({'sub': str(user.id)})}"}


def paystack_signature(body: bytes) -> str:
    return hmac.new(settings.paystack_secret_key.encode(), body, hashlib.sha512).hexdigest()


@pytest.fixture
def dispatched(monkeypatch):
    calls = {"contracts": [], "escrows": []}
    monkeypatch.setattr(tasks, "dispatch_contract_render", calls["contracts"].append)
    monkeypatch.setattr(tasks, "dispatch_escrow_initialization", calls["escrows"].append)
    return calls


@pytest.fixture
async def client(session_maker, dispatched):
    async def override_get_db():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[booking_limiter] = lambda: None
    app.dependency_overrides[escrow_limiter] = lambda: None

    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


async def request_booking(client, operator, vessel_id, start=30, end=37):
    return await client.post(
        f"{API}/bookings",
        headers=auth(operator),
        json={
            "vessel_id": str(vessel_id),
            "start": future(start).isoformat(),
            "end": future(end).isoformat(),
            "terms": TERMS,
        },
    )


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


async def test_missing_token_is_rejected(client):
    response = await client.get(f"{API}/bookings")

    assert response.status_code == 401
    assert response.json()["kind"] == "authentication_error"


async def test_register_vessel(client, owner, operator):
    response = await client.post(
        f"{API}/vessels",
        headers=auth(owner),
        json={
            "name": "MV Delta Runner",
            "vessel_type": "CREW_BOAT",
            "daily_rate": 2500,
            "status": "ACTIVE",
            "availability": [{"start": future(1).isoformat(), "end": future(90).isoformat()}],
        },
    )

    assert response.status_code == 201
    body = response.json()
    assert body["owner_id"] == str(owner.id)
    assert body["availability"] == [{"start": future(1).isoformat(), "end": future(90).isoformat()}]

    forbidden = await client.post(
        f"{API}/vessels",
        headers=auth(operator),
        json={"name": "Not Mine", "vessel_type": "TUG", "daily_rate": 100},
    )
    assert forbidden.status_code == 403


async def test_full_charter_flow(client, dispatched, owner, operator, vessel):
    # Request
    response = await request_booking(client, operator, vessel.id)
    assert response.status_code == 201
    booking = response.json()
    assert booking["status"] == "REQUESTED"
    assert booking["vessel"]["owner"]["id"] == str(owner.id)

    # Counter and accept
    response = await client.patch(
        f"{API}/bookings/{booking['id']}",
        headers=auth(owner),
        json={"status": "COUNTERED", "terms": {"route": "Onne - Agbami"}},
    )
    assert response.status_code == 200
    assert response.json()["terms"]["route"] == "Onne - Agbami"

    response = await client.patch(
        f"{API}/bookings/{booking['id']}", headers=auth(owner), json={"status": "ACCEPTED"}
    )
    assert response.json()["status"] == "ACCEPTED"
    assert response.json()["version"] == 3

    response = await client.get(f"{API}/bookings/{booking['id']}/history", headers=auth(operator))
    assert [e["to_status"] for e in response.json()] == ["REQUESTED", "COUNTERED", "ACCEPTED"]

    # Contract
    response = await client.post(
        f"{API}/contracts", headers=auth(operator), json={"booking_id": booking["id"]}
    )
    assert response.status_code == 201
    contract = response.json()
    assert contract["status"] == "PENDING_SIGNATURES"
    assert [str(c) for c in dispatched["contracts"]] == [contract["id"]]

    for user, role in ((owner, "OWNER"), (operator, "OPERATOR")):
        response = await client.post(
            f"{API}/contracts/{contract['id']}/sign", headers=auth(user), json={"signer_role": role}
        )
        assert response.status_code == 200
    assert response.json()["status"] == "FULLY_SIGNED"
    assert response.json()["signed_at"] is not None

    # Escrow
    response = await client.post(
        f"{API}/escrow",
        headers=auth(operator),
        json={"booking_id": booking["id"], "provider": "PAYSTACK", "currency": "NGN"},
    )
    assert response.status_code == 201
    initiation = response.json()
    assert initiation["amounts"]["total_amount"] == 45000
    assert initiation["amounts"]["platform_fee"] == 3150
    assert initiation["escrow"]["status"] == "PENDING"
    escrow_id = initiation["escrow"]["id"]
    assert [str(e) for e in dispatched["escrows"]] == [escrow_id]

    # Provider confirms the charge
    body = json.dumps(
        {
            "event": "charge.success",
            "data": {
                "id": 302961,
                "reference": initiation["reference"],
                "metadata": {"escrow_id": escrow_id},
            },
        }
    ).encode()
    headers = {"x-paystack-signature": paystack_signature(body), "content-type": "application/json"}
    response = await client.post(f"{API}/webhooks/paystack", content=body, headers=headers)
    assert response.status_code == 200
    assert response.json()["status"] == "FUNDED"

    # Redelivery is harmless
    response = await client.post(f"{API}/webhooks/paystack", content=body, headers=headers)
    assert response.status_code == 200

    response = await client.get(f"{API}/escrow/{escrow_id}", headers=auth(owner))
    escrow = response.json()
    assert escrow["status"] == "FUNDED"
    assert [e["to_status"] for e in escrow["events"]] == ["PENDING", "PROCESSING", "FUNDED"]

    # Funded bookings cannot be cancelled
    response = await client.patch(
        f"{API}/bookings/{booking['id']}", headers=auth(operator), json={"status": "CANCELLED"}
    )
    assert response.status_code == 409
    assert response.json()["kind"] == "cancellation_after_funding"

    # Release is not due until the charter ends
    response = await client.post(
        f"{API}/escrow/{escrow_id}/release",
        headers=auth(owner),
        json={"reason": "Owner requests early payout"},
    )
    assert response.status_code == 409
    assert response.json()["kind"] == "release_not_due"


async def test_operator_cannot_accept(client, operator, vessel):
    booking = (await request_booking(client, operator, vessel.id)).json()

    response = await client.patch(
        f"{API}/bookings/{booking['id']}", headers=auth(operator), json={"status": "ACCEPTED"}
    )

    assert response.status_code == 403
    assert response.json()["kind"] == "forbidden"


async def test_overlapping_request_conflicts(client, operator, make_user, vessel):
    assert (await request_booking(client, operator, vessel.id)).status_code == 201
    rival = await make_user("OPERATOR")

    response = await request_booking(client, rival, vessel.id, start=33, end=40)

    assert response.status_code == 409
    assert response.json()["kind"] == "overlap_conflict"


async def test_inverted_dates_rejected(client, operator, vessel):
    response = await request_booking(client, operator, vessel.id, start=37, end=30)

    assert response.status_code == 422
    assert response.json()["kind"] == "date_range_invalid"


async def test_escrow_requires_contract(client, owner, operator, vessel):
    booking = (await request_booking(client, operator, vessel.id)).json()
    await client.patch(f"{API}/bookings/{booking['id']}", headers=auth(owner), json={"status": "ACCEPTED"})

    response = await client.post(
        f"{API}/escrow",
        headers=auth(operator),
        json={"booking_id": booking["id"], "provider": "FLUTTERWAVE", "currency": "USD"},
    )

    assert response.status_code == 409
    assert response.json()["kind"] == "contract_missing"


async def test_webhook_with_bad_signature(client):
    response = await client.post(
        f"{API}/webhooks/paystack",
        content=b'{"event":"charge.success","data":{}}',
        headers={"x-paystack-signature": "forged"},
    )

    assert response.status_code == 401


async def test_provider_updates_are_admin_only(client, operator, admin, escrow):
    payload = {"status": "PROCESSING", "provider_reference": "manual-1"}

    response = await client.post(
        f"{API}/escrow/{escrow.id}/provider-updates", headers=auth(operator), json=payload
    )
    assert response.status_code == 403

    response = await client.post(
        f"{API}/escrow/{escrow.id}/provider-updates", headers=auth(admin), json=payload
    )
    assert response.status_code == 200
    assert response.json()["status"] == "PROCESSING"
    assert response.json()["provider_reference"] == "manual-1"


async def test_conflicting_webhook_is_acknowledged(client, db, owner, escrow):
    await escrow_service.apply_provider_update(db, escrow.id, "FAILED")
    await db.commit()

    body = json.dumps(
        {"event": "charge.success", "data": {"id": 1, "reference": escrow.reference}}
    ).encode()
    response = await client.post(
        f"{API}/webhooks/paystack",
        content=body,
        headers={"x-paystack-signature": paystack_signature(body), "content-type": "application/json"},
    )

    assert response.status_code == 200
    assert response.json() == {"received": True, "applied": False}

    response = await client.get(f"{API}/escrow/{escrow.id}", headers=auth(owner))
    assert response.json()["status"] == "FAILED"


async def test_list_vessels_by_status(client, make_vessel, owner, operator, vessel):
    draft = await make_vessel(owner, status="DRAFT")

    response = await client.get(f"{API}/vessels", headers=auth(owner), params={"status": "DRAFT"})
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    assert [v["id"] for v in body["vessels"]] == [str(draft.id)]

    charterable = (await client.get(f"{API}/vessels", headers=auth(operator))).json()
    assert [v["id"] for v in charterable["vessels"]] == [str(vessel.id)]

    invalid = await client.get(f"{API}/vessels", headers=auth(owner), params={"status": "SUNK"})
    assert invalid.status_code == 422


async def test_delete_vessel(client, make_vessel, owner, operator, vessel):
    spare = await make_vessel(owner)

    assert (await client.delete(f"{API}/vessels/{spare.id}", headers=auth(owner))).status_code == 204
    assert (await client.get(f"{API}/vessels/{spare.id}", headers=auth(owner))).status_code == 404

    assert (await request_booking(client, operator, vessel.id)).status_code == 201
    response = await client.delete(f"{API}/vessels/{vessel.id}", headers=auth(owner))
    assert response.status_code == 409
    assert response.json()["kind"] == "vessel_in_use"
