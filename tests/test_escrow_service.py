"""Tests for escrow initiation, provider updates and release."""

from uuid import uuid4

import pytest

from app.core.exceptions import (
    AlreadyExists,
    AuthorizationError,
    ContractMissing,
    ContractNotFullySigned,
    InvalidTransition,
    NotAccepted,
    NotFoundError,
    ReleaseNotDue,
    ValidationError,
)
from app.services.contract_service import contract_service
from app.services.escrow_service import escrow_service
from tests.conftest import future


async def fund(db, escrow):
    await escrow_service.apply_provider_update(db, escrow.id, "PROCESSING")
    return await escrow_service.apply_provider_update(db, escrow.id, "FUNDED", provider_reference="ps_987")


class TestInitiateEscrow:
    async def test_amounts_payload_and_creation_event(self, db, signed_contract, accepted_booking, operator):
        initiation = await escrow_service.initiate_escrow(
            db, accepted_booking.id, provider="PAYSTACK", currency="NGN", actor=operator
        )
        escrow = initiation.escrow

        # 5000/day x 7 days + 10000 deposit
        assert initiation.amounts.total == 45000
        assert initiation.amounts.platform_fee == 3150
        assert initiation.amounts.owner_payout == 41850
        assert escrow.amount == 4_500_000
        assert escrow.platform_fee + escrow.owner_payout == escrow.amount
        assert escrow.status == "PENDING"
        assert escrow.reference.startswith("BF-")

        assert initiation.payload["reference"] == escrow.reference
        assert initiation.payload["amount"] == 4_500_000
        assert initiation.payload["metadata"]["escrow_id"] == str(escrow.id)
        assert initiation.reference in initiation.payment_url

        assert len(escrow.events) == 1
        created = escrow.events[0]
        assert created.event == "CREATED"
        assert created.to_status == "PENDING"
        assert created.payload["user_id"] == str(operator.id)

    async def test_unknown_booking(self, db, operator):
        with pytest.raises(NotFoundError):
            await escrow_service.initiate_escrow(
                db, uuid4(), provider="PAYSTACK", currency="NGN", actor=operator
            )

    async def test_only_the_operator_funds(self, db, signed_contract, accepted_booking, owner):
        with pytest.raises(AuthorizationError):
            await escrow_service.initiate_escrow(
                db, accepted_booking.id, provider="PAYSTACK", currency="NGN", actor=owner
            )

    async def test_booking_must_be_accepted(self, db, booking, operator):
        with pytest.raises(NotAccepted):
            await escrow_service.initiate_escrow(
                db, booking.id, provider="PAYSTACK", currency="NGN", actor=operator
            )

    async def test_contract_must_exist(self, db, accepted_booking, operator):
        with pytest.raises(ContractMissing):
            await escrow_service.initiate_escrow(
                db, accepted_booking.id, provider="PAYSTACK", currency="NGN", actor=operator
            )

    async def test_contract_must_be_fully_signed(self, db, contract, accepted_booking, operator):
        await contract_service.record_signature(db, contract.id, operator, "OPERATOR")
        with pytest.raises(ContractNotFullySigned):
            await escrow_service.initiate_escrow(
                db, accepted_booking.id, provider="FLUTTERWAVE", currency="USD", actor=operator
            )

    async def test_one_escrow_per_booking(self, db, escrow, accepted_booking, operator):
        with pytest.raises(AlreadyExists):
            await escrow_service.initiate_escrow(
                db, accepted_booking.id, provider="PAYSTACK", currency="NGN", actor=operator
            )

    async def test_unsupported_provider(self, db, signed_contract, accepted_booking, operator):
        with pytest.raises(ValidationError):
            await escrow_service.initiate_escrow(
                db, accepted_booking.id, provider="PAYPAL", currency="USD", actor=operator
            )


class TestProviderUpdates:
    async def test_forward_updates_append_events(self, db, escrow):
        funded = await fund(db, escrow)

        assert funded.status == "FUNDED"
        assert funded.provider_reference == "ps_987"
        assert [(e.sequence, e.from_status, e.to_status) for e in funded.events] == [
            (1, None, "PENDING"),
            (2, "PENDING", "PROCESSING"),
            (3, "PROCESSING", "FUNDED"),
        ]

    async def test_reapplying_current_status_is_a_no_op(self, db, escrow):
        await fund(db, escrow)

        again = await escrow_service.apply_provider_update(db, escrow.id, "FUNDED")

        assert again.status == "FUNDED"
        assert len(again.events) == 3

    async def test_backward_update_is_rejected(self, db, escrow):
        await fund(db, escrow)

        with pytest.raises(InvalidTransition):
            await escrow_service.apply_provider_update(db, escrow.id, "PROCESSING")
        with pytest.raises(InvalidTransition):
            await escrow_service.apply_provider_update(db, escrow.id, "PENDING")

    async def test_stale_provider_event_is_ignored(self, db, escrow):
        funded = await fund(db, escrow)

        late = await escrow_service.apply_provider_event(db, funded, "PROCESSING")
        repeated = await escrow_service.apply_provider_event(db, late, "FUNDED")

        assert repeated.status == "FUNDED"
        assert len(repeated.events) == 3

    async def test_skipping_a_state_is_rejected(self, db, escrow):
        with pytest.raises(InvalidTransition):
            await escrow_service.apply_provider_update(db, escrow.id, "RELEASED")

    async def test_provider_event_walks_pending_to_funded(self, db, escrow):
        funded = await escrow_service.apply_provider_event(db, escrow, "FUNDED", provider_reference="987")

        assert funded.status == "FUNDED"
        assert [e.to_status for e in funded.events] == ["PENDING", "PROCESSING", "FUNDED"]

    async def test_failure_and_dispute_reachable_from_pending(self, db, escrow):
        failed = await escrow_service.apply_provider_update(db, escrow.id, "FAILED")
        assert failed.status == "FAILED"

        disputed = await escrow_service.apply_provider_update(db, escrow.id, "DISPUTED")
        assert disputed.status == "DISPUTED"

    async def test_unknown_status(self, db, escrow):
        with pytest.raises(ValidationError):
            await escrow_service.apply_provider_update(db, escrow.id, "SETTLED")


class TestRelease:
    async def test_release_after_charter_ends(self, db, escrow, operator):
        await fund(db, escrow)

        released = await escrow_service.release_escrow(
            db, escrow.id, operator, "Charter completed without incident", today=future(37)
        )

        assert released.status == "RELEASED"
        last = released.events[-1]
        assert last.event == "RELEASED"
        assert last.actor_id == operator.id
        assert last.reason == "Charter completed without incident"

    async def test_early_release_needs_admin(self, db, escrow, owner, admin):
        await fund(db, escrow)

        with pytest.raises(ReleaseNotDue):
            await escrow_service.release_escrow(
                db, escrow.id, owner, "Owner wants the money early", today=future(31)
            )

        released = await escrow_service.release_escrow(
            db, escrow.id, admin, "Dispute settled in owner's favour", today=future(31)
        )
        assert released.status == "RELEASED"

    async def test_only_funded_escrow_is_released(self, db, escrow, operator):
        with pytest.raises(InvalidTransition):
            await escrow_service.release_escrow(
                db, escrow.id, operator, "Charter completed without incident", today=future(40)
            )

    async def test_outsider_cannot_release(self, db, escrow, make_user):
        await fund(db, escrow)
        stranger = await make_user("OPERATOR")

        with pytest.raises(AuthorizationError):
            await escrow_service.release_escrow(
                db, escrow.id, stranger, "Charter completed without incident", today=future(40)
            )


class TestLookup:
    async def test_find_by_reference_or_id(self, db, escrow):
        assert (await escrow_service.find_escrow(db, reference=escrow.reference)).id == escrow.id
        assert (await escrow_service.find_escrow(db, escrow_id=str(escrow.id))).id == escrow.id
        assert await escrow_service.find_escrow(db, escrow_id="not-a-uuid") is None
