"""Tests for the booking, contract and escrow state rules."""

from uuid import uuid4

import pytest

from app.core.exceptions import AuthorizationError, ImmutableState, InvalidTransition
from app.domain.booking_state import (
    assert_booking_transition,
    assert_party_may_request,
    is_terminal,
)
from app.domain.contract_state import (
    FULLY_SIGNED,
    PARTIALLY_SIGNED,
    PENDING_SIGNATURES,
    contract_status,
    is_fully_signed,
)
from app.domain.escrow_state import assert_escrow_transition, path_to


class TestBookingTransitions:
    @pytest.mark.parametrize(
        "current,target",
        [
            ("REQUESTED", "COUNTERED"),
            ("REQUESTED", "ACCEPTED"),
            ("REQUESTED", "CANCELLED"),
            ("COUNTERED", "ACCEPTED"),
            ("COUNTERED", "CANCELLED"),
        ],
    )
    def test_valid_transitions(self, current, target):
        assert_booking_transition(current, target)

    def test_countered_cannot_go_back_to_requested(self):
        with pytest.raises(InvalidTransition):
            assert_booking_transition("COUNTERED", "REQUESTED")

    def test_counter_of_counter_is_not_a_transition(self):
        with pytest.raises(InvalidTransition):
            assert_booking_transition("COUNTERED", "COUNTERED")

    @pytest.mark.parametrize("current", ["ACCEPTED", "CANCELLED"])
    def test_terminal_states_are_immutable(self, current):
        assert is_terminal(current)
        with pytest.raises(ImmutableState):
            assert_booking_transition(current, "CANCELLED")


class TestPartyPermissions:
    def test_operator_may_only_cancel(self):
        assert_party_may_request("operator", "CANCELLED")
        for target in ("COUNTERED", "ACCEPTED"):
            with pytest.raises(AuthorizationError):
                assert_party_may_request("operator", target)

    def test_owner_may_counter_accept_and_cancel(self):
        for target in ("COUNTERED", "ACCEPTED", "CANCELLED"):
            assert_party_may_request("owner", target)

    def test_admin_may_request_anything(self):
        assert_party_may_request("admin", "ACCEPTED")


class TestContractStatus:
    def test_status_follows_signer_set(self):
        owner_id, operator_id = uuid4(), uuid4()

        assert contract_status([], owner_id, operator_id) == PENDING_SIGNATURES
        assert contract_status([operator_id], owner_id, operator_id) == PARTIALLY_SIGNED
        assert contract_status([operator_id, owner_id], owner_id, operator_id) == FULLY_SIGNED

    def test_outsider_signature_does_not_count(self):
        owner_id, operator_id = uuid4(), uuid4()
        assert not is_fully_signed([owner_id, uuid4()], owner_id, operator_id)


class TestEscrowTransitions:
    @pytest.mark.parametrize(
        "current,target",
        [
            ("PENDING", "PROCESSING"),
            ("PROCESSING", "FUNDED"),
            ("FUNDED", "RELEASED"),
            ("FUNDED", "REFUNDED"),
            ("RELEASED", "DISPUTED"),
            ("DISPUTED", "FAILED"),
        ],
    )
    def test_forward_transitions(self, current, target):
        assert_escrow_transition(current, target)

    @pytest.mark.parametrize(
        "current,target",
        [
            ("FUNDED", "PENDING"),
            ("PENDING", "FUNDED"),
            ("PENDING", "RELEASED"),
            ("RELEASED", "FUNDED"),
        ],
    )
    def test_backward_or_skipped_transitions_are_rejected(self, current, target):
        with pytest.raises(InvalidTransition):
            assert_escrow_transition(current, target)

    def test_funding_a_pending_escrow_walks_through_processing(self):
        assert path_to("PENDING", "FUNDED") == ["PROCESSING", "FUNDED"]
        assert path_to("PROCESSING", "FUNDED") == ["FUNDED"]
