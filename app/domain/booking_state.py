"""Booking state machine.

States:
- REQUESTED: Operator asked for the dates (initial)
- COUNTERED: Owner proposed different terms
- ACCEPTED: Owner accepted; terminal, a contract may now be generated
- CANCELLED: Either party withdrew; terminal
"""

from app.core.exceptions import AuthorizationError, ImmutableState, InvalidTransition

BOOKING_TRANSITIONS = {
    "REQUESTED": {"COUNTERED", "ACCEPTED", "CANCELLED"},
    "COUNTERED": {"ACCEPTED", "CANCELLED"},
    "ACCEPTED": set(),
    "CANCELLED": set(),
}

TERMINAL_BOOKING_STATUSES = frozenset({"ACCEPTED", "CANCELLED"})

# Targets each party may request; admins may apply any valid transition
OPERATOR_TARGETS = frozenset({"CANCELLED"})
OWNER_TARGETS = frozenset({"COUNTERED", "ACCEPTED", "CANCELLED"})


def is_terminal(status: str) -> bool:
    return status in TERMINAL_BOOKING_STATUSES


def assert_not_terminal(current: str) -> None:
    if is_terminal(current):
        raise ImmutableState(current)


def assert_party_may_request(party: str, target: str) -> None:
    """Check that a party ("owner", "operator" or "admin") may ask for target.

    Raises:
        AuthorizationError: If the party's role does not permit the target
    """
    if party == "admin":
        return
    allowed = OWNER_TARGETS if party == "owner" else OPERATOR_TARGETS
    if target not in allowed:
        raise AuthorizationError(f"The {party} cannot move a booking to {target}")


def assert_booking_transition(current: str, target: str) -> None:
    assert_not_terminal(current)
    allowed = BOOKING_TRANSITIONS.get(current, set())
    if target not in allowed:
        raise InvalidTransition("booking", current, target)
