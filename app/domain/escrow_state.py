"""Escrow state machine.

States:
- PENDING: Transaction created, payload built but not yet sent
- PROCESSING: Provider accepted the initialization
- FUNDED: Provider confirmed the charge
- RELEASED: Funds paid out to the owner
- REFUNDED: Funds returned to the operator
- FAILED: Charge failed or was abandoned
- DISPUTED: Under dispute with the provider

Transitions only move forward; FAILED and DISPUTED are reachable from any
other state.
"""

from app.core.exceptions import InvalidTransition

ESCROW_TRANSITIONS = {
    "PENDING": {"PROCESSING", "FAILED", "DISPUTED"},
    "PROCESSING": {"FUNDED", "FAILED", "DISPUTED"},
    "FUNDED": {"RELEASED", "REFUNDED", "FAILED", "DISPUTED"},
    "RELEASED": {"FAILED", "DISPUTED"},
    "REFUNDED": {"FAILED", "DISPUTED"},
    "FAILED": {"DISPUTED"},
    "DISPUTED": {"FAILED"},
}

ESCROW_STATUSES = frozenset(ESCROW_TRANSITIONS)

# Once money has moved, the booking can no longer be cancelled
FUNDED_OR_LATER = frozenset({"FUNDED", "RELEASED", "REFUNDED", "DISPUTED"})


def assert_escrow_transition(current: str, target: str) -> None:
    allowed = ESCROW_TRANSITIONS.get(current, set())
    if target not in allowed:
        raise InvalidTransition("escrow", current, target)


def path_to(current: str, target: str) -> list[str]:
    """Legal steps from current to target for provider events.

    Providers report FUNDED without ever telling us the charge was
    processing, so a FUNDED event on a PENDING escrow walks through
    PROCESSING first. Any other pair is a single step.
    """
    if current == "PENDING" and target == "FUNDED":
        return ["PROCESSING", "FUNDED"]
    return [target]
