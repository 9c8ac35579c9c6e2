"""Append-only enforcement for audit records using SQLAlchemy events."""

import logging
from datetime import UTC, datetime

from sqlalchemy import event

from app.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

_registered = False


class ImmutabilityViolationError(ValidationError):
    """Raised when attempting to modify an append-only record."""

    kind = "immutability_violation"

    def __init__(self, model_name: str, operation: str, record_id: str):
        self.model_name = model_name
        self.operation = operation
        self.record_id = record_id
        super().__init__(
            f"Immutability violation: Cannot {operation} {model_name} record {record_id}. "
            "Log records are append-only."
        )


def _log_immutability_violation(model_name: str, operation: str, record_id: str) -> None:
    """Log immutability violation for audit purposes."""
    logger.error(
        f"IMMUTABILITY_VIOLATION: Attempted to {operation} {model_name} "
        f"record_id={record_id} at {datetime.now(UTC).isoformat()}"
    )


def _make_append_only(model) -> None:
    model_name = model.__name__

    @event.listens_for(model, "before_update")
    def prevent_update(mapper, connection, target):
        _log_immutability_violation(model_name, "UPDATE", str(target.id))
        raise ImmutabilityViolationError(model_name, "UPDATE", str(target.id))

    @event.listens_for(model, "before_delete")
    def prevent_delete(mapper, connection, target):
        _log_immutability_violation(model_name, "DELETE", str(target.id))
        raise ImmutabilityViolationError(model_name, "DELETE", str(target.id))


def register_immutability_enforcement() -> None:
    """Register SQLAlchemy event listeners for append-only tables.

    Must be called after models are imported but before session use. Safe to
    call more than once.
    """
    global _registered
    if _registered:
        return

    from app.models.booking import BookingNegotiationEvent
    from app.models.contract import ContractSignature
    from app.models.escrow import EscrowEvent

    for model in (BookingNegotiationEvent, ContractSignature, EscrowEvent):
        _make_append_only(model)

    _registered = True
    logger.info("Immutability enforcement registered for negotiation, signature and escrow logs")
