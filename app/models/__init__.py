"""Database models."""

from app.models.booking import Booking, BookingNegotiationEvent
from app.models.contract import Contract, ContractSignature
from app.models.escrow import EscrowEvent, EscrowTransaction
from app.models.user import User
from app.models.vessel import AvailabilitySlot, Vessel

__all__ = [
    # User
    "User",
    # Vessel
    "Vessel",
    "AvailabilitySlot",
    # Booking
    "Booking",
    "BookingNegotiationEvent",
    # Contract
    "Contract",
    "ContractSignature",
    # Escrow
    "EscrowTransaction",
    "EscrowEvent",
]
