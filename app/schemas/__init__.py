"""Pydantic schemas for API validation."""

from app.schemas.booking import (
    BookingCreate,
    BookingListResponse,
    BookingResponse,
    BookingTerms,
    BookingUpdate,
    NegotiationEventResponse,
)
from app.schemas.contract import (
    ContractCreate,
    ContractListResponse,
    ContractResponse,
    ContractSignRequest,
)
from app.schemas.escrow import (
    EscrowCreate,
    EscrowInitiationResponse,
    EscrowListResponse,
    EscrowReleaseRequest,
    EscrowResponse,
    ProviderUpdateRequest,
)
from app.schemas.vessel import (
    AvailabilitySlotSchema,
    UserSummary,
    VesselCreate,
    VesselListResponse,
    VesselResponse,
    VesselSummary,
    VesselUpdate,
)

__all__ = [
    # Booking
    "BookingCreate",
    "BookingUpdate",
    "BookingTerms",
    "BookingResponse",
    "BookingListResponse",
    "NegotiationEventResponse",
    # Contract
    "ContractCreate",
    "ContractSignRequest",
    "ContractResponse",
    "ContractListResponse",
    # Escrow
    "EscrowCreate",
    "EscrowReleaseRequest",
    "ProviderUpdateRequest",
    "EscrowResponse",
    "EscrowInitiationResponse",
    "EscrowListResponse",
    # Vessel
    "AvailabilitySlotSchema",
    "UserSummary",
    "VesselCreate",
    "VesselUpdate",
    "VesselResponse",
    "VesselListResponse",
    "VesselSummary",
]
