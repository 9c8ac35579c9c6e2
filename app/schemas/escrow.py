"""Escrow-related Pydantic schemas."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class EscrowCreate(BaseModel):
    """Schema for opening an escrow."""

    booking_id: UUID
    provider: Literal["PAYSTACK", "FLUTTERWAVE"]
    currency: Literal["NGN", "USD"]


class EscrowReleaseRequest(BaseModel):
    """Schema for releasing funded escrow."""

    reason: str = Field(..., min_length=10, max_length=2000)


class ProviderUpdateRequest(BaseModel):
    """Admin reconciliation: apply a provider status by hand."""

    status: Literal["PROCESSING", "FUNDED", "RELEASED", "REFUNDED", "FAILED", "DISPUTED"]
    provider_reference: str | None = Field(None, max_length=100)


class EscrowEventResponse(BaseModel):
    """Schema for an escrow log entry."""

    model_config = ConfigDict(from_attributes=True)

    sequence: int
    event: str
    from_status: str | None
    to_status: str
    provider_reference: str | None
    actor_id: UUID | None
    reason: str | None
    payload: dict | None
    created_at: datetime


class EscrowResponse(BaseModel):
    """Schema for escrow transaction response (amounts in minor units)."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    booking_id: UUID
    reference: str
    provider: str
    provider_reference: str | None
    currency: str
    amount: int
    platform_fee: int
    owner_payout: int
    status: str
    events: list[EscrowEventResponse]
    created_at: datetime
    updated_at: datetime


class EscrowAmountsResponse(BaseModel):
    """Escrow split in major and minor units."""

    total_amount: int
    platform_fee: int
    owner_payout: int
    fee_percent: str
    total_amount_minor: int
    platform_fee_minor: int
    owner_payout_minor: int


class EscrowInitiationResponse(BaseModel):
    """Schema returned when an escrow is opened."""

    escrow: EscrowResponse
    payment_url: str
    reference: str
    amounts: EscrowAmountsResponse
    payload: dict


class EscrowListResponse(BaseModel):
    """Schema for paginated escrow list."""

    escrows: list[EscrowResponse]
    total: int
    page: int
    page_size: int
