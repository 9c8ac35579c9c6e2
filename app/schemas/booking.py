"""Booking-related Pydantic schemas."""

from datetime import date, datetime
from typing import Literal
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from app.schemas.vessel import UserSummary, VesselSummary


class BookingTerms(BaseModel):
    """Structured terms an operator proposes with a request."""

    purpose: str = Field(..., min_length=10, max_length=2000)
    cargo_type: str | None = Field(None, max_length=200)
    route: str | None = Field(None, max_length=500)
    estimated_crew: int | None = Field(None, ge=0)
    special_requirements: str | None = Field(None, max_length=2000)
    custom_clauses: str | None = Field(None, max_length=5000)


class BookingTermsUpdate(BaseModel):
    """Partial terms, merged into the booking's current terms."""

    purpose: str | None = Field(None, min_length=10, max_length=2000)
    cargo_type: str | None = Field(None, max_length=200)
    route: str | None = Field(None, max_length=500)
    estimated_crew: int | None = Field(None, ge=0)
    special_requirements: str | None = Field(None, max_length=2000)
    custom_clauses: str | None = Field(None, max_length=5000)


class BookingCreate(BaseModel):
    """Schema for requesting a booking."""

    vessel_id: UUID
    start: date
    end: date
    terms: BookingTerms

    @field_validator("start")
    @classmethod
    def validate_start(cls, v: date) -> date:
        if v < date.today():
            raise ValueError("Start date cannot be in the past")
        return v


class BookingUpdate(BaseModel):
    """Schema for negotiating a booking: a status change, new terms, or both."""

    status: Literal["REQUESTED", "COUNTERED", "ACCEPTED", "CANCELLED"] | None = None
    note: str | None = Field(None, max_length=2000)
    terms: BookingTermsUpdate | None = None


class BookingResponse(BaseModel):
    """Schema for booking response."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: UUID
    vessel_id: UUID
    operator_id: UUID
    start: date = Field(validation_alias=AliasChoices("start", "start_date"))
    end: date = Field(validation_alias=AliasChoices("end", "end_date"))
    status: str
    version: int
    cancelled_by: str | None = None
    terms: dict
    vessel: VesselSummary
    operator: UserSummary
    created_at: datetime
    updated_at: datetime


class BookingListResponse(BaseModel):
    """Schema for paginated booking list."""

    bookings: list[BookingResponse]
    total: int
    page: int
    page_size: int


class NegotiationEventResponse(BaseModel):
    """One entry of a booking's negotiation history."""

    model_config = ConfigDict(from_attributes=True)

    sequence: int
    updated_by: UUID
    updated_at: datetime
    note: str | None
    changes: dict | None
    from_status: str | None
    to_status: str | None
