"""Vessel-related Pydantic schemas."""

from datetime import date, datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class AvailabilitySlotSchema(BaseModel):
    """Availability window, half-open [start, end)."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    start: date = Field(validation_alias=AliasChoices("start", "start_date"))
    end: date = Field(validation_alias=AliasChoices("end", "end_date"))


class VesselBase(BaseModel):
    """Base vessel schema."""

    name: str = Field(..., min_length=2, max_length=200)
    vessel_type: str = Field(..., min_length=2, max_length=50)
    imo_number: str | None = Field(None, pattern=r"^\d{7}$")
    home_port: str | None = Field(None, max_length=100)
    flag: str | None = Field(None, max_length=50)
    description: str | None = Field(None, max_length=5000)
    specs: dict[str, Any] | None = None
    daily_rate: int = Field(..., gt=0)
    currency: Literal["NGN", "USD"] = "USD"
    security_deposit: int = Field(default=0, ge=0)
    fuel_included: bool = False
    crew_included: bool = True


class VesselCreate(VesselBase):
    """Schema for registering a vessel."""

    status: Literal["DRAFT", "ACTIVE"] = "DRAFT"
    availability: list[AvailabilitySlotSchema] = Field(default_factory=list)


class VesselUpdate(BaseModel):
    """Schema for updating a vessel. A given availability list replaces all slots."""

    name: str | None = Field(None, min_length=2, max_length=200)
    home_port: str | None = Field(None, max_length=100)
    description: str | None = Field(None, max_length=5000)
    specs: dict[str, Any] | None = None
    daily_rate: int | None = Field(None, gt=0)
    security_deposit: int | None = Field(None, ge=0)
    fuel_included: bool | None = None
    crew_included: bool | None = None
    status: Literal["DRAFT", "ACTIVE"] | None = None
    availability: list[AvailabilitySlotSchema] | None = None


class UserSummary(BaseModel):
    """Party summary embedded in responses."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str | None
    email: str
    company: str | None = None


class VesselSummary(BaseModel):
    """Vessel summary embedded in booking responses."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    vessel_type: str
    home_port: str | None
    daily_rate: int
    currency: str
    owner: UserSummary


class VesselResponse(VesselBase):
    """Schema for vessel response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    owner_id: UUID
    currency: str
    status: str
    availability: list[AvailabilitySlotSchema]
    created_at: datetime
    updated_at: datetime


class VesselListResponse(BaseModel):
    """Schema for paginated vessel list."""

    vessels: list[VesselResponse]
    total: int
    page: int
    page_size: int
