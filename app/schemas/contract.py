"""Contract-related Pydantic schemas."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class ContractCreate(BaseModel):
    """Schema for generating a contract."""

    booking_id: UUID


class ContractSignRequest(BaseModel):
    """Schema for signing a contract."""

    signer_role: Literal["OWNER", "OPERATOR"]


class ContractResponse(BaseModel):
    """Schema for contract response. Status is derived on every read."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    booking_id: UUID
    version: int
    pdf_url: str | None
    hash: str | None
    signer_ids: list[UUID]
    signed_at: datetime | None
    status: str
    terms: dict
    created_at: datetime


class ContractListResponse(BaseModel):
    """Schema for paginated contract list."""

    contracts: list[ContractResponse]
    total: int
    page: int
    page_size: int
