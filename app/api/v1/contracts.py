"""Contract endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app import tasks
from app.api.deps import get_current_user, get_db
from app.models.contract import Contract
from app.models.user import User
from app.schemas.contract import (
    ContractCreate,
    ContractListResponse,
    ContractResponse,
    ContractSignRequest,
)
from app.services.contract_service import contract_service

router = APIRouter()


@router.post("", response_model=ContractResponse, status_code=status.HTTP_201_CREATED)
async def create_contract(
    request: ContractCreate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Contract:
    """Generate the contract for an accepted booking.

    The PDF is rendered in the background; pdf_url and hash stay empty until
    it is attached.
    """
    contract = await contract_service.create_contract(db, request.booking_id, current_user)
    await db.commit()

    tasks.dispatch_contract_render(contract.id)
    return contract


@router.post("/{contract_id}/sign", response_model=ContractResponse)
async def sign_contract(
    contract_id: UUID,
    request: ContractSignRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Contract:
    """Sign a contract as owner or operator. Signing twice is harmless."""
    return await contract_service.record_signature(
        db, contract_id, current_user, request.signer_role
    )


@router.get("", response_model=ContractListResponse)
async def list_contracts(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
) -> ContractListResponse:
    """List contracts the current user is party to."""
    contracts, total = await contract_service.list_contracts(db, current_user, page, page_size)
    return ContractListResponse(
        contracts=[ContractResponse.model_validate(c) for c in contracts],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{contract_id}", response_model=ContractResponse)
async def get_contract(
    contract_id: UUID,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Contract:
    """Get a contract; its status is derived from the current signatures."""
    return await contract_service.get_contract(db, contract_id, current_user)
