"""Escrow endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app import tasks
from app.api.deps import get_current_admin, get_current_user, get_db
from app.core.middleware import escrow_limiter
from app.models.escrow import EscrowTransaction
from app.models.user import User
from app.schemas.escrow import (
    EscrowCreate,
    EscrowInitiationResponse,
    EscrowListResponse,
    EscrowReleaseRequest,
    EscrowResponse,
    ProviderUpdateRequest,
)
from app.services.escrow_service import escrow_service

router = APIRouter()


@router.post(
    "",
    response_model=EscrowInitiationResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(escrow_limiter)],
)
async def create_escrow(
    request: EscrowCreate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> EscrowInitiationResponse:
    """Open the escrow for a fully signed booking (operator only)."""
    initiation = await escrow_service.initiate_escrow(
        db,
        request.booking_id,
        provider=request.provider,
        currency=request.currency,
        actor=current_user,
    )
    await db.commit()

    tasks.dispatch_escrow_initialization(initiation.escrow.id)
    return EscrowInitiationResponse(
        escrow=EscrowResponse.model_validate(initiation.escrow),
        payment_url=initiation.payment_url,
        reference=initiation.reference,
        amounts=initiation.amounts.as_dict(),
        payload=initiation.payload,
    )


@router.get("", response_model=EscrowListResponse)
async def list_escrows(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    status_filter: str | None = Query(default=None, alias="status"),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
) -> EscrowListResponse:
    """List escrow transactions visible to the current user."""
    escrows, total = await escrow_service.list_escrows(
        db, current_user, status=status_filter, page=page, page_size=page_size
    )
    return EscrowListResponse(
        escrows=[EscrowResponse.model_validate(e) for e in escrows],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{escrow_id}", response_model=EscrowResponse)
async def get_escrow(
    escrow_id: UUID,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> EscrowTransaction:
    """Get an escrow transaction with its event log."""
    return await escrow_service.get_escrow(db, escrow_id, current_user)


@router.post("/{escrow_id}/release", response_model=EscrowResponse)
async def release_escrow(
    escrow_id: UUID,
    request: EscrowReleaseRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> EscrowTransaction:
    """Release funded escrow to the owner once the charter has ended."""
    return await escrow_service.release_escrow(db, escrow_id, current_user, request.reason)


@router.post("/{escrow_id}/provider-updates", response_model=EscrowResponse)
async def apply_provider_update(
    escrow_id: UUID,
    request: ProviderUpdateRequest,
    current_user: Annotated[User, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> EscrowTransaction:
    """Apply a provider status by hand (admin reconciliation)."""
    return await escrow_service.apply_provider_update(
        db,
        escrow_id,
        request.status,
        provider_reference=request.provider_reference,
        payload={"source": "manual"},
        actor_id=current_user.id,
    )
