"""Vessel endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_db, require_vessel_manager
from app.models.user import User
from app.models.vessel import Vessel
from app.schemas.vessel import VesselCreate, VesselListResponse, VesselResponse, VesselUpdate
from app.services.vessel_service import vessel_service

router = APIRouter()


@router.post("", response_model=VesselResponse, status_code=status.HTTP_201_CREATED)
async def create_vessel(
    vessel_data: VesselCreate,
    current_user: Annotated[User, Depends(require_vessel_manager)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Vessel:
    """Register a vessel with optional availability slots."""
    return await vessel_service.create_vessel(
        db,
        current_user,
        fields=vessel_data.model_dump(exclude={"availability"}),
        availability=[(slot.start, slot.end) for slot in vessel_data.availability],
    )


@router.get("", response_model=VesselListResponse)
async def list_vessels(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    status_filter: str | None = Query(default=None, alias="status", pattern="^(DRAFT|ACTIVE)$"),
    owner_id: UUID | None = None,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
) -> VesselListResponse:
    """List vessels visible to the current user."""
    vessels, total = await vessel_service.list_vessels(
        db, current_user, status=status_filter, owner_id=owner_id, page=page, page_size=page_size
    )
    return VesselListResponse(
        vessels=[VesselResponse.model_validate(v) for v in vessels],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{vessel_id}", response_model=VesselResponse)
async def get_vessel(
    vessel_id: UUID,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Vessel:
    """Get a vessel with its availability slots."""
    return await vessel_service.get_vessel(db, vessel_id)


@router.patch("/{vessel_id}", response_model=VesselResponse)
async def update_vessel(
    vessel_id: UUID,
    update: VesselUpdate,
    current_user: Annotated[User, Depends(require_vessel_manager)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Vessel:
    """Update a vessel; a given availability list replaces all slots."""
    availability = None
    if update.availability is not None:
        availability = [(slot.start, slot.end) for slot in update.availability]

    return await vessel_service.update_vessel(
        db,
        vessel_id,
        current_user,
        fields=update.model_dump(exclude_unset=True, exclude={"availability"}),
        availability=availability,
    )


@router.delete("/{vessel_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_vessel(
    vessel_id: UUID,
    current_user: Annotated[User, Depends(require_vessel_manager)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Response:
    """Delete a vessel that no booking references."""
    await vessel_service.delete_vessel(db, vessel_id, current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
