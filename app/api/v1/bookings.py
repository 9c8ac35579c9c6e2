"""Booking endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_db
from app.core.middleware import booking_limiter
from app.models.booking import Booking, BookingNegotiationEvent
from app.models.user import User
from app.schemas.booking import (
    BookingCreate,
    BookingListResponse,
    BookingResponse,
    BookingUpdate,
    NegotiationEventResponse,
)
from app.services.booking_service import booking_service

router = APIRouter()


@router.post(
    "",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(booking_limiter)],
)
async def create_booking(
    booking_data: BookingCreate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Booking:
    """Request a charter of a vessel (operators only)."""
    return await booking_service.create_booking(
        db,
        current_user,
        vessel_id=booking_data.vessel_id,
        start_date=booking_data.start,
        end_date=booking_data.end,
        terms=booking_data.terms.model_dump(exclude_none=True),
    )


@router.get("", response_model=BookingListResponse)
async def list_bookings(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    status_filter: str | None = Query(
        default=None, alias="status", pattern="^(REQUESTED|COUNTERED|ACCEPTED|CANCELLED)$"
    ),
    vessel_id: UUID | None = None,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
) -> BookingListResponse:
    """List bookings visible to the current user."""
    bookings, total = await booking_service.list_bookings(
        db, current_user, status=status_filter, vessel_id=vessel_id, page=page, page_size=page_size
    )
    return BookingListResponse(
        bookings=[BookingResponse.model_validate(b) for b in bookings],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: UUID,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Booking:
    """Get a booking by ID."""
    return await booking_service.get_booking(db, booking_id, current_user)


@router.patch("/{booking_id}", response_model=BookingResponse)
async def update_booking(
    booking_id: UUID,
    update: BookingUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Booking:
    """Counter, accept or cancel a booking, and/or amend its terms."""
    return await booking_service.update_booking(
        db,
        booking_id,
        current_user,
        status=update.status,
        note=update.note,
        terms=update.terms.model_dump(exclude_none=True) if update.terms else None,
    )


@router.get("/{booking_id}/history", response_model=list[NegotiationEventResponse])
async def get_booking_history(
    booking_id: UUID,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[BookingNegotiationEvent]:
    """Negotiation history of a booking, oldest first."""
    return await booking_service.get_history(db, booking_id, current_user)
