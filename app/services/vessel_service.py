"""Vessel registry service."""

import logging
from datetime import date
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AuthorizationError, DateRangeInvalid, NotFoundError, VesselInUse
from app.domain.availability import ACTIVE_BOOKING_STATUSES, uncovered_bookings
from app.models.booking import Booking
from app.models.user import User
from app.models.vessel import AvailabilitySlot, Vessel

logger = logging.getLogger(__name__)


def _build_slots(slots: list[tuple[date, date]]) -> list[AvailabilitySlot]:
    built = []
    for start_date, end_date in slots:
        if end_date <= start_date:
            raise DateRangeInvalid("Availability slot end must be after its start")
        built.append(AvailabilitySlot(start_date=start_date, end_date=end_date))
    return built


class VesselService:
    """Service for registering vessels and managing their availability."""

    async def get_vessel(self, db: AsyncSession, vessel_id: UUID) -> Vessel:
        result = await db.execute(select(Vessel).where(Vessel.id == vessel_id))
        vessel = result.scalar_one_or_none()
        if not vessel:
            raise NotFoundError("Vessel", str(vessel_id))
        return vessel

    async def create_vessel(
        self,
        db: AsyncSession,
        actor: User,
        fields: dict[str, Any],
        availability: list[tuple[date, date]] | None = None,
    ) -> Vessel:
        """Register a vessel owned by the actor (DRAFT unless told otherwise)."""
        if actor.role not in ("OWNER", "ADMIN"):
            raise AuthorizationError("Only vessel owners can register vessels")

        vessel = Vessel(owner_id=actor.id, **fields)
        vessel.availability = _build_slots(availability or [])
        db.add(vessel)
        await db.flush()
        await db.refresh(vessel)

        logger.info(f"Vessel {vessel.id} registered by {actor.id} ({vessel.status})")
        return vessel

    async def update_vessel(
        self,
        db: AsyncSession,
        vessel_id: UUID,
        actor: User,
        fields: dict[str, Any],
        availability: list[tuple[date, date]] | None = None,
    ) -> Vessel:
        """Update vessel fields; a given availability list replaces all slots.

        Existing bookings are not revalidated against new slots. Active
        bookings left outside every slot are logged for the owner to resolve.
        """
        vessel = await self.get_vessel(db, vessel_id)
        if vessel.owner_id != actor.id and not actor.is_admin:
            raise AuthorizationError("Only the vessel owner can update this vessel")

        for key, value in fields.items():
            setattr(vessel, key, value)

        if availability is not None:
            vessel.availability = _build_slots(availability)

            result = await db.execute(
                select(Booking).where(
                    Booking.vessel_id == vessel.id,
                    Booking.status.in_(ACTIVE_BOOKING_STATUSES),
                )
            )
            stranded = uncovered_bookings(vessel.availability, result.scalars().all())
            if stranded:
                logger.warning(
                    f"Availability edit on vessel {vessel.id} leaves active bookings "
                    f"outside every slot: {', '.join(str(b.id) for b in stranded)}"
                )

        await db.flush()
        await db.refresh(vessel)
        return vessel

    async def list_vessels(
        self,
        db: AsyncSession,
        actor: User,
        status: str | None = None,
        owner_id: UUID | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Vessel], int]:
        """List vessels visible to the actor.

        Owners see their own fleet in any status, operators see ACTIVE
        vessels they can charter, admins see everything.
        """
        query = select(Vessel)
        if actor.role == "OWNER":
            query = query.where(Vessel.owner_id == actor.id)
        elif actor.role == "OPERATOR":
            query = query.where(Vessel.status == "ACTIVE")
        elif not actor.is_admin:
            raise AuthorizationError()

        if status:
            query = query.where(Vessel.status == status)
        if owner_id:
            query = query.where(Vessel.owner_id == owner_id)

        count_result = await db.execute(select(func.count()).select_from(query.subquery()))
        total = count_result.scalar() or 0

        offset = (page - 1) * page_size
        query = query.order_by(Vessel.created_at.desc()).offset(offset).limit(page_size)
        result = await db.execute(query)
        return list(result.scalars().all()), total

    async def delete_vessel(self, db: AsyncSession, vessel_id: UUID, actor: User) -> None:
        """Delete a vessel and its availability slots.

        Refused while any booking is active. Vessels with charter history
        (cancelled or accepted bookings) keep their append-only records, so
        they are refused too; set them to DRAFT to withdraw them.

        Raises:
            NotFoundError: Vessel does not exist
            AuthorizationError: Actor is neither the owner nor an admin
            VesselInUse: Bookings still reference the vessel
        """
        result = await db.execute(
            select(Vessel).where(Vessel.id == vessel_id).with_for_update()
        )
        vessel = result.scalar_one_or_none()
        if not vessel:
            raise NotFoundError("Vessel", str(vessel_id))
        if vessel.owner_id != actor.id and not actor.is_admin:
            raise AuthorizationError("Only the vessel owner can delete this vessel")

        result = await db.execute(
            select(Booking.status, func.count())
            .where(Booking.vessel_id == vessel.id)
            .group_by(Booking.status)
        )
        counts = dict(result.all())
        if any(counts.get(s) for s in ACTIVE_BOOKING_STATUSES):
            raise VesselInUse()
        if counts:
            raise VesselInUse("Vessel has charter history; set it to DRAFT instead of deleting")

        await db.delete(vessel)
        await db.flush()
        logger.info(f"Vessel {vessel_id} deleted by {actor.id}")


# Singleton instance
vessel_service = VesselService()
