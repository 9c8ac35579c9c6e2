"""Booking service.

Owns the booking lifecycle: admission of new requests against the vessel's
availability and active bookings, party-driven status transitions with
optimistic concurrency, and the append-only negotiation history.
"""

import logging
from datetime import date
from typing import Any
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    AppException,
    AuthorizationError,
    CancellationAfterFunding,
    ConcurrencyConflict,
    ImmutableState,
    NotFoundError,
    OverlapConflict,
    ValidationError,
)
from app.domain.availability import ACTIVE_BOOKING_STATUSES, validate_new_booking
from app.domain.booking_state import (
    assert_booking_transition,
    assert_party_may_request,
    is_terminal,
)
from app.domain.escrow_state import FUNDED_OR_LATER
from app.models.booking import Booking, BookingNegotiationEvent
from app.models.escrow import EscrowTransaction
from app.models.user import User
from app.models.vessel import Vessel

logger = logging.getLogger(__name__)

OVERLAP_CONSTRAINT = "bookings_no_overlap"


def booking_party(booking: Booking, actor: User) -> str:
    """Role the actor plays on this booking: "admin", "owner" or "operator".

    Raises:
        AuthorizationError: If the actor is neither a party nor an admin
    """
    if actor.is_admin:
        return "admin"
    if booking.operator_id == actor.id:
        return "operator"
    if booking.owner_id == actor.id:
        return "owner"
    raise AuthorizationError("You don't have permission to access this booking")


class BookingService:
    """Service for creating, negotiating and reading bookings."""

    async def _get_booking(self, db: AsyncSession, booking_id: UUID) -> Booking:
        result = await db.execute(select(Booking).where(Booking.id == booking_id))
        booking = result.scalar_one_or_none()
        if not booking:
            raise NotFoundError("Booking", str(booking_id))
        return booking

    async def _lock_vessel(self, db: AsyncSession, vessel_id: UUID) -> Vessel:
        """Load the vessel holding a row lock until the transaction ends.

        Concurrent admissions for the same vessel queue on this lock, so the
        active booking set read afterwards cannot change under us.
        """
        result = await db.execute(
            select(Vessel).where(Vessel.id == vessel_id).with_for_update()
        )
        vessel = result.scalar_one_or_none()
        if not vessel:
            raise NotFoundError("Vessel", str(vessel_id))
        return vessel

    async def _active_bookings(self, db: AsyncSession, vessel_id: UUID) -> list[Booking]:
        result = await db.execute(
            select(Booking).where(
                Booking.vessel_id == vessel_id,
                Booking.status.in_(ACTIVE_BOOKING_STATUSES),
            )
        )
        return list(result.scalars().all())

    async def _append_event(
        self,
        db: AsyncSession,
        booking: Booking,
        actor: User,
        note: str | None = None,
        changes: dict[str, Any] | None = None,
        from_status: str | None = None,
        to_status: str | None = None,
    ) -> BookingNegotiationEvent:
        result = await db.execute(
            select(func.coalesce(func.max(BookingNegotiationEvent.sequence), 0)).where(
                BookingNegotiationEvent.booking_id == booking.id
            )
        )
        sequence = result.scalar_one() + 1

        entry = BookingNegotiationEvent(
            booking_id=booking.id,
            sequence=sequence,
            updated_by=actor.id,
            note=note,
            changes=changes,
            from_status=from_status,
            to_status=to_status,
        )
        db.add(entry)
        try:
            await db.flush()
        except IntegrityError as e:
            logger.warning(
                f"Negotiation log sequence {sequence} already taken for booking {booking.id}"
            )
            raise ConcurrencyConflict("Booking", str(booking.id)) from e
        return entry

    async def create_booking(
        self,
        db: AsyncSession,
        actor: User,
        vessel_id: UUID,
        start_date: date,
        end_date: date,
        terms: dict[str, Any],
    ) -> Booking:
        """Admit a new booking request in REQUESTED state.

        All preconditions are checked inside the caller's transaction while
        the vessel row is locked; nothing is written unless they all pass.
        """
        if actor.role != "OPERATOR":
            raise AuthorizationError("Only operators can request bookings")

        vessel = await self._lock_vessel(db, vessel_id)

        if vessel.status != "ACTIVE":
            raise ValidationError("Vessel is not available for booking")
        if vessel.owner_id == actor.id:
            raise ValidationError("You cannot book your own vessel")

        active = await self._active_bookings(db, vessel.id)
        try:
            validate_new_booking(vessel, start_date, end_date, active)
        except AppException as e:
            logger.info(
                f"Rejected booking on vessel {vessel.id} [{start_date}, {end_date}): {e.detail}"
            )
            raise

        booking = Booking(
            vessel_id=vessel.id,
            operator_id=actor.id,
            start_date=start_date,
            end_date=end_date,
            status="REQUESTED",
            terms=terms,
        )
        db.add(booking)
        try:
            await db.flush()
        except IntegrityError as e:
            if OVERLAP_CONSTRAINT in str(e.orig):
                logger.warning(f"Overlap constraint rejected booking on vessel {vessel.id}")
                raise OverlapConflict() from e
            raise

        await self._append_event(
            db, booking, actor, note="Booking requested", changes={"terms": terms}, to_status="REQUESTED"
        )
        await db.refresh(booking)

        logger.info(f"Booking {booking.id} requested on vessel {vessel.id} by {actor.id}")
        return booking

    async def get_booking(self, db: AsyncSession, booking_id: UUID, actor: User) -> Booking:
        booking = await self._get_booking(db, booking_id)
        booking_party(booking, actor)
        return booking

    async def list_bookings(
        self,
        db: AsyncSession,
        actor: User,
        status: str | None = None,
        vessel_id: UUID | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Booking], int]:
        """List bookings visible to the actor.

        Operators see their own requests, owners see bookings on their
        vessels, admins see everything.
        """
        query = select(Booking)
        if actor.role == "OPERATOR":
            query = query.where(Booking.operator_id == actor.id)
        elif actor.role == "OWNER":
            query = query.join(Vessel, Vessel.id == Booking.vessel_id).where(
                Vessel.owner_id == actor.id
            )
        elif not actor.is_admin:
            raise AuthorizationError()

        if status:
            query = query.where(Booking.status == status)
        if vessel_id:
            query = query.where(Booking.vessel_id == vessel_id)

        # Count total
        count_result = await db.execute(select(func.count()).select_from(query.subquery()))
        total = count_result.scalar() or 0

        # Pagination
        offset = (page - 1) * page_size
        query = query.order_by(Booking.created_at.desc()).offset(offset).limit(page_size)

        result = await db.execute(query)
        return list(result.scalars().all()), total

    async def update_booking(
        self,
        db: AsyncSession,
        booking_id: UUID,
        actor: User,
        status: str | None = None,
        note: str | None = None,
        terms: dict[str, Any] | None = None,
    ) -> Booking:
        """Apply a status change and/or terms update to a booking.

        Checks run in a fixed order: existence, party membership, terminal
        state, role permission, then reachability of the target state.

        Raises:
            NotFoundError: Booking does not exist
            AuthorizationError: Actor is not a party, or their role may not
                request the target status
            CancellationAfterFunding: Cancelling an accepted booking whose
                escrow has been funded
            ImmutableState: Booking is ACCEPTED or CANCELLED
            InvalidTransition: Target status is not reachable
            ConcurrencyConflict: Booking changed since it was read
        """
        if status is None and terms is None and note is None:
            raise ValidationError("Nothing to update")

        booking = await self._get_booking(db, booking_id)
        party = booking_party(booking, actor)

        if is_terminal(booking.status):
            if status == "CANCELLED" and booking.status == "ACCEPTED":
                escrow_result = await db.execute(
                    select(EscrowTransaction.status).where(
                        EscrowTransaction.booking_id == booking.id
                    )
                )
                escrow_status = escrow_result.scalar_one_or_none()
                if escrow_status in FUNDED_OR_LATER:
                    raise CancellationAfterFunding(escrow_status)
            raise ImmutableState(booking.status)

        if status is not None:
            assert_party_may_request(party, status)
            assert_booking_transition(booking.status, status)

        observed_status = booking.status
        observed_version = booking.version

        values: dict[str, Any] = {"version": Booking.version + 1, "updated_at": func.now()}
        if status is not None:
            values["status"] = status
            if status == "CANCELLED":
                values["cancelled_by"] = party
        if terms:
            values["terms"] = {**(booking.terms or {}), **terms}

        result = await db.execute(
            update(Booking)
            .where(
                Booking.id == booking.id,
                Booking.status == observed_status,
                Booking.version == observed_version,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            logger.info(f"Booking {booking.id} changed concurrently (observed v{observed_version})")
            raise ConcurrencyConflict("Booking", str(booking.id))

        await self._append_event(
            db,
            booking,
            actor,
            note=note,
            changes={"terms": terms} if terms else None,
            from_status=observed_status if status else None,
            to_status=status,
        )
        await db.refresh(booking)

        if status:
            logger.info(f"Booking {booking.id}: {observed_status} → {status} by {party} {actor.id}")
        return booking

    async def get_history(
        self, db: AsyncSession, booking_id: UUID, actor: User
    ) -> list[BookingNegotiationEvent]:
        booking = await self.get_booking(db, booking_id, actor)
        result = await db.execute(
            select(BookingNegotiationEvent)
            .where(BookingNegotiationEvent.booking_id == booking.id)
            .order_by(BookingNegotiationEvent.sequence)
        )
        return list(result.scalars().all())


# Singleton instance
booking_service = BookingService()
