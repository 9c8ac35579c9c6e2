"""Escrow orchestration service.

CRITICAL BUSINESS LOGIC:
- An escrow can only be opened by the booking's operator, once per booking,
  after the booking is ACCEPTED and both parties have signed the contract
- Total = daily_rate × charter days + security deposit; the platform fee is
  split off by the fee service
- Status only moves forward (see app.domain.escrow_state); provider updates
  are idempotent so webhook redelivery is harmless
- Every status change appends an EscrowEvent; events are never edited
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta
from typing import Any
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import (
    AlreadyExists,
    AuthorizationError,
    ConcurrencyConflict,
    ContractMissing,
    ContractNotFullySigned,
    InvalidTransition,
    NotAccepted,
    NotFoundError,
    ReleaseNotDue,
    ValidationError,
)
from app.domain.availability import charter_days
from app.domain.contract_state import is_fully_signed
from app.domain.escrow_state import ESCROW_STATUSES, assert_escrow_transition, path_to
from app.gateways.base import PaymentRequest
from app.models.booking import Booking
from app.models.escrow import EscrowEvent, EscrowTransaction
from app.models.user import User
from app.models.vessel import Vessel
from app.services.booking_service import booking_party
from app.services.contract_service import contract_service
from app.services.fee_service import EscrowAmounts, fee_service
from app.services.gateway_service import gateway_service
from app.utils.references import generate_escrow_reference

logger = logging.getLogger(__name__)


@dataclass
class EscrowInitiation:
    """Result of opening an escrow: the row plus what the payer needs."""

    escrow: EscrowTransaction
    payment_url: str
    reference: str
    amounts: EscrowAmounts
    payload: dict


def checkout_url(reference: str, amounts: EscrowAmounts, currency: str) -> str:
    """Hosted checkout page that hands the payer over to the provider."""
    return (
        f"{settings.app_public_url}/payment/checkout"
        f"?reference={reference}&amount={amounts.total}&currency={currency}"
    )


class EscrowService:
    """Service for opening escrows and moving them through their lifecycle."""

    async def get_escrow_by_id(self, db: AsyncSession, escrow_id: UUID) -> EscrowTransaction:
        """Unscoped lookup for workers."""
        return await self._get_escrow(db, escrow_id)

    async def _get_escrow(self, db: AsyncSession, escrow_id: UUID) -> EscrowTransaction:
        result = await db.execute(
            select(EscrowTransaction).where(EscrowTransaction.id == escrow_id)
        )
        escrow = result.scalar_one_or_none()
        if not escrow:
            raise NotFoundError("Escrow transaction", str(escrow_id))
        return escrow

    async def find_escrow(
        self, db: AsyncSession, escrow_id: str | None = None, reference: str | None = None
    ) -> EscrowTransaction | None:
        """Look up an escrow by id, falling back to its reference."""
        if escrow_id:
            try:
                result = await db.execute(
                    select(EscrowTransaction).where(EscrowTransaction.id == UUID(str(escrow_id)))
                )
                escrow = result.scalar_one_or_none()
                if escrow:
                    return escrow
            except ValueError:
                logger.warning(f"Ignoring malformed escrow id {escrow_id!r}")
        if reference:
            result = await db.execute(
                select(EscrowTransaction).where(EscrowTransaction.reference == reference)
            )
            return result.scalar_one_or_none()
        return None

    async def _append_event(
        self,
        db: AsyncSession,
        escrow: EscrowTransaction,
        event: str,
        from_status: str | None,
        to_status: str,
        provider_reference: str | None = None,
        actor_id: UUID | None = None,
        reason: str | None = None,
        payload: dict[str, Any] | None = None,
    ) -> EscrowEvent:
        result = await db.execute(
            select(func.coalesce(func.max(EscrowEvent.sequence), 0)).where(
                EscrowEvent.escrow_id == escrow.id
            )
        )
        entry = EscrowEvent(
            escrow_id=escrow.id,
            sequence=result.scalar_one() + 1,
            event=event,
            from_status=from_status,
            to_status=to_status,
            provider_reference=provider_reference,
            actor_id=actor_id,
            reason=reason,
            payload=payload,
        )
        db.add(entry)
        try:
            await db.flush()
        except IntegrityError as e:
            raise ConcurrencyConflict("Escrow transaction", str(escrow.id)) from e
        return entry

    async def initiate_escrow(
        self,
        db: AsyncSession,
        booking_id: UUID,
        provider: str,
        currency: str,
        actor: User,
    ) -> EscrowInitiation:
        """Open the escrow for a booking and build the provider payload.

        The payload is stored on the transaction and returned, but not sent;
        the provider is called out-of-band once this transaction commits.

        Raises:
            NotFoundError: Booking does not exist
            AuthorizationError: Actor is not the booking's operator
            AlreadyExists: Booking already has an escrow
            NotAccepted: Booking is not ACCEPTED
            ContractMissing: No contract was generated
            ContractNotFullySigned: Owner or operator has not signed
        """
        result = await db.execute(select(Booking).where(Booking.id == booking_id))
        booking = result.scalar_one_or_none()
        if not booking:
            raise NotFoundError("Booking", str(booking_id))
        if booking.operator_id != actor.id:
            raise AuthorizationError("Only the booking's operator can fund the escrow")

        existing = await db.execute(
            select(EscrowTransaction.id).where(EscrowTransaction.booking_id == booking.id)
        )
        if existing.scalar_one_or_none():
            raise AlreadyExists("Escrow", str(booking.id))
        if booking.status != "ACCEPTED":
            raise NotAccepted()

        contract = await contract_service.get_contract_for_booking(db, booking.id)
        if not contract:
            raise ContractMissing()
        if not is_fully_signed(contract.signer_ids, booking.owner_id, booking.operator_id):
            raise ContractNotFullySigned()

        vessel: Vessel = booking.vessel
        total = fee_service.charter_total(
            vessel.daily_rate,
            charter_days(booking.start_date, booking.end_date),
            vessel.security_deposit,
        )
        amounts = fee_service.calculate_amounts(total)
        reference = await generate_escrow_reference(db, booking.id)
        escrow_id = uuid.uuid4()

        payload = gateway_service.build_payload(
            provider,
            PaymentRequest(
                reference=reference,
                escrow_id=str(escrow_id),
                booking_id=str(booking.id),
                amount_minor=amounts.total_minor,
                currency=currency,
                email=actor.email,
                customer_name=actor.name,
                vessel_name=vessel.name,
                metadata={
                    "platform_fee": amounts.platform_fee_minor,
                    "owner_payout": amounts.owner_payout_minor,
                },
            ),
        )

        escrow = EscrowTransaction(
            id=escrow_id,
            booking_id=booking.id,
            reference=reference,
            provider=provider,
            currency=currency,
            amount=amounts.total_minor,
            platform_fee=amounts.platform_fee_minor,
            owner_payout=amounts.owner_payout_minor,
            payload=payload,
            status="PENDING",
        )
        db.add(escrow)
        try:
            await db.flush()
        except IntegrityError as e:
            logger.warning(f"Concurrent escrow creation for booking {booking.id}")
            raise AlreadyExists("Escrow", str(booking.id)) from e

        await self._append_event(
            db,
            escrow,
            "CREATED",
            from_status=None,
            to_status="PENDING",
            actor_id=actor.id,
            payload={
                "reference": reference,
                "timestamp": datetime.now(UTC).isoformat(),
                "user_id": str(actor.id),
            },
        )
        await db.refresh(escrow)

        logger.info(
            f"Escrow {escrow.id} opened for booking {booking.id}: "
            f"{amounts.total} {currency} via {provider} ({reference})"
        )
        return EscrowInitiation(
            escrow=escrow,
            payment_url=checkout_url(reference, amounts, currency),
            reference=reference,
            amounts=amounts,
            payload=payload,
        )

    def _already_applied(self, escrow: EscrowTransaction, status: str) -> bool:
        """Whether the escrow is in, or has passed through, the given status."""
        if escrow.status == status:
            return True
        return any(e.to_status == status for e in escrow.events if e.event != "CREATED")

    async def _transition(
        self,
        db: AsyncSession,
        escrow: EscrowTransaction,
        target: str,
        event: str,
        provider_reference: str | None = None,
        actor_id: UUID | None = None,
        reason: str | None = None,
        payload: dict[str, Any] | None = None,
    ) -> EscrowTransaction:
        observed = escrow.status
        assert_escrow_transition(observed, target)

        values: dict[str, Any] = {"status": target, "updated_at": func.now()}
        if provider_reference:
            values["provider_reference"] = provider_reference

        result = await db.execute(
            update(EscrowTransaction)
            .where(EscrowTransaction.id == escrow.id, EscrowTransaction.status == observed)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await db.refresh(escrow)
            if escrow.status == target:
                return escrow
            raise ConcurrencyConflict("Escrow transaction", str(escrow.id))

        await self._append_event(
            db,
            escrow,
            event,
            from_status=observed,
            to_status=target,
            provider_reference=provider_reference,
            actor_id=actor_id,
            reason=reason,
            payload=payload,
        )
        await db.refresh(escrow)

        logger.info(f"Escrow {escrow.id}: {observed} → {target} ({event})")
        return escrow

    async def apply_provider_update(
        self,
        db: AsyncSession,
        escrow_id: UUID,
        new_status: str,
        provider_reference: str | None = None,
        payload: dict[str, Any] | None = None,
        actor_id: UUID | None = None,
    ) -> EscrowTransaction:
        """Move an escrow to new_status on behalf of the payment provider.

        Re-applying the current status is a no-op. Any other move must be a
        legal forward transition, so stale or backward updates are rejected.

        Raises:
            NotFoundError: Escrow does not exist
            InvalidTransition: Backward or skipped transition
        """
        if new_status not in ESCROW_STATUSES:
            raise ValidationError(f"Unknown escrow status: {new_status}")

        escrow = await self._get_escrow(db, escrow_id)
        if escrow.status == new_status:
            logger.info(f"Escrow {escrow.id} already {new_status}, ignoring update")
            return escrow

        return await self._transition(
            db,
            escrow,
            new_status,
            event=new_status,
            provider_reference=provider_reference,
            actor_id=actor_id,
            payload=payload,
        )

    async def apply_provider_event(
        self,
        db: AsyncSession,
        escrow: EscrowTransaction,
        new_status: str,
        provider_reference: str | None = None,
        payload: dict[str, Any] | None = None,
    ) -> EscrowTransaction:
        """Apply a webhook or reconciliation result, stepping through
        intermediate states providers do not report.

        Providers redeliver and reorder events, so a status the escrow has
        ever reached is ignored rather than rejected.
        """
        if self._already_applied(escrow, new_status):
            return escrow
        for step in path_to(escrow.status, new_status):
            escrow = await self.apply_provider_update(
                db, escrow.id, step, provider_reference=provider_reference, payload=payload
            )
        return escrow

    async def release_escrow(
        self, db: AsyncSession, escrow_id: UUID, actor: User, reason: str, today: date | None = None
    ) -> EscrowTransaction:
        """Release funded escrow to the owner.

        Before the charter ends only an admin may release.

        Raises:
            AuthorizationError: Actor is not a party or an admin
            InvalidTransition: Escrow is not FUNDED
            ReleaseNotDue: Charter has not ended and actor is not an admin
        """
        escrow = await self._get_escrow(db, escrow_id)
        booking = escrow.booking
        party = booking_party(booking, actor)

        if len(reason.strip()) < 10:
            raise ValidationError("Release reason must be at least 10 characters")
        if escrow.status != "FUNDED":
            raise InvalidTransition("escrow", escrow.status, "RELEASED")

        today = today or datetime.now(UTC).date()
        if party != "admin" and today < booking.end_date:
            raise ReleaseNotDue()

        return await self._transition(
            db,
            escrow,
            "RELEASED",
            event="RELEASED",
            actor_id=actor.id,
            reason=reason,
            payload={"released_by": party, "timestamp": datetime.now(UTC).isoformat()},
        )

    async def get_escrow(self, db: AsyncSession, escrow_id: UUID, actor: User) -> EscrowTransaction:
        escrow = await self._get_escrow(db, escrow_id)
        booking_party(escrow.booking, actor)
        return escrow

    async def list_escrows(
        self,
        db: AsyncSession,
        actor: User,
        status: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[EscrowTransaction], int]:
        query = select(EscrowTransaction).join(Booking, Booking.id == EscrowTransaction.booking_id)
        if actor.role == "OPERATOR":
            query = query.where(Booking.operator_id == actor.id)
        elif actor.role == "OWNER":
            query = query.join(Vessel, Vessel.id == Booking.vessel_id).where(
                Vessel.owner_id == actor.id
            )
        elif not actor.is_admin:
            raise AuthorizationError()

        if status:
            query = query.where(EscrowTransaction.status == status)

        count_result = await db.execute(select(func.count()).select_from(query.subquery()))
        total = count_result.scalar() or 0

        offset = (page - 1) * page_size
        query = query.order_by(EscrowTransaction.created_at.desc()).offset(offset).limit(page_size)
        result = await db.execute(query)
        return list(result.scalars().all()), total

    async def stale_processing(self, db: AsyncSession, older_than_minutes: int) -> list[EscrowTransaction]:
        """PROCESSING escrows with no update for the given number of minutes."""
        cutoff = datetime.now(UTC) - timedelta(minutes=older_than_minutes)
        result = await db.execute(
            select(EscrowTransaction).where(
                EscrowTransaction.status == "PROCESSING",
                EscrowTransaction.updated_at <= cutoff,
            )
        )
        return list(result.scalars().all())


# Singleton instance
escrow_service = EscrowService()
