"""Contract generation and signing service."""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    AlreadyExists,
    AuthorizationError,
    ConcurrencyConflict,
    NotAccepted,
    NotFoundError,
    StateConflict,
    ValidationError,
)
from app.domain.availability import charter_days
from app.models.booking import Booking
from app.models.contract import Contract, ContractSignature
from app.models.user import User
from app.models.vessel import Vessel
from app.services.booking_service import booking_party

logger = logging.getLogger(__name__)


def _party_snapshot(user: User) -> dict[str, Any]:
    return {
        "id": str(user.id),
        "name": user.name,
        "email": user.email,
        "company": user.company,
    }


def generate_terms(booking: Booking, vessel: Vessel, owner: User, operator: User) -> dict[str, Any]:
    """Derive the contract terms snapshot from an accepted booking.

    Pure: the result depends only on the arguments and is JSON-serializable.
    """
    duration = charter_days(booking.start_date, booking.end_date)
    booking_terms = booking.terms or {}

    return {
        "parties": {
            "owner": _party_snapshot(owner),
            "operator": _party_snapshot(operator),
        },
        "vessel": {
            "id": str(vessel.id),
            "name": vessel.name,
            "type": vessel.vessel_type,
            "imo_number": vessel.imo_number,
            "home_port": vessel.home_port,
            "flag": vessel.flag,
            "specs": vessel.specs or {},
        },
        "charter": {
            "start": booking.start_date.isoformat(),
            "end": booking.end_date.isoformat(),
            "duration_days": duration,
            "purpose": booking_terms.get("purpose"),
            "cargo_type": booking_terms.get("cargo_type"),
            "route": booking_terms.get("route"),
            "estimated_crew": booking_terms.get("estimated_crew"),
        },
        "financial": {
            "daily_rate": vessel.daily_rate,
            "currency": vessel.currency,
            "total_amount": vessel.daily_rate * duration,
            "security_deposit": vessel.security_deposit,
            "fuel_included": vessel.fuel_included,
            "crew_included": vessel.crew_included,
        },
        "terms": {
            "special_requirements": booking_terms.get("special_requirements"),
            "custom_clauses": booking_terms.get("custom_clauses"),
        },
    }


class ContractService:
    """Service for generating contracts and collecting signatures."""

    async def _get_contract(self, db: AsyncSession, contract_id: UUID) -> Contract:
        result = await db.execute(select(Contract).where(Contract.id == contract_id))
        contract = result.scalar_one_or_none()
        if not contract:
            raise NotFoundError("Contract", str(contract_id))
        return contract

    async def get_contract_for_booking(self, db: AsyncSession, booking_id: UUID) -> Contract | None:
        result = await db.execute(select(Contract).where(Contract.booking_id == booking_id))
        return result.scalar_one_or_none()

    async def create_contract(self, db: AsyncSession, booking_id: UUID, actor: User) -> Contract:
        """Generate the single contract for an accepted booking.

        Raises:
            NotFoundError: Booking does not exist
            AuthorizationError: Actor is not the owner, the operator or an admin
            AlreadyExists: Booking already has a contract
            NotAccepted: Booking is not ACCEPTED
        """
        result = await db.execute(select(Booking).where(Booking.id == booking_id))
        booking = result.scalar_one_or_none()
        if not booking:
            raise NotFoundError("Booking", str(booking_id))
        booking_party(booking, actor)

        if await self.get_contract_for_booking(db, booking.id):
            raise AlreadyExists("Contract", str(booking.id))
        if booking.status != "ACCEPTED":
            raise NotAccepted()

        vessel = booking.vessel
        contract = Contract(
            booking_id=booking.id,
            version=1,
            owner_id=vessel.owner_id,
            operator_id=booking.operator_id,
            terms=generate_terms(booking, vessel, vessel.owner, booking.operator),
        )
        db.add(contract)
        try:
            await db.flush()
        except IntegrityError as e:
            logger.warning(f"Concurrent contract creation for booking {booking.id}")
            raise AlreadyExists("Contract", str(booking.id)) from e

        await db.refresh(contract)
        logger.info(f"Contract {contract.id} generated for booking {booking.id}")
        return contract

    async def attach_document(
        self, db: AsyncSession, contract_id: UUID, pdf_url: str, content_hash: str
    ) -> Contract:
        """Record the rendered document for a contract, exactly once.

        Re-attaching the same hash is a no-op; a different document is rejected.
        """
        contract = await self._get_contract(db, contract_id)
        if contract.hash is not None:
            if contract.hash == content_hash:
                return contract
            raise StateConflict("Contract document is already attached")

        contract.pdf_url = pdf_url
        contract.hash = content_hash
        await db.flush()
        await db.refresh(contract)

        logger.info(f"Document attached to contract {contract.id} (sha256 {content_hash[:12]}…)")
        return contract

    async def record_signature(
        self, db: AsyncSession, contract_id: UUID, actor: User, signer_role: str
    ) -> Contract:
        """Add the actor to the contract's signer set.

        Signing twice is a no-op. Only the two parties can sign, each in
        their own role.
        """
        contract = await self._get_contract(db, contract_id)

        if actor.id not in (contract.owner_id, contract.operator_id):
            raise AuthorizationError("Only the vessel owner or the operator can sign this contract")

        expected_signer = contract.owner_id if signer_role == "OWNER" else contract.operator_id
        if signer_role not in ("OWNER", "OPERATOR") or expected_signer != actor.id:
            raise ValidationError(f"You cannot sign as {signer_role}")

        if actor.id in contract.signer_ids:
            return contract

        try:
            async with db.begin_nested():
                db.add(
                    ContractSignature(
                        contract_id=contract.id,
                        signer_id=actor.id,
                        signer_role=signer_role,
                    )
                )
        except IntegrityError as e:
            # A concurrent request recorded a signature first
            await db.refresh(contract)
            if actor.id in contract.signer_ids:
                return contract
            raise ConcurrencyConflict("Contract", str(contract.id)) from e

        await db.refresh(contract)
        logger.info(f"Contract {contract.id} signed by {signer_role.lower()} {actor.id} ({contract.status})")
        return contract

    async def get_contract(self, db: AsyncSession, contract_id: UUID, actor: User) -> Contract:
        contract = await self._get_contract(db, contract_id)
        if not actor.is_admin and actor.id not in (contract.owner_id, contract.operator_id):
            raise AuthorizationError("You don't have permission to access this contract")
        return contract

    async def list_contracts(
        self, db: AsyncSession, actor: User, page: int = 1, page_size: int = 20
    ) -> tuple[list[Contract], int]:
        query = select(Contract)
        if not actor.is_admin:
            query = query.where(
                (Contract.owner_id == actor.id) | (Contract.operator_id == actor.id)
            )

        count_result = await db.execute(select(func.count()).select_from(query.subquery()))
        total = count_result.scalar() or 0

        offset = (page - 1) * page_size
        query = query.order_by(Contract.created_at.desc()).offset(offset).limit(page_size)
        result = await db.execute(query)
        return list(result.scalars().all()), total


# Singleton instance
contract_service = ContractService()
