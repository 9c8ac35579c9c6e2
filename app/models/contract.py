"""Charter contract models."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.database import Base, JSONType
from app.domain.contract_state import FULLY_SIGNED, contract_status

if TYPE_CHECKING:
    from app.models.booking import Booking


class Contract(Base):
    """Contract generated from an accepted booking.

    After creation only signatures are added, plus the one-time attachment of
    the rendered document URL and hash.
    """

    __tablename__ = "contracts"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    booking_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("bookings.id"), unique=True, nullable=False
    )
    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    # Parties, frozen at generation time
    owner_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False
    )
    operator_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False
    )
    terms: Mapped[dict] = mapped_column(JSONType, nullable=False)

    # Rendered document
    pdf_url: Mapped[str | None] = mapped_column(Text)
    hash: Mapped[str | None] = mapped_column(String(64))  # sha256 hex

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    booking: Mapped["Booking"] = relationship("Booking")
    signatures: Mapped[list["ContractSignature"]] = relationship(
        "ContractSignature",
        back_populates="contract",
        order_by="ContractSignature.signed_at",
        lazy="selectin",
    )

    @property
    def signer_ids(self) -> list[uuid.UUID]:
        return [signature.signer_id for signature in self.signatures]

    @property
    def status(self) -> str:
        return contract_status(self.signer_ids, self.owner_id, self.operator_id)

    @property
    def signed_at(self) -> datetime | None:
        """Time of the signature that completed the contract."""
        if self.status != FULLY_SIGNED:
            return None
        return max(signature.signed_at for signature in self.signatures)


class ContractSignature(Base):
    """A party's signature on a contract. Append-only."""

    __tablename__ = "contract_signatures"
    __table_args__ = (
        UniqueConstraint("contract_id", "signer_id", name="uq_contract_signer"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    contract_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("contracts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    signer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False
    )
    signer_role: Mapped[str] = mapped_column(String(20), nullable=False)  # OWNER, OPERATOR
    signed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # Relationships
    contract: Mapped["Contract"] = relationship("Contract", back_populates="signatures")
