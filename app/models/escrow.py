"""Escrow payment models."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.database import Base, JSONType

if TYPE_CHECKING:
    from app.models.booking import Booking


class EscrowTransaction(Base):
    """Escrow holding the charter payment until release."""

    __tablename__ = "escrow_transactions"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    booking_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("bookings.id"), unique=True, nullable=False
    )
    reference: Mapped[str] = mapped_column(
        String(60), unique=True, nullable=False, index=True
    )  # BF-XXXXXXXX-<ms>-<RANDOM>

    # Gateway
    provider: Mapped[str] = mapped_column(String(20), nullable=False)  # PAYSTACK, FLUTTERWAVE
    provider_reference: Mapped[str | None] = mapped_column(String(100))
    payload: Mapped[dict | None] = mapped_column(JSONType)  # request sent to the provider

    # Amounts (minor units)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)  # NGN, USD
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    platform_fee: Mapped[int] = mapped_column(Integer, nullable=False)
    owner_payout: Mapped[int] = mapped_column(Integer, nullable=False)

    # Status
    status: Mapped[str] = mapped_column(
        String(20), default="PENDING", nullable=False, index=True
    )  # PENDING, PROCESSING, FUNDED, RELEASED, REFUNDED, FAILED, DISPUTED

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    booking: Mapped["Booking"] = relationship("Booking", lazy="selectin")
    events: Mapped[list["EscrowEvent"]] = relationship(
        "EscrowEvent",
        back_populates="escrow",
        order_by="EscrowEvent.sequence",
        lazy="selectin",
    )


class EscrowEvent(Base):
    """Append-only log entry for an escrow transaction."""

    __tablename__ = "escrow_events"
    __table_args__ = (
        UniqueConstraint("escrow_id", "sequence", name="uq_escrow_event_sequence"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    escrow_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("escrow_transactions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    event: Mapped[str] = mapped_column(String(30), nullable=False)  # CREATED, PROCESSING, FUNDED, ...
    from_status: Mapped[str | None] = mapped_column(String(20))
    to_status: Mapped[str] = mapped_column(String(20), nullable=False)
    provider_reference: Mapped[str | None] = mapped_column(String(100))
    actor_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id")
    )
    reason: Mapped[str | None] = mapped_column(Text)
    payload: Mapped[dict | None] = mapped_column(JSONType)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # Relationships
    escrow: Mapped["EscrowTransaction"] = relationship("EscrowTransaction", back_populates="events")
