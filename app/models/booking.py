"""Booking-related database models."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import Date, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.database import Base, JSONType

if TYPE_CHECKING:
    from app.models.user import User
    from app.models.vessel import Vessel


class Booking(Base):
    """Charter booking of a vessel by an operator.

    The no-overlap rule for active bookings is also enforced in PostgreSQL by
    the ``bookings_no_overlap`` exclusion constraint (see migration 001).
    """

    __tablename__ = "bookings"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    vessel_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("vessels.id"), nullable=False, index=True
    )
    operator_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )

    # Dates, half-open [start_date, end_date)
    start_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    end_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    # Status
    status: Mapped[str] = mapped_column(
        String(20), default="REQUESTED", nullable=False, index=True
    )  # REQUESTED, COUNTERED, ACCEPTED, CANCELLED
    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    cancelled_by: Mapped[str | None] = mapped_column(String(10))  # owner, operator, admin

    # purpose, cargo_type, route, estimated_crew, special_requirements, custom_clauses
    terms: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    vessel: Mapped["Vessel"] = relationship("Vessel", back_populates="bookings", lazy="selectin")
    operator: Mapped["User"] = relationship("User", lazy="selectin")
    negotiation_events: Mapped[list["BookingNegotiationEvent"]] = relationship(
        "BookingNegotiationEvent",
        back_populates="booking",
        order_by="BookingNegotiationEvent.sequence",
    )

    @property
    def owner_id(self) -> uuid.UUID:
        return self.vessel.owner_id


class BookingNegotiationEvent(Base):
    """One entry in a booking's append-only negotiation history."""

    __tablename__ = "booking_negotiation_events"
    __table_args__ = (
        UniqueConstraint("booking_id", "sequence", name="uq_negotiation_event_sequence"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    booking_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)  # 1-based per booking
    updated_by: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False
    )
    note: Mapped[str | None] = mapped_column(Text)
    changes: Mapped[dict | None] = mapped_column(JSONType)
    from_status: Mapped[str | None] = mapped_column(String(20))
    to_status: Mapped[str | None] = mapped_column(String(20))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # Relationships
    booking: Mapped["Booking"] = relationship("Booking", back_populates="negotiation_events")
