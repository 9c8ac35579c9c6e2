"""Vessel-related database models."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.database import Base, JSONType

if TYPE_CHECKING:
    from app.models.booking import Booking
    from app.models.user import User


class Vessel(Base):
    """Vessel offered for charter by an owner."""

    __tablename__ = "vessels"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    owner_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )

    # Identity
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    vessel_type: Mapped[str] = mapped_column(
        String(50), nullable=False
    )  # PSV, AHTS, CREW_BOAT, TUG, BARGE, ...
    imo_number: Mapped[str | None] = mapped_column(String(20), unique=True)
    home_port: Mapped[str | None] = mapped_column(String(100))
    flag: Mapped[str | None] = mapped_column(String(50))
    description: Mapped[str | None] = mapped_column(Text)
    specs: Mapped[dict | None] = mapped_column(JSONType)  # length, beam, deck area, ...

    # Commercial (major currency units)
    daily_rate: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="USD")
    security_deposit: Mapped[int] = mapped_column(Integer, default=0)
    fuel_included: Mapped[bool] = mapped_column(Boolean, default=False)
    crew_included: Mapped[bool] = mapped_column(Boolean, default=True)

    # Status
    status: Mapped[str] = mapped_column(
        String(20), default="DRAFT", index=True
    )  # DRAFT, ACTIVE

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    owner: Mapped["User"] = relationship("User", back_populates="vessels", lazy="selectin")
    availability: Mapped[list["AvailabilitySlot"]] = relationship(
        "AvailabilitySlot",
        back_populates="vessel",
        cascade="all, delete-orphan",
        order_by="AvailabilitySlot.start_date",
        lazy="selectin",
    )
    bookings: Mapped[list["Booking"]] = relationship("Booking", back_populates="vessel")


class AvailabilitySlot(Base):
    """Owner-declared window during which a vessel may be chartered.

    A vessel without slots is available on any date.
    """

    __tablename__ = "availability_slots"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    vessel_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("vessels.id", ondelete="CASCADE"), nullable=False, index=True
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)  # exclusive

    # Relationships
    vessel: Mapped["Vessel"] = relationship("Vessel", back_populates="availability")
