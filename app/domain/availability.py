"""Availability and overlap validation for charter date ranges.

All ranges are half-open ``[start, end)`` calendar-date intervals. The
functions here are pure: they take already-loaded vessel state and never touch
the database, so the caller decides the transaction they run in.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from typing import Protocol

from app.core.exceptions import DateRangeInvalid, OutsideAvailability, OverlapConflict

ACTIVE_BOOKING_STATUSES = frozenset({"REQUESTED", "COUNTERED", "ACCEPTED"})


class DateRange(Protocol):
    start_date: date
    end_date: date


class BookingLike(DateRange, Protocol):
    status: str


class VesselLike(Protocol):
    availability: list[DateRange]


def overlaps(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    """Half-open interval intersection test."""
    return a_start < b_end and b_start < a_end


def within_availability(req_start: date, req_end: date, slots: Iterable[DateRange]) -> bool:
    """True when no slots are declared, or one slot alone contains the request.

    A request is never split across adjacent slots.
    """
    slots = list(slots)
    if not slots:
        return True
    return any(slot.start_date <= req_start and slot.end_date >= req_end for slot in slots)


def charter_days(start: date, end: date) -> int:
    """Number of charter days in ``[start, end)``."""
    return (end - start).days


def validate_new_booking(
    vessel: VesselLike,
    req_start: date,
    req_end: date,
    existing_bookings: Iterable[BookingLike],
) -> None:
    """Check a requested range against a vessel's slots and bookings.

    Args:
        vessel: The vessel, with its declared availability windows loaded
        req_start: Requested start date (inclusive)
        req_end: Requested end date (exclusive)
        existing_bookings: Bookings already held on the vessel; inactive
            ones are ignored

    Raises:
        DateRangeInvalid: If end is not after start
        OutsideAvailability: If slots exist and none contains the request
        OverlapConflict: If an active booking intersects the request
    """
    if req_end <= req_start:
        raise DateRangeInvalid()

    if not within_availability(req_start, req_end, vessel.availability):
        raise OutsideAvailability()

    for booking in existing_bookings:
        if booking.status not in ACTIVE_BOOKING_STATUSES:
            continue
        if overlaps(req_start, req_end, booking.start_date, booking.end_date):
            raise OverlapConflict()


def uncovered_bookings(
    slots: Iterable[DateRange], bookings: Iterable[BookingLike]
) -> list[BookingLike]:
    """Active bookings no longer contained in any of the given slots."""
    slots = list(slots)
    return [
        booking
        for booking in bookings
        if booking.status in ACTIVE_BOOKING_STATUSES
        and not within_availability(booking.start_date, booking.end_date, slots)
    ]
