"""Tests for date-range validation against availability and active bookings."""

from datetime import date
from types import SimpleNamespace

import pytest

from app.core.exceptions import DateRangeInvalid, OutsideAvailability, OverlapConflict
from app.domain.availability import (
    charter_days,
    overlaps,
    uncovered_bookings,
    validate_new_booking,
    within_availability,
)


def slot(start: date, end: date) -> SimpleNamespace:
    return SimpleNamespace(start_date=start, end_date=end)


def held(start: date, end: date, status: str = "REQUESTED") -> SimpleNamespace:
    return SimpleNamespace(start_date=start, end_date=end, status=status)


def vessel_with(*slots) -> SimpleNamespace:
    return SimpleNamespace(availability=list(slots))


class TestOverlaps:
    def test_intersecting_ranges(self):
        assert overlaps(date(2026, 3, 1), date(2026, 3, 10), date(2026, 3, 5), date(2026, 3, 15))

    def test_adjacent_ranges_do_not_overlap(self):
        assert not overlaps(date(2026, 3, 1), date(2026, 3, 10), date(2026, 3, 10), date(2026, 3, 15))
        assert not overlaps(date(2026, 3, 10), date(2026, 3, 15), date(2026, 3, 1), date(2026, 3, 10))

    def test_containment(self):
        assert overlaps(date(2026, 3, 1), date(2026, 3, 30), date(2026, 3, 5), date(2026, 3, 6))


class TestWithinAvailability:
    def test_no_slots_means_always_available(self):
        assert within_availability(date(2026, 1, 1), date(2027, 1, 1), [])

    def test_single_slot_must_contain_request(self):
        slots = [slot(date(2026, 3, 1), date(2026, 3, 31))]
        assert within_availability(date(2026, 3, 1), date(2026, 3, 31), slots)
        assert not within_availability(date(2026, 3, 20), date(2026, 4, 2), slots)

    def test_request_is_not_split_across_adjacent_slots(self):
        slots = [
            slot(date(2026, 3, 1), date(2026, 3, 15)),
            slot(date(2026, 3, 15), date(2026, 3, 31)),
        ]
        assert not within_availability(date(2026, 3, 10), date(2026, 3, 20), slots)


class TestValidateNewBooking:
    def test_end_not_after_start(self):
        with pytest.raises(DateRangeInvalid):
            validate_new_booking(vessel_with(), date(2026, 3, 5), date(2026, 3, 5), [])

    def test_date_range_checked_before_availability(self):
        vessel = vessel_with(slot(date(2026, 1, 1), date(2026, 1, 31)))
        with pytest.raises(DateRangeInvalid):
            validate_new_booking(vessel, date(2026, 6, 5), date(2026, 6, 1), [])

    def test_outside_availability(self):
        vessel = vessel_with(slot(date(2026, 3, 1), date(2026, 3, 31)))
        with pytest.raises(OutsideAvailability):
            validate_new_booking(vessel, date(2026, 4, 1), date(2026, 4, 5), [])

    def test_overlap_with_active_booking(self):
        existing = [held(date(2026, 3, 1), date(2026, 3, 10), "ACCEPTED")]
        with pytest.raises(OverlapConflict):
            validate_new_booking(vessel_with(), date(2026, 3, 9), date(2026, 3, 12), existing)

    def test_cancelled_bookings_are_ignored(self):
        existing = [held(date(2026, 3, 1), date(2026, 3, 10), "CANCELLED")]
        validate_new_booking(vessel_with(), date(2026, 3, 1), date(2026, 3, 10), existing)

    def test_back_to_back_booking_is_allowed(self):
        existing = [held(date(2026, 3, 1), date(2026, 3, 10), "COUNTERED")]
        validate_new_booking(vessel_with(), date(2026, 3, 10), date(2026, 3, 12), existing)


def test_charter_days_counts_half_open_range():
    assert charter_days(date(2026, 3, 1), date(2026, 3, 8)) == 7


def test_uncovered_bookings_reports_only_active_ones():
    slots = [slot(date(2026, 3, 1), date(2026, 3, 31))]
    inside = held(date(2026, 3, 2), date(2026, 3, 5))
    outside = held(date(2026, 4, 2), date(2026, 4, 5), "ACCEPTED")
    gone = held(date(2026, 5, 2), date(2026, 5, 5), "CANCELLED")

    assert uncovered_bookings(slots, [inside, outside, gone]) == [outside]


def test_june_slot_admits_inner_range_and_rejects_july():
    vessel = vessel_with(slot(date(2025, 6, 1), date(2025, 6, 30)))

    validate_new_booking(vessel, date(2025, 6, 5), date(2025, 6, 10), [])
    with pytest.raises(OutsideAvailability):
        validate_new_booking(vessel, date(2025, 7, 1), date(2025, 7, 5), [])
