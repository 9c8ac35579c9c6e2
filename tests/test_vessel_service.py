"""Tests for vessel listing and removal."""

import pytest
from sqlalchemy import func, select

from app.core.exceptions import AuthorizationError, NotFoundError, VesselInUse
from app.models.vessel import AvailabilitySlot, Vessel
from app.services.booking_service import booking_service
from app.services.vessel_service import vessel_service
from tests.conftest import future


class TestListVessels:
    async def test_owner_sees_own_fleet_in_any_status(self, db, make_vessel, make_user, owner, vessel):
        draft = await make_vessel(owner, status="DRAFT")
        await make_vessel(await make_user("OWNER"))

        vessels, total = await vessel_service.list_vessels(db, owner)

        assert total == 2
        assert {v.id for v in vessels} == {vessel.id, draft.id}

    async def test_operator_sees_only_active_vessels(self, db, make_vessel, owner, operator, vessel):
        await make_vessel(owner, status="DRAFT")

        vessels, total = await vessel_service.list_vessels(db, operator)

        assert total == 1
        assert [v.id for v in vessels] == [vessel.id]

    async def test_status_filter(self, db, make_vessel, owner, admin, vessel):
        draft = await make_vessel(owner, status="DRAFT")

        drafts, _ = await vessel_service.list_vessels(db, admin, status="DRAFT")
        active, _ = await vessel_service.list_vessels(db, admin, status="ACTIVE")

        assert [v.id for v in drafts] == [draft.id]
        assert [v.id for v in active] == [vessel.id]

    async def test_pagination(self, db, make_vessel, owner, vessel):
        await make_vessel(owner)
        await make_vessel(owner)

        page, total = await vessel_service.list_vessels(db, owner, page=2, page_size=2)

        assert total == 3
        assert len(page) == 1


class TestDeleteVessel:
    async def test_owner_deletes_unbooked_vessel(self, db, owner, vessel):
        await vessel_service.delete_vessel(db, vessel.id, owner)

        assert await db.get(Vessel, vessel.id) is None
        with pytest.raises(NotFoundError):
            await vessel_service.get_vessel(db, vessel.id)

    async def test_admin_may_delete(self, db, admin, vessel):
        await vessel_service.delete_vessel(db, vessel.id, admin)
        assert await db.get(Vessel, vessel.id) is None

    async def test_other_owner_is_refused(self, db, make_user, vessel):
        with pytest.raises(AuthorizationError):
            await vessel_service.delete_vessel(db, vessel.id, await make_user("OWNER"))

    async def test_unknown_vessel(self, db, owner):
        from uuid import uuid4

        with pytest.raises(NotFoundError):
            await vessel_service.delete_vessel(db, uuid4(), owner)

    async def test_active_booking_blocks_delete(self, db, booking, owner, vessel):
        with pytest.raises(VesselInUse, match="active bookings"):
            await vessel_service.delete_vessel(db, vessel.id, owner)

    async def test_charter_history_blocks_delete(self, db, booking, owner, operator, vessel):
        await booking_service.update_booking(db, booking.id, operator, status="CANCELLED")

        with pytest.raises(VesselInUse, match="charter history"):
            await vessel_service.delete_vessel(db, vessel.id, owner)

    async def test_availability_is_removed_with_vessel(self, db, make_vessel, owner):
        seasonal = await make_vessel(owner, slots=[(future(10), future(40))])

        await vessel_service.delete_vessel(db, seasonal.id, owner)
        await db.commit()

        assert await db.get(Vessel, seasonal.id) is None
        remaining = await db.scalar(
            select(func.count()).select_from(AvailabilitySlot).where(AvailabilitySlot.vessel_id == seasonal.id)
        )
        assert remaining == 0
