"""Shared fixtures: in-memory SQLite database, parties, vessels and a charter pipeline."""

import os

os.environ.setdefault("DATABASE_URL_OVERRIDE", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("PAYSTACK_SECRET_KEY", "sk_test_bluefleet")
os.environ.setdefault("FLUTTERWAVE_SECRET_KEY", "FLWSECK_TEST-bluefleet")
os.environ.setdefault("FLUTTERWAVE_SECRET_HASH", "bluefleet-secret-hash")

from contextlib import asynccontextmanager
from datetime import date, timedelta
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.core.immutability import register_immutability_enforcement
from app.database import Base
from app.models.user import User
from app.models.vessel import AvailabilitySlot, Vessel
from app.services.booking_service import booking_service
from app.services.contract_service import contract_service
from app.services.escrow_service import escrow_service

register_immutability_enforcement()

TERMS = {
    "purpose": "Offshore supply run to the Bonga field",
    "cargo_type": "Drilling mud",
    "route": "Onne - Bonga FPSO",
    "estimated_crew": 12,
}


def future(days: int) -> date:
    return date.today() + timedelta(days=days)


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def db_context(session_maker):
    """Drop-in replacement for app.database.get_db_context."""

    @asynccontextmanager
    async def _context():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    return _context


@pytest.fixture
def make_user(db):
    async def _make(role: str = "OPERATOR", name: str | None = None) -> User:
        user = User(
            email=f"{role.lower()}-{uuid4().hex[:8]}@example.com",
            name=name or f"{role.title()} User",
            role=role,
            company="Gulf of Guinea Marine",
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)
        return user

    return _make


@pytest.fixture
def make_vessel(db):
    async def _make(
        owner: User,
        status: str = "ACTIVE",
        slots: list[tuple[date, date]] | None = None,
        daily_rate: int = 5000,
        security_deposit: int = 10000,
    ) -> Vessel:
        vessel = Vessel(
            owner_id=owner.id,
            name="MV Atlantic Pride",
            vessel_type="PSV",
            home_port="Onne",
            flag="NG",
            daily_rate=daily_rate,
            currency="USD",
            security_deposit=security_deposit,
            status=status,
        )
        vessel.availability = [
            AvailabilitySlot(start_date=start, end_date=end) for start, end in (slots or [])
        ]
        db.add(vessel)
        await db.commit()
        await db.refresh(vessel)
        return vessel

    return _make


@pytest.fixture
async def owner(make_user):
    return await make_user("OWNER", name="Ada Owner")


@pytest.fixture
async def operator(make_user):
    return await make_user("OPERATOR", name="Tunde Operator")


@pytest.fixture
async def admin(make_user):
    return await make_user("ADMIN", name="Support Admin")


@pytest.fixture
async def vessel(make_vessel, owner):
    return await make_vessel(owner)


@pytest.fixture
async def booking(db, vessel, operator):
    """A REQUESTED week-long charter starting in 30 days."""
    booking = await booking_service.create_booking(
        db, operator, vessel.id, future(30), future(37), dict(TERMS)
    )
    await db.commit()
    return booking


@pytest.fixture
async def accepted_booking(db, booking, owner):
    booking = await booking_service.update_booking(
        db, booking.id, owner, status="ACCEPTED", note="Agreed"
    )
    await db.commit()
    return booking


@pytest.fixture
async def contract(db, accepted_booking, operator):
    contract = await contract_service.create_contract(db, accepted_booking.id, operator)
    await db.commit()
    return contract


@pytest.fixture
async def signed_contract(db, contract, owner, operator):
    await contract_service.record_signature(db, contract.id, owner, "OWNER")
    contract = await contract_service.record_signature(db, contract.id, operator, "OPERATOR")
    await db.commit()
    return contract


@pytest.fixture
async def escrow(db, signed_contract, accepted_booking, operator):
    initiation = await escrow_service.initiate_escrow(
        db, accepted_booking.id, provider="PAYSTACK", currency="NGN", actor=operator
    )
    await db.commit()
    return initiation.escrow
