"""Shared fixtures: an in-memory database, a controllable clock and seed data."""

from __future__ import annotations

import os
import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

# Keep the module-level engine off Postgres; tests build their own engines.
os.environ.setdefault("DB_DSN", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("OPS_REAPER_ENABLED", "false")

from flightops.database import ensure_vault, transaction  # noqa: E402
from flightops.domain.models import FlightSpec  # noqa: E402
from flightops.models import Base, Pilot  # noqa: E402
from flightops.services import FleetRegistry  # noqa: E402

VAULT_SEED = 100_000.0


class FakeClock:
    """Callable clock the services accept in place of ``utcnow``."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


def make_spec(**overrides) -> FlightSpec:
    """OLBA-OJAI on a 737-800, the route most tests fly."""

    values = {
        "callsign": "LVT101",
        "flight_number": "LVT101",
        "departure": "OLBA",
        "arrival": "OJAI",
        "aircraft_type": "B738",
        "planned_fuel": 3200,
        "planned_flight_time": 45,
        "distance": 130,
        "pax": 120,
        "cargo": 1500,
    }
    values.update(overrides)
    return FlightSpec(**values)


@pytest.fixture
def clock() -> FakeClock:
    # 12:00 local time in Amman, well clear of a day boundary.
    return FakeClock(datetime(2025, 3, 14, 9, 0, 0))


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def session(engine):
    factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    async with factory() as session:
        await ensure_vault(session, VAULT_SEED)
        yield session


@pytest.fixture
async def pilot(session) -> Pilot:
    pilot = Pilot(
        pilot_code="LVT001",
        first_name="Rami",
        last_name="Haddad",
        current_location="OLBA",
        simbrief_id="424242",
    )
    session.add(pilot)
    await session.commit()
    return pilot


@pytest.fixture
async def other_pilot(session) -> Pilot:
    pilot = Pilot(pilot_code="LVT002", first_name="Lina", last_name="Khoury")
    session.add(pilot)
    await session.commit()
    return pilot


@pytest.fixture
async def aircraft(session, clock):
    """A factory-fresh 737-800 parked at Beirut."""

    async with transaction(session):
        return await FleetRegistry(session, clock=clock).register(
            registration="JY-LVA",
            aircraft_type="B738",
            home_location="OLBA",
            name="Petra",
        )
