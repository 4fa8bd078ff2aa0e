"""HTTP surface: auth, error rendering and the booking-to-settlement flow."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from conftest import VAULT_SEED, make_spec
from flightops.controllers import bids as bid_routes
from flightops.database import ensure_vault, get_session, transaction
from flightops.main import app
from flightops.models import Base, Pilot
from flightops.services import FleetRegistry
from flightops.utils import create_access_token

BID_PAYLOAD = {
    "callsign": "LVT101",
    "flightNumber": "LVT101",
    "departure": "OLBA",
    "arrival": "OJAI",
    "aircraftType": "B738",
    "plannedFuel": 3200,
    "plannedFlightTime": 45,
    "distance": 130,
    "pax": 120,
    "cargo": 1500,
}


async def _seed(engine, factory) -> dict[str, int]:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with factory() as session:
        await ensure_vault(session, VAULT_SEED)
        crew = Pilot(
            pilot_code="LVT001",
            first_name="Rami",
            last_name="Haddad",
            current_location="OLBA",
            simbrief_id="424242",
        )
        staff = Pilot(pilot_code="LVT900", first_name="Nour", last_name="Saab")
        session.add_all([crew, staff])
        await session.commit()
        async with transaction(session):
            await FleetRegistry(session).register(
                registration="JY-LVA",
                aircraft_type="B738",
                home_location="OLBA",
                name="Petra",
            )
        return {"pilot": crew.id, "admin": staff.id}


def _auth(pilot_id: int, *, is_admin: bool = False) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(pilot_id, is_admin=is_admin)}"}


@pytest.fixture
def api(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'flightops.db'}",
        poolclass=NullPool,
    )
    factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    ids = asyncio.run(_seed(engine, factory))

    async def override_session():
        async with factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    client = TestClient(app)
    yield client, _auth(ids["pilot"]), _auth(ids["admin"], is_admin=True)
    app.dependency_overrides.clear()
    asyncio.run(engine.dispose())


def test_health_and_metrics(api):
    client, _, _ = api

    assert client.get("/health").json()["status"] == "healthy"
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "flightops" in response.text


def test_bid_booking_and_cancellation(api):
    client, pilot, _ = api

    response = client.post("/bids", json=BID_PAYLOAD, headers=pilot)
    assert response.status_code == 201
    bid = response.json()
    assert bid["aircraftType"] == "B738"
    assert bid["status"] == "active"
    assert "expiresAt" in bid

    duplicate = client.post("/bids", json=BID_PAYLOAD, headers=pilot)
    assert duplicate.status_code == 409
    assert duplicate.json()["code"] == "DuplicateBid"

    assert client.get("/bids/current", headers=pilot).json()["id"] == bid["id"]

    cancelled = client.delete(f"/bids/{bid['id']}", headers=pilot)
    assert cancelled.json()["status"] == "cancelled"
    assert client.get("/bids/current", headers=pilot).json() is None


def test_restricted_type_is_unprocessable(api):
    client, pilot, _ = api

    response = client.post(
        "/bids", json={**BID_PAYLOAD, "aircraftType": "A388"}, headers=pilot
    )

    assert response.status_code == 422
    assert response.json()["code"] == "FleetViolation"


def test_authentication_and_admin_gates(api):
    client, pilot, admin = api

    assert client.post("/bids", json=BID_PAYLOAD).status_code == 401
    assert client.get("/bids/current", headers={"Authorization": "Bearer nope"}).status_code == 401
    assert client.get("/fleet", headers=pilot).status_code == 403

    fleet = client.get("/fleet", headers=admin)
    assert fleet.status_code == 200
    assert [row["registration"] for row in fleet.json()] == ["JY-LVA"]
    assert fleet.json()[0]["repairCost"] == 0.0


def test_tracked_flight_is_approved_and_settled(api):
    client, pilot, admin = api
    bid = client.post("/bids", json=BID_PAYLOAD, headers=pilot).json()

    started = client.post("/sessions", json={"bidId": bid["id"]}, headers=pilot)
    assert started.status_code == 201
    session_id = started.json()["id"]
    assert started.json()["state"] == "booked"

    ack = client.post(
        f"/sessions/{session_id}/telemetry",
        json={
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "latitude": 33.2,
            "longitude": 35.7,
            "altitude": 18000,
            "groundSpeed": 380,
            "phase": "climb",
        },
        headers=pilot,
    ).json()
    assert ack["accepted"] is True
    assert ack["state"] == "in_flight"

    outcome = client.post(
        f"/sessions/{session_id}/landing", json={"landingRate": -180}, headers=pilot
    ).json()
    assert outcome["status"] == "approved"
    assert outcome["isDuplicate"] is False

    reports = client.get("/pireps/mine", headers=pilot).json()
    assert len(reports) == 1
    assert reports[0]["landingGrade"] == "Smooth"
    assert reports[0]["flightTime"] == 45
    assert reports[0]["conditionDelta"] == -0.5

    parked = client.get(
        "/fleet/available", params={"location": "OJAI", "type": "B738"}, headers=pilot
    ).json()
    assert [row["registration"] for row in parked] == ["JY-LVA"]
    assert parked[0]["condition"] == 99.5

    vault = client.get("/admin/vault", headers=admin).json()
    assert vault["balance"] == pytest.approx(VAULT_SEED + reports[0]["netProfit"])


def test_foreign_session_is_not_found(api):
    client, pilot, admin = api
    bid = client.post("/bids", json=BID_PAYLOAD, headers=pilot).json()
    session_id = client.post("/sessions", json={"bidId": bid["id"]}, headers=pilot).json()["id"]

    response = client.get(f"/sessions/{session_id}", headers=admin)

    assert response.status_code == 404
    assert response.json()["code"] == "NotFound"


def test_manual_report_review(api):
    client, pilot, admin = api
    submitted = client.post(
        "/pireps/manual",
        json={
            "departure": "OLBA",
            "arrival": "OJAI",
            "aircraftType": "B738",
            "flightTime": 50,
            "landingRate": -240,
            "trackerLink": "https://tracker.ivao.aero/sessions/8812",
            "pax": 100,
            "distance": 130,
        },
        headers=pilot,
    )
    assert submitted.status_code == 201
    report_id = submitted.json()["reportId"]
    assert submitted.json()["status"] == "pending"

    pending = client.get("/pireps/pending", headers=admin).json()
    assert [row["id"] for row in pending] == [report_id]
    assert client.get("/pireps/pending", headers=pilot).status_code == 403

    bad = client.post(
        f"/pireps/{report_id}/review", json={"decision": "pending"}, headers=admin
    )
    assert bad.status_code == 422

    reviewed = client.post(
        f"/pireps/{report_id}/review",
        json={"decision": "approved", "note": "IVAO log matches"},
        headers=admin,
    ).json()
    assert reviewed["status"] == "approved"
    assert reviewed["reviewNotes"].endswith("IVAO log matches")

    reversed_ = client.post(
        f"/pireps/{report_id}/review", json={"decision": "rejected"}, headers=admin
    )
    assert reversed_.status_code == 409
    assert reversed_.json()["code"] == "InvalidTransition"


def test_manual_report_without_proof(api):
    client, pilot, _ = api

    response = client.post(
        "/pireps/manual",
        json={"departure": "OLBA", "arrival": "OJAI", "aircraftType": "B738", "flightTime": 50},
        headers=pilot,
    )

    assert response.status_code == 422
    assert response.json()["code"] == "MissingProof"


def test_maintenance_config_reload(api):
    client, pilot, admin = api

    config = client.get("/admin/maintenance-config", headers=admin).json()
    assert config["groundedThreshold"] == 20.0
    assert config["autoRejectLandingRate"] == -700

    reloaded = client.post("/admin/maintenance-config/reload", headers=admin)
    assert reloaded.status_code == 200
    assert reloaded.json()["resynced"] == 0
    assert client.get("/admin/vault", headers=pilot).status_code == 403


def test_simbrief_import_replaces_bid(api, monkeypatch):
    client, pilot, _ = api
    seen = {}

    class StubSimBrief:
        async def fetch_latest(self, simbrief_id, *, fallback_callsign):
            seen["args"] = (simbrief_id, fallback_callsign)
            return make_spec(arrival="OSDI", aircraft_registration="JY-GONE")

    monkeypatch.setattr(bid_routes, "_simbrief_client", StubSimBrief())
    client.post("/bids", json=BID_PAYLOAD, headers=pilot)

    response = client.post("/bids/simbrief", headers=pilot)

    assert response.status_code == 201
    body = response.json()
    assert body["arrival"] == "OSDI"
    assert body["aircraftRegistration"] is None
    assert seen["args"] == ("424242", "LVT001")


def test_simbrief_fetch_runs_outside_a_transaction(api, monkeypatch):
    client, pilot, _ = api
    seen = {}
    provide = app.dependency_overrides[get_session]

    async def tracked_session():
        async for session in provide():
            seen["session"] = session
            yield session

    class StubSimBrief:
        async def fetch_latest(self, simbrief_id, *, fallback_callsign):
            seen["in_transaction"] = seen["session"].in_transaction()
            return make_spec(arrival="OSDI")

    app.dependency_overrides[get_session] = tracked_session
    monkeypatch.setattr(bid_routes, "_simbrief_client", StubSimBrief())

    response = client.post("/bids/simbrief", headers=pilot)

    assert response.status_code == 201
    assert seen["in_transaction"] is False


def test_manual_report_rejects_oversized_identifiers(api):
    client, pilot, admin = api
    base = {
        "departure": "OLBA",
        "arrival": "OJAI",
        "aircraftType": "B738",
        "flightTime": 50,
        "trackerLink": "https://tracker.ivao.aero/sessions/8812",
    }

    for field, value in (
        ("aircraftType", "BOEING 737-800 NEXTGEN"),
        ("flightNumber", "LVT" + "1" * 20),
        ("callsign", "LEVANT-VIRTUAL-101"),
    ):
        response = client.post(
            "/pireps/manual", json={**base, field: value}, headers=pilot
        )
        assert response.status_code == 422, field

    assert client.get("/pireps/pending", headers=admin).json() == []
