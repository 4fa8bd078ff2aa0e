"""Flight sessions end to end: booking, telemetry, landing and settlement."""

from __future__ import annotations

import pytest
from sqlalchemy.exc import SQLAlchemyError

from conftest import VAULT_SEED, make_spec
from flightops.domain.errors import FleetViolation, InvalidTransition, NotFound
from flightops.domain.models import FlightPhase, TelemetrySample
from flightops.domain.states import (
    AircraftStatus,
    BidStatus,
    ReportStatus,
    SessionState,
)
from flightops.models import Aircraft, Pilot, Pirep
from flightops.services import BidManager, EconomicsLedger, FlightSessionService
from flightops.services.adjudication import NO_LANDING_RATE_REASON
from flightops.services.flight_sessions import (
    DROP_OUT_OF_ORDER,
    DROP_SESSION_CLOSED,
    DROP_SESSION_IDLE,
    DROP_UNKNOWN_SESSION,
)
from flightops.services.reports import SETTLEMENT_HELD_MESSAGE


def _sample(clock, phase=FlightPhase.CRUISE, **kwargs) -> TelemetrySample:
    values = {
        "timestamp": clock(),
        "latitude": 32.9,
        "longitude": 35.6,
        "altitude": 24000,
        "ground_speed": 420,
        "phase": phase,
    }
    values.update(kwargs)
    return TelemetrySample(**values)


async def _book(session, clock, pilot_id, **spec):
    bid = await BidManager(session, clock=clock).create_bid(pilot_id, make_spec(**spec))
    service = FlightSessionService(session, clock=clock)
    flight = await service.start_session(pilot_id, bid.id)
    return service, bid, flight


async def _fresh(session, model, key):
    return await session.get(model, key, populate_existing=True)


async def test_start_session_consumes_bid_and_books_aircraft(session, clock, pilot, aircraft):
    service, bid, flight = await _book(session, clock, pilot.id)

    assert flight.state is SessionState.BOOKED
    assert flight.aircraft_id == aircraft.id
    assert (await _fresh(session, Aircraft, aircraft.id)).status is AircraftStatus.BOOKED
    assert (await BidManager(session).get_bid(bid.id)).status is BidStatus.CONSUMED


async def test_start_session_without_aircraft_leaves_bid_active(session, clock, pilot):
    pilot_id = pilot.id
    bid = await BidManager(session, clock=clock).create_bid(pilot_id, make_spec())
    bid_id = bid.id
    service = FlightSessionService(session, clock=clock)

    with pytest.raises(FleetViolation):
        await service.start_session(pilot_id, bid_id)

    assert (await BidManager(session).get_bid(bid_id)).status is BidStatus.ACTIVE


async def test_full_flight_beirut_to_amman_is_approved_and_settled(
    session, clock, pilot, aircraft
):
    pilot_id, aircraft_id = pilot.id, aircraft.id
    service, bid, flight = await _book(session, clock, pilot_id)
    session_id = flight.id

    clock.advance(minutes=5)
    ack = await service.on_telemetry(session_id, _sample(clock, FlightPhase.CLIMB, altitude=3000))
    assert ack.accepted and ack.state is SessionState.IN_FLIGHT
    assert (await _fresh(session, Aircraft, aircraft_id)).status is AircraftStatus.IN_FLIGHT

    clock.advance(minutes=30)
    assert (await service.on_telemetry(session_id, _sample(clock))).accepted

    clock.advance(minutes=15)
    ack = await service.on_telemetry(
        session_id,
        _sample(clock, FlightPhase.LANDED, altitude=2200, ground_speed=40, landing_rate=-180),
    )

    assert ack.accepted
    assert ack.state is SessionState.REPORTED
    outcome = ack.report
    assert outcome.status is ReportStatus.APPROVED
    assert outcome.message == "PIREP approved automatically."
    assert not outcome.is_duplicate

    report = await _fresh(session, Pirep, outcome.report_id)
    assert report.flight_time == 45
    assert report.landing_grade == "Smooth"
    assert report.condition_delta == -0.5
    assert report.session_id == session_id

    plane = await _fresh(session, Aircraft, aircraft_id)
    assert plane.status is AircraftStatus.AVAILABLE
    assert plane.current_location == "OJAI"
    assert plane.condition == 99.5
    assert plane.flight_count == 1

    crew = await _fresh(session, Pilot, pilot_id)
    assert crew.balance == pytest.approx(report.net_profit)
    assert crew.flight_hours == pytest.approx(0.75)
    assert crew.current_location == "OJAI"
    assert await EconomicsLedger(session).vault_balance() == pytest.approx(
        VAULT_SEED + report.net_profit
    )

    flight = await service.get_session(session_id)
    assert flight.state is SessionState.REPORTED
    assert flight.report_id == report.id


async def test_hard_landing_is_rejected_without_settlement(session, clock, pilot, aircraft):
    pilot_id, aircraft_id = pilot.id, aircraft.id
    service, bid, flight = await _book(session, clock, pilot_id)

    clock.advance(minutes=2)
    await service.on_telemetry(flight.id, _sample(clock))
    clock.advance(minutes=40)
    outcome = await service.on_landing_detected(flight.id, -820)

    assert outcome.status is ReportStatus.REJECTED
    assert outcome.message.startswith("PIREP rejected.")
    assert (await _fresh(session, Pilot, pilot_id)).balance == 0.0
    assert await EconomicsLedger(session).vault_balance() == VAULT_SEED
    plane = await _fresh(session, Aircraft, aircraft_id)
    assert plane.condition == 100.0
    assert plane.status is AircraftStatus.AVAILABLE
    assert plane.current_location == "OJAI"


async def test_end_without_landing_rate_waits_for_review(session, clock, pilot, aircraft):
    service, bid, flight = await _book(session, clock, pilot.id)

    outcome = await service.end_session(flight.id, pilot_id=pilot.id)

    assert outcome.status is ReportStatus.PENDING
    assert outcome.reason == NO_LANDING_RATE_REASON
    report = await _fresh(session, Pirep, outcome.report_id)
    # No telemetry, so the planned block time is used.
    assert report.flight_time == 45
    assert (await _fresh(session, Aircraft, aircraft.id)).current_location == "OJAI"


async def test_landing_needs_a_flight_in_progress(session, clock, pilot, aircraft):
    service, bid, flight = await _book(session, clock, pilot.id)

    with pytest.raises(InvalidTransition):
        await service.on_landing_detected(flight.id, -150)


async def test_telemetry_drops(session, clock, pilot, other_pilot, aircraft):
    other_id = other_pilot.id
    service, bid, flight = await _book(session, clock, pilot.id)
    session_id = flight.id

    unknown = await service.on_telemetry(9999, _sample(clock))
    assert (unknown.accepted, unknown.reason) == (False, DROP_UNKNOWN_SESSION)

    foreign = await service.on_telemetry(session_id, _sample(clock), pilot_id=other_id)
    assert (foreign.accepted, foreign.reason) == (False, DROP_UNKNOWN_SESSION)

    clock.advance(minutes=10)
    assert (await service.on_telemetry(session_id, _sample(clock))).accepted

    stale = await service.on_telemetry(
        session_id, _sample(clock, timestamp=clock.now.replace(minute=0))
    )
    assert (stale.accepted, stale.reason) == (False, DROP_OUT_OF_ORDER)

    clock.advance(minutes=46)
    idle = await service.on_telemetry(session_id, _sample(clock))
    assert (idle.accepted, idle.reason) == (False, DROP_SESSION_IDLE)

    flight = await service.get_session(session_id)
    assert flight.sample_count == 1


async def test_telemetry_after_report_is_dropped(session, clock, pilot, aircraft):
    service, bid, flight = await _book(session, clock, pilot.id)
    clock.advance(minutes=1)
    await service.on_telemetry(flight.id, _sample(clock))
    clock.advance(minutes=44)
    await service.on_landing_detected(flight.id, -200)

    clock.advance(minutes=1)
    late = await service.on_telemetry(flight.id, _sample(clock))

    assert (late.accepted, late.reason) == (False, DROP_SESSION_CLOSED)
    assert late.state is SessionState.REPORTED
    with pytest.raises(InvalidTransition):
        await service.end_session(flight.id)


async def test_abandon_idle_releases_aircraft_in_place(session, clock, pilot, aircraft):
    service, bid, flight = await _book(session, clock, pilot.id)
    session_id = flight.id

    clock.advance(minutes=30)
    assert await service.abandon_idle() == 0

    clock.advance(minutes=16)
    assert await service.abandon_idle() == 1

    flight = await service.get_session(session_id)
    assert flight.state is SessionState.ABANDONED
    plane = await _fresh(session, Aircraft, aircraft.id)
    assert plane.status is AircraftStatus.AVAILABLE
    assert plane.current_location == "OLBA"


async def test_session_is_private_to_its_pilot(session, clock, pilot, other_pilot, aircraft):
    other_id = other_pilot.id
    service, bid, flight = await _book(session, clock, pilot.id)

    with pytest.raises(NotFound):
        await service.get_session(flight.id, pilot_id=other_id)


async def test_failed_settlement_holds_report_and_rolls_back_money(
    session, clock, pilot, aircraft, monkeypatch
):
    pilot_id, aircraft_id = pilot.id, aircraft.id

    async def failing_credit(self, *args, **kwargs):
        raise SQLAlchemyError("deadlock detected")

    monkeypatch.setattr(EconomicsLedger, "_credit_pilot", failing_credit)

    service, bid, flight = await _book(session, clock, pilot_id)
    session_id = flight.id
    clock.advance(minutes=1)
    await service.on_telemetry(session_id, _sample(clock))
    clock.advance(minutes=44)
    outcome = await service.on_landing_detected(session_id, -150)

    assert outcome.status is ReportStatus.PENDING
    assert outcome.message == SETTLEMENT_HELD_MESSAGE
    report = await _fresh(session, Pirep, outcome.report_id)
    assert report.status is ReportStatus.PENDING
    assert report.status_reason.startswith("Settlement failed")
    assert report.net_profit == 0.0

    plane = await _fresh(session, Aircraft, aircraft_id)
    assert plane.condition == 100.0
    assert plane.flight_count == 0
    assert plane.current_location == "OJAI"
    assert await EconomicsLedger(session).vault_balance() == VAULT_SEED
    assert (await service.get_session(session_id)).state is SessionState.REPORTED
