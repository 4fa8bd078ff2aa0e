"""Adjudication engine: validation, duplicate detection, grading and overrides."""

from __future__ import annotations

from datetime import timedelta

import pytest

from flightops.domain.errors import FleetViolation, MissingProof, ValidationError
from flightops.domain.states import ReportChannel, ReportStatus
from flightops.models import Pirep
from flightops.services import AdjudicationEngine
from flightops.services.adjudication import (
    DUPLICATE_WARNING,
    MANUAL_REVIEW_REASON,
    NO_LANDING_RATE_REASON,
)


def _report(pilot_id, clock, **overrides) -> Pirep:
    values = {
        "pilot_id": pilot_id,
        "flight_number": "LVT101",
        "callsign": "LVT101",
        "departure": "OLBA",
        "arrival": "OJAI",
        "aircraft_type": "B738",
        "flight_time": 45,
        "landing_rate": -180,
        "channel": ReportChannel.AUTOMATIC,
        "status": ReportStatus.PENDING,
        "submitted_at": clock(),
    }
    values.update(overrides)
    return Pirep(**values)


@pytest.mark.parametrize(
    ("landing_rate", "status"),
    [
        (-699, ReportStatus.APPROVED),
        (-700, ReportStatus.REJECTED),
        (-701, ReportStatus.REJECTED),
    ],
)
async def test_automatic_report_is_graded_on_touchdown(session, clock, pilot, landing_rate, status):
    engine = AdjudicationEngine(session, clock=clock)

    result = await engine.adjudicate(_report(pilot.id, clock, landing_rate=landing_rate))

    assert result.status is status
    assert result.settle is (status is ReportStatus.APPROVED)


@pytest.mark.parametrize("landing_rate", [None, 0])
async def test_missing_landing_rate_is_held_for_review(session, clock, pilot, landing_rate):
    engine = AdjudicationEngine(session, clock=clock)

    result = await engine.adjudicate(_report(pilot.id, clock, landing_rate=landing_rate))

    assert result.status is ReportStatus.PENDING
    assert result.reason == NO_LANDING_RATE_REASON
    assert result.landing_grade == "No Data"
    assert not result.settle


async def test_rejection_message_explains_threshold(session, clock, pilot):
    result = await AdjudicationEngine(session, clock=clock).adjudicate(
        _report(pilot.id, clock, landing_rate=-850)
    )

    assert result.message == (
        "PIREP rejected. Landing rate -850 fpm is at or beyond the -700 fpm limit."
    )


async def test_manual_report_always_waits_for_staff(session, clock, pilot):
    report = _report(
        pilot.id,
        clock,
        channel=ReportChannel.MANUAL,
        landing_rate=-90,
        tracker_link="https://tracker.ivao.aero/sessions/55",
    )

    result = await AdjudicationEngine(session, clock=clock).adjudicate(report)

    assert result.status is ReportStatus.PENDING
    assert result.reason == MANUAL_REVIEW_REASON
    assert result.landing_grade == "Butter"
    assert result.message == (
        "Manual PIREP submitted successfully. Staff will review your submission."
    )


async def test_required_fields(session, clock, pilot):
    engine = AdjudicationEngine(session, clock=clock)

    for missing in ({"departure": ""}, {"aircraft_type": ""}, {"flight_time": 0}):
        with pytest.raises(ValidationError) as excinfo:
            await engine.adjudicate(_report(pilot.id, clock, **missing))
        assert excinfo.value.reason == (
            "Departure, Arrival, Aircraft Type, and Flight Time are required."
        )


async def test_manual_report_needs_proof(session, clock, pilot):
    engine = AdjudicationEngine(session, clock=clock)

    with pytest.raises(MissingProof):
        await engine.adjudicate(_report(pilot.id, clock, channel=ReportChannel.MANUAL))


async def test_restricted_type_is_a_fleet_violation(session, clock, pilot):
    engine = AdjudicationEngine(session, clock=clock)

    with pytest.raises(FleetViolation):
        await engine.adjudicate(_report(pilot.id, clock, aircraft_type="A388"))


async def test_restricted_type_is_reported_before_missing_proof(session, clock, pilot):
    engine = AdjudicationEngine(session, clock=clock)

    with pytest.raises(FleetViolation):
        await engine.adjudicate(
            _report(pilot.id, clock, aircraft_type="A388", channel=ReportChannel.MANUAL)
        )


async def test_bad_station_code(session, clock, pilot):
    engine = AdjudicationEngine(session, clock=clock)

    with pytest.raises(ValidationError):
        await engine.adjudicate(_report(pilot.id, clock, arrival="AMM"))


async def test_same_route_same_day_is_flagged_not_blocked(session, clock, pilot):
    pilot_id = pilot.id
    earlier = _report(pilot_id, clock, status=ReportStatus.APPROVED)
    earlier.submitted_at = clock.now - timedelta(hours=2)
    session.add(earlier)
    await session.commit()

    result = await AdjudicationEngine(session, clock=clock).adjudicate(
        _report(pilot_id, clock)
    )

    assert result.is_duplicate
    assert result.status is ReportStatus.APPROVED
    assert result.message == f"PIREP approved automatically. {DUPLICATE_WARNING}"


async def test_duplicate_ignores_rejected_other_days_and_return_legs(session, clock, pilot):
    pilot_id = pilot.id
    session.add_all(
        [
            _report(pilot_id, clock, status=ReportStatus.REJECTED),
            _report(pilot_id, clock, submitted_at=clock.now - timedelta(days=1)),
            _report(pilot_id, clock, departure="OJAI", arrival="OLBA"),
        ]
    )
    await session.commit()

    engine = AdjudicationEngine(session, clock=clock)
    assert not await engine.is_duplicate(_report(pilot_id, clock))


async def test_duplicate_is_per_pilot(session, clock, pilot, other_pilot):
    session.add(_report(other_pilot.id, clock))
    await session.commit()

    engine = AdjudicationEngine(session, clock=clock)
    assert not await engine.is_duplicate(_report(pilot.id, clock))
