"""Pure business rules: grading, wear, grounding, repairs and economics."""

from __future__ import annotations

from datetime import datetime, timezone, timedelta

import pytest

from flightops.config.settings import EconomicsConfig, MaintenanceConfig
from flightops.domain.errors import FleetViolation, MissingProof, ValidationError
from flightops.domain.rules import (
    NO_LANDING_DATA,
    check_dispatch_type,
    clamp_condition,
    compute_economics,
    condition_delta,
    grade_landing,
    is_expired,
    is_restricted_type,
    landing_grade_label,
    local_day_bounds,
    normalize_station,
    repair_cost,
    repair_target,
    resolve_aircraft_status,
    to_utc_naive,
    validate_proof,
)
from flightops.domain.states import AircraftStatus, RepairTier, ReportStatus

MAINTENANCE = MaintenanceConfig(
    grounded_threshold=20.0,
    repair_margin=5.0,
    repair_rate_per_percent=100.0,
    auto_reject_landing_rate=-700,
    base_decay_per_flight=0.5,
    landing_penalty_soft_limit=300,
    landing_penalty_per_100fpm=1.0,
)


@pytest.mark.parametrize(
    ("landing_rate", "expected"),
    [
        (-120, ReportStatus.APPROVED),
        (-699, ReportStatus.APPROVED),
        (-700, ReportStatus.REJECTED),
        (-701, ReportStatus.REJECTED),
        (0, ReportStatus.PENDING),
        (None, ReportStatus.PENDING),
    ],
)
def test_grade_landing_against_reject_threshold(landing_rate, expected):
    assert grade_landing(landing_rate, -700) is expected


def test_landing_grade_labels():
    assert landing_grade_label(-60, -700) == "Butter"
    assert landing_grade_label(-180, -700) == "Smooth"
    assert landing_grade_label(-350, -700) == "Acceptable"
    assert landing_grade_label(-650, -700) == "Hard"
    assert landing_grade_label(-700, -700) == "Excessive"
    assert landing_grade_label(None, -700) == NO_LANDING_DATA


def test_condition_delta_adds_penalty_beyond_soft_limit():
    assert condition_delta(-200, MAINTENANCE) == -0.5
    assert condition_delta(-500, MAINTENANCE) == -2.5
    assert condition_delta(None, MAINTENANCE) == -0.5


def test_clamp_condition_stays_in_range():
    assert clamp_condition(-4.2) == 0.0
    assert clamp_condition(104.0) == 100.0
    assert clamp_condition(55.5) == 55.5


def test_resolve_status_grounds_below_threshold_from_any_state():
    for current in AircraftStatus:
        assert resolve_aircraft_status(current, 19.9, MAINTENANCE) is AircraftStatus.GROUNDED


def test_resolve_status_keeps_recovering_aircraft_in_maintenance_until_margin():
    assert (
        resolve_aircraft_status(AircraftStatus.GROUNDED, 22.0, MAINTENANCE)
        is AircraftStatus.MAINTENANCE
    )
    assert (
        resolve_aircraft_status(AircraftStatus.MAINTENANCE, 24.9, MAINTENANCE)
        is AircraftStatus.MAINTENANCE
    )
    assert (
        resolve_aircraft_status(AircraftStatus.GROUNDED, 25.0, MAINTENANCE)
        is AircraftStatus.AVAILABLE
    )
    assert (
        resolve_aircraft_status(AircraftStatus.IN_FLIGHT, 60.0, MAINTENANCE)
        is AircraftStatus.IN_FLIGHT
    )


def test_repair_targets_and_costs():
    assert repair_target(RepairTier.FULL, MAINTENANCE) == 100.0
    assert repair_target(RepairTier.MINIMUM, MAINTENANCE) == 25.0
    assert repair_cost(10.0, 100.0, MAINTENANCE) == 9000.0
    assert repair_cost(10.0, 25.0, MAINTENANCE) == 1500.0
    assert repair_cost(30.0, 25.0, MAINTENANCE) == 0.0


@pytest.mark.parametrize("code", ["A380", "A388", "a-380", "Airbus 380"])
def test_restricted_types_match_loosely(code):
    restricted = ["A380", "A388", "380"]
    assert is_restricted_type(code, restricted)
    with pytest.raises(FleetViolation):
        check_dispatch_type(code, restricted=restricted, vfr_types=[])


def test_dispatch_rejects_vfr_types_and_accepts_airliners():
    with pytest.raises(FleetViolation) as excinfo:
        check_dispatch_type("c172", restricted=["A380"], vfr_types=["C172"])
    assert "C172" in excinfo.value.reason

    check_dispatch_type("B738", restricted=["A380"], vfr_types=["C172"])


def test_proof_requires_exactly_one_artifact():
    with pytest.raises(MissingProof):
        validate_proof(None, "  ", tracker_domain="tracker.ivao.aero")
    with pytest.raises(ValidationError):
        validate_proof(
            "https://tracker.ivao.aero/sessions/1",
            "https://img.example.com/proof.png",
            tracker_domain="tracker.ivao.aero",
        )


def test_proof_formats():
    validate_proof("https://tracker.ivao.aero/sessions/1", None, tracker_domain="tracker.ivao.aero")
    validate_proof(None, "https://img.example.com/proof.png", tracker_domain="tracker.ivao.aero")
    with pytest.raises(ValidationError):
        validate_proof("https://example.com/flight", None, tracker_domain="tracker.ivao.aero")
    with pytest.raises(ValidationError):
        validate_proof(None, "ftp://img.example.com/proof.png", tracker_domain="tracker.ivao.aero")


def test_compute_economics_breakdown():
    economics = compute_economics(
        pax=150,
        cargo_kg=2000,
        distance_nm=500,
        fuel_used_kg=5000,
        flight_minutes=90,
        wear=-0.5,
        economics=EconomicsConfig(),
        maintenance=MAINTENANCE,
    )

    assert economics.revenue_passenger == 9000.0
    assert economics.revenue_cargo == 350.0
    assert economics.expense_fuel == 4250.0
    assert economics.expense_airport == 300.0
    assert economics.expense_pilot == 90.0
    assert economics.expense_maintenance == 50.0
    assert economics.net_profit == 4660.0


def test_compute_economics_can_lose_money():
    economics = compute_economics(
        pax=0,
        cargo_kg=0,
        distance_nm=100,
        fuel_used_kg=1000,
        flight_minutes=30,
        wear=0.0,
        economics=EconomicsConfig(),
        maintenance=MAINTENANCE,
    )
    assert economics.net_profit < 0


def test_bid_expires_at_the_deadline():
    deadline = datetime(2025, 3, 15, 9, 0, 0)
    assert not is_expired(deadline - timedelta(seconds=1), deadline)
    assert is_expired(deadline, deadline)


def test_local_day_bounds_follow_amman_calendar():
    # 22:30 UTC is already the next day in Amman (UTC+3).
    start, end = local_day_bounds(datetime(2025, 3, 14, 22, 30), "Asia/Amman")
    assert start == datetime(2025, 3, 14, 21, 0)
    assert end == datetime(2025, 3, 15, 21, 0)


def test_to_utc_naive_converts_aware_timestamps():
    aware = datetime(2025, 3, 14, 12, 0, tzinfo=timezone(timedelta(hours=3)))
    assert to_utc_naive(aware) == datetime(2025, 3, 14, 9, 0)
    assert to_utc_naive(datetime(2025, 3, 14, 9, 0)) == datetime(2025, 3, 14, 9, 0)


def test_normalize_station():
    assert normalize_station(" olba ") == "OLBA"
    with pytest.raises(ValidationError):
        normalize_station("BEY")
