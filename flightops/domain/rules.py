"""Pure business rules for dispatch, grading, wear and settlement.

Nothing in here touches the database; the services call these helpers and
persist the results.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

from flightops.config.settings import EconomicsConfig, MaintenanceConfig
from flightops.domain.errors import FleetViolation, MissingProof, ValidationError
from flightops.domain.states import AircraftStatus, RepairTier, ReportStatus

_STATION_PATTERN = re.compile(r"^[A-Z][A-Z0-9]{3}$")
_TYPE_NOISE = re.compile(r"[\s\-_]")
_IMAGE_REF_PATTERN = re.compile(r"^https://\S+$", re.IGNORECASE)

NO_LANDING_DATA = "No Data"


def utcnow() -> datetime:
    """Naive UTC timestamp, the format every DateTime column stores."""

    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_naive(moment: datetime) -> datetime:
    """Convert an aware timestamp to naive UTC; naive input is assumed UTC."""

    if moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc).replace(tzinfo=None)


def is_expired(now: datetime, expires_at: datetime) -> bool:
    """A bid is expired from the instant ``expires_at`` is reached."""

    return expires_at <= now


def normalize_station(code: Optional[str], *, field: str = "station") -> str:
    value = (code or "").strip().upper()
    if not _STATION_PATTERN.fullmatch(value):
        raise ValidationError(f"'{code or ''}' is not a valid ICAO {field} code.")
    return value


def normalize_aircraft_type(code: Optional[str]) -> str:
    return (code or "").strip().upper()


def is_restricted_type(aircraft_type: str, restricted: Iterable[str]) -> bool:
    """Fuzzy match so that A380, A388, A-380 and "Airbus 380" all hit."""

    normalized = _TYPE_NOISE.sub("", aircraft_type or "").upper()
    return any(token.upper() in normalized for token in restricted if token)


def is_vfr_type(aircraft_type: str, vfr_types: Iterable[str]) -> bool:
    return normalize_aircraft_type(aircraft_type) in {t.upper() for t in vfr_types}


def check_restricted_type(aircraft_type: str, restricted: Iterable[str]) -> None:
    if is_restricted_type(aircraft_type, restricted):
        raise FleetViolation(
            "Fleet Violation: A380/A388 aircraft is not permitted for Levant VA operations."
        )


def check_dispatch_type(
    aircraft_type: str,
    *,
    restricted: Iterable[str],
    vfr_types: Iterable[str],
) -> None:
    """Raise ``FleetViolation`` for types that may never be dispatched."""

    check_restricted_type(aircraft_type, restricted)
    if is_vfr_type(aircraft_type, vfr_types):
        raise FleetViolation(
            f"Fleet Violation: VFR aircraft ({normalize_aircraft_type(aircraft_type)}) "
            "are not permitted for airline operations."
        )


def tracker_pattern(domain: str) -> re.Pattern[str]:
    return re.compile(rf"^https?://({re.escape(domain)})/.+", re.IGNORECASE)


def validate_proof(
    tracker_link: Optional[str],
    proof_image: Optional[str],
    *,
    tracker_domain: str,
) -> None:
    """Manual reports need exactly one proof artifact in an accepted format."""

    tracker_link = (tracker_link or "").strip()
    proof_image = (proof_image or "").strip()

    if not tracker_link and not proof_image:
        raise MissingProof(
            "You must provide either a tracker link or a screenshot for manual submission."
        )
    if tracker_link and proof_image:
        raise ValidationError(
            "Provide a tracker link or a screenshot, not both."
        )
    if tracker_link and not tracker_pattern(tracker_domain).match(tracker_link):
        raise ValidationError(
            f"Tracker link must be a valid {tracker_domain} URL "
            f"(e.g. https://{tracker_domain}/...)."
        )
    if proof_image and not _IMAGE_REF_PATTERN.match(proof_image):
        raise ValidationError("Screenshot reference must be an https URL.")


def has_landing_data(landing_rate: Optional[int]) -> bool:
    # Zero is indistinguishable from a missing sensor reading.
    return landing_rate is not None and landing_rate != 0


def grade_landing(landing_rate: Optional[int], threshold: int) -> ReportStatus:
    """Automatic decision for a landing rate against the reject threshold."""

    if not has_landing_data(landing_rate):
        return ReportStatus.PENDING
    if landing_rate > threshold:
        return ReportStatus.APPROVED
    return ReportStatus.REJECTED


def landing_grade_label(landing_rate: Optional[int], threshold: int) -> str:
    if not has_landing_data(landing_rate):
        return NO_LANDING_DATA
    if landing_rate <= threshold:
        return "Excessive"
    if landing_rate > -100:
        return "Butter"
    if landing_rate > -240:
        return "Smooth"
    if landing_rate > -400:
        return "Acceptable"
    if landing_rate > -600:
        return "Firm"
    return "Hard"


def condition_delta(landing_rate: Optional[int], config: MaintenanceConfig) -> float:
    """Wear for one flight: baseline decay plus a hard-landing penalty."""

    penalty = 0.0
    if has_landing_data(landing_rate):
        excess = abs(landing_rate) - config.landing_penalty_soft_limit
        if excess > 0:
            penalty = excess / 100.0 * config.landing_penalty_per_100fpm
    return -round(config.base_decay_per_flight + penalty, 2)


def clamp_condition(value: float) -> float:
    return round(max(0.0, min(100.0, value)), 2)


def is_grounded(condition: float, config: MaintenanceConfig) -> bool:
    return condition < config.grounded_threshold


def resolve_aircraft_status(
    current: AircraftStatus,
    condition: float,
    config: MaintenanceConfig,
) -> AircraftStatus:
    """Status implied by ``condition`` for an aircraft currently in ``current``.

    Grounding clears only once the condition reaches threshold + margin; in
    between the aircraft sits in maintenance, bookable by nobody.
    """

    release_at = config.grounded_threshold + config.repair_margin
    if is_grounded(condition, config):
        return AircraftStatus.GROUNDED
    if current is AircraftStatus.GROUNDED:
        if condition >= release_at:
            return AircraftStatus.AVAILABLE
        return AircraftStatus.MAINTENANCE
    if current is AircraftStatus.MAINTENANCE and condition >= release_at:
        return AircraftStatus.AVAILABLE
    return current


def repair_target(tier: RepairTier, config: MaintenanceConfig) -> float:
    if tier is RepairTier.FULL:
        return 100.0
    return min(100.0, config.grounded_threshold + config.repair_margin)


def repair_cost(current: float, target: float, config: MaintenanceConfig) -> float:
    return round(max(0.0, target - current) * config.repair_rate_per_percent, 2)


@dataclass(frozen=True)
class FlightEconomics:
    """Revenue and expense breakdown for one settled flight."""

    revenue_passenger: float
    revenue_cargo: float
    expense_fuel: float
    expense_airport: float
    expense_pilot: float
    expense_maintenance: float

    @property
    def revenue(self) -> float:
        return round(self.revenue_passenger + self.revenue_cargo, 2)

    @property
    def expense(self) -> float:
        return round(
            self.expense_fuel
            + self.expense_airport
            + self.expense_pilot
            + self.expense_maintenance,
            2,
        )

    @property
    def net_profit(self) -> float:
        return round(self.revenue - self.expense, 2)


def compute_economics(
    *,
    pax: int,
    cargo_kg: float,
    distance_nm: float,
    fuel_used_kg: float,
    flight_minutes: int,
    wear: float,
    economics: EconomicsConfig,
    maintenance: MaintenanceConfig,
) -> FlightEconomics:
    hours = max(flight_minutes, 0) / 60.0
    return FlightEconomics(
        revenue_passenger=round(
            max(pax, 0) * max(distance_nm, 0) * economics.passenger_yield_per_nm, 2
        ),
        revenue_cargo=round(
            max(cargo_kg, 0) / 1000.0
            * max(distance_nm, 0)
            * economics.cargo_yield_per_tonne_nm,
            2,
        ),
        expense_fuel=round(max(fuel_used_kg, 0) * economics.fuel_price_per_kg, 2),
        expense_airport=round(2 * economics.airport_fee_per_movement, 2),
        expense_pilot=round(hours * economics.pilot_wage_per_hour, 2),
        expense_maintenance=round(abs(wear) * maintenance.repair_rate_per_percent, 2),
    )


def local_day_bounds(moment: datetime, tz_name: str) -> tuple[datetime, datetime]:
    """UTC bounds (naive) of the local calendar day containing ``moment``."""

    zone = ZoneInfo(tz_name)
    local = moment.replace(tzinfo=timezone.utc).astimezone(zone)
    start_local = datetime.combine(local.date(), time.min, tzinfo=zone)
    end_local = start_local + timedelta(days=1)
    return (
        start_local.astimezone(timezone.utc).replace(tzinfo=None),
        end_local.astimezone(timezone.utc).replace(tzinfo=None),
    )


__all__ = [
    "NO_LANDING_DATA",
    "FlightEconomics",
    "utcnow",
    "to_utc_naive",
    "is_expired",
    "normalize_station",
    "normalize_aircraft_type",
    "is_restricted_type",
    "is_vfr_type",
    "check_restricted_type",
    "check_dispatch_type",
    "tracker_pattern",
    "validate_proof",
    "has_landing_data",
    "grade_landing",
    "landing_grade_label",
    "condition_delta",
    "clamp_condition",
    "is_grounded",
    "resolve_aircraft_status",
    "repair_target",
    "repair_cost",
    "compute_economics",
    "local_day_bounds",
]
