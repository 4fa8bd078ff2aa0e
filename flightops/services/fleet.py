"""Fleet registry: aircraft identity, location, condition and status."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Optional, Union

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from flightops.config.settings import MaintenanceConfig, settings
from flightops.domain.errors import (
    ConcurrentModification,
    InvalidState,
    NotFound,
    ValidationError,
)
from flightops.domain.rules import (
    check_dispatch_type,
    clamp_condition,
    is_grounded,
    normalize_aircraft_type,
    normalize_station,
    resolve_aircraft_status,
    utcnow,
)
from flightops.domain.states import AircraftStatus, ensure_transition
from flightops.models import Aircraft
from flightops.telemetry.metrics import record_conflict

logger = logging.getLogger(__name__)

AircraftKey = Union[int, str]
_BUSY_STATUSES = frozenset({AircraftStatus.BOOKED, AircraftStatus.IN_FLIGHT})


class FleetRegistry:
    """Reads and version-guarded writes against the ``aircraft`` table.

    The registry never commits; callers wrap it in ``transaction``.
    Every status or condition write is a compare-and-swap on ``version`` and
    is retried from a fresh read up to ``max_retries`` times.
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        maintenance: Optional[MaintenanceConfig] = None,
        max_retries: int = 3,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._session = session
        self._maintenance = maintenance
        self._max_retries = max(1, max_retries)
        self._clock = clock

    @property
    def maintenance(self) -> MaintenanceConfig:
        # Read at call time so a hot reload is picked up immediately.
        return self._maintenance or settings.maintenance

    async def _read(self, key: AircraftKey, *, refresh: bool = False) -> Optional[Aircraft]:
        if isinstance(key, int):
            stmt = select(Aircraft).where(Aircraft.id == key)
        else:
            stmt = select(Aircraft).where(
                Aircraft.registration == key.strip().upper()
            )
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get(self, key: AircraftKey) -> Aircraft:
        aircraft = await self._read(key, refresh=True)
        if aircraft is None:
            raise NotFound(f"Aircraft '{key}' not found.")
        return aircraft

    async def list_fleet(self) -> list[Aircraft]:
        result = await self._session.execute(
            select(Aircraft)
            .order_by(Aircraft.registration)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def find_available(self, location: str, aircraft_type: str) -> list[Aircraft]:
        """Serviceable aircraft of ``aircraft_type`` parked at ``location``."""

        station = normalize_station(location, field="location")
        type_code = normalize_aircraft_type(aircraft_type)
        result = await self._session.execute(
            select(Aircraft)
            .where(
                Aircraft.current_location == station,
                func.upper(Aircraft.aircraft_type) == type_code,
                Aircraft.status == AircraftStatus.AVAILABLE,
                Aircraft.condition >= self.maintenance.grounded_threshold,
            )
            .order_by(Aircraft.condition.desc(), Aircraft.registration)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def register(
        self,
        *,
        registration: str,
        aircraft_type: str,
        home_location: str,
        name: Optional[str] = None,
        condition: float = 100.0,
    ) -> Aircraft:
        registration = (registration or "").strip().upper()
        if not registration:
            raise ValidationError("Registration is required.")
        type_code = normalize_aircraft_type(aircraft_type)
        if not type_code:
            raise ValidationError("Aircraft type is required.")
        ops = settings.operations
        check_dispatch_type(
            type_code,
            restricted=ops.restricted_aircraft,
            vfr_types=ops.vfr_aircraft,
        )
        station = normalize_station(home_location, field="home location")

        if await self._read(registration) is not None:
            raise ValidationError(f"Aircraft {registration} is already registered.")

        condition = clamp_condition(condition)
        status = resolve_aircraft_status(
            AircraftStatus.AVAILABLE, condition, self.maintenance
        )
        now = self._clock()
        aircraft = Aircraft(
            registration=registration,
            aircraft_type=type_code,
            name=name,
            home_location=station,
            current_location=station,
            condition=condition,
            status=status,
            grounded_reason=self._grounded_reason(condition)
            if status is AircraftStatus.GROUNDED
            else None,
            version=1,
            created_at=now,
            updated_at=now,
        )
        self._session.add(aircraft)
        await self._session.flush()
        logger.info(
            "Registered aircraft %s (%s) at %s, condition %.1f%%",
            registration,
            type_code,
            station,
            condition,
        )
        return aircraft

    async def apply_condition_delta(
        self,
        key: AircraftKey,
        delta: float,
        *,
        flight_hours: Optional[float] = None,
        serviced_at: Optional[datetime] = None,
        expected_version: Optional[int] = None,
    ) -> Aircraft:
        """Move condition by ``delta`` (clamped to 0..100) and recompute status.

        ``flight_hours`` also books one flight against the airframe;
        ``serviced_at`` marks the write as a repair, which is refused while the
        aircraft is booked or flying. With ``expected_version`` the write is
        only made against that exact row version and is never retried.
        """

        config = self.maintenance

        def build(aircraft: Aircraft) -> dict[str, Any]:
            if expected_version is not None and aircraft.version != expected_version:
                record_conflict("aircraft")
                raise ConcurrentModification(
                    f"Aircraft {aircraft.registration} changed while the update "
                    "was being prepared; please retry."
                )
            if serviced_at is not None and aircraft.status in _BUSY_STATUSES:
                raise InvalidState(
                    f"Aircraft {aircraft.registration} is {aircraft.status.value} "
                    "and cannot be repaired now."
                )
            condition = clamp_condition(aircraft.condition + delta)
            status = resolve_aircraft_status(aircraft.status, condition, config)
            values: dict[str, Any] = {"condition": condition}
            values.update(self._status_values(aircraft, status, condition))
            if flight_hours is not None:
                values["total_hours"] = round(
                    (aircraft.total_hours or 0.0) + flight_hours, 2
                )
                values["flight_count"] = (aircraft.flight_count or 0) + 1
            if serviced_at is not None:
                values["last_service_at"] = serviced_at
            return values

        aircraft = await self._mutate(key, build)
        logger.info(
            "Aircraft %s condition %+.2f -> %.2f%% (%s)",
            aircraft.registration,
            delta,
            aircraft.condition,
            aircraft.status.value,
        )
        return aircraft

    async def reserve(self, key: AircraftKey) -> Aircraft:
        """Available -> booked."""

        def build(aircraft: Aircraft) -> dict[str, Any]:
            if is_grounded(aircraft.condition, self.maintenance):
                raise InvalidState(f"Aircraft {aircraft.registration} is grounded.")
            ensure_transition(
                aircraft.status,
                AircraftStatus.BOOKED,
                entity=f"Aircraft {aircraft.registration}",
            )
            return {"status": AircraftStatus.BOOKED}

        return await self._mutate(key, build)

    async def mark_in_flight(self, key: AircraftKey) -> Aircraft:
        def build(aircraft: Aircraft) -> Optional[dict[str, Any]]:
            if aircraft.status is AircraftStatus.IN_FLIGHT:
                return None
            ensure_transition(
                aircraft.status,
                AircraftStatus.IN_FLIGHT,
                entity=f"Aircraft {aircraft.registration}",
            )
            return {"status": AircraftStatus.IN_FLIGHT}

        return await self._mutate(key, build)

    async def release(self, key: AircraftKey, location: Optional[str] = None) -> Aircraft:
        """Return a booked or flying aircraft to the line at ``location``.

        Grounded and maintenance aircraft only have their location updated.
        """

        config = self.maintenance

        def build(aircraft: Aircraft) -> Optional[dict[str, Any]]:
            values: dict[str, Any] = {}
            if location and location != aircraft.current_location:
                values["current_location"] = location
            if aircraft.status in _BUSY_STATUSES:
                status = (
                    AircraftStatus.GROUNDED
                    if is_grounded(aircraft.condition, config)
                    else AircraftStatus.AVAILABLE
                )
                values.update(self._status_values(aircraft, status, aircraft.condition))
            return values or None

        return await self._mutate(key, build)

    async def resync_grounding(self) -> int:
        """Recompute every status against the current threshold; returns changes."""

        config = self.maintenance
        changed = 0
        for aircraft in await self.list_fleet():

            def build(current: Aircraft) -> Optional[dict[str, Any]]:
                status = resolve_aircraft_status(current.status, current.condition, config)
                return self._status_values(current, status, current.condition) or None

            before = aircraft.status
            updated = await self._mutate(aircraft.id, build)
            if updated.status is not before:
                changed += 1
        if changed:
            logger.info("Resynchronised grounding for %d aircraft", changed)
        return changed

    def _status_values(
        self,
        aircraft: Aircraft,
        status: AircraftStatus,
        condition: float,
    ) -> dict[str, Any]:
        if status is aircraft.status:
            return {}
        ensure_transition(
            aircraft.status,
            status,
            entity=f"Aircraft {aircraft.registration}",
        )
        values: dict[str, Any] = {"status": status}
        if status is AircraftStatus.GROUNDED:
            values["grounded_reason"] = self._grounded_reason(condition)
        elif aircraft.status is AircraftStatus.GROUNDED:
            values["grounded_reason"] = None
        return values

    def _grounded_reason(self, condition: float) -> str:
        threshold = self.maintenance.grounded_threshold
        return f"Condition {condition:.1f}% below {threshold:.0f}% airworthiness threshold"

    async def _mutate(
        self,
        key: AircraftKey,
        build: Callable[[Aircraft], Optional[dict[str, Any]]],
    ) -> Aircraft:
        for attempt in range(1, self._max_retries + 1):
            aircraft = await self._read(key, refresh=True)
            if aircraft is None:
                raise NotFound(f"Aircraft '{key}' not found.")
            values = build(aircraft)
            if not values:
                return aircraft
            if await self._compare_and_swap(aircraft, values):
                return aircraft
            record_conflict("aircraft")
            logger.info(
                "Version conflict on aircraft %s (attempt %d/%d)",
                aircraft.registration,
                attempt,
                self._max_retries,
            )
        raise ConcurrentModification(
            f"Aircraft '{key}' is being modified concurrently; please retry."
        )

    async def _compare_and_swap(self, aircraft: Aircraft, values: dict[str, Any]) -> bool:
        version = aircraft.version
        values = {**values, "version": version + 1, "updated_at": self._clock()}
        result = await self._session.execute(
            update(Aircraft)
            .where(Aircraft.id == aircraft.id, Aircraft.version == version)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False
        for name, value in values.items():
            set_committed_value(aircraft, name, value)
        return True


__all__ = ["FleetRegistry"]
