"""Flight session state machine: booked, in flight, completed, reported."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from flightops.config.settings import OperationsConfig, settings
from flightops.database import transaction
from flightops.domain.errors import FleetViolation, InvalidTransition, NotFound
from flightops.domain.models import FlightPhase, ManualReportFields, TelemetrySample
from flightops.domain.rules import has_landing_data, to_utc_naive, utcnow
from flightops.domain.states import (
    OPEN_SESSION_STATES,
    SessionState,
    ensure_transition,
)
from flightops.models import FlightSession
from flightops.services.bids import BidManager
from flightops.services.fleet import FleetRegistry
from flightops.services.reports import ReportOutcome, ReportService
from flightops.telemetry.metrics import record_telemetry_drop

logger = logging.getLogger(__name__)

DROP_UNKNOWN_SESSION = "unknown_session"
DROP_SESSION_CLOSED = "session_closed"
DROP_SESSION_IDLE = "session_idle"
DROP_OUT_OF_ORDER = "out_of_order"


@dataclass(frozen=True)
class TelemetryAck:
    session_id: int
    accepted: bool
    state: Optional[SessionState] = None
    reason: Optional[str] = None
    report: Optional[ReportOutcome] = None


class FlightSessionService:
    def __init__(
        self,
        session: AsyncSession,
        *,
        registry: Optional[FleetRegistry] = None,
        bids: Optional[BidManager] = None,
        reports: Optional[ReportService] = None,
        operations: Optional[OperationsConfig] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._session = session
        self._clock = clock
        self._operations = operations
        self._registry = registry or FleetRegistry(session, clock=clock)
        self._bids = bids or BidManager(session, registry=self._registry, clock=clock)
        self._reports = reports or ReportService(
            session, registry=self._registry, clock=clock
        )

    @property
    def operations(self) -> OperationsConfig:
        return self._operations or settings.operations

    @property
    def idle_window(self) -> timedelta:
        return timedelta(minutes=self.operations.session_idle_minutes)

    async def get_session(
        self,
        session_id: int,
        *,
        pilot_id: Optional[int] = None,
    ) -> FlightSession:
        flight = await self._load(session_id)
        if flight is None or (pilot_id is not None and flight.pilot_id != pilot_id):
            raise NotFound(f"Flight session {session_id} not found.")
        return flight

    async def start_session(
        self,
        pilot_id: int,
        bid_id: int,
        registration: Optional[str] = None,
    ) -> FlightSession:
        """Consume the bid and reserve an airframe at the departure station."""

        async with transaction(self._session):
            bid = await self._bids.consume_bid(bid_id, pilot_id=pilot_id)
            candidates = await self._registry.find_available(
                bid.departure, bid.aircraft_type
            )
            wanted = (registration or bid.aircraft_registration or "").strip().upper()
            if wanted:
                matches = [a for a in candidates if a.registration == wanted]
                if not matches:
                    raise FleetViolation(
                        f"Aircraft {wanted} is not available at {bid.departure} "
                        f"as a serviceable {bid.aircraft_type}."
                    )
                aircraft = matches[0]
            elif candidates:
                aircraft = candidates[0]
            else:
                raise FleetViolation(
                    f"No serviceable {bid.aircraft_type} is available at {bid.departure}."
                )

            await self._registry.reserve(aircraft.id)
            now = self._clock()
            flight = FlightSession(
                pilot_id=pilot_id,
                bid_id=bid.id,
                aircraft_id=aircraft.id,
                state=SessionState.BOOKED,
                started_at=now,
                last_activity_at=now,
                sample_count=0,
            )
            self._session.add(flight)
            await self._session.flush()

        logger.info(
            "Session %s started for pilot %s with %s at %s (bid %s)",
            flight.id,
            pilot_id,
            aircraft.registration,
            bid.departure,
            bid.id,
        )
        return flight

    async def on_telemetry(
        self,
        session_id: int,
        sample: TelemetrySample,
        *,
        pilot_id: Optional[int] = None,
    ) -> TelemetryAck:
        """Apply one sample. Rejected samples are dropped, never retried."""

        now = self._clock()
        sampled_at = to_utc_naive(sample.timestamp)

        async with transaction(self._session):
            flight = await self._load(session_id)
            if flight is None or (pilot_id is not None and flight.pilot_id != pilot_id):
                return self._drop(session_id, None, DROP_UNKNOWN_SESSION)
            if flight.state not in OPEN_SESSION_STATES:
                return self._drop(session_id, flight.state, DROP_SESSION_CLOSED)
            if self._is_idle(flight, now):
                return self._drop(session_id, flight.state, DROP_SESSION_IDLE)
            if flight.last_sample_at is not None and sampled_at < flight.last_sample_at:
                return self._drop(session_id, flight.state, DROP_OUT_OF_ORDER)

            if flight.state is SessionState.BOOKED:
                flight.state = ensure_transition(
                    flight.state,
                    SessionState.IN_FLIGHT,
                    entity=f"Flight session {session_id}",
                )
                flight.first_sample_at = sampled_at
                await self._registry.mark_in_flight(flight.aircraft_id)
                logger.info("Session %s is airborne", session_id)

            flight.last_sample_at = sampled_at
            flight.last_activity_at = now
            flight.latitude = sample.latitude
            flight.longitude = sample.longitude
            flight.altitude = sample.altitude
            flight.ground_speed = sample.ground_speed
            flight.phase = sample.phase.value
            flight.sample_count = (flight.sample_count or 0) + 1
            if sample.fuel_used is not None:
                flight.fuel_used = sample.fuel_used

        if sample.phase is FlightPhase.LANDED and has_landing_data(sample.landing_rate):
            outcome = await self.on_landing_detected(session_id, sample.landing_rate)
            return TelemetryAck(
                session_id=session_id,
                accepted=True,
                state=SessionState.REPORTED,
                report=outcome,
            )
        return TelemetryAck(session_id=session_id, accepted=True, state=flight.state)

    async def on_landing_detected(self, session_id: int, landing_rate: int) -> ReportOutcome:
        flight = await self.get_session(session_id)
        if flight.state is SessionState.BOOKED:
            raise InvalidTransition(
                f"Flight session {session_id} has no telemetry yet; a landing cannot be recorded."
            )
        return await self._complete_and_report(flight, landing_rate)

    async def end_session(
        self,
        session_id: int,
        *,
        landing_rate: Optional[int] = None,
        pilot_id: Optional[int] = None,
    ) -> ReportOutcome:
        """Pilot-initiated end; without a landing rate the report waits for review."""

        flight = await self.get_session(session_id, pilot_id=pilot_id)
        return await self._complete_and_report(flight, landing_rate)

    async def on_manual_submit(
        self,
        pilot_id: int,
        fields: ManualReportFields,
    ) -> ReportOutcome:
        return await self._reports.submit_manual(pilot_id, fields)

    async def abandon_idle(self) -> int:
        """Abandon open sessions with no activity inside the idle window."""

        now = self._clock()
        cutoff = now - self.idle_window
        abandoned = 0
        async with transaction(self._session):
            result = await self._session.execute(
                select(FlightSession)
                .where(
                    FlightSession.state.in_(list(OPEN_SESSION_STATES)),
                    FlightSession.last_activity_at < cutoff,
                )
                .execution_options(populate_existing=True)
            )
            for flight in result.scalars().all():
                flight.state = ensure_transition(
                    flight.state,
                    SessionState.ABANDONED,
                    entity=f"Flight session {flight.id}",
                )
                flight.ended_at = now
                if flight.aircraft_id is not None:
                    await self._registry.release(flight.aircraft_id)
                abandoned += 1
                logger.info(
                    "Session %s abandoned after %s of inactivity",
                    flight.id,
                    now - flight.last_activity_at,
                )
        return abandoned

    async def _complete_and_report(
        self,
        flight: FlightSession,
        landing_rate: Optional[int],
    ) -> ReportOutcome:
        session_id = flight.id
        async with transaction(self._session):
            ensure_transition(
                flight.state,
                SessionState.COMPLETED,
                entity=f"Flight session {session_id}",
            )
            now = self._clock()
            values = {
                "state": SessionState.COMPLETED,
                "ended_at": now,
                "last_activity_at": now,
            }
            if landing_rate is not None:
                values["landing_rate"] = landing_rate
            # Only one caller may close a session, whatever it read earlier.
            result = await self._session.execute(
                update(FlightSession)
                .where(
                    FlightSession.id == session_id,
                    FlightSession.state.in_(list(OPEN_SESSION_STATES)),
                )
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise InvalidTransition(f"Flight session {session_id} is already closed.")
            flight = await self._load(session_id)
            bid = await self._bids.get_bid(flight.bid_id)
            if flight.aircraft_id is not None:
                await self._registry.release(flight.aircraft_id, bid.arrival)

        logger.info(
            "Session %s completed at %s (landing rate %s)",
            session_id,
            bid.arrival,
            flight.landing_rate,
        )
        outcome = await self._reports.file_automatic(flight=flight, bid=bid)
        await self._session.refresh(flight)
        return outcome

    async def _load(self, session_id: int) -> Optional[FlightSession]:
        return await self._session.get(FlightSession, session_id, populate_existing=True)

    def _is_idle(self, flight: FlightSession, now: datetime) -> bool:
        return flight.last_activity_at is not None and (
            now - flight.last_activity_at > self.idle_window
        )

    def _drop(
        self,
        session_id: int,
        state: Optional[SessionState],
        reason: str,
    ) -> TelemetryAck:
        record_telemetry_drop(reason)
        logger.warning("Dropped telemetry for session %s: %s", session_id, reason)
        return TelemetryAck(
            session_id=session_id,
            accepted=False,
            state=state,
            reason=reason,
        )


__all__ = [
    "DROP_OUT_OF_ORDER",
    "DROP_SESSION_CLOSED",
    "DROP_SESSION_IDLE",
    "DROP_UNKNOWN_SESSION",
    "FlightSessionService",
    "TelemetryAck",
]
