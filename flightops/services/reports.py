"""Report service: files, decides and annotates PIREPs."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from flightops.database import transaction
from flightops.domain.errors import (
    FlightOpsError,
    InvalidTransition,
    NotFound,
    ValidationError,
)
from flightops.domain.models import ManualReportFields
from flightops.domain.rules import normalize_aircraft_type, utcnow
from flightops.domain.states import (
    ReportChannel,
    ReportStatus,
    SessionState,
    ensure_transition,
)
from flightops.models import Bid, FlightSession, Pilot, Pirep
from flightops.services.adjudication import AdjudicationEngine
from flightops.services.ledger import EconomicsLedger
from flightops.services.fleet import FleetRegistry
from flightops.telemetry.metrics import record_decision

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("flightops.services.adjudication")

SETTLEMENT_HELD_MESSAGE = (
    "PIREP held for review: settlement could not be completed automatically."
)


@dataclass(frozen=True)
class ReportOutcome:
    report_id: int
    status: ReportStatus
    is_duplicate: bool
    message: str
    reason: Optional[str] = None


def _base36(value: int) -> str:
    digits = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    out = ""
    while True:
        value, rem = divmod(value, 36)
        out = digits[rem] + out
        if not value:
            return out


class ReportService:
    def __init__(
        self,
        session: AsyncSession,
        *,
        registry: Optional[FleetRegistry] = None,
        engine: Optional[AdjudicationEngine] = None,
        ledger: Optional[EconomicsLedger] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._session = session
        self._clock = clock
        registry = registry or FleetRegistry(session, clock=clock)
        self._engine = engine or AdjudicationEngine(session, clock=clock)
        self._ledger = ledger or EconomicsLedger(session, registry=registry, clock=clock)

    async def get(self, report_id: int, *, pilot_id: Optional[int] = None) -> Pirep:
        report = await self._session.get(Pirep, report_id, populate_existing=True)
        if report is None or (pilot_id is not None and report.pilot_id != pilot_id):
            raise NotFound(f"PIREP {report_id} not found.")
        return report

    async def list_for_pilot(self, pilot_id: int, *, limit: int = 50) -> list[Pirep]:
        result = await self._session.execute(
            select(Pirep)
            .where(Pirep.pilot_id == pilot_id)
            .order_by(Pirep.submitted_at.desc(), Pirep.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def list_pending(self) -> list[Pirep]:
        result = await self._session.execute(
            select(Pirep)
            .where(Pirep.status == ReportStatus.PENDING)
            .order_by(Pirep.submitted_at, Pirep.id)
        )
        return list(result.scalars().all())

    async def file_automatic(self, *, flight: FlightSession, bid: Bid) -> ReportOutcome:
        """File the tracker-backed report for a completed session.

        The report is persisted first (and the session marked reported); an
        approval then settles in a second unit of work. If settlement fails
        the report stays pending with the failure recorded.
        """

        now = self._clock()
        report = Pirep(
            pilot_id=flight.pilot_id,
            bid_id=bid.id,
            session_id=flight.id,
            aircraft_id=flight.aircraft_id,
            flight_number=bid.flight_number or bid.callsign,
            callsign=bid.callsign,
            departure=bid.departure,
            arrival=bid.arrival,
            aircraft_type=bid.aircraft_type,
            flight_time=self._flight_minutes(flight, bid),
            landing_rate=flight.landing_rate,
            fuel_used=flight.fuel_used or bid.planned_fuel or 0,
            distance=bid.distance or 0,
            pax=bid.pax or 0,
            cargo=bid.cargo or 0,
            channel=ReportChannel.AUTOMATIC,
            status=ReportStatus.PENDING,
            is_duplicate=False,
            submitted_at=now,
        )

        async with transaction(self._session):
            try:
                result = await self._engine.adjudicate(report)
            except FlightOpsError as exc:
                # A tracked flight is always recorded; a malformed one is rejected.
                logger.warning(
                    "Automatic PIREP for session %s failed validation: %s",
                    flight.id,
                    exc.reason,
                )
                report.status = ReportStatus.REJECTED
                report.status_reason = exc.reason
                report.decided_at = now
                outcome_message = f"PIREP rejected. {exc.reason}"
                is_duplicate = False
                settle = False
            else:
                report.landing_grade = result.landing_grade
                report.is_duplicate = result.is_duplicate
                report.status_reason = result.reason
                if result.status is ReportStatus.REJECTED:
                    report.status = ReportStatus.REJECTED
                    report.decided_at = now
                outcome_message = result.message
                is_duplicate = result.is_duplicate
                settle = result.settle

            self._session.add(report)
            await self._session.flush()
            flight.state = ensure_transition(
                flight.state,
                SessionState.REPORTED,
                entity=f"Flight session {flight.id}",
            )
            flight.report_id = report.id

        report_id = report.id
        if settle:
            try:
                await self._decide(report_id, ReportStatus.APPROVED, decided_by=None)
            except (FlightOpsError, SQLAlchemyError) as exc:
                reason = getattr(exc, "reason", None) or str(exc)
                logger.error(
                    "Settlement of PIREP %s failed, holding for review: %s",
                    report_id,
                    reason,
                )
                await self._hold(report_id, f"Settlement failed: {reason}")
                record_decision(ReportChannel.AUTOMATIC.value, ReportStatus.PENDING.value)
                return ReportOutcome(
                    report_id=report_id,
                    status=ReportStatus.PENDING,
                    is_duplicate=is_duplicate,
                    message=SETTLEMENT_HELD_MESSAGE,
                    reason=f"Settlement failed: {reason}",
                )

        report = await self.get(report_id)
        record_decision(ReportChannel.AUTOMATIC.value, report.status.value)
        return ReportOutcome(
            report_id=report_id,
            status=report.status,
            is_duplicate=is_duplicate,
            message=outcome_message,
            reason=report.status_reason,
        )

    async def submit_manual(self, pilot_id: int, fields: ManualReportFields) -> ReportOutcome:
        pilot = await self._session.get(Pilot, pilot_id)
        if pilot is None:
            raise NotFound(f"Pilot {pilot_id} not found.")

        now = self._clock()
        report = Pirep(
            pilot_id=pilot_id,
            bid_id=None,
            session_id=None,
            aircraft_id=None,
            flight_number=(fields.flight_number or "").strip().upper()
            or f"MAN-{_base36(int(now.timestamp() * 1000))}",
            callsign=(fields.callsign or "").strip().upper() or pilot.pilot_code,
            departure=(fields.departure or "").strip().upper(),
            arrival=(fields.arrival or "").strip().upper(),
            aircraft_type=normalize_aircraft_type(fields.aircraft_type),
            flight_time=fields.flight_time,
            landing_rate=fields.landing_rate,
            fuel_used=fields.fuel_used,
            distance=fields.distance,
            pax=fields.pax,
            cargo=fields.cargo,
            tracker_link=(fields.tracker_link or "").strip() or None,
            proof_image=(fields.proof_image or "").strip() or None,
            comments=fields.comments,
            channel=ReportChannel.MANUAL,
            status=ReportStatus.PENDING,
            submitted_at=now,
        )

        async with transaction(self._session):
            result = await self._engine.adjudicate(report)
            report.status = result.status
            report.is_duplicate = result.is_duplicate
            report.landing_grade = result.landing_grade
            report.status_reason = result.reason
            self._session.add(report)
            await self._session.flush()

        record_decision(ReportChannel.MANUAL.value, result.status.value)
        logger.info(
            "Manual PIREP %s filed by pilot %s (%s-%s, duplicate=%s)",
            report.id,
            pilot_id,
            report.departure,
            report.arrival,
            result.is_duplicate,
        )
        return ReportOutcome(
            report_id=report.id,
            status=result.status,
            is_duplicate=result.is_duplicate,
            message=result.message,
            reason=result.reason,
        )

    async def review(
        self,
        report_id: int,
        decision: ReportStatus,
        reviewer_id: int,
        note: Optional[str] = None,
    ) -> Pirep:
        """Staff decision on a pending report; repeating the same decision is a no-op."""

        decision = ReportStatus(decision)
        if decision is ReportStatus.PENDING:
            raise ValidationError("A review must approve or reject the report.")

        report = await self.get(report_id)
        if report.status is decision:
            logger.info("PIREP %s already %s; review ignored", report_id, decision.value)
            return report
        ensure_transition(report.status, decision, entity=f"PIREP {report_id}")

        async with transaction(self._session):
            await self._decide(report_id, decision, decided_by=reviewer_id)
            if note:
                await self._append_note(report_id, reviewer_id, note)

        record_decision(ReportChannel(report.channel).value, decision.value)
        audit_logger.info(
            "report=%s reviewer=%s decision=%s", report_id, reviewer_id, decision.value
        )
        return await self.get(report_id)

    async def annotate(self, report_id: int, author_id: int, note: str) -> Pirep:
        """Append an audit note; allowed whatever the report status."""

        if not (note or "").strip():
            raise ValidationError("Note text is required.")
        async with transaction(self._session):
            await self.get(report_id)
            await self._append_note(report_id, author_id, note)
        return await self.get(report_id)

    async def _decide(
        self,
        report_id: int,
        decision: ReportStatus,
        *,
        decided_by: Optional[int],
    ) -> None:
        async with transaction(self._session):
            now = self._clock()
            values = {"status": decision, "decided_at": now, "decided_by": decided_by}
            if decision is ReportStatus.APPROVED:
                values["status_reason"] = None
            result = await self._session.execute(
                update(Pirep)
                .where(Pirep.id == report_id, Pirep.status == ReportStatus.PENDING)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                current = await self.get(report_id)
                if current.status is decision:
                    return
                raise InvalidTransition(
                    f"PIREP {report_id} cannot move from '{current.status.value}' "
                    f"to '{decision.value}'"
                )

            report = await self.get(report_id)
            if decision is ReportStatus.APPROVED:
                await self._ledger.settle(report)

    async def _hold(self, report_id: int, reason: str) -> None:
        async with transaction(self._session):
            report = await self.get(report_id)
            report.status_reason = reason[:255]

    async def _append_note(self, report_id: int, author_id: int, note: str) -> None:
        report = await self.get(report_id)
        stamp = self._clock().strftime("%Y-%m-%d %H:%M")
        line = f"[{stamp} UTC] #{author_id}: {note.strip()}"
        report.review_notes = (
            f"{report.review_notes}\n{line}" if report.review_notes else line
        )
        await self._session.flush()

    @staticmethod
    def _flight_minutes(flight: FlightSession, bid: Bid) -> int:
        start = flight.first_sample_at or flight.started_at
        if start and flight.ended_at and flight.ended_at > start:
            minutes = int((flight.ended_at - start).total_seconds() // 60)
            if minutes > 0:
                return minutes
        return bid.planned_flight_time or 0


__all__ = ["ReportOutcome", "ReportService", "SETTLEMENT_HELD_MESSAGE"]
