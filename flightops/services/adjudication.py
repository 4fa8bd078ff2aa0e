"""Adjudication engine for pilot reports.

Runs a report through four stages, in order:

1. structural validation (required fields, proof of flight, fleet rules),
2. duplicate detection (same pilot and city pair on the same local day),
3. grading on the touchdown rate,
4. channel override (manual submissions always wait for staff review).

Decisions are written to this module's logger, which ``main`` routes to a
dedicated audit file.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from flightops.config.settings import MaintenanceConfig, OperationsConfig, settings
from flightops.domain.errors import ValidationError
from flightops.domain.rules import (
    check_restricted_type,
    grade_landing,
    landing_grade_label,
    local_day_bounds,
    normalize_station,
    utcnow,
    validate_proof,
)
from flightops.domain.states import ReportChannel, ReportStatus
from flightops.models import Pirep

logger = logging.getLogger(__name__)

NO_LANDING_RATE_REASON = "No landing rate data; held for staff review."
MANUAL_REVIEW_REASON = "Manual submission; requires staff review."
DUPLICATE_WARNING = (
    "WARNING: A flight on this route was already logged today; "
    "staff will review for duplicates."
)


@dataclass(frozen=True)
class AdjudicationResult:
    status: ReportStatus
    is_duplicate: bool
    message: str
    reason: Optional[str]
    landing_grade: str

    @property
    def settle(self) -> bool:
        """Approved results are handed to the ledger with the status change."""

        return self.status is ReportStatus.APPROVED


class AdjudicationEngine:
    def __init__(
        self,
        session: AsyncSession,
        *,
        maintenance: Optional[MaintenanceConfig] = None,
        operations: Optional[OperationsConfig] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._session = session
        self._maintenance = maintenance
        self._operations = operations
        self._clock = clock

    @property
    def maintenance(self) -> MaintenanceConfig:
        return self._maintenance or settings.maintenance

    @property
    def operations(self) -> OperationsConfig:
        return self._operations or settings.operations

    async def adjudicate(self, report: Pirep) -> AdjudicationResult:
        """Validate, flag and grade ``report`` (not yet added to the session)."""

        self.validate(report)
        is_duplicate = await self.is_duplicate(report)

        threshold = self.maintenance.auto_reject_landing_rate
        channel = ReportChannel(report.channel)
        status = grade_landing(report.landing_rate, threshold)
        grade = landing_grade_label(report.landing_rate, threshold)

        if channel is ReportChannel.MANUAL:
            status = ReportStatus.PENDING
            reason = MANUAL_REVIEW_REASON
        elif status is ReportStatus.PENDING:
            reason = NO_LANDING_RATE_REASON
        elif status is ReportStatus.REJECTED:
            reason = (
                f"Landing rate {report.landing_rate} fpm is at or beyond the "
                f"{threshold} fpm limit."
            )
        else:
            reason = None

        result = AdjudicationResult(
            status=status,
            is_duplicate=is_duplicate,
            message=self._message(channel, status, is_duplicate, reason),
            reason=reason,
            landing_grade=grade,
        )
        logger.info(
            "pilot=%s channel=%s route=%s-%s landing_rate=%s grade=%s status=%s duplicate=%s",
            report.pilot_id,
            channel.value,
            report.departure,
            report.arrival,
            report.landing_rate,
            grade,
            status.value,
            is_duplicate,
        )
        return result

    def validate(self, report: Pirep) -> None:
        """Structural checks; raises and never returns a partial verdict."""

        if (
            not report.departure
            or not report.arrival
            or not report.aircraft_type
            or not report.flight_time
            or report.flight_time <= 0
        ):
            raise ValidationError(
                "Departure, Arrival, Aircraft Type, and Flight Time are required."
            )

        check_restricted_type(report.aircraft_type, self.operations.restricted_aircraft)
        if ReportChannel(report.channel) is ReportChannel.MANUAL:
            validate_proof(
                report.tracker_link,
                report.proof_image,
                tracker_domain=self.operations.tracker_domain,
            )
        normalize_station(report.departure, field="departure")
        normalize_station(report.arrival, field="arrival")

    async def is_duplicate(self, report: Pirep) -> bool:
        """Same pilot and city pair already approved or pending today (local time)."""

        moment = report.submitted_at or self._clock()
        start, end = local_day_bounds(moment, self.operations.timezone)
        stmt = select(func.count(Pirep.id)).where(
            Pirep.pilot_id == report.pilot_id,
            Pirep.departure == report.departure,
            Pirep.arrival == report.arrival,
            Pirep.status.in_([ReportStatus.APPROVED, ReportStatus.PENDING]),
            Pirep.submitted_at >= start,
            Pirep.submitted_at < end,
        )
        if report.id is not None:
            stmt = stmt.where(Pirep.id != report.id)
        result = await self._session.execute(stmt)
        return (result.scalar_one() or 0) > 0

    def _message(
        self,
        channel: ReportChannel,
        status: ReportStatus,
        is_duplicate: bool,
        reason: Optional[str],
    ) -> str:
        if channel is ReportChannel.MANUAL:
            if is_duplicate:
                return f"Manual PIREP submitted. {DUPLICATE_WARNING}"
            return "Manual PIREP submitted successfully. Staff will review your submission."

        if status is ReportStatus.APPROVED:
            message = "PIREP approved automatically."
        elif status is ReportStatus.REJECTED:
            message = f"PIREP rejected. {reason}"
        else:
            message = f"PIREP submitted. {reason}"
        if is_duplicate:
            message = f"{message} {DUPLICATE_WARNING}"
        return message


__all__ = [
    "AdjudicationEngine",
    "AdjudicationResult",
    "DUPLICATE_WARNING",
    "MANUAL_REVIEW_REASON",
    "NO_LANDING_RATE_REASON",
]
