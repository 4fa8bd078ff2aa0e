"""Bid manager: flight reservations with a single active bid per pilot."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from flightops.config.settings import OperationsConfig, settings
from flightops.database import transaction
from flightops.domain.errors import (
    AlreadyConsumed,
    BidExpired,
    DuplicateBid,
    FleetViolation,
    InvalidState,
    NotFound,
    ValidationError,
)
from flightops.domain.models import FlightSpec
from flightops.domain.rules import (
    check_dispatch_type,
    is_expired,
    normalize_aircraft_type,
    normalize_station,
    utcnow,
)
from flightops.domain.states import BidStatus
from flightops.models import Bid, Pilot
from flightops.services.fleet import FleetRegistry
from flightops.telemetry.metrics import BIDS_CREATED, BIDS_EXPIRED

logger = logging.getLogger(__name__)


class BidManager:
    """Create, cancel, expire and consume bids.

    Status changes out of ``active`` are conditional UPDATEs, so two
    concurrent requests can never both win the same bid.
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        registry: Optional[FleetRegistry] = None,
        operations: Optional[OperationsConfig] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._session = session
        self._registry = registry or FleetRegistry(session, clock=clock)
        self._operations = operations
        self._clock = clock

    @property
    def operations(self) -> OperationsConfig:
        return self._operations or settings.operations

    @property
    def ttl(self) -> timedelta:
        return timedelta(hours=self.operations.bid_ttl_hours)

    async def get_bid(self, bid_id: int, *, pilot_id: Optional[int] = None) -> Bid:
        result = await self._session.execute(
            select(Bid)
            .where(Bid.id == bid_id)
            .execution_options(populate_existing=True)
        )
        bid = result.scalar_one_or_none()
        if bid is None or (pilot_id is not None and bid.pilot_id != pilot_id):
            raise NotFound(f"Bid {bid_id} not found.")
        return bid

    async def get_active_bid(self, pilot_id: int) -> Optional[Bid]:
        """Current active bid, expiring a stale one on the way."""

        async with transaction(self._session):
            await self._expire_stale(pilot_id)
            return await self._active_for(pilot_id)

    async def create_bid(self, pilot_id: int, spec: FlightSpec) -> Bid:
        fields = self._normalise(spec)

        async with transaction(self._session):
            if await self._session.get(Pilot, pilot_id) is None:
                raise NotFound(f"Pilot {pilot_id} not found.")

            await self._expire_stale(pilot_id)
            existing = await self._active_for(pilot_id)
            if existing is not None:
                raise DuplicateBid(
                    f"You already have an active bid ({existing.callsign} "
                    f"{existing.departure}-{existing.arrival}). "
                    "Cancel it before booking another flight."
                )

            registration = fields.get("aircraft_registration")
            if registration:
                await self._check_preferred_aircraft(
                    registration, fields["departure"], fields["aircraft_type"]
                )

            now = self._clock()
            bid = Bid(
                pilot_id=pilot_id,
                status=BidStatus.ACTIVE,
                created_at=now,
                expires_at=now + self.ttl,
                **fields,
            )
            self._session.add(bid)
            try:
                await self._session.flush()
            except IntegrityError as exc:
                raise DuplicateBid(
                    "You already have an active bid. Cancel it before booking another flight."
                ) from exc

        BIDS_CREATED.inc()
        logger.info(
            "Bid %s created for pilot %s: %s %s-%s (%s), expires %s",
            bid.id,
            pilot_id,
            bid.callsign,
            bid.departure,
            bid.arrival,
            bid.aircraft_type,
            bid.expires_at.isoformat(timespec="seconds"),
        )
        return bid

    async def replace_bid(
        self,
        pilot_id: int,
        spec: FlightSpec,
        *,
        strict_registration: bool = True,
    ) -> Bid:
        """Cancel whatever is active and book ``spec`` in one unit of work.

        With ``strict_registration`` off, a preferred registration that is not
        available at the departure station is dropped instead of rejected.
        """

        if spec.aircraft_registration and not strict_registration:
            available = await self._registry.find_available(
                spec.departure, spec.aircraft_type
            )
            wanted = spec.aircraft_registration.strip().upper()
            if wanted not in {a.registration for a in available}:
                logger.info(
                    "Dropping unavailable registration %s from imported plan", wanted
                )
                spec = spec.model_copy(update={"aircraft_registration": None})

        async with transaction(self._session):
            now = self._clock()
            await self._session.execute(
                update(Bid)
                .where(Bid.pilot_id == pilot_id, Bid.status == BidStatus.ACTIVE)
                .values(status=BidStatus.CANCELLED, closed_at=now)
                .execution_options(synchronize_session=False)
            )
            return await self.create_bid(pilot_id, spec)

    async def cancel_bid(self, bid_id: int, *, pilot_id: Optional[int] = None) -> Bid:
        """Active -> cancelled. Cancelled and expired bids are returned as-is."""

        async with transaction(self._session):
            bid = await self.get_bid(bid_id, pilot_id=pilot_id)
            now = self._clock()

            if bid.status is BidStatus.ACTIVE and is_expired(now, bid.expires_at):
                await self._close(bid_id, BidStatus.EXPIRED, now)
                BIDS_EXPIRED.inc()
            elif bid.status is BidStatus.ACTIVE:
                if not await self._close(bid_id, BidStatus.CANCELLED, now):
                    logger.info("Bid %s changed state while cancelling", bid_id)
                else:
                    logger.info("Bid %s cancelled", bid_id)

            bid = await self.get_bid(bid_id)
            if bid.status is BidStatus.CONSUMED:
                raise InvalidState(
                    "This bid has already been used to start a flight and cannot be cancelled."
                )
            return bid

    async def consume_bid(self, bid_id: int, *, pilot_id: Optional[int] = None) -> Bid:
        """Active and unexpired -> consumed, exactly once."""

        async with transaction(self._session):
            bid = await self.get_bid(bid_id, pilot_id=pilot_id)
            now = self._clock()
            result = await self._session.execute(
                update(Bid)
                .where(
                    Bid.id == bid_id,
                    Bid.status == BidStatus.ACTIVE,
                    Bid.expires_at > now,
                )
                .values(status=BidStatus.CONSUMED, closed_at=now)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 1:
                logger.info("Bid %s consumed", bid_id)
                return await self.get_bid(bid_id)

            bid = await self.get_bid(bid_id)
            if bid.status is BidStatus.EXPIRED or (
                bid.status is BidStatus.ACTIVE and is_expired(now, bid.expires_at)
            ):
                raise BidExpired(
                    f"Bid {bid_id} expired at "
                    f"{bid.expires_at.isoformat(timespec='minutes')} UTC."
                )
            raise AlreadyConsumed(f"Bid {bid_id} is {bid.status.value} and cannot be flown.")

    async def reap_expired(self) -> int:
        """Move every active bid past its TTL to expired in one statement."""

        async with transaction(self._session):
            now = self._clock()
            result = await self._session.execute(
                update(Bid)
                .where(Bid.status == BidStatus.ACTIVE, Bid.expires_at <= now)
                .values(status=BidStatus.EXPIRED, closed_at=now)
                .execution_options(synchronize_session=False)
            )
        count = result.rowcount or 0
        if count:
            BIDS_EXPIRED.inc(count)
            logger.info("Expired %d stale bid(s)", count)
        return count

    async def _active_for(self, pilot_id: int) -> Optional[Bid]:
        result = await self._session.execute(
            select(Bid)
            .where(Bid.pilot_id == pilot_id, Bid.status == BidStatus.ACTIVE)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _expire_stale(self, pilot_id: int) -> int:
        now = self._clock()
        result = await self._session.execute(
            update(Bid)
            .where(
                Bid.pilot_id == pilot_id,
                Bid.status == BidStatus.ACTIVE,
                Bid.expires_at <= now,
            )
            .values(status=BidStatus.EXPIRED, closed_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount:
            BIDS_EXPIRED.inc(result.rowcount)
        return result.rowcount or 0

    async def _close(self, bid_id: int, status: BidStatus, now: datetime) -> bool:
        result = await self._session.execute(
            update(Bid)
            .where(Bid.id == bid_id, Bid.status == BidStatus.ACTIVE)
            .values(status=status, closed_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def _check_preferred_aircraft(
        self,
        registration: str,
        departure: str,
        aircraft_type: str,
    ) -> None:
        available = await self._registry.find_available(departure, aircraft_type)
        if registration not in {aircraft.registration for aircraft in available}:
            raise FleetViolation(
                f"Aircraft {registration} is not available at {departure} "
                f"as a serviceable {aircraft_type}."
            )

    def _normalise(self, spec: FlightSpec) -> dict:
        ops = self.operations
        aircraft_type = normalize_aircraft_type(spec.aircraft_type)
        if not aircraft_type:
            raise ValidationError("Aircraft type is required.")
        check_dispatch_type(
            aircraft_type,
            restricted=ops.restricted_aircraft,
            vfr_types=ops.vfr_aircraft,
        )
        callsign = (spec.callsign or "").strip().upper()
        if not callsign:
            raise ValidationError("Callsign is required.")
        registration = (spec.aircraft_registration or "").strip().upper() or None
        return {
            "callsign": callsign,
            "flight_number": (spec.flight_number or "").strip().upper() or None,
            "departure": normalize_station(spec.departure, field="departure"),
            "arrival": normalize_station(spec.arrival, field="arrival"),
            "aircraft_type": aircraft_type,
            "aircraft_registration": registration,
            "route": spec.route,
            "planned_fuel": spec.planned_fuel,
            "planned_flight_time": spec.planned_flight_time,
            "distance": spec.distance,
            "pax": spec.pax,
            "cargo": spec.cargo,
            "simbrief_ofp_id": spec.simbrief_ofp_id,
        }


__all__ = ["BidManager"]
