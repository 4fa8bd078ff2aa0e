"""Economics ledger: wear, settlement and repairs."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from flightops.config.settings import EconomicsConfig, MaintenanceConfig, settings
from flightops.database import transaction
from flightops.domain.errors import (
    InsufficientFunds,
    InvalidState,
    NotFound,
    ValidationError,
)
from flightops.domain.rules import (
    FlightEconomics,
    compute_economics,
    condition_delta,
    repair_cost,
    repair_target,
    utcnow,
)
from flightops.domain.states import AircraftStatus, RepairTier, ReportStatus
from flightops.models import VAULT_ID, AirlineVault, Pilot, Pirep
from flightops.services.fleet import FleetRegistry
from flightops.telemetry.metrics import REPAIRS, SETTLEMENTS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SettlementResult:
    report_id: int
    economics: FlightEconomics
    condition_delta: Optional[float]
    aircraft_condition: Optional[float]
    aircraft_status: Optional[AircraftStatus]


@dataclass(frozen=True)
class RepairResult:
    registration: str
    tier: RepairTier
    cost: float
    condition_before: float
    condition_after: float
    status: AircraftStatus
    vault_balance: float


class EconomicsLedger:
    """Applies approved flights and repairs to aircraft, pilots and the vault.

    Balances only move through SQL increments; the repair debit is guarded by
    ``balance >= cost`` in the same statement so it can never overdraw.
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        registry: Optional[FleetRegistry] = None,
        maintenance: Optional[MaintenanceConfig] = None,
        economics: Optional[EconomicsConfig] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._session = session
        self._maintenance = maintenance
        self._registry = registry or FleetRegistry(
            session, maintenance=maintenance, clock=clock
        )
        self._economics = economics
        self._clock = clock

    @property
    def maintenance(self) -> MaintenanceConfig:
        return self._maintenance or settings.maintenance

    @property
    def economics(self) -> EconomicsConfig:
        return self._economics or settings.economics

    async def vault_balance(self) -> float:
        result = await self._session.execute(
            select(AirlineVault.balance).where(AirlineVault.id == VAULT_ID)
        )
        balance = result.scalar_one_or_none()
        if balance is None:
            raise InvalidState("Airline vault is not initialised.")
        return float(balance)

    async def settle(self, report: Pirep) -> SettlementResult:
        """Book an approved flight. Runs inside the caller's approval transaction."""

        if report.status is not ReportStatus.APPROVED:
            raise InvalidState(f"PIREP {report.id} is not approved and cannot be settled.")

        config = self.maintenance
        airframe_backed = report.aircraft_id is not None
        wear = condition_delta(report.landing_rate, config) if airframe_backed else 0.0
        hours = round(max(report.flight_time or 0, 0) / 60.0, 2)
        economics = compute_economics(
            pax=report.pax or 0,
            cargo_kg=report.cargo or 0,
            distance_nm=report.distance or 0,
            fuel_used_kg=report.fuel_used or 0,
            flight_minutes=report.flight_time or 0,
            wear=wear,
            economics=self.economics,
            maintenance=config,
        )

        async with transaction(self._session):
            aircraft = None
            if airframe_backed:
                aircraft = await self._registry.apply_condition_delta(
                    report.aircraft_id, wear, flight_hours=hours
                )
            await self._credit_pilot(
                report.pilot_id, economics.net_profit, hours, report.arrival
            )
            await self._credit_vault(economics.net_profit)

            report.revenue_passenger = economics.revenue_passenger
            report.revenue_cargo = economics.revenue_cargo
            report.expense_fuel = economics.expense_fuel
            report.expense_airport = economics.expense_airport
            report.expense_pilot = economics.expense_pilot
            report.expense_maintenance = economics.expense_maintenance
            report.net_profit = economics.net_profit
            report.condition_delta = wear if airframe_backed else None
            await self._session.flush()

        SETTLEMENTS.inc()
        logger.info(
            "Settled PIREP %s: revenue %.2f, expense %.2f, net %.2f, wear %.2f",
            report.id,
            economics.revenue,
            economics.expense,
            economics.net_profit,
            wear,
        )
        return SettlementResult(
            report_id=report.id,
            economics=economics,
            condition_delta=wear if airframe_backed else None,
            aircraft_condition=aircraft.condition if aircraft else None,
            aircraft_status=aircraft.status if aircraft else None,
        )

    def repair_quote(self, condition: float, tier: RepairTier) -> float:
        config = self.maintenance
        return repair_cost(condition, repair_target(tier, config), config)

    async def repair(self, registration: str, tier: RepairTier) -> RepairResult:
        tier = RepairTier(tier)
        config = self.maintenance

        async with transaction(self._session):
            aircraft = await self._registry.get(registration)
            if aircraft.status in (AircraftStatus.BOOKED, AircraftStatus.IN_FLIGHT):
                raise InvalidState(
                    f"Aircraft {aircraft.registration} is {aircraft.status.value} "
                    "and cannot be repaired now."
                )

            before = aircraft.condition
            target = repair_target(tier, config)
            cost = repair_cost(before, target, config)
            if cost <= 0:
                raise ValidationError(
                    f"Aircraft {aircraft.registration} is already at or above "
                    f"{target:.0f}% condition."
                )

            # The quote is only valid for the row version it was priced on.
            aircraft = await self._registry.apply_condition_delta(
                aircraft.registration,
                target - before,
                serviced_at=self._clock(),
                expected_version=aircraft.version,
            )
            await self._debit_vault(cost)
            balance = await self.vault_balance()

        REPAIRS.labels(tier=tier.value).inc()
        logger.info(
            "Repaired %s (%s) %.1f%% -> %.1f%% for %.2f; vault now %.2f",
            aircraft.registration,
            tier.value,
            before,
            aircraft.condition,
            cost,
            balance,
        )
        return RepairResult(
            registration=aircraft.registration,
            tier=tier,
            cost=cost,
            condition_before=before,
            condition_after=aircraft.condition,
            status=aircraft.status,
            vault_balance=balance,
        )

    async def _credit_pilot(
        self,
        pilot_id: int,
        amount: float,
        hours: float,
        location: str,
    ) -> None:
        result = await self._session.execute(
            update(Pilot)
            .where(Pilot.id == pilot_id)
            .values(
                balance=Pilot.balance + amount,
                flight_hours=Pilot.flight_hours + hours,
                current_location=location,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise NotFound(f"Pilot {pilot_id} not found.")

    async def _credit_vault(self, amount: float) -> None:
        result = await self._session.execute(
            update(AirlineVault)
            .where(AirlineVault.id == VAULT_ID)
            .values(balance=AirlineVault.balance + amount, updated_at=self._clock())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InvalidState("Airline vault is not initialised.")

    async def _debit_vault(self, amount: float) -> None:
        result = await self._session.execute(
            update(AirlineVault)
            .where(AirlineVault.id == VAULT_ID, AirlineVault.balance >= amount)
            .values(balance=AirlineVault.balance - amount, updated_at=self._clock())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            balance = await self.vault_balance()
            raise InsufficientFunds(
                f"Insufficient airline funds: repair costs {amount:,.2f}, "
                f"vault holds {balance:,.2f}."
            )


__all__ = ["EconomicsLedger", "RepairResult", "SettlementResult"]
