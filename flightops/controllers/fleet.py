"""Fleet endpoints: availability lookups and the maintenance desk."""

from __future__ import annotations

from fastapi import APIRouter, Query, status

from flightops.controllers.dependencies import AdminDep, CurrentPilotDep, SessionDep
from flightops.database import transaction
from flightops.domain.rules import is_grounded
from flightops.domain.states import RepairTier
from flightops.services import EconomicsLedger, FleetRegistry
from flightops.views import (
    AircraftCreateRequest,
    AircraftResponse,
    RepairRequest,
    RepairResponse,
)

router = APIRouter(prefix="/fleet", tags=["fleet"])


def _to_response(ledger: EconomicsLedger, aircraft) -> AircraftResponse:
    return AircraftResponse.from_aircraft(
        aircraft,
        repair_cost=ledger.repair_quote(aircraft.condition, RepairTier.FULL),
        is_grounded=is_grounded(aircraft.condition, ledger.maintenance),
    )


@router.get("/available", response_model=list[AircraftResponse])
async def list_available_aircraft(
    session: SessionDep,
    _auth: CurrentPilotDep,
    location: str = Query(..., min_length=4, max_length=4),
    aircraft_type: str = Query(..., alias="type", min_length=2, max_length=8),
) -> list[AircraftResponse]:
    ledger = EconomicsLedger(session)
    aircraft = await FleetRegistry(session).find_available(location, aircraft_type)
    return [_to_response(ledger, item) for item in aircraft]


@router.get("", response_model=list[AircraftResponse])
async def list_fleet(
    session: SessionDep,
    _admin: AdminDep,
) -> list[AircraftResponse]:
    ledger = EconomicsLedger(session)
    aircraft = await FleetRegistry(session).list_fleet()
    return [_to_response(ledger, item) for item in aircraft]


@router.post("", response_model=AircraftResponse, status_code=status.HTTP_201_CREATED)
async def register_aircraft(
    payload: AircraftCreateRequest,
    session: SessionDep,
    _admin: AdminDep,
) -> AircraftResponse:
    async with transaction(session):
        aircraft = await FleetRegistry(session).register(
            registration=payload.registration,
            aircraft_type=payload.aircraftType,
            home_location=payload.homeLocation,
            name=payload.name,
            condition=payload.condition,
        )
    return _to_response(EconomicsLedger(session), aircraft)


@router.post("/{registration}/repair", response_model=RepairResponse)
async def repair_aircraft(
    registration: str,
    payload: RepairRequest,
    session: SessionDep,
    _admin: AdminDep,
) -> RepairResponse:
    result = await EconomicsLedger(session).repair(registration, payload.tier)
    return RepairResponse(
        registration=result.registration,
        tier=result.tier,
        cost=result.cost,
        conditionBefore=result.condition_before,
        conditionAfter=result.condition_after,
        status=result.status,
        vaultBalance=result.vault_balance,
    )
