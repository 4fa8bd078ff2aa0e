"""Bid endpoints: reserve, inspect, cancel and import a flight."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, status

from flightops.controllers.dependencies import CurrentPilotDep, SessionDep
from flightops.domain.errors import NotFound
from flightops.models import Pilot
from flightops.services import BidManager, SimBriefClient
from flightops.views import BidCreateRequest, BidResponse

router = APIRouter(prefix="/bids", tags=["bids"])

_simbrief_client = SimBriefClient()


@router.post("", response_model=BidResponse, status_code=status.HTTP_201_CREATED)
async def create_bid(
    payload: BidCreateRequest,
    session: SessionDep,
    auth: CurrentPilotDep,
) -> BidResponse:
    bid = await BidManager(session).create_bid(auth.pilot_id, payload.to_spec())
    return BidResponse.model_validate(bid)


@router.get("/current", response_model=Optional[BidResponse])
async def get_current_bid(
    session: SessionDep,
    auth: CurrentPilotDep,
) -> Optional[BidResponse]:
    bid = await BidManager(session).get_active_bid(auth.pilot_id)
    if bid is None:
        return None
    return BidResponse.model_validate(bid)


@router.delete("/{bid_id}", response_model=BidResponse)
async def cancel_bid(
    bid_id: int,
    session: SessionDep,
    auth: CurrentPilotDep,
) -> BidResponse:
    bid = await BidManager(session).cancel_bid(bid_id, pilot_id=auth.pilot_id)
    return BidResponse.model_validate(bid)


@router.post("/simbrief", response_model=BidResponse, status_code=status.HTTP_201_CREATED)
async def import_simbrief_plan(
    session: SessionDep,
    auth: CurrentPilotDep,
) -> BidResponse:
    """Replace the pilot's bid with their latest SimBrief flight plan."""

    pilot = await session.get(Pilot, auth.pilot_id)
    if pilot is None:
        raise NotFound("Pilot not found")
    simbrief_id, pilot_code = pilot.simbrief_id, pilot.pilot_code
    # Release the read transaction before the SimBrief round trip.
    await session.commit()

    spec = await _simbrief_client.fetch_latest(
        simbrief_id,
        fallback_callsign=pilot_code,
    )
    bid = await BidManager(session).replace_bid(
        auth.pilot_id,
        spec,
        strict_registration=False,
    )
    return BidResponse.model_validate(bid)
