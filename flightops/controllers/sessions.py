"""Flight session endpoints fed by the ACARS tracker client."""

from __future__ import annotations

from fastapi import APIRouter, status

from flightops.controllers.dependencies import CurrentPilotDep, SessionDep
from flightops.services import FlightSessionService
from flightops.views import (
    EndSessionRequest,
    LandingRequest,
    ReportOutcomeResponse,
    SessionResponse,
    SessionStartRequest,
    TelemetryAckResponse,
    TelemetryRequest,
)

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.post("", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def start_session(
    payload: SessionStartRequest,
    session: SessionDep,
    auth: CurrentPilotDep,
) -> SessionResponse:
    flight = await FlightSessionService(session).start_session(
        auth.pilot_id,
        payload.bidId,
        payload.registration,
    )
    return SessionResponse.model_validate(flight)


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(
    session_id: int,
    session: SessionDep,
    auth: CurrentPilotDep,
) -> SessionResponse:
    flight = await FlightSessionService(session).get_session(
        session_id, pilot_id=auth.pilot_id
    )
    return SessionResponse.model_validate(flight)


@router.post("/{session_id}/telemetry", response_model=TelemetryAckResponse)
async def post_telemetry(
    session_id: int,
    payload: TelemetryRequest,
    session: SessionDep,
    auth: CurrentPilotDep,
) -> TelemetryAckResponse:
    """Accept one position report; stale or misrouted samples are acknowledged and dropped."""

    ack = await FlightSessionService(session).on_telemetry(
        session_id,
        payload.to_sample(),
        pilot_id=auth.pilot_id,
    )
    return TelemetryAckResponse(
        sessionId=ack.session_id,
        accepted=ack.accepted,
        state=ack.state,
        reason=ack.reason,
        report=ReportOutcomeResponse.from_outcome(ack.report) if ack.report else None,
    )


@router.post("/{session_id}/landing", response_model=ReportOutcomeResponse)
async def report_landing(
    session_id: int,
    payload: LandingRequest,
    session: SessionDep,
    auth: CurrentPilotDep,
) -> ReportOutcomeResponse:
    service = FlightSessionService(session)
    await service.get_session(session_id, pilot_id=auth.pilot_id)
    outcome = await service.on_landing_detected(session_id, payload.landingRate)
    return ReportOutcomeResponse.from_outcome(outcome)


@router.post("/{session_id}/end", response_model=ReportOutcomeResponse)
async def end_session(
    session_id: int,
    payload: EndSessionRequest,
    session: SessionDep,
    auth: CurrentPilotDep,
) -> ReportOutcomeResponse:
    outcome = await FlightSessionService(session).end_session(
        session_id,
        landing_rate=payload.landingRate,
        pilot_id=auth.pilot_id,
    )
    return ReportOutcomeResponse.from_outcome(outcome)
