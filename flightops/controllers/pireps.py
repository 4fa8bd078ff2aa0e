"""PIREP endpoints: manual submission and staff review."""

from __future__ import annotations

from fastapi import APIRouter, status

from flightops.controllers.dependencies import AdminDep, CurrentPilotDep, SessionDep
from flightops.domain.states import ReportStatus
from flightops.services import FlightSessionService, ReportService
from flightops.views import (
    ManualPirepRequest,
    NoteRequest,
    PirepResponse,
    ReportOutcomeResponse,
    ReviewRequest,
)

router = APIRouter(prefix="/pireps", tags=["pireps"])


@router.post(
    "/manual",
    response_model=ReportOutcomeResponse,
    status_code=status.HTTP_201_CREATED,
)
async def submit_manual_pirep(
    payload: ManualPirepRequest,
    session: SessionDep,
    auth: CurrentPilotDep,
) -> ReportOutcomeResponse:
    outcome = await FlightSessionService(session).on_manual_submit(
        auth.pilot_id, payload.to_fields()
    )
    return ReportOutcomeResponse.from_outcome(outcome)


@router.get("/mine", response_model=list[PirepResponse])
async def list_my_pireps(
    session: SessionDep,
    auth: CurrentPilotDep,
) -> list[PirepResponse]:
    reports = await ReportService(session).list_for_pilot(auth.pilot_id)
    return [PirepResponse.model_validate(report) for report in reports]


@router.get("/pending", response_model=list[PirepResponse])
async def list_pending_pireps(
    session: SessionDep,
    _admin: AdminDep,
) -> list[PirepResponse]:
    reports = await ReportService(session).list_pending()
    return [PirepResponse.model_validate(report) for report in reports]


@router.post("/{report_id}/review", response_model=PirepResponse)
async def review_pirep(
    report_id: int,
    payload: ReviewRequest,
    session: SessionDep,
    admin: AdminDep,
) -> PirepResponse:
    report = await ReportService(session).review(
        report_id,
        ReportStatus(payload.decision),
        admin.pilot_id,
        payload.note,
    )
    return PirepResponse.model_validate(report)


@router.post("/{report_id}/notes", response_model=PirepResponse)
async def annotate_pirep(
    report_id: int,
    payload: NoteRequest,
    session: SessionDep,
    admin: AdminDep,
) -> PirepResponse:
    report = await ReportService(session).annotate(report_id, admin.pilot_id, payload.note)
    return PirepResponse.model_validate(report)
