"""Pydantic schemas for PIREP submission and review."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from flightops.domain.models import ManualReportFields
from flightops.domain.states import ReportChannel, ReportStatus


class ManualPirepRequest(BaseModel):
    """Manual PIREP form; exactly one of tracker link or screenshot is required."""

    flightNumber: Optional[str] = Field(
        None,
        max_length=16,
        validation_alias=AliasChoices("flightNumber", "flight_number"),
        serialization_alias="flightNumber",
    )
    callsign: Optional[str] = Field(None, max_length=16)
    departure: str = Field(
        "",
        validation_alias=AliasChoices("departure", "departureIcao", "departure_icao"),
    )
    arrival: str = Field(
        "",
        validation_alias=AliasChoices("arrival", "arrivalIcao", "arrival_icao"),
    )
    aircraftType: str = Field(
        "",
        max_length=16,
        validation_alias=AliasChoices("aircraftType", "aircraft_type"),
        serialization_alias="aircraftType",
    )
    flightTime: int = Field(
        0,
        validation_alias=AliasChoices("flightTime", "flight_time"),
        serialization_alias="flightTime",
    )
    landingRate: Optional[int] = Field(
        None,
        validation_alias=AliasChoices("landingRate", "landing_rate"),
        serialization_alias="landingRate",
    )
    trackerLink: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("trackerLink", "tracker_link"),
        serialization_alias="trackerLink",
    )
    proofImage: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("proofImage", "proof_image"),
        serialization_alias="proofImage",
    )
    comments: Optional[str] = Field(None, max_length=2000)
    pax: int = Field(0, ge=0)
    cargo: int = Field(0, ge=0)
    distance: int = Field(0, ge=0)
    fuelUsed: int = Field(
        0,
        ge=0,
        validation_alias=AliasChoices("fuelUsed", "fuel_used"),
        serialization_alias="fuelUsed",
    )

    model_config = ConfigDict(populate_by_name=True)

    def to_fields(self) -> ManualReportFields:
        return ManualReportFields(
            departure=self.departure,
            arrival=self.arrival,
            aircraft_type=self.aircraftType,
            flight_time=self.flightTime,
            flight_number=self.flightNumber,
            callsign=self.callsign,
            landing_rate=self.landingRate,
            tracker_link=self.trackerLink,
            proof_image=self.proofImage,
            comments=self.comments,
            pax=self.pax,
            cargo=self.cargo,
            distance=self.distance,
            fuel_used=self.fuelUsed,
        )


class ReportOutcomeResponse(BaseModel):
    reportId: int = Field(..., serialization_alias="reportId")
    status: ReportStatus
    isDuplicate: bool = Field(..., serialization_alias="isDuplicate")
    message: str
    reason: Optional[str] = None

    @classmethod
    def from_outcome(cls, outcome) -> "ReportOutcomeResponse":
        return cls(
            reportId=outcome.report_id,
            status=outcome.status,
            isDuplicate=outcome.is_duplicate,
            message=outcome.message,
            reason=outcome.reason,
        )


class PirepResponse(BaseModel):
    id: int
    pilotId: int = Field(
        ...,
        validation_alias=AliasChoices("pilotId", "pilot_id"),
        serialization_alias="pilotId",
    )
    flightNumber: str = Field(
        ...,
        validation_alias=AliasChoices("flightNumber", "flight_number"),
        serialization_alias="flightNumber",
    )
    callsign: str
    departure: str
    arrival: str
    aircraftType: str = Field(
        ...,
        validation_alias=AliasChoices("aircraftType", "aircraft_type"),
        serialization_alias="aircraftType",
    )
    flightTime: int = Field(
        ...,
        validation_alias=AliasChoices("flightTime", "flight_time"),
        serialization_alias="flightTime",
    )
    landingRate: Optional[int] = Field(
        None,
        validation_alias=AliasChoices("landingRate", "landing_rate"),
        serialization_alias="landingRate",
    )
    landingGrade: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("landingGrade", "landing_grade"),
        serialization_alias="landingGrade",
    )
    channel: ReportChannel
    status: ReportStatus
    statusReason: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("statusReason", "status_reason"),
        serialization_alias="statusReason",
    )
    isDuplicate: bool = Field(
        False,
        validation_alias=AliasChoices("isDuplicate", "is_duplicate"),
        serialization_alias="isDuplicate",
    )
    trackerLink: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("trackerLink", "tracker_link"),
        serialization_alias="trackerLink",
    )
    proofImage: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("proofImage", "proof_image"),
        serialization_alias="proofImage",
    )
    comments: Optional[str] = None
    netProfit: float = Field(
        0.0,
        validation_alias=AliasChoices("netProfit", "net_profit"),
        serialization_alias="netProfit",
    )
    conditionDelta: Optional[float] = Field(
        None,
        validation_alias=AliasChoices("conditionDelta", "condition_delta"),
        serialization_alias="conditionDelta",
    )
    submittedAt: datetime = Field(
        ...,
        validation_alias=AliasChoices("submittedAt", "submitted_at"),
        serialization_alias="submittedAt",
    )
    decidedAt: Optional[datetime] = Field(
        None,
        validation_alias=AliasChoices("decidedAt", "decided_at"),
        serialization_alias="decidedAt",
    )
    reviewNotes: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("reviewNotes", "review_notes"),
        serialization_alias="reviewNotes",
    )

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class ReviewRequest(BaseModel):
    decision: Literal["approved", "rejected"]
    note: Optional[str] = Field(None, max_length=2000)


class NoteRequest(BaseModel):
    note: str = Field(..., min_length=1, max_length=2000)
