"""Pydantic schemas for tracked flight sessions."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from flightops.domain.models import FlightPhase, TelemetrySample
from flightops.domain.states import SessionState
from flightops.views.pireps import ReportOutcomeResponse


class SessionStartRequest(BaseModel):
    bidId: int = Field(
        ...,
        ge=1,
        validation_alias=AliasChoices("bidId", "bid_id"),
        serialization_alias="bidId",
    )
    registration: Optional[str] = Field(None, max_length=16)

    model_config = ConfigDict(populate_by_name=True)


class SessionResponse(BaseModel):
    id: int
    bidId: Optional[int] = Field(
        None,
        validation_alias=AliasChoices("bidId", "bid_id"),
        serialization_alias="bidId",
    )
    aircraftId: Optional[int] = Field(
        None,
        validation_alias=AliasChoices("aircraftId", "aircraft_id"),
        serialization_alias="aircraftId",
    )
    state: SessionState
    phase: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    altitude: Optional[float] = None
    sampleCount: int = Field(
        0,
        validation_alias=AliasChoices("sampleCount", "sample_count"),
        serialization_alias="sampleCount",
    )
    landingRate: Optional[int] = Field(
        None,
        validation_alias=AliasChoices("landingRate", "landing_rate"),
        serialization_alias="landingRate",
    )
    reportId: Optional[int] = Field(
        None,
        validation_alias=AliasChoices("reportId", "report_id"),
        serialization_alias="reportId",
    )
    startedAt: datetime = Field(
        ...,
        validation_alias=AliasChoices("startedAt", "started_at"),
        serialization_alias="startedAt",
    )
    lastActivityAt: datetime = Field(
        ...,
        validation_alias=AliasChoices("lastActivityAt", "last_activity_at"),
        serialization_alias="lastActivityAt",
    )
    endedAt: Optional[datetime] = Field(
        None,
        validation_alias=AliasChoices("endedAt", "ended_at"),
        serialization_alias="endedAt",
    )

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class TelemetryRequest(BaseModel):
    """One ACARS sample as posted by the tracker client."""

    timestamp: datetime
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    altitude: float = 0
    groundSpeed: float = Field(
        0,
        ge=0,
        validation_alias=AliasChoices("groundSpeed", "ground_speed", "gs"),
        serialization_alias="groundSpeed",
    )
    phase: FlightPhase = FlightPhase.CRUISE
    landingRate: Optional[int] = Field(
        None,
        validation_alias=AliasChoices("landingRate", "landing_rate"),
        serialization_alias="landingRate",
    )
    fuelUsed: Optional[int] = Field(
        None,
        ge=0,
        validation_alias=AliasChoices("fuelUsed", "fuel_used"),
        serialization_alias="fuelUsed",
    )

    model_config = ConfigDict(populate_by_name=True)

    def to_sample(self) -> TelemetrySample:
        return TelemetrySample(
            timestamp=self.timestamp,
            latitude=self.latitude,
            longitude=self.longitude,
            altitude=self.altitude,
            ground_speed=self.groundSpeed,
            phase=self.phase,
            landing_rate=self.landingRate,
            fuel_used=self.fuelUsed,
        )


class TelemetryAckResponse(BaseModel):
    sessionId: int = Field(..., serialization_alias="sessionId")
    accepted: bool
    state: Optional[SessionState] = None
    reason: Optional[str] = None
    report: Optional[ReportOutcomeResponse] = None


class LandingRequest(BaseModel):
    landingRate: int = Field(
        ...,
        validation_alias=AliasChoices("landingRate", "landing_rate"),
        serialization_alias="landingRate",
    )

    model_config = ConfigDict(populate_by_name=True)


class EndSessionRequest(BaseModel):
    landingRate: Optional[int] = Field(
        None,
        validation_alias=AliasChoices("landingRate", "landing_rate"),
        serialization_alias="landingRate",
    )

    model_config = ConfigDict(populate_by_name=True)
