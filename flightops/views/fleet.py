"""Pydantic schemas for fleet and maintenance endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from flightops.domain.states import AircraftStatus, RepairTier
from flightops.models import Aircraft


class AircraftResponse(BaseModel):
    """Fleet listing row, including what a full repair would cost."""

    registration: str
    aircraftType: str = Field(..., serialization_alias="aircraftType")
    name: Optional[str] = None
    location: str
    homeLocation: str = Field(..., serialization_alias="homeLocation")
    condition: float
    status: AircraftStatus
    repairCost: float = Field(0.0, serialization_alias="repairCost")
    isGrounded: bool = Field(False, serialization_alias="isGrounded")
    totalHours: float = Field(0.0, serialization_alias="totalHours")
    flightCount: int = Field(0, serialization_alias="flightCount")
    groundedReason: Optional[str] = Field(None, serialization_alias="groundedReason")
    lastServiceAt: Optional[datetime] = Field(None, serialization_alias="lastServiceAt")

    @classmethod
    def from_aircraft(
        cls,
        aircraft: Aircraft,
        *,
        repair_cost: float,
        is_grounded: bool,
    ) -> "AircraftResponse":
        return cls(
            registration=aircraft.registration,
            aircraftType=aircraft.aircraft_type,
            name=aircraft.name,
            location=aircraft.current_location,
            homeLocation=aircraft.home_location,
            condition=aircraft.condition,
            status=aircraft.status,
            repairCost=repair_cost,
            isGrounded=is_grounded,
            totalHours=aircraft.total_hours or 0.0,
            flightCount=aircraft.flight_count or 0,
            groundedReason=aircraft.grounded_reason,
            lastServiceAt=aircraft.last_service_at,
        )


class AircraftCreateRequest(BaseModel):
    registration: str = Field(..., min_length=2, max_length=16)
    aircraftType: str = Field(
        ...,
        min_length=2,
        max_length=8,
        validation_alias=AliasChoices("aircraftType", "aircraft_type"),
        serialization_alias="aircraftType",
    )
    homeLocation: str = Field(
        ...,
        validation_alias=AliasChoices("homeLocation", "home_location"),
        serialization_alias="homeLocation",
    )
    name: Optional[str] = Field(None, max_length=80)
    condition: float = Field(100.0, ge=0.0, le=100.0)

    model_config = ConfigDict(populate_by_name=True)


class RepairRequest(BaseModel):
    tier: RepairTier = RepairTier.FULL


class RepairResponse(BaseModel):
    registration: str
    tier: RepairTier
    cost: float
    conditionBefore: float = Field(..., serialization_alias="conditionBefore")
    conditionAfter: float = Field(..., serialization_alias="conditionAfter")
    status: AircraftStatus
    vaultBalance: float = Field(..., serialization_alias="vaultBalance")
