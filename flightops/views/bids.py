"""Pydantic schemas for bid endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from flightops.domain.models import FlightSpec
from flightops.domain.states import BidStatus


class BidCreateRequest(BaseModel):
    """Flight the pilot wants to reserve."""

    callsign: str = Field(..., min_length=1, max_length=16)
    flightNumber: Optional[str] = Field(
        None,
        max_length=16,
        validation_alias=AliasChoices("flightNumber", "flight_number"),
        serialization_alias="flightNumber",
    )
    departure: str = Field(
        ...,
        validation_alias=AliasChoices("departure", "departureIcao", "departure_icao"),
    )
    arrival: str = Field(
        ...,
        validation_alias=AliasChoices("arrival", "arrivalIcao", "arrival_icao"),
    )
    aircraftType: str = Field(
        ...,
        min_length=1,
        max_length=8,
        validation_alias=AliasChoices("aircraftType", "aircraft_type"),
        serialization_alias="aircraftType",
    )
    aircraftRegistration: Optional[str] = Field(
        None,
        max_length=16,
        validation_alias=AliasChoices("aircraftRegistration", "aircraft_registration"),
        serialization_alias="aircraftRegistration",
    )
    route: Optional[str] = None
    plannedFuel: int = Field(
        0,
        ge=0,
        validation_alias=AliasChoices("plannedFuel", "planned_fuel"),
        serialization_alias="plannedFuel",
    )
    plannedFlightTime: int = Field(
        0,
        ge=0,
        validation_alias=AliasChoices("plannedFlightTime", "planned_flight_time"),
        serialization_alias="plannedFlightTime",
    )
    distance: int = Field(0, ge=0)
    pax: int = Field(0, ge=0)
    cargo: int = Field(0, ge=0)

    model_config = ConfigDict(populate_by_name=True)

    def to_spec(self) -> FlightSpec:
        return FlightSpec(
            callsign=self.callsign,
            flight_number=self.flightNumber,
            departure=self.departure,
            arrival=self.arrival,
            aircraft_type=self.aircraftType,
            aircraft_registration=self.aircraftRegistration,
            route=self.route,
            planned_fuel=self.plannedFuel,
            planned_flight_time=self.plannedFlightTime,
            distance=self.distance,
            pax=self.pax,
            cargo=self.cargo,
        )


class BidResponse(BaseModel):
    id: int
    callsign: str
    flightNumber: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("flightNumber", "flight_number"),
        serialization_alias="flightNumber",
    )
    departure: str
    arrival: str
    aircraftType: str = Field(
        ...,
        validation_alias=AliasChoices("aircraftType", "aircraft_type"),
        serialization_alias="aircraftType",
    )
    aircraftRegistration: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("aircraftRegistration", "aircraft_registration"),
        serialization_alias="aircraftRegistration",
    )
    route: Optional[str] = None
    pax: int = 0
    cargo: int = 0
    distance: int = 0
    status: BidStatus
    createdAt: datetime = Field(
        ...,
        validation_alias=AliasChoices("createdAt", "created_at"),
        serialization_alias="createdAt",
    )
    expiresAt: datetime = Field(
        ...,
        validation_alias=AliasChoices("expiresAt", "expires_at"),
        serialization_alias="expiresAt",
    )

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)
