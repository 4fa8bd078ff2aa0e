from typing import Optional
from pydantic import BaseModel, Field
from datetime import datetime
from enum import Enum


class FlightPhase(str, Enum):
    PREFLIGHT = "preflight"
    TAXI = "taxi"
    TAKEOFF = "takeoff"
    CLIMB = "climb"
    CRUISE = "cruise"
    DESCENT = "descent"
    APPROACH = "approach"
    LANDED = "landed"


class FlightSpec(BaseModel):
    """Planned flight handed to the bid manager by dispatch or a flight-plan import"""
    callsign: str
    departure: str
    arrival: str
    aircraft_type: str
    flight_number: Optional[str] = None
    aircraft_registration: Optional[str] = None
    route: Optional[str] = None
    planned_fuel: int = Field(default=0, ge=0)
    planned_flight_time: int = Field(default=0, ge=0)
    distance: int = Field(default=0, ge=0)
    pax: int = Field(default=0, ge=0)
    cargo: int = Field(default=0, ge=0)
    simbrief_ofp_id: Optional[str] = None


class TelemetrySample(BaseModel):
    """One ACARS position report from the tracking client"""
    timestamp: datetime
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    altitude: float = 0
    ground_speed: float = Field(default=0, ge=0)
    phase: FlightPhase = FlightPhase.CRUISE
    landing_rate: Optional[int] = None
    fuel_used: Optional[int] = Field(default=None, ge=0)


class ManualReportFields(BaseModel):
    """Fields a pilot submits for a manual PIREP"""
    departure: str = ""
    arrival: str = ""
    aircraft_type: str = Field(default="", max_length=16)
    flight_time: int = 0
    flight_number: Optional[str] = Field(default=None, max_length=16)
    callsign: Optional[str] = Field(default=None, max_length=16)
    landing_rate: Optional[int] = None
    tracker_link: Optional[str] = None
    proof_image: Optional[str] = None
    comments: Optional[str] = None
    pax: int = Field(default=0, ge=0)
    cargo: int = Field(default=0, ge=0)
    distance: int = Field(default=0, ge=0)
    fuel_used: int = Field(default=0, ge=0)
