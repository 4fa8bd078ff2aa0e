"""Pydantic schemas used as views in the MVC architecture."""

from .admin import MaintenanceConfigResponse, VaultResponse
from .bids import BidCreateRequest, BidResponse
from .common import ErrorResponse
from .fleet import AircraftCreateRequest, AircraftResponse, RepairRequest, RepairResponse
from .pireps import (
    ManualPirepRequest,
    NoteRequest,
    PirepResponse,
    ReportOutcomeResponse,
    ReviewRequest,
)
from .sessions import (
    EndSessionRequest,
    LandingRequest,
    SessionResponse,
    SessionStartRequest,
    TelemetryAckResponse,
    TelemetryRequest,
)

__all__ = [
    "AircraftCreateRequest",
    "AircraftResponse",
    "BidCreateRequest",
    "BidResponse",
    "EndSessionRequest",
    "ErrorResponse",
    "LandingRequest",
    "MaintenanceConfigResponse",
    "ManualPirepRequest",
    "NoteRequest",
    "PirepResponse",
    "RepairRequest",
    "RepairResponse",
    "ReportOutcomeResponse",
    "ReviewRequest",
    "SessionResponse",
    "SessionStartRequest",
    "TelemetryAckResponse",
    "TelemetryRequest",
    "VaultResponse",
]
