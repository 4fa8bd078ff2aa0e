"""Service layer for the flight lifecycle."""

from .adjudication import AdjudicationEngine, AdjudicationResult
from .bids import BidManager
from .fleet import FleetRegistry
from .flight_sessions import FlightSessionService, TelemetryAck
from .ledger import EconomicsLedger, RepairResult, SettlementResult
from .reaper import ExpirationReaper, SweepResult
from .reports import ReportOutcome, ReportService
from .simbrief import SimBriefClient, SimBriefError

__all__ = [
    "AdjudicationEngine",
    "AdjudicationResult",
    "BidManager",
    "FleetRegistry",
    "FlightSessionService",
    "TelemetryAck",
    "EconomicsLedger",
    "RepairResult",
    "SettlementResult",
    "ExpirationReaper",
    "SweepResult",
    "ReportOutcome",
    "ReportService",
    "SimBriefClient",
    "SimBriefError",
]
