"""Lifecycle states for bids, flight sessions, reports and aircraft.

Each entity has an explicit enum plus a transition table; ``ensure_transition``
is the only way services move an entity between states.
"""

from __future__ import annotations

from enum import Enum
from typing import Mapping, TypeVar

from flightops.domain.errors import InvalidTransition


class BidStatus(str, Enum):
    ACTIVE = "active"
    CONSUMED = "consumed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class SessionState(str, Enum):
    BOOKED = "booked"
    IN_FLIGHT = "in_flight"
    COMPLETED = "completed"
    REPORTED = "reported"
    ABANDONED = "abandoned"


class ReportStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ReportChannel(str, Enum):
    AUTOMATIC = "automatic"
    MANUAL = "manual"


class AircraftStatus(str, Enum):
    AVAILABLE = "available"
    BOOKED = "booked"
    IN_FLIGHT = "in_flight"
    MAINTENANCE = "maintenance"
    GROUNDED = "grounded"


class RepairTier(str, Enum):
    MINIMUM = "MINIMUM"
    FULL = "FULL"


BID_TRANSITIONS: Mapping[BidStatus, frozenset[BidStatus]] = {
    BidStatus.ACTIVE: frozenset(
        {BidStatus.CONSUMED, BidStatus.CANCELLED, BidStatus.EXPIRED}
    ),
    BidStatus.CONSUMED: frozenset(),
    BidStatus.CANCELLED: frozenset(),
    BidStatus.EXPIRED: frozenset(),
}

SESSION_TRANSITIONS: Mapping[SessionState, frozenset[SessionState]] = {
    SessionState.BOOKED: frozenset(
        {SessionState.IN_FLIGHT, SessionState.COMPLETED, SessionState.ABANDONED}
    ),
    SessionState.IN_FLIGHT: frozenset(
        {SessionState.COMPLETED, SessionState.ABANDONED}
    ),
    SessionState.COMPLETED: frozenset({SessionState.REPORTED}),
    SessionState.REPORTED: frozenset(),
    SessionState.ABANDONED: frozenset(),
}

REPORT_TRANSITIONS: Mapping[ReportStatus, frozenset[ReportStatus]] = {
    ReportStatus.PENDING: frozenset({ReportStatus.APPROVED, ReportStatus.REJECTED}),
    ReportStatus.APPROVED: frozenset(),
    ReportStatus.REJECTED: frozenset(),
}

AIRCRAFT_TRANSITIONS: Mapping[AircraftStatus, frozenset[AircraftStatus]] = {
    AircraftStatus.AVAILABLE: frozenset(
        {AircraftStatus.BOOKED, AircraftStatus.MAINTENANCE, AircraftStatus.GROUNDED}
    ),
    AircraftStatus.BOOKED: frozenset(
        {
            AircraftStatus.IN_FLIGHT,
            AircraftStatus.AVAILABLE,
            AircraftStatus.GROUNDED,
        }
    ),
    AircraftStatus.IN_FLIGHT: frozenset(
        {
            AircraftStatus.AVAILABLE,
            AircraftStatus.MAINTENANCE,
            AircraftStatus.GROUNDED,
        }
    ),
    AircraftStatus.MAINTENANCE: frozenset(
        {AircraftStatus.AVAILABLE, AircraftStatus.GROUNDED}
    ),
    AircraftStatus.GROUNDED: frozenset(
        {AircraftStatus.AVAILABLE, AircraftStatus.MAINTENANCE}
    ),
}

_TABLES: dict[type, Mapping] = {
    BidStatus: BID_TRANSITIONS,
    SessionState: SESSION_TRANSITIONS,
    ReportStatus: REPORT_TRANSITIONS,
    AircraftStatus: AIRCRAFT_TRANSITIONS,
}

TERMINAL_SESSION_STATES = frozenset(
    state for state, targets in SESSION_TRANSITIONS.items() if not targets
)
OPEN_SESSION_STATES = frozenset({SessionState.BOOKED, SessionState.IN_FLIGHT})

StateT = TypeVar("StateT", BidStatus, SessionState, ReportStatus, AircraftStatus)


def can_transition(current: StateT, target: StateT) -> bool:
    """Return True when ``current -> target`` is listed in the entity's table."""

    if current == target:
        return False
    table = _TABLES[type(current)]
    return target in table[current]


def ensure_transition(current: StateT, target: StateT, *, entity: str) -> StateT:
    """Return ``target`` or raise ``InvalidTransition`` naming both states."""

    if not can_transition(current, target):
        raise InvalidTransition(
            f"{entity} cannot move from '{current.value}' to '{target.value}'"
        )
    return target


def is_terminal(state: StateT) -> bool:
    return not _TABLES[type(state)][state]


__all__ = [
    "BidStatus",
    "SessionState",
    "ReportStatus",
    "ReportChannel",
    "AircraftStatus",
    "RepairTier",
    "BID_TRANSITIONS",
    "SESSION_TRANSITIONS",
    "REPORT_TRANSITIONS",
    "AIRCRAFT_TRANSITIONS",
    "TERMINAL_SESSION_STATES",
    "OPEN_SESSION_STATES",
    "can_transition",
    "ensure_transition",
    "is_terminal",
]
