"""Error taxonomy shared by the flight lifecycle services.

Every error carries a human readable ``reason`` that is returned to the
caller verbatim; the HTTP status is attached to the class so the API layer
can render it without a lookup table.
"""

from __future__ import annotations


class FlightOpsError(Exception):
    """Base class for domain failures surfaced to callers."""

    status_code: int = 400

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason

    @property
    def code(self) -> str:
        return type(self).__name__


class ValidationError(FlightOpsError):
    """Malformed or missing input the pilot can correct."""

    status_code = 422


class MissingProof(ValidationError):
    """Manual submission without a tracker link or screenshot."""


class FleetViolation(FlightOpsError):
    """Business rule rejection tied to the aircraft type or availability."""

    status_code = 422


class DuplicateBid(FlightOpsError):
    status_code = 409


class AlreadyConsumed(FlightOpsError):
    status_code = 409


class BidExpired(FlightOpsError):
    status_code = 410


class InvalidState(FlightOpsError):
    status_code = 409


class InvalidTransition(FlightOpsError):
    status_code = 409


class InsufficientFunds(FlightOpsError):
    status_code = 402


class ConcurrentModification(FlightOpsError):
    """Optimistic concurrency check kept failing; retry the whole operation."""

    status_code = 409


class NotFound(FlightOpsError):
    status_code = 404


__all__ = [
    "FlightOpsError",
    "ValidationError",
    "MissingProof",
    "FleetViolation",
    "DuplicateBid",
    "AlreadyConsumed",
    "BidExpired",
    "InvalidState",
    "InvalidTransition",
    "InsufficientFunds",
    "ConcurrentModification",
    "NotFound",
]
