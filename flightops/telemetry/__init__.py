"""Telemetry helpers and metrics."""

from .metrics import (
    BIDS_CREATED,
    BIDS_EXPIRED,
    CONCURRENCY_CONFLICTS,
    ERROR_COUNTER,
    PIREP_DECISIONS,
    REPAIRS,
    REQUEST_COUNT,
    REQUEST_LATENCY,
    SETTLEMENTS,
    TELEMETRY_DROPPED,
    observe_request,
    record_conflict,
    record_decision,
    record_telemetry_drop,
)

__all__ = [
    "BIDS_CREATED",
    "BIDS_EXPIRED",
    "CONCURRENCY_CONFLICTS",
    "ERROR_COUNTER",
    "PIREP_DECISIONS",
    "REPAIRS",
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "SETTLEMENTS",
    "TELEMETRY_DROPPED",
    "observe_request",
    "record_conflict",
    "record_decision",
    "record_telemetry_drop",
]
