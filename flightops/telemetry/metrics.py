"""Prometheus series for HTTP traffic and the flight lifecycle."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "http_requests_total",
    "HTTP requests by method, route template and status",
    ("method", "route", "status"),
)

REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ("method", "route"),
    buckets=(
        0.005,
        0.01,
        0.025,
        0.05,
        0.1,
        0.25,
        0.5,
        1.0,
        2.5,
        5.0,
        10.0,
    ),
)

ERROR_COUNTER = Counter(
    "flightops_http_server_errors_total",
    "Requests answered with a 5xx status",
    ("method", "route"),
)

BIDS_CREATED = Counter(
    "flightops_bids_created_total",
    "Number of bids created",
)

BIDS_EXPIRED = Counter(
    "flightops_bids_expired_total",
    "Number of active bids moved to expired",
)

PIREP_DECISIONS = Counter(
    "flightops_pirep_decisions_total",
    "Adjudication outcomes by submission channel and status",
    ("channel", "status"),
)

SETTLEMENTS = Counter(
    "flightops_settlements_total",
    "Number of approved reports settled into the ledger",
)

REPAIRS = Counter(
    "flightops_repairs_total",
    "Number of aircraft repairs paid from the vault",
    ("tier",),
)

TELEMETRY_DROPPED = Counter(
    "flightops_telemetry_dropped_total",
    "Telemetry samples discarded without effect",
    ("reason",),
)

CONCURRENCY_CONFLICTS = Counter(
    "flightops_concurrency_conflicts_total",
    "Optimistic concurrency version mismatches",
    ("entity",),
)


def observe_request(
    method: str,
    route: str,
    status_code: int,
    duration_seconds: float,
) -> None:
    """Count and time one HTTP request against its route template."""

    labels = {"method": method or "UNKNOWN", "route": route or "unmatched"}
    REQUEST_COUNT.labels(status=str(status_code), **labels).inc()
    REQUEST_LATENCY.labels(**labels).observe(max(duration_seconds, 0.0))
    if status_code >= 500:
        ERROR_COUNTER.labels(**labels).inc()


def record_decision(channel: str, status: str) -> None:
    PIREP_DECISIONS.labels(channel=channel, status=status).inc()


def record_telemetry_drop(reason: str) -> None:
    TELEMETRY_DROPPED.labels(reason=reason).inc()


def record_conflict(entity: str) -> None:
    CONCURRENCY_CONFLICTS.labels(entity=entity).inc()
