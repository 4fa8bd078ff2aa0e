"""SimBrief OFP fetcher used by the flight-plan import endpoint."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

import httpx

from flightops.config.settings import SimBriefConfig, settings
from flightops.domain.errors import FlightOpsError, NotFound, ValidationError
from flightops.domain.models import FlightSpec

logger = logging.getLogger(__name__)


class SimBriefError(FlightOpsError):
    """SimBrief could not be reached or answered with something unusable."""

    status_code = 502


def _as_int(value: Any) -> int:
    try:
        return max(int(float(value)), 0)
    except (TypeError, ValueError):
        return 0


def _section(payload: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = payload.get(key)
    return value if isinstance(value, Mapping) else {}


def parse_ofp(payload: Mapping[str, Any], *, fallback_callsign: str) -> FlightSpec:
    """Map a SimBrief ``json=v2`` OFP onto a ``FlightSpec``."""

    general = _section(payload, "general")
    atc = _section(payload, "atc")
    origin = _section(payload, "origin")
    destination = _section(payload, "destination")
    aircraft = _section(payload, "aircraft")
    weights = _section(payload, "weights")
    fuel = _section(payload, "fuel")
    times = _section(payload, "times")
    params = _section(payload, "params")

    callsign = atc.get("callsign") or fallback_callsign
    flight_number = general.get("flight_number") or atc.get("callsign") or None
    if flight_number and general.get("icao_airline") and str(flight_number).isdigit():
        flight_number = f"{general['icao_airline']}{flight_number}"

    return FlightSpec(
        callsign=str(callsign),
        flight_number=str(flight_number) if flight_number else None,
        departure=str(origin.get("icao_code") or ""),
        arrival=str(destination.get("icao_code") or ""),
        aircraft_type=str(aircraft.get("icaocode") or aircraft.get("icao_code") or ""),
        aircraft_registration=str(aircraft.get("reg") or "") or None,
        route=str(general.get("route") or "") or None,
        planned_fuel=_as_int(fuel.get("plan_ramp")),
        planned_flight_time=_as_int(times.get("est_time_enroute")) // 60,
        distance=_as_int(general.get("air_distance") or general.get("route_distance")),
        pax=_as_int(weights.get("pax_count")),
        cargo=_as_int(weights.get("cargo")),
        simbrief_ofp_id=str(params.get("request_id") or params.get("ofp_id") or "") or None,
    )


class SimBriefClient:
    """Fetch the latest operational flight plan for a SimBrief user."""

    def __init__(
        self,
        config: Optional[SimBriefConfig] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config or settings.simbrief
        self._transport = transport

    async def fetch_latest(self, simbrief_id: Optional[str], *, fallback_callsign: str) -> FlightSpec:
        if not simbrief_id:
            raise ValidationError(
                "SimBrief ID not configured. Please add your SimBrief ID in Settings."
            )

        async with httpx.AsyncClient(
            transport=self._transport,
            timeout=self._config.timeout_seconds,
        ) as client:
            try:
                response = await client.get(
                    self._config.base_url,
                    params={"userid": simbrief_id, "json": "v2"},
                )
                response.raise_for_status()
                payload = response.json()
            except httpx.HTTPStatusError as exc:
                logger.warning("SimBrief returned HTTP %s", exc.response.status_code)
                raise SimBriefError(
                    f"Failed to fetch from SimBrief (HTTP {exc.response.status_code})"
                ) from exc
            except httpx.RequestError as exc:
                logger.warning("SimBrief unreachable: %s", exc)
                raise SimBriefError(f"Unable to connect to SimBrief: {exc}") from exc
            except ValueError as exc:
                raise SimBriefError(f"Invalid response from SimBrief: {exc}") from exc

        status = _section(payload, "fetch").get("status")
        if status != "Success":
            raise NotFound(
                "No SimBrief flight plan found. Create a flight plan on SimBrief.com first."
            )

        spec = parse_ofp(payload, fallback_callsign=fallback_callsign)
        logger.info(
            "Fetched SimBrief OFP %s for user %s: %s-%s (%s)",
            spec.simbrief_ofp_id,
            simbrief_id,
            spec.departure,
            spec.arrival,
            spec.aircraft_type,
        )
        return spec


__all__ = ["SimBriefClient", "SimBriefError", "parse_ofp"]
