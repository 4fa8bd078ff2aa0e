"""Request instrumentation feeding the Prometheus registry."""

from __future__ import annotations

import time
from typing import Any

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from flightops.telemetry import observe_request

UNMATCHED_ROUTE = "unmatched"


class TelemetryMiddleware(BaseHTTPMiddleware):
    """Count and time every request by method and route template."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        start_time = time.perf_counter()
        method = request.method

        try:
            response = await call_next(request)
        except Exception:
            observe_request(
                method,
                self._route_label(request),
                500,
                time.perf_counter() - start_time,
            )
            raise

        observe_request(
            method,
            self._route_label(request),
            response.status_code,
            time.perf_counter() - start_time,
        )
        return response

    @staticmethod
    def _route_label(request: Request) -> str:
        """Return the matched path template, e.g. ``/sessions/{session_id}/telemetry``.

        Raw paths carry session and report ids, so unmatched requests share a
        single label instead of one series per URL.
        """

        scope_route: Any = request.scope.get("route")
        path = getattr(scope_route, "path", None) if scope_route is not None else None
        return path or UNMATCHED_ROUTE
