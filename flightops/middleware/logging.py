"""Per-request access log naming the calling pilot."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import Request
from fastapi.security.utils import get_authorization_scheme_param
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from flightops.utils import AuthenticationError, decode_access_token

logger = logging.getLogger("flightops.middleware.structured")

_RESET = "\u001b[0m"
_STATUS_COLOURS = {
    2: "\u001b[32m",
    3: "\u001b[36m",
    4: "\u001b[33m",
    5: "\u001b[31m",
}


@dataclass(slots=True)
class PilotContext:
    """Identity claimed by the request's bearer token."""

    pilot_id: str
    is_admin: bool
    expires_at: Optional[datetime]


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """One coloured console line per request, plus a JSON record at debug level."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        started = time.perf_counter()
        record: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "method": request.method,
            "path": request.url.path,
            "client_ip": request.client.host if request.client else None,
        }
        pilot = self._resolve_pilot(request)
        if pilot is not None:
            record["pilot"] = asdict(pilot)

        try:
            response = await call_next(request)
        except Exception as exc:
            record.update(status_code=500, error=repr(exc))
            record["duration_ms"] = round((time.perf_counter() - started) * 1000, 2)
            logger.exception(self._console_line(record))
            raise

        record["status_code"] = response.status_code
        record["duration_ms"] = round((time.perf_counter() - started) * 1000, 2)
        logger.info(self._console_line(record))
        logger.debug(json.dumps(record, default=str, separators=(",", ":")))
        return response

    @staticmethod
    def _resolve_pilot(request: Request) -> Optional[PilotContext]:
        scheme, token = get_authorization_scheme_param(request.headers.get("authorization"))
        if scheme.lower() != "bearer" or not token:
            return None

        try:
            payload = decode_access_token(token)
        except AuthenticationError:
            # The route dependency answers 401; the log line stays anonymous.
            return None

        return PilotContext(
            pilot_id=payload.sub,
            is_admin=payload.admin,
            expires_at=payload.exp.astimezone(timezone.utc) if payload.exp else None,
        )

    @staticmethod
    def _console_line(record: dict[str, Any]) -> str:
        status = record.get("status_code") or 0
        colour = _STATUS_COLOURS.get(status // 100, _STATUS_COLOURS[3])
        pilot = record.get("pilot")
        who = "-"
        if pilot:
            who = f"pilot:{pilot['pilot_id']}" + (" (admin)" if pilot["is_admin"] else "")
        line = (
            f"{record['timestamp']} {record['method']} {record['path']} "
            f"{status} {record.get('duration_ms', 0)}ms "
            f"ip={record.get('client_ip') or '-'} {who}"
        )
        return f"{colour}{line}{_RESET}"
