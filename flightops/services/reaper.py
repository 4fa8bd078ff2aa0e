"""Periodic sweep of expired bids and idle flight sessions."""

from __future__ import annotations

import asyncio
import logging
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from flightops.config.settings import settings
from flightops.database import session_scope
from flightops.services.bids import BidManager
from flightops.services.flight_sessions import FlightSessionService

logger = logging.getLogger(__name__)

SessionProvider = Callable[[], AbstractAsyncContextManager[AsyncSession]]


@dataclass(frozen=True)
class SweepResult:
    expired_bids: int
    abandoned_sessions: int


class ExpirationReaper:
    """Runs ``run_once`` every ``interval`` seconds until stopped.

    Expiry is also evaluated lazily on every read, so the sweep only keeps
    listings fresh; a failed tick is logged and the loop carries on.
    """

    def __init__(
        self,
        *,
        interval: Optional[float] = None,
        session_provider: SessionProvider = session_scope,
    ) -> None:
        self._interval = interval or settings.operations.reaper_interval_seconds
        self._session_provider = session_provider
        self._task: Optional[asyncio.Task] = None
        self._stop_evt = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> SweepResult:
        async with self._session_provider() as session:
            expired = await BidManager(session).reap_expired()
            abandoned = await FlightSessionService(session).abandon_idle()
        if expired or abandoned:
            logger.info(
                "Sweep expired %d bid(s) and abandoned %d session(s)",
                expired,
                abandoned,
            )
        return SweepResult(expired_bids=expired, abandoned_sessions=abandoned)

    def start(self) -> None:
        if self.running:
            return
        self._stop_evt = asyncio.Event()
        self._task = asyncio.create_task(self._run(), name="expiration-reaper")
        logger.info("Expiration reaper started (every %.0fs)", self._interval)

    async def stop(self) -> None:
        self._stop_evt.set()
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        except Exception:
            logger.exception("Expiration reaper ended with an error")
        self._task = None
        logger.info("Expiration reaper stopped")

    async def _run(self) -> None:
        while not self._stop_evt.is_set():
            try:
                await self.run_once()
            except Exception:
                logger.exception("Expiration sweep failed; retrying next tick")
            try:
                await asyncio.wait_for(self._stop_evt.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                continue


__all__ = ["ExpirationReaper", "SweepResult"]
