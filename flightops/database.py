"""Async engine, session scopes and the unit-of-work helper."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from flightops.config.settings import settings

# Models must be registered on Base.metadata before create_all runs
from flightops.models import VAULT_ID, AirlineVault, Base

logger = logging.getLogger(__name__)

_TX_DEPTH_KEY = "flightops.tx_depth"


def _create_engine() -> AsyncEngine:
    options: dict[str, Any] = {
        "echo": settings.debug,
        "pool_pre_ping": True,
    }
    if settings.database.serverless or settings.debug:
        # Serverless Postgres suspends idle computes; hold no pooled connections.
        options["poolclass"] = NullPool

    return create_async_engine(settings.database.url, **options)


engine: AsyncEngine = _create_engine()

SessionFactory = async_sessionmaker(
    engine,
    expire_on_commit=False,
    class_=AsyncSession,
)


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """Session for background jobs and scripts; closed on exit."""

    async with SessionFactory() as session:
        yield session


async def get_session() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency: one session per request."""

    async with SessionFactory() as session:
        yield session


@asynccontextmanager
async def transaction(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Commit the unit of work on success, roll everything back on any error.

    Nested calls join the outermost unit of work; only the outermost block
    commits or rolls back.
    """

    depth = session.info.get(_TX_DEPTH_KEY, 0)
    session.info[_TX_DEPTH_KEY] = depth + 1
    try:
        yield session
    except BaseException:
        session.info[_TX_DEPTH_KEY] = depth
        if depth == 0:
            await session.rollback()
        raise
    session.info[_TX_DEPTH_KEY] = depth
    if depth == 0:
        await session.commit()


async def ensure_vault(session: AsyncSession, initial_balance: float) -> AirlineVault:
    """Create the airline vault row on first start."""

    vault = await session.get(AirlineVault, VAULT_ID)
    if vault is None:
        vault = AirlineVault(id=VAULT_ID, balance=initial_balance)
        session.add(vault)
        await session.commit()
        logger.info("Seeded airline vault with %.2f credits.", initial_balance)
    return vault


async def init_models() -> None:
    """Create missing tables and seed the vault."""

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with session_scope() as session:
        await ensure_vault(session, settings.economics.initial_vault_balance)

    logger.info("Database schema ensured (%s).", engine.url.render_as_string(hide_password=True))


async def dispose_engine() -> None:
    await engine.dispose()


__all__ = [
    "engine",
    "SessionFactory",
    "session_scope",
    "get_session",
    "transaction",
    "ensure_vault",
    "init_models",
    "dispose_engine",
]
