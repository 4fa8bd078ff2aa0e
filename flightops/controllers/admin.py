"""Airline administration: vault balance and maintenance policy."""

from __future__ import annotations

import logging

from fastapi import APIRouter

from flightops.config.settings import MaintenanceConfig, reload_maintenance_config, settings
from flightops.controllers.dependencies import AdminDep, SessionDep
from flightops.database import transaction
from flightops.services import EconomicsLedger, FleetRegistry
from flightops.views import MaintenanceConfigResponse, VaultResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


def _config_response(config: MaintenanceConfig, resynced: int = 0) -> MaintenanceConfigResponse:
    return MaintenanceConfigResponse(
        groundedThreshold=config.grounded_threshold,
        repairMargin=config.repair_margin,
        repairRatePerPercent=config.repair_rate_per_percent,
        autoRejectLandingRate=config.auto_reject_landing_rate,
        baseDecayPerFlight=config.base_decay_per_flight,
        landingPenaltySoftLimit=config.landing_penalty_soft_limit,
        landingPenaltyPer100fpm=config.landing_penalty_per_100fpm,
        resynced=resynced,
    )


@router.get("/vault", response_model=VaultResponse)
async def get_vault(session: SessionDep, _admin: AdminDep) -> VaultResponse:
    balance = await EconomicsLedger(session).vault_balance()
    return VaultResponse(balance=balance)


@router.get("/maintenance-config", response_model=MaintenanceConfigResponse)
async def get_maintenance_config(_admin: AdminDep) -> MaintenanceConfigResponse:
    return _config_response(settings.maintenance)


@router.post("/maintenance-config/reload", response_model=MaintenanceConfigResponse)
async def reload_maintenance(
    session: SessionDep,
    admin: AdminDep,
) -> MaintenanceConfigResponse:
    """Re-read MAINTENANCE_* settings and re-evaluate every aircraft's grounding."""

    config = reload_maintenance_config()
    async with transaction(session):
        resynced = await FleetRegistry(session).resync_grounding()
    logger.info(
        "Maintenance config reloaded by %s: threshold %.1f%%, %d aircraft resynced",
        admin.pilot_id,
        config.grounded_threshold,
        resynced,
    )
    return _config_response(config, resynced)
