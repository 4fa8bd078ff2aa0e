"""Pydantic schemas for airline administration endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field


class VaultResponse(BaseModel):
    balance: float


class MaintenanceConfigResponse(BaseModel):
    groundedThreshold: float = Field(..., serialization_alias="groundedThreshold")
    repairMargin: float = Field(..., serialization_alias="repairMargin")
    repairRatePerPercent: float = Field(..., serialization_alias="repairRatePerPercent")
    autoRejectLandingRate: int = Field(..., serialization_alias="autoRejectLandingRate")
    baseDecayPerFlight: float = Field(..., serialization_alias="baseDecayPerFlight")
    landingPenaltySoftLimit: int = Field(..., serialization_alias="landingPenaltySoftLimit")
    landingPenaltyPer100fpm: float = Field(..., serialization_alias="landingPenaltyPer100fpm")
    resynced: int = 0
