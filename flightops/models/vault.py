"""SQLAlchemy model for the airline-wide funds vault."""

from __future__ import annotations

from sqlalchemy import Column, DateTime, Float, Integer

from flightops.domain.rules import utcnow
from flightops.models.base import Base

VAULT_ID = 1


class AirlineVault(Base):
    """Single-row table; balance only ever moves through atomic UPDATEs."""

    __tablename__ = "airline_vault"

    id = Column(Integer, primary_key=True, default=VAULT_ID)
    balance = Column(Float, nullable=False, default=0.0)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


__all__ = ["AirlineVault", "VAULT_ID"]
