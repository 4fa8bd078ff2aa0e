"""SQLAlchemy model for fleet aircraft."""

from __future__ import annotations

from sqlalchemy import Column, DateTime, Float, Integer, String
from sqlalchemy import Enum as SqlEnum

from flightops.domain.rules import utcnow
from flightops.domain.states import AircraftStatus
from flightops.models.base import Base, enum_values


class Aircraft(Base):
    __tablename__ = "aircraft"

    id = Column(Integer, primary_key=True, index=True)
    registration = Column(String(16), unique=True, nullable=False, index=True)
    aircraft_type = Column(String(8), nullable=False, index=True)
    name = Column(String(80), nullable=True)
    home_location = Column(String(4), nullable=False)
    current_location = Column(String(4), nullable=False, index=True)
    condition = Column(Float, nullable=False, default=100.0)
    status = Column(
        SqlEnum(AircraftStatus, name="aircraft_status", values_callable=enum_values),
        nullable=False,
        default=AircraftStatus.AVAILABLE,
    )
    total_hours = Column(Float, nullable=False, default=0.0)
    flight_count = Column(Integer, nullable=False, default=0)
    grounded_reason = Column(String(255), nullable=True)
    last_service_at = Column(DateTime, nullable=True)
    # Bumped on every condition/status write; compare-and-swap guard.
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


__all__ = ["Aircraft"]
