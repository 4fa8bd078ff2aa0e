"""SQLAlchemy model for pilots."""

from __future__ import annotations

from sqlalchemy import Column, DateTime, Float, Integer, String

from flightops.domain.rules import utcnow
from flightops.models.base import Base


class Pilot(Base):
    __tablename__ = "pilots"

    id = Column(Integer, primary_key=True, index=True)
    pilot_code = Column(String(16), unique=True, nullable=False, index=True)
    first_name = Column(String(50), nullable=False, default="")
    last_name = Column(String(50), nullable=False, default="")
    flight_hours = Column(Float, nullable=False, default=0.0)
    balance = Column(Float, nullable=False, default=0.0)
    current_location = Column(String(4), nullable=True)
    simbrief_id = Column(String(32), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    @property
    def display_name(self) -> str:
        full_name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return full_name or self.pilot_code


__all__ = ["Pilot"]
