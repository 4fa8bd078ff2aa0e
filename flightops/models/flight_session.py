"""SQLAlchemy model for tracked flight sessions."""

from __future__ import annotations

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy import Enum as SqlEnum

from flightops.domain.rules import utcnow
from flightops.domain.states import SessionState
from flightops.models.base import Base, enum_values


class FlightSession(Base):
    __tablename__ = "flight_sessions"

    id = Column(Integer, primary_key=True, index=True)
    pilot_id = Column(
        Integer,
        ForeignKey("pilots.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    bid_id = Column(
        Integer,
        ForeignKey("bids.id", ondelete="SET NULL"),
        nullable=True,
        unique=True,
    )
    aircraft_id = Column(
        Integer,
        ForeignKey("aircraft.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    state = Column(
        SqlEnum(SessionState, name="session_state", values_callable=enum_values),
        nullable=False,
        default=SessionState.BOOKED,
        index=True,
    )
    started_at = Column(DateTime, nullable=False, default=utcnow)
    first_sample_at = Column(DateTime, nullable=True)
    last_sample_at = Column(DateTime, nullable=True)
    last_activity_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    altitude = Column(Float, nullable=True)
    ground_speed = Column(Float, nullable=True)
    phase = Column(String(16), nullable=True)
    sample_count = Column(Integer, nullable=False, default=0)
    fuel_used = Column(Integer, nullable=True)
    landing_rate = Column(Integer, nullable=True)
    report_id = Column(Integer, nullable=True)
    ended_at = Column(DateTime, nullable=True)


__all__ = ["FlightSession"]
