"""SQLAlchemy model for pilot reports (PIREPs)."""

from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy import Enum as SqlEnum

from flightops.domain.rules import utcnow
from flightops.domain.states import ReportChannel, ReportStatus
from flightops.models.base import Base, enum_values


class Pirep(Base):
    __tablename__ = "pireps"

    id = Column(Integer, primary_key=True, index=True)
    pilot_id = Column(
        Integer,
        ForeignKey("pilots.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    bid_id = Column(Integer, ForeignKey("bids.id", ondelete="SET NULL"), nullable=True)
    session_id = Column(
        Integer,
        ForeignKey("flight_sessions.id", ondelete="SET NULL"),
        nullable=True,
        unique=True,
    )
    aircraft_id = Column(
        Integer,
        ForeignKey("aircraft.id", ondelete="SET NULL"),
        nullable=True,
    )
    flight_number = Column(String(16), nullable=False)
    callsign = Column(String(16), nullable=False)
    departure = Column(String(4), nullable=False)
    arrival = Column(String(4), nullable=False)
    aircraft_type = Column(String(16), nullable=False)
    flight_time = Column(Integer, nullable=False, default=0)
    landing_rate = Column(Integer, nullable=True)
    landing_grade = Column(String(16), nullable=True)
    fuel_used = Column(Integer, nullable=False, default=0)
    distance = Column(Integer, nullable=False, default=0)
    pax = Column(Integer, nullable=False, default=0)
    cargo = Column(Integer, nullable=False, default=0)
    tracker_link = Column(String(512), nullable=True)
    proof_image = Column(String(1024), nullable=True)
    comments = Column(Text, nullable=True)
    channel = Column(
        SqlEnum(ReportChannel, name="report_channel", values_callable=enum_values),
        nullable=False,
    )
    status = Column(
        SqlEnum(ReportStatus, name="report_status", values_callable=enum_values),
        nullable=False,
        default=ReportStatus.PENDING,
        index=True,
    )
    status_reason = Column(String(255), nullable=True)
    is_duplicate = Column(Boolean, nullable=False, default=False)
    revenue_passenger = Column(Float, nullable=False, default=0.0)
    revenue_cargo = Column(Float, nullable=False, default=0.0)
    expense_fuel = Column(Float, nullable=False, default=0.0)
    expense_airport = Column(Float, nullable=False, default=0.0)
    expense_pilot = Column(Float, nullable=False, default=0.0)
    expense_maintenance = Column(Float, nullable=False, default=0.0)
    net_profit = Column(Float, nullable=False, default=0.0)
    condition_delta = Column(Float, nullable=True)
    submitted_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    decided_at = Column(DateTime, nullable=True)
    decided_by = Column(Integer, nullable=True)
    review_notes = Column(Text, nullable=True)


__all__ = ["Pirep"]
