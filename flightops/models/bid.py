"""SQLAlchemy model for flight reservations (bids)."""

from __future__ import annotations

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy import Enum as SqlEnum

from flightops.domain.rules import utcnow
from flightops.domain.states import BidStatus
from flightops.models.base import Base, enum_values


class Bid(Base):
    __tablename__ = "bids"

    id = Column(Integer, primary_key=True, index=True)
    pilot_id = Column(
        Integer,
        ForeignKey("pilots.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    callsign = Column(String(16), nullable=False)
    flight_number = Column(String(16), nullable=True)
    departure = Column(String(4), nullable=False)
    arrival = Column(String(4), nullable=False)
    aircraft_type = Column(String(8), nullable=False)
    aircraft_registration = Column(String(16), nullable=True)
    route = Column(Text, nullable=True)
    planned_fuel = Column(Integer, nullable=False, default=0)
    planned_flight_time = Column(Integer, nullable=False, default=0)
    distance = Column(Integer, nullable=False, default=0)
    pax = Column(Integer, nullable=False, default=0)
    cargo = Column(Integer, nullable=False, default=0)
    simbrief_ofp_id = Column(String(64), nullable=True)
    status = Column(
        SqlEnum(BidStatus, name="bid_status", values_callable=enum_values),
        nullable=False,
        default=BidStatus.ACTIVE,
    )
    created_at = Column(DateTime, nullable=False, default=utcnow)
    expires_at = Column(DateTime, nullable=False, index=True)
    closed_at = Column(DateTime, nullable=True)

    __table_args__ = (
        # At most one active bid per pilot.
        Index(
            "uq_bids_active_pilot",
            "pilot_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
    )


__all__ = ["Bid"]
