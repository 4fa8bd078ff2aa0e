"""SQLAlchemy models for the flight operations backend."""

from .base import Base
from .aircraft import Aircraft  # noqa: F401
from .bid import Bid  # noqa: F401
from .flight_session import FlightSession  # noqa: F401
from .pilot import Pilot  # noqa: F401
from .pirep import Pirep  # noqa: F401
from .vault import VAULT_ID, AirlineVault  # noqa: F401

__all__ = [
    "Base",
    "Pilot",
    "Aircraft",
    "Bid",
    "FlightSession",
    "Pirep",
    "AirlineVault",
    "VAULT_ID",
]
