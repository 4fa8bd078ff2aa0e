"""FastAPI routers acting as controllers in the MVC architecture."""

from . import admin, bids, fleet, pireps, sessions

__all__ = ["admin", "bids", "fleet", "pireps", "sessions"]
