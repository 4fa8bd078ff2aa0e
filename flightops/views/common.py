"""Shared response schemas."""

from typing import Optional

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Body of every rejected request: a readable reason plus the error class."""

    detail: str
    code: Optional[str] = None
