"""Declarative base shared by every SQLAlchemy model."""

from __future__ import annotations

from enum import Enum
from typing import Type

from sqlalchemy.orm import declarative_base

Base = declarative_base()


def enum_values(enum_cls: Type[Enum]) -> list[str]:
    """Persist enum values (``"active"``) rather than member names (``"ACTIVE"``)."""

    return [member.value for member in enum_cls]


__all__ = ["Base", "enum_values"]
