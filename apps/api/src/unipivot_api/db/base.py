from datetime import datetime, timezone

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Declarative base shared by every unipivot model."""


def utcnow() -> datetime:
    """Column default so time-window queries compare against the same clock as inserts."""

    return datetime.now(timezone.utc)
