"""SQLAlchemy declarative base shared by the rate store models."""

from __future__ import annotations

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Declarative base for the rate cache tables."""
