"""Cached daily rate snapshot model."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RateSnapshotRecord(Base):
    __tablename__ = "fx_rate_snapshot"

    date: Mapped[str] = mapped_column(String(10), primary_key=True)
    rates: Mapped[dict[str, float]] = mapped_column(JSON)
    stored_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
