"""Availability slot model definitions."""

from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String
from office_hours.database import Base


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AvailabilitySlot(Base):
    """A professor's recurring weekly office-hours block."""
    __tablename__ = "available_slots"
    # Appointments keep a bare slot_id, so ids must never be reused.
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True)
    professor_id = Column(String(64), ForeignKey("profiles.id"), nullable=False, index=True)
    day = Column(String, nullable=False)
    start_time = Column(String(5), nullable=False)  # HH:MM
    duration_minutes = Column(Integer, nullable=False)
    modalities = Column(JSON, nullable=False)
    location = Column(String, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)
