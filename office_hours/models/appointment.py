"""Appointment model definitions."""

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, text
from office_hours.database import Base
from office_hours.models.availability_slot import utc_now


CONFIRMED_STATUS = "confirmed"
CANCELLED_STATUS = "cancelled"


class Appointment(Base):
    """One booking against a slot for a specific ISO week.

    ``slot_id`` is not a foreign key: the slot may be edited or deleted later
    while the appointment keeps its own copy of day, time and location.
    """
    __tablename__ = "appointments"
    __table_args__ = (
        Index(
            "uq_appointments_slot_week_confirmed",
            "slot_id",
            "week_number",
            "year",
            unique=True,
            postgresql_where=text("status = 'confirmed'"),
            sqlite_where=text("status = 'confirmed'"),
        ),
        Index("idx_appointments_week", "year", "week_number", "status"),
    )

    id = Column(Integer, primary_key=True)
    slot_id = Column(Integer, nullable=False, index=True)
    student_id = Column(String(64), ForeignKey("profiles.id"), nullable=False, index=True)
    professor_id = Column(String(64), ForeignKey("profiles.id"), nullable=False, index=True)
    day = Column(String, nullable=False)
    start_time = Column(String(5), nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    modality = Column(String, nullable=False)
    location = Column(String, nullable=False, default="")
    status = Column(String, nullable=False, default=CONFIRMED_STATUS)
    notes = Column(String)
    week_number = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)
