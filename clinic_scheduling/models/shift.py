"""Shift model definitions.

Two tables feed the shift resolver: ``staff_shifts`` holds date-specific
overrides and ``doctor_default_shifts`` holds the recurring weekly pattern.
"""

from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    Time,
    UniqueConstraint,
)
from clinic_scheduling.database import Base

SHIFT_TYPES = ('regular', 'overtime', 'on_call', 'absent')


class ShiftOverride(Base):
    """Working hours for one provider on one calendar date."""
    __tablename__ = "staff_shifts"
    __table_args__ = (
        UniqueConstraint('organization_id', 'staff_id', 'date', name='uq_staff_shifts_staff_date'),
    )

    id = Column(Integer, primary_key=True)
    organization_id = Column(Integer, nullable=False, index=True)
    staff_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    date = Column(Date, nullable=False)
    shift_type = Column(String(20), nullable=False, default='regular')
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    is_available = Column(Boolean, nullable=False, default=True)
    notes = Column(Text)
    created_by = Column(Integer, ForeignKey("users.id"))
    created_at = Column(DateTime, default=datetime.now, nullable=False)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now, nullable=False)


class RecurringDefault(Base):
    """Standing weekly working hours for a provider."""
    __tablename__ = "doctor_default_shifts"

    id = Column(Integer, primary_key=True)
    organization_id = Column(Integer, nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    working_days = Column(JSON, nullable=False, default=list)  # e.g. ["Monday", "Wednesday"]
    created_at = Column(DateTime, default=datetime.now, nullable=False)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now, nullable=False)
