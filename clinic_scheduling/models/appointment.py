"""Appointment model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text, text
from clinic_scheduling.database import Base

APPOINTMENT_STATUSES = ('scheduled', 'completed', 'cancelled', 'no_show', 'rescheduled')
CANCELLED_STATUS = 'cancelled'


class Appointment(Base):
    """Represents a scheduled appointment with a provider."""
    __tablename__ = "appointments"
    __table_args__ = (
        Index('idx_appointments_provider_scheduled', 'provider_id', 'scheduled_at'),
        Index(
            'uq_appointments_active_slot',
            'organization_id',
            'provider_id',
            'scheduled_at',
            unique=True,
            postgresql_where=text("status <> 'cancelled'"),
            sqlite_where=text("status <> 'cancelled'"),
        ),
    )

    id = Column(Integer, primary_key=True)
    organization_id = Column(Integer, nullable=False, index=True)
    provider_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    patient_id = Column(Integer, nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text)
    scheduled_at = Column(DateTime, nullable=False)
    duration = Column(Integer, nullable=False, default=30)  # minutes
    status = Column(String(20), nullable=False, default='scheduled')
    type = Column(String(20), nullable=False, default='consultation')
    created_by = Column(Integer)
    created_at = Column(DateTime, default=datetime.now, nullable=False)
