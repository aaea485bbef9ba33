"""User model definitions."""

from sqlalchemy import Boolean, Column, Integer, String
from sqlalchemy.orm import validates
from clinic_scheduling.database import Base

PROVIDER_ROLES = ('doctor', 'nurse')


def normalize_email(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip().lower()


class User(Base):
    """Represents a clinic staff member or patient within one organization."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(Integer, nullable=False, index=True)
    email = Column(String, unique=True, index=True)
    first_name = Column(String)
    last_name = Column(String)
    role = Column(String, nullable=False, default='patient')  # admin/doctor/nurse/receptionist/patient
    is_active = Column(Boolean, nullable=False, default=True)

    @validates('email')
    def validate_email(self, key, value):
        # Token subjects are matched lower-case, so stored emails must be too.
        return normalize_email(value)

    @property
    def is_provider(self) -> bool:
        return (self.role or '') in PROVIDER_ROLES
