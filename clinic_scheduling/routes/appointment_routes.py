import logging
from datetime import date, datetime, time, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_scheduling.auth.dependencies import get_current_user
from clinic_scheduling.database import get_db
from clinic_scheduling.models.appointment import CANCELLED_STATUS, Appointment
from clinic_scheduling.models.user import User
from clinic_scheduling.routes.common import database_unavailable, ensure_database_ready
from clinic_scheduling.scheduling.availability import BOOKED, NO_SHIFT_DEFINED, OUTSIDE_SHIFT
from clinic_scheduling.scheduling.loader import build_availability_view

router = APIRouter(tags=['appointments'])

logger = logging.getLogger(__name__)

APPOINTMENT_TYPES = ('consultation', 'follow_up', 'procedure', 'emergency', 'routine_checkup')
DEFAULT_APPOINTMENT_DURATION_MINUTES = 30
MAX_APPOINTMENT_DURATION_MINUTES = 480
MAX_DESCRIPTION_LENGTH = 2000
SLOT_ALREADY_BOOKED_DETAIL = 'This time is already booked for the selected provider.'


class CreateAppointmentRequest(BaseModel):
    provider_id: int
    patient_id: int
    title: str
    scheduled_at: datetime
    duration: int = DEFAULT_APPOINTMENT_DURATION_MINUTES
    type: str = 'consultation'
    description: str | None = None

    @field_validator('title')
    @classmethod
    def validate_title(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Appointment title is required.')
        return normalized

    @field_validator('scheduled_at')
    @classmethod
    def validate_scheduled_at(cls, value: datetime) -> datetime:
        # Stored as clinic-local wall time; any offset supplied by the client is dropped.
        return value.replace(second=0, microsecond=0, tzinfo=None)

    @field_validator('duration')
    @classmethod
    def validate_duration(cls, value: int) -> int:
        if value <= 0 or value > MAX_APPOINTMENT_DURATION_MINUTES:
            raise ValueError(f'Duration must be between 1 and {MAX_APPOINTMENT_DURATION_MINUTES} minutes.')
        return value

    @field_validator('type')
    @classmethod
    def validate_type(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in APPOINTMENT_TYPES:
            raise ValueError('Invalid appointment type.')
        return normalized

    @field_validator('description')
    @classmethod
    def validate_description(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > MAX_DESCRIPTION_LENGTH:
            raise ValueError(f'Description must be {MAX_DESCRIPTION_LENGTH} characters or fewer.')

        return normalized


class AppointmentResponse(BaseModel):
    id: int
    provider_id: int
    patient_id: int
    title: str
    description: str | None = None
    scheduled_at: datetime
    end_at: datetime
    duration: int
    status: str
    type: str

    class Config:
        from_attributes = True


def to_response(appointment: Appointment) -> AppointmentResponse:
    return AppointmentResponse(
        id=appointment.id,
        provider_id=appointment.provider_id,
        patient_id=appointment.patient_id,
        title=appointment.title,
        description=appointment.description,
        scheduled_at=appointment.scheduled_at,
        end_at=appointment.scheduled_at + timedelta(minutes=appointment.duration or DEFAULT_APPOINTMENT_DURATION_MINUTES),
        duration=appointment.duration or DEFAULT_APPOINTMENT_DURATION_MINUTES,
        status=appointment.status or 'scheduled',
        type=appointment.type or 'consultation',
    )


@router.get('', response_model=list[AppointmentResponse])
def list_appointments(
    provider_id: int | None = Query(default=None),
    appointment_date: date | None = Query(default=None, alias='date'),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        query = db.query(Appointment).filter(Appointment.organization_id == current_user.organization_id)
        if provider_id is not None:
            query = query.filter(Appointment.provider_id == provider_id)
        if appointment_date is not None:
            day_start = datetime.combine(appointment_date, time(0, 0))
            query = query.filter(
                Appointment.scheduled_at >= day_start,
                Appointment.scheduled_at < day_start + timedelta(days=1),
            )

        appointments = query.order_by(Appointment.scheduled_at.asc(), Appointment.id.asc()).all()
        return [to_response(appointment) for appointment in appointments]
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: CreateAppointmentRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    scheduled_at = data.scheduled_at
    if scheduled_at <= datetime.now():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Appointments must be scheduled in the future.',
        )

    try:
        provider = db.query(User).filter(
            User.id == data.provider_id,
            User.organization_id == current_user.organization_id,
            User.is_active.is_(True),
        ).first()
        if not provider or not provider.is_provider:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Provider not found.',
            )

        view = build_availability_view(
            db,
            current_user.organization_id,
            [data.provider_id],
            scheduled_at.date(),
        )
        reason = view.check(data.provider_id, scheduled_at.date(), scheduled_at.time())

        if reason == NO_SHIFT_DEFINED:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='The selected provider is not working on this date.',
            )
        if reason == OUTSIDE_SHIFT:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='The requested time is outside the provider\'s shift or off the booking grid.',
            )
        if reason == BOOKED:
            logger.info('Rejected booking for provider %s at %s: slot taken', data.provider_id, scheduled_at)
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=SLOT_ALREADY_BOOKED_DETAIL,
            )

        appointment = Appointment(
            organization_id=current_user.organization_id,
            provider_id=data.provider_id,
            patient_id=data.patient_id,
            title=data.title,
            description=data.description,
            scheduled_at=scheduled_at,
            duration=data.duration,
            status='scheduled',
            type=data.type,
            created_by=current_user.id,
        )
        db.add(appointment)
        db.commit()
        db.refresh(appointment)

        return to_response(appointment)
    except IntegrityError as exc:
        # Another request booked the same start between the availability read and this insert.
        db.rollback()
        logger.info('Concurrent booking for provider %s at %s lost the race', data.provider_id, scheduled_at)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=SLOT_ALREADY_BOOKED_DETAIL,
        ) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to create appointment for provider %s', data.provider_id)
        raise database_unavailable() from exc


@router.post('/{appointment_id}/cancel', response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = db.query(Appointment).filter(
            Appointment.id == appointment_id,
            Appointment.organization_id == current_user.organization_id,
        ).first()

        if not appointment:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Appointment not found.',
            )

        if appointment.status == CANCELLED_STATUS:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='Appointment is already cancelled.',
            )

        appointment.status = CANCELLED_STATUS
        db.commit()
        db.refresh(appointment)

        return to_response(appointment)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to cancel appointment %s', appointment_id)
        raise database_unavailable() from exc
