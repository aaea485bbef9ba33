import logging
from datetime import date, datetime, time

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator, model_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_scheduling.auth.dependencies import get_current_user, require_admin
from clinic_scheduling.core import config
from clinic_scheduling.database import get_db
from clinic_scheduling.models.shift import SHIFT_TYPES, RecurringDefault, ShiftOverride
from clinic_scheduling.models.user import User
from clinic_scheduling.routes.common import database_unavailable, ensure_database_ready
from clinic_scheduling.scheduling.shifts import WEEKDAY_NAMES

router = APIRouter(tags=['shifts'])

logger = logging.getLogger(__name__)


def normalize_working_days(days: list[str]) -> list[str]:
    normalized: set[str] = set()
    for day in days:
        name = day.strip().capitalize()
        if name not in WEEKDAY_NAMES:
            raise ValueError(f'Unknown weekday: {day!r}.')
        normalized.add(name)

    if not normalized:
        raise ValueError('At least one working day is required.')

    return [name for name in WEEKDAY_NAMES if name in normalized]


class CreateShiftRequest(BaseModel):
    staff_id: int
    date: date
    start_time: time
    end_time: time
    shift_type: str = 'regular'
    is_available: bool = True
    notes: str | None = None

    @field_validator('shift_type')
    @classmethod
    def validate_shift_type(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in SHIFT_TYPES:
            raise ValueError('Invalid shift type.')
        return normalized

    @model_validator(mode='after')
    def validate_window(self) -> 'CreateShiftRequest':
        if self.start_time >= self.end_time:
            raise ValueError('Shift start time must be before end time.')
        return self


class ShiftResponse(BaseModel):
    id: int
    staff_id: int
    date: date
    shift_type: str
    start_time: time
    end_time: time
    is_available: bool
    notes: str | None = None
    updated_at: datetime

    class Config:
        from_attributes = True


class UpdateDefaultShiftRequest(BaseModel):
    start_time: time | None = None
    end_time: time | None = None
    working_days: list[str] | None = None

    @field_validator('working_days')
    @classmethod
    def validate_working_days(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        return normalize_working_days(value)


class DefaultShiftResponse(BaseModel):
    id: int
    user_id: int
    start_time: time
    end_time: time
    working_days: list[str]
    updated_at: datetime

    class Config:
        from_attributes = True


def get_organization_member(db: Session, organization_id: int, user_id: int) -> User:
    member = db.query(User).filter(
        User.id == user_id,
        User.organization_id == organization_id,
    ).first()

    if not member:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Staff member not found.',
        )

    return member


def find_shift_override(db: Session, organization_id: int, staff_id: int, shift_date: date) -> ShiftOverride | None:
    return db.query(ShiftOverride).filter(
        ShiftOverride.organization_id == organization_id,
        ShiftOverride.staff_id == staff_id,
        ShiftOverride.date == shift_date,
    ).first()


@router.get('/shifts', response_model=list[ShiftResponse])
def list_shifts(
    shift_date: date | None = Query(default=None, alias='date'),
    staff_id: int | None = Query(default=None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        query = db.query(ShiftOverride).filter(ShiftOverride.organization_id == current_user.organization_id)
        if shift_date is not None:
            query = query.filter(ShiftOverride.date == shift_date)
        if staff_id is not None:
            query = query.filter(ShiftOverride.staff_id == staff_id)

        return query.order_by(ShiftOverride.date.asc(), ShiftOverride.start_time.asc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post('/shifts', response_model=ShiftResponse, status_code=status.HTTP_201_CREATED)
def save_shift(
    data: CreateShiftRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        get_organization_member(db, current_user.organization_id, data.staff_id)

        shift = find_shift_override(db, current_user.organization_id, data.staff_id, data.date)

        if shift is None:
            shift = ShiftOverride(
                organization_id=current_user.organization_id,
                staff_id=data.staff_id,
                date=data.date,
                created_by=current_user.id,
            )
            db.add(shift)
        else:
            logger.info('Replacing shift override %s for staff %s on %s', shift.id, data.staff_id, data.date)

        shift.shift_type = data.shift_type
        shift.start_time = data.start_time
        shift.end_time = data.end_time
        shift.is_available = data.is_available
        shift.notes = data.notes
        shift.updated_at = datetime.now()

        db.commit()
        db.refresh(shift)

        return shift
    except IntegrityError as exc:
        # Another request saved an override for the same staff and date first.
        db.rollback()
        logger.info('Concurrent shift save for staff %s on %s lost the race', data.staff_id, data.date)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail='A shift for this staff member and date was saved by another request.',
        ) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.delete('/shifts/{shift_id}', status_code=status.HTTP_204_NO_CONTENT)
def remove_shift(
    shift_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        shift = db.query(ShiftOverride).filter(
            ShiftOverride.id == shift_id,
            ShiftOverride.organization_id == current_user.organization_id,
        ).first()

        if not shift:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Shift not found.',
            )

        db.delete(shift)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.get('/default-shifts', response_model=list[DefaultShiftResponse])
def list_default_shifts(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return db.query(RecurringDefault).filter(
            RecurringDefault.organization_id == current_user.organization_id,
        ).order_by(RecurringDefault.user_id.asc(), RecurringDefault.id.asc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.patch('/default-shifts/{user_id}', response_model=DefaultShiftResponse)
def update_default_shift(
    user_id: int,
    data: UpdateDefaultShiftRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        get_organization_member(db, current_user.organization_id, user_id)

        # Legacy duplicates: edit the row the resolver would pick.
        default_shift = db.query(RecurringDefault).filter(
            RecurringDefault.organization_id == current_user.organization_id,
            RecurringDefault.user_id == user_id,
        ).order_by(RecurringDefault.updated_at.desc(), RecurringDefault.id.desc()).first()

        if default_shift is None:
            default_shift = RecurringDefault(
                organization_id=current_user.organization_id,
                user_id=user_id,
                start_time=time.fromisoformat(config.DEFAULT_SHIFT_START),
                end_time=time.fromisoformat(config.DEFAULT_SHIFT_END),
                working_days=normalize_working_days(config.DEFAULT_WORKING_DAYS),
            )
            db.add(default_shift)

        start_time = data.start_time or default_shift.start_time
        end_time = data.end_time or default_shift.end_time
        if start_time >= end_time:
            db.rollback()
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='Shift start time must be before end time.',
            )

        default_shift.start_time = start_time
        default_shift.end_time = end_time
        if data.working_days is not None:
            default_shift.working_days = data.working_days
        default_shift.updated_at = datetime.now()

        db.commit()
        db.refresh(default_shift)

        return default_shift
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.delete('/default-shifts/{user_id}', status_code=status.HTTP_204_NO_CONTENT)
def remove_default_shift(
    user_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        deleted = db.query(RecurringDefault).filter(
            RecurringDefault.organization_id == current_user.organization_id,
            RecurringDefault.user_id == user_id,
        ).delete(synchronize_session=False)

        if not deleted:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Default shift not found.',
            )

        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc
