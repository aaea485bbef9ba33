import logging
from datetime import date, time

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_scheduling.auth.dependencies import get_current_user
from clinic_scheduling.database import get_db
from clinic_scheduling.models.user import PROVIDER_ROLES, User
from clinic_scheduling.routes.common import database_unavailable, ensure_database_ready
from clinic_scheduling.scheduling.availability import OPEN
from clinic_scheduling.scheduling.loader import build_availability_view

router = APIRouter(tags=['availability'])

logger = logging.getLogger(__name__)

MIN_GRANULARITY_MINUTES = 5
MAX_GRANULARITY_MINUTES = 240


class ShiftWindowResponse(BaseModel):
    start_time: time
    end_time: time
    source: str
    shift_type: str


class SlotResponse(BaseModel):
    time: time
    reason: str
    is_available: bool


class ProviderAvailabilityResponse(BaseModel):
    provider_id: int
    date: date
    granularity_minutes: int
    shift: ShiftWindowResponse | None = None
    slots: list[SlotResponse]


class SlotCheckResponse(BaseModel):
    provider_id: int
    date: date
    time: time
    bookable: bool
    reason: str
    shift: ShiftWindowResponse | None = None


class AvailableProviderResponse(BaseModel):
    id: int
    first_name: str | None = None
    last_name: str | None = None
    role: str

    class Config:
        from_attributes = True


def naive_slot_time(value: time) -> time:
    # Slots are clinic-local wall time; an offset on the query string is dropped.
    return value.replace(tzinfo=None)


def shift_response(window) -> ShiftWindowResponse | None:
    if window is None:
        return None
    return ShiftWindowResponse(
        start_time=window.start,
        end_time=window.end,
        source=window.source,
        shift_type=window.shift_type,
    )


@router.get('/providers/{provider_id}', response_model=ProviderAvailabilityResponse)
def list_provider_slots(
    provider_id: int,
    slot_date: date = Query(..., alias='date'),
    granularity: int | None = Query(default=None, ge=MIN_GRANULARITY_MINUTES, le=MAX_GRANULARITY_MINUTES),
    include_booked: bool = Query(default=False),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        view = build_availability_view(db, current_user.organization_id, [provider_id], slot_date, granularity)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    window = view.resolve_shift(provider_id, slot_date)
    if window is None:
        logger.debug('No shift for provider %s on %s', provider_id, slot_date)
    else:
        logger.debug('Provider %s on %s uses %s shift %s-%s', provider_id, slot_date, window.source, window.start, window.end)

    if include_booked:
        slots = view.describe_slots(provider_id, slot_date)
    else:
        slots = view.list_available(provider_id, slot_date)

    return ProviderAvailabilityResponse(
        provider_id=provider_id,
        date=slot_date,
        granularity_minutes=view.granularity_minutes,
        shift=shift_response(window),
        slots=[
            SlotResponse(time=slot.time, reason=slot.reason, is_available=slot.is_available)
            for slot in slots
        ],
    )


@router.get('/providers/{provider_id}/check', response_model=SlotCheckResponse)
def check_provider_slot(
    provider_id: int,
    slot_date: date = Query(..., alias='date'),
    slot_time: time = Query(..., alias='time'),
    granularity: int | None = Query(default=None, ge=MIN_GRANULARITY_MINUTES, le=MAX_GRANULARITY_MINUTES),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()
    slot_time = naive_slot_time(slot_time)

    try:
        view = build_availability_view(db, current_user.organization_id, [provider_id], slot_date, granularity)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    reason = view.check(provider_id, slot_date, slot_time)

    return SlotCheckResponse(
        provider_id=provider_id,
        date=slot_date,
        time=slot_time,
        bookable=reason == OPEN,
        reason=reason,
        shift=shift_response(view.resolve_shift(provider_id, slot_date)),
    )


@router.get('/providers', response_model=list[AvailableProviderResponse])
def list_available_providers(
    slot_date: date = Query(..., alias='date'),
    slot_time: time = Query(..., alias='time'),
    granularity: int | None = Query(default=None, ge=MIN_GRANULARITY_MINUTES, le=MAX_GRANULARITY_MINUTES),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()
    slot_time = naive_slot_time(slot_time)

    try:
        providers = db.query(User).filter(
            User.organization_id == current_user.organization_id,
            User.role.in_(PROVIDER_ROLES),
            User.is_active.is_(True),
        ).order_by(User.id.asc()).all()

        view = build_availability_view(
            db,
            current_user.organization_id,
            [provider.id for provider in providers],
            slot_date,
            granularity,
        )
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    bookable_ids = set(view.bookable_providers([provider.id for provider in providers], slot_date, slot_time))
    logger.debug('%d of %d providers bookable on %s at %s', len(bookable_ids), len(providers), slot_date, slot_time)

    return [provider for provider in providers if provider.id in bookable_ids]
