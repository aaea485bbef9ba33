import logging
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from clinic_scheduling.core import config
from clinic_scheduling.models.appointment import CANCELLED_STATUS, Appointment
from clinic_scheduling.models.shift import RecurringDefault, ShiftOverride
from clinic_scheduling.scheduling.availability import AvailabilityView
from clinic_scheduling.scheduling.conflicts import BookedSlot
from clinic_scheduling.scheduling.shifts import RecurringDefaultRecord, ShiftOverrideRecord

logger = logging.getLogger(__name__)


def load_overrides(
    db: Session,
    organization_id: int,
    provider_ids: Iterable[int],
    on_date: date,
) -> list[ShiftOverrideRecord]:
    rows = db.query(ShiftOverride).filter(
        ShiftOverride.organization_id == organization_id,
        ShiftOverride.staff_id.in_(list(provider_ids)),
        ShiftOverride.date == on_date,
    ).all()

    return [
        ShiftOverrideRecord(
            provider_id=row.staff_id,
            date=row.date,
            start=row.start_time,
            end=row.end_time,
            shift_type=row.shift_type or 'regular',
            is_available=bool(row.is_available),
            updated_at=row.updated_at,
            id=row.id,
        )
        for row in rows
    ]


def load_defaults(
    db: Session,
    organization_id: int,
    provider_ids: Iterable[int],
) -> list[RecurringDefaultRecord]:
    rows = db.query(RecurringDefault).filter(
        RecurringDefault.organization_id == organization_id,
        RecurringDefault.user_id.in_(list(provider_ids)),
    ).all()

    return [
        RecurringDefaultRecord(
            provider_id=row.user_id,
            start=row.start_time,
            end=row.end_time,
            working_days=frozenset(row.working_days or ()),
            updated_at=row.updated_at,
            id=row.id,
        )
        for row in rows
    ]


def load_bookings(
    db: Session,
    organization_id: int,
    provider_ids: Iterable[int],
    on_date: date,
) -> list[BookedSlot]:
    day_start = datetime.combine(on_date, time(0, 0))
    day_end = day_start + timedelta(days=1)

    rows = db.query(Appointment.provider_id, Appointment.scheduled_at, Appointment.status).filter(
        Appointment.organization_id == organization_id,
        Appointment.provider_id.in_(list(provider_ids)),
        Appointment.scheduled_at >= day_start,
        Appointment.scheduled_at < day_end,
        Appointment.status != CANCELLED_STATUS,
    ).all()

    return [
        BookedSlot(
            provider_id=provider_id,
            date=scheduled_at.date(),
            start=scheduled_at.time(),
            status=status,
        )
        for provider_id, scheduled_at, status in rows
    ]


def build_availability_view(
    db: Session,
    organization_id: int,
    provider_ids: Iterable[int],
    on_date: date,
    granularity_minutes: Optional[int] = None,
) -> AvailabilityView:
    provider_ids = list(provider_ids)
    overrides = load_overrides(db, organization_id, provider_ids, on_date)
    defaults = load_defaults(db, organization_id, provider_ids)
    bookings = load_bookings(db, organization_id, provider_ids, on_date)

    logger.debug(
        'Loaded schedule for organization %s on %s: %d override(s), %d default(s), %d booking(s) across %d provider(s)',
        organization_id,
        on_date,
        len(overrides),
        len(defaults),
        len(bookings),
        len(provider_ids),
    )

    return AvailabilityView(
        overrides=overrides,
        defaults=defaults,
        bookings=bookings,
        granularity_minutes=config.SLOT_GRANULARITY_MINUTES if granularity_minutes is None else granularity_minutes,
        require_full_slot=config.REQUIRE_FULL_SLOT,
    )
