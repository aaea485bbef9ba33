"""Slot generation over a shift window."""

from datetime import date, datetime, time, timedelta

from clinic_scheduling.scheduling.shifts import ShiftWindow

# Any fixed date works; only the time-of-day part is kept.
_ANCHOR = date(2000, 1, 1)


def generate_slots(
    window: ShiftWindow,
    granularity_minutes: int,
    require_full_slot: bool = False,
) -> list[time]:
    """Return every slot start in ``window``, ascending, ``granularity_minutes`` apart.

    The closing time itself is a valid slot start unless ``require_full_slot``
    is set, in which case a slot must also finish by the closing time.
    """
    if granularity_minutes <= 0:
        raise ValueError('granularity_minutes must be positive.')

    step = timedelta(minutes=granularity_minutes)
    current = datetime.combine(_ANCHOR, window.start)
    last_start = datetime.combine(_ANCHOR, window.end)
    if require_full_slot:
        last_start -= step

    slots: list[time] = []
    while current <= last_start:
        slots.append(current.time())
        current += step

    return slots
