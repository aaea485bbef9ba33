"""Shift resolution.

A provider's working window for a date comes from two tiers: a date-specific
override wins outright, otherwise the recurring weekly default whose working
days include the date's weekday applies. No match means the provider is not
working that day and ``resolve_shift`` returns ``None``.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Iterable, Optional

# Fixed English names indexed by date.weekday(). strftime('%A') depends on
# the process locale, so it is not used for matching.
WEEKDAY_NAMES = ('Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday')

OVERRIDE_SOURCE = 'override'
DEFAULT_SOURCE = 'default'

_OLDEST = datetime.min


@dataclass(frozen=True)
class ShiftWindow:
    start: time
    end: time
    source: str = OVERRIDE_SOURCE
    shift_type: str = 'regular'

    def contains(self, value: time) -> bool:
        return self.start <= value <= self.end


@dataclass(frozen=True)
class ShiftOverrideRecord:
    provider_id: int
    date: date
    start: time
    end: time
    shift_type: str = 'regular'
    is_available: bool = True
    updated_at: Optional[datetime] = None
    id: int = 0

    @property
    def is_day_off(self) -> bool:
        return not self.is_available or self.shift_type == 'absent'


@dataclass(frozen=True)
class RecurringDefaultRecord:
    provider_id: int
    start: time
    end: time
    working_days: frozenset = field(default_factory=frozenset)
    updated_at: Optional[datetime] = None
    id: int = 0


def weekday_name(on_date: date) -> str:
    """Return the English weekday name for a calendar date.

    The date is treated as a local calendar date: no timezone conversion
    happens, so a 2024-06-10 date is always a Monday.
    """
    return WEEKDAY_NAMES[on_date.weekday()]


def _most_recent(records):
    # Latest update wins; id breaks ties so the pick never depends on input order.
    return max(records, key=lambda record: (record.updated_at or _OLDEST, record.id))


def find_override(
    overrides: Iterable[ShiftOverrideRecord],
    provider_id: int,
    on_date: date,
) -> Optional[ShiftOverrideRecord]:
    matches = [
        override for override in overrides
        if override.provider_id == provider_id and override.date == on_date
    ]
    if not matches:
        return None
    return _most_recent(matches)


def find_default(
    defaults: Iterable[RecurringDefaultRecord],
    provider_id: int,
    on_date: date,
) -> Optional[RecurringDefaultRecord]:
    day_name = weekday_name(on_date)
    matches = [
        default for default in defaults
        if default.provider_id == provider_id and day_name in default.working_days
    ]
    if not matches:
        return None
    return _most_recent(matches)


def resolve_shift(
    overrides: Iterable[ShiftOverrideRecord],
    defaults: Iterable[RecurringDefaultRecord],
    provider_id: int,
    on_date: date,
) -> Optional[ShiftWindow]:
    """Return the effective working window for ``provider_id`` on ``on_date``.

    An override for the exact date is checked first and always wins, even
    when it marks the provider absent. Only when no override exists is the
    recurring default consulted. Duplicate rows in either tier resolve to the
    most recently updated one.
    """
    override = find_override(overrides, provider_id, on_date)
    if override is not None:
        if override.is_day_off:
            return None
        return ShiftWindow(
            start=override.start,
            end=override.end,
            source=OVERRIDE_SOURCE,
            shift_type=override.shift_type,
        )

    default = find_default(defaults, provider_id, on_date)
    if default is not None:
        return ShiftWindow(start=default.start, end=default.end, source=DEFAULT_SOURCE)

    return None
