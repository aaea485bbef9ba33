from datetime import date, datetime, time

import pytest

from clinic_scheduling.scheduling.shifts import (
    DEFAULT_SOURCE,
    OVERRIDE_SOURCE,
    RecurringDefaultRecord,
    ShiftOverrideRecord,
    ShiftWindow,
    resolve_shift,
    weekday_name,
)

MONDAY = date(2024, 6, 10)
TUESDAY = date(2024, 6, 11)
FRIDAY = date(2024, 6, 14)


def _default(provider_id, start, end, days, updated_at=None, record_id=0):
    return RecurringDefaultRecord(
        provider_id=provider_id,
        start=start,
        end=end,
        working_days=frozenset(days),
        updated_at=updated_at,
        id=record_id,
    )


@pytest.mark.parametrize(
    ('on_date', 'expected'),
    [
        (date(2024, 6, 10), 'Monday'),
        (date(2024, 6, 11), 'Tuesday'),
        (date(2024, 6, 14), 'Friday'),
        (date(2024, 6, 16), 'Sunday'),
        (date(2024, 12, 31), 'Tuesday'),
    ],
)
def test_weekday_name_uses_calendar_date(on_date: date, expected: str) -> None:
    assert weekday_name(on_date) == expected


def test_override_wins_over_matching_default() -> None:
    overrides = [ShiftOverrideRecord(provider_id=3, date=FRIDAY, start=time(13, 0), end=time(15, 0))]
    defaults = [_default(3, time(9, 0), time(17, 0), {'Friday'})]

    window = resolve_shift(overrides, defaults, 3, FRIDAY)

    assert window == ShiftWindow(start=time(13, 0), end=time(15, 0), source=OVERRIDE_SOURCE)


def test_override_for_other_date_does_not_apply() -> None:
    overrides = [ShiftOverrideRecord(provider_id=3, date=MONDAY, start=time(13, 0), end=time(15, 0))]
    defaults = [_default(3, time(9, 0), time(17, 0), {'Friday'})]

    window = resolve_shift(overrides, defaults, 3, FRIDAY)

    assert window == ShiftWindow(start=time(9, 0), end=time(17, 0), source=DEFAULT_SOURCE)


def test_override_for_other_provider_does_not_apply() -> None:
    overrides = [ShiftOverrideRecord(provider_id=4, date=FRIDAY, start=time(13, 0), end=time(15, 0))]

    assert resolve_shift(overrides, [], 3, FRIDAY) is None


def test_default_used_when_weekday_matches() -> None:
    defaults = [_default(7, time(8, 0), time(10, 0), {'Monday', 'Wednesday'})]

    window = resolve_shift([], defaults, 7, MONDAY)

    assert window.start == time(8, 0)
    assert window.end == time(10, 0)
    assert window.source == DEFAULT_SOURCE


def test_no_shift_when_weekday_not_in_default() -> None:
    defaults = [_default(7, time(8, 0), time(10, 0), {'Monday', 'Wednesday'})]

    assert resolve_shift([], defaults, 7, TUESDAY) is None


def test_empty_working_days_never_match() -> None:
    defaults = [_default(7, time(8, 0), time(10, 0), set())]

    assert resolve_shift([], defaults, 7, MONDAY) is None


@pytest.mark.parametrize(
    'override',
    [
        ShiftOverrideRecord(provider_id=3, date=FRIDAY, start=time(9, 0), end=time(17, 0), is_available=False),
        ShiftOverrideRecord(provider_id=3, date=FRIDAY, start=time(9, 0), end=time(17, 0), shift_type='absent'),
    ],
)
def test_absent_override_blocks_default(override: ShiftOverrideRecord) -> None:
    defaults = [_default(3, time(9, 0), time(17, 0), {'Friday'})]

    assert resolve_shift([override], defaults, 3, FRIDAY) is None


def test_duplicate_defaults_pick_most_recently_updated() -> None:
    older = _default(5, time(8, 0), time(12, 0), {'Monday'}, updated_at=datetime(2024, 1, 1), record_id=9)
    newer = _default(5, time(13, 0), time(18, 0), {'Monday'}, updated_at=datetime(2024, 3, 1), record_id=2)

    assert resolve_shift([], [older, newer], 5, MONDAY).start == time(13, 0)
    assert resolve_shift([], [newer, older], 5, MONDAY).start == time(13, 0)


def test_duplicate_defaults_with_same_timestamp_pick_highest_id() -> None:
    stamp = datetime(2024, 1, 1)
    first = _default(5, time(8, 0), time(12, 0), {'Monday'}, updated_at=stamp, record_id=1)
    second = _default(5, time(10, 0), time(14, 0), {'Monday'}, updated_at=stamp, record_id=2)

    assert resolve_shift([], [second, first], 5, MONDAY).start == time(10, 0)
    assert resolve_shift([], [first, second], 5, MONDAY).start == time(10, 0)


def test_duplicate_default_that_skips_weekday_is_ignored() -> None:
    monday_only = _default(5, time(8, 0), time(12, 0), {'Monday'}, updated_at=datetime(2024, 1, 1), record_id=1)
    newer_tuesday = _default(5, time(13, 0), time(18, 0), {'Tuesday'}, updated_at=datetime(2024, 3, 1), record_id=2)

    assert resolve_shift([], [monday_only, newer_tuesday], 5, MONDAY).start == time(8, 0)


def test_override_keeps_shift_type() -> None:
    overrides = [
        ShiftOverrideRecord(provider_id=3, date=MONDAY, start=time(18, 0), end=time(22, 0), shift_type='on_call'),
    ]

    assert resolve_shift(overrides, [], 3, MONDAY).shift_type == 'on_call'
