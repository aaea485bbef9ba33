"""Booked-slot exclusion.

Bookings collide with a candidate slot only on an exact start-time match for
the same provider and date. Appointment duration is not considered, so a
45 minute booking at 09:00 leaves 09:30 open.
"""

from dataclasses import dataclass
from datetime import date, time
from typing import Iterable

INACTIVE_STATUSES = frozenset({'cancelled'})


@dataclass(frozen=True)
class BookedSlot:
    provider_id: int
    date: date
    start: time
    status: str = 'scheduled'

    @property
    def is_active(self) -> bool:
        return (self.status or '').strip().lower() not in INACTIVE_STATUSES


def active_booked_times(booked: Iterable[BookedSlot], provider_id: int, on_date: date) -> set[time]:
    return {
        slot.start.replace(second=0, microsecond=0)
        for slot in booked
        if slot.is_active and slot.provider_id == provider_id and slot.date == on_date
    }


def filter_available(slots: Iterable[time], booked_times: set[time]) -> list[time]:
    return [slot for slot in slots if slot not in booked_times]
