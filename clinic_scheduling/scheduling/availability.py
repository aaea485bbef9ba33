"""Availability view composed from shift resolution, slot generation and booked-slot exclusion.

Every query is computed fresh from the records handed to the view, so two
identical calls over unchanged data give identical answers.
"""

from dataclasses import dataclass
from datetime import date, time
from typing import Iterable, Optional, Sequence

from clinic_scheduling.scheduling.conflicts import BookedSlot, active_booked_times, filter_available
from clinic_scheduling.scheduling.shifts import (
    RecurringDefaultRecord,
    ShiftOverrideRecord,
    ShiftWindow,
    resolve_shift,
)
from clinic_scheduling.scheduling.slots import generate_slots

OPEN = 'open'
BOOKED = 'booked'
OUTSIDE_SHIFT = 'outside-shift'
NO_SHIFT_DEFINED = 'no-shift-defined'


@dataclass(frozen=True)
class SlotAvailability:
    time: time
    reason: str

    @property
    def is_available(self) -> bool:
        return self.reason == OPEN


class AvailabilityView:
    """Answers bookability questions over already-fetched schedule data."""

    def __init__(
        self,
        overrides: Iterable[ShiftOverrideRecord] = (),
        defaults: Iterable[RecurringDefaultRecord] = (),
        bookings: Iterable[BookedSlot] = (),
        granularity_minutes: int = 30,
        require_full_slot: bool = False,
    ):
        self.overrides = tuple(overrides)
        self.defaults = tuple(defaults)
        self.bookings = tuple(bookings)
        self.granularity_minutes = granularity_minutes
        self.require_full_slot = require_full_slot

    def resolve_shift(self, provider_id: int, on_date: date) -> Optional[ShiftWindow]:
        return resolve_shift(self.overrides, self.defaults, provider_id, on_date)

    def candidate_slots(self, provider_id: int, on_date: date, granularity_minutes: Optional[int] = None) -> list[time]:
        window = self.resolve_shift(provider_id, on_date)
        if window is None:
            return []
        return generate_slots(
            window,
            self.granularity_minutes if granularity_minutes is None else granularity_minutes,
            require_full_slot=self.require_full_slot,
        )

    def list_available(
        self,
        provider_id: int,
        on_date: date,
        granularity_minutes: Optional[int] = None,
    ) -> list[SlotAvailability]:
        candidates = self.candidate_slots(provider_id, on_date, granularity_minutes)
        booked_times = active_booked_times(self.bookings, provider_id, on_date)
        return [SlotAvailability(slot, OPEN) for slot in filter_available(candidates, booked_times)]

    def describe_slots(
        self,
        provider_id: int,
        on_date: date,
        granularity_minutes: Optional[int] = None,
    ) -> list[SlotAvailability]:
        """Like ``list_available`` but keeps booked slots, tagged ``booked``."""
        candidates = self.candidate_slots(provider_id, on_date, granularity_minutes)
        booked_times = active_booked_times(self.bookings, provider_id, on_date)
        return [
            SlotAvailability(slot, BOOKED if slot in booked_times else OPEN)
            for slot in candidates
        ]

    def check(
        self,
        provider_id: int,
        on_date: date,
        at: time,
        granularity_minutes: Optional[int] = None,
    ) -> str:
        window = self.resolve_shift(provider_id, on_date)
        if window is None:
            return NO_SHIFT_DEFINED

        # Off-grid times, seconds included, count as outside the shift.
        if at not in self.candidate_slots(provider_id, on_date, granularity_minutes):
            return OUTSIDE_SHIFT

        if at in active_booked_times(self.bookings, provider_id, on_date):
            return BOOKED

        return OPEN

    def is_bookable(
        self,
        provider_id: int,
        on_date: date,
        at: time,
        granularity_minutes: Optional[int] = None,
    ) -> bool:
        return self.check(provider_id, on_date, at, granularity_minutes) == OPEN

    def bookable_providers(
        self,
        provider_ids: Sequence[int],
        on_date: date,
        at: time,
        granularity_minutes: Optional[int] = None,
    ) -> list[int]:
        return [
            provider_id for provider_id in provider_ids
            if self.is_bookable(provider_id, on_date, at, granularity_minutes)
        ]
