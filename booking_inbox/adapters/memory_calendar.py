"""
MemoryCalendar — in-process CalendarService for tests and offline runs.
"""

from dataclasses import dataclass
from datetime import datetime

from booking_inbox.domain.calendar import (
    BusyInterval,
    CalendarService,
    Transparency,
    event_summary,
)
from booking_inbox.domain.store import Booking


@dataclass
class CalendarEvent:
    booking_id: int
    summary: str
    start: datetime
    end: datetime
    transparency: Transparency


class MemoryCalendar(CalendarService):

    def __init__(self):
        self.events: dict[int, CalendarEvent] = {}

    async def list_busy(self, start: datetime, end: datetime) -> list[BusyInterval]:
        busy = [
            BusyInterval(ev.start, ev.end)
            for ev in self.events.values()
            if ev.transparency == "opaque" and ev.start <= end and ev.end >= start
        ]
        return sorted(busy, key=lambda b: b.start)

    async def publish_busy_event(self, booking: Booking, transparency: Transparency) -> None:
        assert booking.id is not None
        self.events[booking.id] = CalendarEvent(
            booking_id=booking.id,
            summary=event_summary(booking, transparency),
            start=booking.start_at,
            end=booking.end_at,
            transparency=transparency,
        )

    async def retract_busy_event(self, booking_id: int) -> None:
        self.events.pop(booking_id, None)
