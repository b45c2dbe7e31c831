"""
CalendarService port — busy intervals on the availability calendar.

Consumed only by booking actions (confirm / decline) and the availability
query, never by intake parsing.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Literal

from booking_inbox.domain.store import Booking

Transparency = Literal["opaque", "transparent"]


@dataclass(frozen=True)
class BusyInterval:
    start: datetime
    end: datetime


class CalendarService(ABC):
    """
    Port: publish and query busy events.

    One event per booking, keyed by booking id: publishing twice updates
    the same event.
    """

    @abstractmethod
    async def list_busy(self, start: datetime, end: datetime) -> list[BusyInterval]:
        """Busy (opaque) intervals overlapping [start, end], by start time."""
        ...

    @abstractmethod
    async def publish_busy_event(self, booking: Booking, transparency: Transparency) -> None:
        """Create or update the booking's event.  "opaque" blocks the slot."""
        ...

    @abstractmethod
    async def retract_busy_event(self, booking_id: int) -> None:
        """Delete the booking's event; no-op when there is none."""
        ...


def event_summary(booking: Booking, transparency: Transparency) -> str:
    if transparency == "opaque":
        return "FULLY BOOKED"
    return f"Hold: {booking.client_name or 'Client'}"
