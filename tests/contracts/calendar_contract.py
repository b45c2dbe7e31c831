"""Contract tests for any CalendarService implementation."""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

import pytest

from booking_inbox.domain.calendar import CalendarService
from booking_inbox.domain.store import Booking, BookingStatus

# far enough ahead that a real test calendar is empty there
START = datetime(2031, 3, 7, 17, 0, tzinfo=timezone.utc)


def _booking(booking_id: int, start=START, days=2) -> Booking:
    return Booking(
        id=booking_id,
        start_at=start,
        end_at=start + timedelta(days=days),
        client_name="Ana",
        status=BookingStatus.CONFIRMED,
    )


class CalendarServiceContract(ABC):

    booking_id_base: int = 900_000

    @abstractmethod
    def create_calendar(self) -> CalendarService:
        ...

    @pytest.mark.asyncio
    async def test_opaque_event_is_busy(self):
        cal = self.create_calendar()
        booking = _booking(self.booking_id_base + 1)
        try:
            await cal.publish_busy_event(booking, "opaque")
            busy = await cal.list_busy(START - timedelta(days=1), START + timedelta(days=3))
            assert any(b.start <= START and b.end >= booking.end_at for b in busy)
        finally:
            await cal.retract_busy_event(booking.id)

    @pytest.mark.asyncio
    async def test_transparent_event_is_not_busy(self):
        cal = self.create_calendar()
        booking = _booking(self.booking_id_base + 2, start=START + timedelta(days=30))
        try:
            await cal.publish_busy_event(booking, "transparent")
            busy = await cal.list_busy(booking.start_at, booking.end_at)
            assert busy == []
        finally:
            await cal.retract_busy_event(booking.id)

    @pytest.mark.asyncio
    async def test_republish_updates_same_event(self):
        cal = self.create_calendar()
        booking = _booking(self.booking_id_base + 3, start=START + timedelta(days=60))
        try:
            await cal.publish_busy_event(booking, "opaque")
            await cal.publish_busy_event(booking, "transparent")
            assert await cal.list_busy(booking.start_at, booking.end_at) == []
        finally:
            await cal.retract_busy_event(booking.id)

    @pytest.mark.asyncio
    async def test_retract_removes_busy(self):
        cal = self.create_calendar()
        booking = _booking(self.booking_id_base + 4, start=START + timedelta(days=90))
        await cal.publish_busy_event(booking, "opaque")
        await cal.retract_busy_event(booking.id)
        assert await cal.list_busy(booking.start_at, booking.end_at) == []

    @pytest.mark.asyncio
    async def test_retract_unknown_is_noop(self):
        cal = self.create_calendar()
        await cal.retract_busy_event(self.booking_id_base + 99)  # must not raise
