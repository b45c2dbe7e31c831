"""
Booking actions: confirm, decline, availability, archive sweep.

Status machine:

  PENDING   --confirm-->  CONFIRMED
  PENDING   --decline-->  CANCELED
  CONFIRMED --decline-->  CANCELED
  PENDING | CONFIRMED | CANCELED  --end + grace elapsed-->  ARCHIVED

Calendar publication is a side effect of a transition: a calendar failure
is logged and the status change stands.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from booking_inbox.config import IntakeSettings
from booking_inbox.domain.calendar import BusyInterval, CalendarService, Transparency
from booking_inbox.domain.store import Booking, BookingStatus, RecordStore

log = logging.getLogger(__name__)

_TRANSITIONS: dict[str, dict[BookingStatus, BookingStatus]] = {
    "confirm": {BookingStatus.PENDING: BookingStatus.CONFIRMED},
    "decline": {
        BookingStatus.PENDING: BookingStatus.CANCELED,
        BookingStatus.CONFIRMED: BookingStatus.CANCELED,
    },
}
ARCHIVABLE = (BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.CANCELED)


class InvalidTransition(ValueError):
    def __init__(self, booking_id: int, action: str, status: BookingStatus):
        super().__init__(f"cannot {action} booking {booking_id} in status {status.value}")
        self.booking_id = booking_id
        self.action = action
        self.status = status


class BookingNotFound(LookupError):
    def __init__(self, booking_id: int):
        super().__init__(f"booking {booking_id} not found")
        self.booking_id = booking_id


@dataclass
class ConfirmResult:
    booking: Booking
    new_total: int                  # dogs in the window including this booking
    transparency: Transparency


@dataclass
class Availability:
    start: datetime
    end: datetime
    busy: list[BusyInterval]
    dogs_overlapping: int
    will_exceed: bool


class BookingService:

    def __init__(
        self,
        store: RecordStore,
        calendar: CalendarService | None = None,
        settings: IntakeSettings | None = None,
    ):
        self._store = store
        self._calendar = calendar
        self._settings = settings or IntakeSettings()

    async def _transition(self, booking_id: int, action: str) -> tuple[Booking, Booking]:
        booking = await self._store.get_booking(booking_id)
        if booking is None:
            raise BookingNotFound(booking_id)
        target = _TRANSITIONS[action].get(booking.status)
        if target is None:
            raise InvalidTransition(booking_id, action, booking.status)
        updated = await self._store.update_booking(booking_id, status=target)
        return booking, updated

    async def confirm(self, booking_id: int) -> ConfirmResult:
        """
        Confirm and publish a calendar event.  The event is opaque (slot
        full) when confirmed dogs in the window reach capacity.
        """
        booking = await self._store.get_booking(booking_id)
        if booking is None:
            raise BookingNotFound(booking_id)
        current = await self._store.dogs_in_window(booking.start_at, booking.end_at, exclude_id=booking_id)
        new_total = current + (booking.dogs_count or 1)
        transparency: Transparency = "opaque" if new_total >= self._settings.capacity else "transparent"

        _, updated = await self._transition(booking_id, "confirm")
        log.info("booking %d confirmed: %d dogs in window, %s", booking_id, new_total, transparency)

        if self._calendar is not None:
            try:
                await self._calendar.publish_busy_event(updated, transparency)
            except Exception as exc:
                log.warning("calendar publish failed for booking %d: %s", booking_id, exc)
        return ConfirmResult(booking=updated, new_total=new_total, transparency=transparency)

    async def decline(self, booking_id: int) -> Booking:
        """Cancel and retract the calendar event, if any."""
        previous, updated = await self._transition(booking_id, "decline")
        log.info("booking %d declined (was %s)", booking_id, previous.status.value)

        if self._calendar is not None:
            try:
                await self._calendar.retract_busy_event(booking_id)
            except Exception as exc:
                log.warning("calendar retract failed for booking %d: %s", booking_id, exc)
        return updated

    async def availability(self, start: datetime, end: datetime) -> Availability:
        if end < start:
            raise ValueError("end must not precede start")
        busy: list[BusyInterval] = []
        if self._calendar is not None:
            try:
                busy = await self._calendar.list_busy(start, end)
            except Exception as exc:
                log.warning("calendar busy lookup failed: %s", exc)
        dogs = await self._store.dogs_in_window(start, end)
        return Availability(
            start=start,
            end=end,
            busy=busy,
            dogs_overlapping=dogs,
            will_exceed=dogs >= self._settings.capacity,
        )

    async def archive_elapsed(self, now: datetime | None = None) -> list[int]:
        """
        Archive bookings whose end is more than the grace period behind
        *now*; their unread inbound messages are marked read.
        """
        now = now or datetime.now(timezone.utc)
        before = now - timedelta(days=self._settings.archive_grace_days)
        stale = await self._store.bookings_ended_before(before, ARCHIVABLE)
        archived = []
        for booking in stale:
            await self._store.update_booking(booking.id, status=BookingStatus.ARCHIVED)
            archived.append(booking.id)
        if archived:
            read = await self._store.mark_read_for_bookings(archived)
            log.info("archived %d booking(s), marked %d message(s) read", len(archived), read)
        return archived
