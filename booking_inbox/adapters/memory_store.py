"""In-memory adapter for RecordStore — for tests and local development."""

import itertools
from dataclasses import fields, replace
from datetime import datetime, timedelta, timezone

from booking_inbox.domain.store import (
    Booking,
    BookingStatus,
    Client,
    DuplicateMessageError,
    Message,
    Pet,
    RecordStore,
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _check_patch(cls, patch: dict) -> None:
    allowed = {f.name for f in fields(cls)} - {"id", "eid"}
    unknown = set(patch) - allowed
    if unknown:
        raise ValueError(f"unknown {cls.__name__} fields: {sorted(unknown)}")


class InMemoryRecordStore(RecordStore):
    """Holds copies: nothing returned aliases stored state."""

    def __init__(self):
        self._messages: dict[int, Message] = {}
        self._bookings: dict[int, Booking] = {}
        self._clients: dict[int, Client] = {}
        self._pets: dict[int, Pet] = {}
        self._ids = itertools.count(1)

    # -- messages ------------------------------------------------------------

    async def find_message_by_eid(self, eid: str) -> Message | None:
        for m in self._messages.values():
            if m.eid == eid:
                return replace(m)
        return None

    async def create_message(self, message: Message) -> Message:
        if any(m.eid == message.eid for m in self._messages.values()):
            raise DuplicateMessageError(message.eid)
        stored = replace(message, id=next(self._ids), keywords=list(message.keywords),
                         segments=list(message.segments))
        self._messages[stored.id] = stored
        return replace(stored)

    async def get_message(self, message_id: int) -> Message | None:
        m = self._messages.get(message_id)
        return replace(m) if m else None

    async def update_message(self, message_id: int, **patch) -> Message:
        _check_patch(Message, patch)
        if message_id not in self._messages:
            raise KeyError(message_id)
        self._messages[message_id] = replace(self._messages[message_id], **patch)
        return replace(self._messages[message_id])

    async def list_inbound_messages(
        self, since: datetime, only_unlinked: bool = False, limit: int = 5000
    ) -> list[Message]:
        found = [
            m for m in self._messages.values()
            if m.direction == "in"
            and m.received_at >= since
            and not (only_unlinked and m.booking_id is not None)
        ]
        found.sort(key=lambda m: (m.received_at, m.id))
        return [replace(m) for m in found[:limit]]

    async def mark_read_for_bookings(self, booking_ids: list[int]) -> int:
        count = 0
        for m in self._messages.values():
            if m.booking_id in booking_ids and m.direction == "in" and not m.is_read:
                m.is_read = True
                count += 1
        return count

    # -- bookings ------------------------------------------------------------

    async def find_recent_booking_for_sender(
        self,
        sender: str,
        since: datetime,
        near: datetime | None = None,
        window: timedelta | None = None,
        exclude_ids: tuple[int, ...] = (),
    ) -> Booking | None:
        found = [
            b for b in self._bookings.values()
            if sender in (b.client_phone, b.rover_relay)
            and b.created_at >= since
            and b.id not in exclude_ids
            and (near is None or window is None or abs(b.start_at - near) <= window)
        ]
        if not found:
            return None
        return replace(max(found, key=lambda b: (b.created_at, b.id)))

    async def get_booking(self, booking_id: int) -> Booking | None:
        b = self._bookings.get(booking_id)
        return replace(b) if b else None

    async def create_booking(self, booking: Booking) -> Booking:
        now = _now()
        stored = replace(
            booking,
            id=next(self._ids),
            created_at=booking.created_at or now,
            updated_at=now,
        )
        self._bookings[stored.id] = stored
        return replace(stored)

    async def update_booking(self, booking_id: int, **patch) -> Booking:
        _check_patch(Booking, patch)
        if booking_id not in self._bookings:
            raise KeyError(booking_id)
        self._bookings[booking_id] = replace(self._bookings[booking_id], updated_at=_now(), **patch)
        return replace(self._bookings[booking_id])

    async def list_bookings(self, statuses: tuple[BookingStatus, ...] = ()) -> list[Booking]:
        found = [b for b in self._bookings.values() if not statuses or b.status in statuses]
        found.sort(key=lambda b: (b.created_at, b.id))
        return [replace(b) for b in found]

    async def dogs_in_window(
        self, start: datetime, end: datetime, exclude_id: int | None = None
    ) -> int:
        return sum(
            b.dogs_count or 1
            for b in self._bookings.values()
            if b.status == BookingStatus.CONFIRMED
            and b.id != exclude_id
            and b.start_at <= end
            and b.end_at >= start
        )

    async def bookings_ended_before(
        self, before: datetime, statuses: tuple[BookingStatus, ...]
    ) -> list[Booking]:
        return [
            replace(b) for b in self._bookings.values()
            if b.end_at < before and b.status in statuses
        ]

    # -- clients & pets ------------------------------------------------------

    async def find_client(self, phone: str) -> Client | None:
        for c in self._clients.values():
            if c.phone == phone:
                return replace(c)
        return None

    async def ensure_client(
        self, phone: str, name: str | None = None, mark_private: bool = False
    ) -> Client:
        for c in self._clients.values():
            if c.phone == phone:
                if name and not c.name:
                    c.name = name
                if mark_private:
                    c.is_private = True
                return replace(c)
        client = Client(phone=phone, name=name, is_private=mark_private, id=next(self._ids))
        self._clients[client.id] = client
        return replace(client)

    async def set_client_trusted(self, client_id: int, trusted: bool) -> None:
        self._clients[client_id].trusted = trusted

    async def link_pet_to_booking(
        self,
        booking_id: int,
        name: str,
        client_id: int | None = None,
        age_months: int | None = None,
        weight_lbs: float | None = None,
    ) -> Pet:
        for p in self._pets.values():
            if p.booking_id == booking_id and p.name.lower() == name.lower():
                if p.age_months is None:
                    p.age_months = age_months
                if p.weight_lbs is None:
                    p.weight_lbs = weight_lbs
                return replace(p)
        pet = Pet(name=name, booking_id=booking_id, client_id=client_id,
                  age_months=age_months, weight_lbs=weight_lbs, id=next(self._ids))
        self._pets[pet.id] = pet
        return replace(pet)

    async def pets_for_booking(self, booking_id: int) -> list[Pet]:
        return [replace(p) for p in self._pets.values() if p.booking_id == booking_id]
