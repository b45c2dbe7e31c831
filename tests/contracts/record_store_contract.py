"""Contract tests for any RecordStore implementation."""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

import pytest

from booking_inbox.domain.segments import DateSegment, ServiceType
from booking_inbox.domain.store import (
    Booking,
    BookingStatus,
    DuplicateMessageError,
    Message,
    RecordStore,
)

T0 = datetime(2025, 11, 1, 12, 0, tzinfo=timezone.utc)
PHONE = "+15551234567"
RELAY = "abc123@r.rover.com"


def _message(eid="eid-1", sender=PHONE, received_at=T0, **kw) -> Message:
    return Message(
        eid=eid, platform="sms", thread_id=sender, sender=sender,
        body="Board my dog Nov 7-9?", received_at=received_at, **kw,
    )


def _booking(start=T0 + timedelta(days=6), days=2, **kw) -> Booking:
    kw.setdefault("client_phone", PHONE)
    kw.setdefault("created_at", T0)
    return Booking(start_at=start, end_at=start + timedelta(days=days), **kw)


class RecordStoreContract(ABC):

    @abstractmethod
    def create_store(self) -> RecordStore:
        ...

    # -- messages ------------------------------------------------------------

    @pytest.mark.asyncio
    async def test_unknown_eid_is_none(self):
        store = self.create_store()
        assert await store.find_message_by_eid("nope") is None

    @pytest.mark.asyncio
    async def test_create_then_find_by_eid(self):
        store = self.create_store()
        seg = DateSegment(T0, T0 + timedelta(days=2), "Nov 7-9")
        created = await store.create_message(_message(keywords=["board"], segments=[seg]))
        assert created.id is not None

        found = await store.find_message_by_eid("eid-1")
        assert found.id == created.id
        assert found.keywords == ["board"]
        assert [(s.start_at, s.end_at, s.source_text) for s in found.segments] == [
            (seg.start_at, seg.end_at, "Nov 7-9")
        ]
        assert found.received_at == T0
        assert found.booking_id is None

    @pytest.mark.asyncio
    async def test_duplicate_eid_raises(self):
        store = self.create_store()
        await store.create_message(_message())
        with pytest.raises(DuplicateMessageError) as err:
            await store.create_message(_message(received_at=T0 + timedelta(minutes=1)))
        assert err.value.eid == "eid-1"

    @pytest.mark.asyncio
    async def test_duplicate_leaves_one_row(self):
        store = self.create_store()
        await store.create_message(_message())
        with pytest.raises(DuplicateMessageError):
            await store.create_message(_message())
        assert len(await store.list_inbound_messages(T0 - timedelta(days=1))) == 1

    @pytest.mark.asyncio
    async def test_update_message_patches_fields(self):
        store = self.create_store()
        msg = await store.create_message(_message())
        booking = await store.create_booking(_booking())
        updated = await store.update_message(msg.id, booking_id=booking.id, is_booking_candidate=True)
        assert updated.booking_id == booking.id
        assert updated.is_booking_candidate is True
        assert (await store.get_message(msg.id)).booking_id == booking.id

    @pytest.mark.asyncio
    async def test_update_message_rejects_unknown_field(self):
        store = self.create_store()
        msg = await store.create_message(_message())
        with pytest.raises(ValueError):
            await store.update_message(msg.id, colour="blue")

    @pytest.mark.asyncio
    async def test_list_inbound_since_oldest_first(self):
        store = self.create_store()
        await store.create_message(_message("b", received_at=T0 + timedelta(hours=2)))
        await store.create_message(_message("a", received_at=T0 + timedelta(hours=1)))
        await store.create_message(_message("old", received_at=T0 - timedelta(days=10)))
        found = await store.list_inbound_messages(T0)
        assert [m.eid for m in found] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_list_inbound_only_unlinked(self):
        store = self.create_store()
        booking = await store.create_booking(_booking())
        await store.create_message(_message("linked", booking_id=booking.id))
        await store.create_message(_message("loose", received_at=T0 + timedelta(minutes=1)))
        found = await store.list_inbound_messages(T0, only_unlinked=True)
        assert [m.eid for m in found] == ["loose"]

    @pytest.mark.asyncio
    async def test_list_inbound_honours_limit(self):
        store = self.create_store()
        for i in range(3):
            await store.create_message(_message(f"m{i}", received_at=T0 + timedelta(minutes=i)))
        assert len(await store.list_inbound_messages(T0, limit=2)) == 2

    @pytest.mark.asyncio
    async def test_mark_read_for_bookings(self):
        store = self.create_store()
        booking = await store.create_booking(_booking())
        await store.create_message(_message("x", booking_id=booking.id))
        await store.create_message(_message("y", booking_id=booking.id, is_read=True))
        await store.create_message(_message("z"))
        assert await store.mark_read_for_bookings([booking.id]) == 1
        assert (await store.find_message_by_eid("x")).is_read is True
        assert (await store.find_message_by_eid("z")).is_read is False

    # -- bookings ------------------------------------------------------------

    @pytest.mark.asyncio
    async def test_create_booking_defaults(self):
        store = self.create_store()
        booking = await store.create_booking(_booking())
        assert booking.id is not None
        assert booking.status == BookingStatus.PENDING
        assert booking.service_type == ServiceType.UNSPECIFIED
        assert booking.dogs_count == 1
        assert booking.updated_at is not None

    @pytest.mark.asyncio
    async def test_update_booking(self):
        store = self.create_store()
        booking = await store.create_booking(_booking())
        updated = await store.update_booking(
            booking.id, status=BookingStatus.CONFIRMED, service_type=ServiceType.OVERNIGHT
        )
        assert updated.status == BookingStatus.CONFIRMED
        assert updated.service_type == ServiceType.OVERNIGHT
        assert updated.start_at == booking.start_at

    @pytest.mark.asyncio
    async def test_update_missing_booking_raises_key_error(self):
        store = self.create_store()
        with pytest.raises(KeyError):
            await store.update_booking(999, notes="x")

    @pytest.mark.asyncio
    async def test_find_recent_booking_by_phone_or_relay(self):
        store = self.create_store()
        by_phone = await store.create_booking(_booking())
        by_relay = await store.create_booking(_booking(client_phone=None, rover_relay=RELAY))
        since = T0 - timedelta(days=30)
        assert (await store.find_recent_booking_for_sender(PHONE, since)).id == by_phone.id
        assert (await store.find_recent_booking_for_sender(RELAY, since)).id == by_relay.id
        assert await store.find_recent_booking_for_sender("+10000000000", since) is None

    @pytest.mark.asyncio
    async def test_find_recent_booking_respects_lookback(self):
        store = self.create_store()
        await store.create_booking(_booking(created_at=T0 - timedelta(days=45)))
        assert await store.find_recent_booking_for_sender(PHONE, T0 - timedelta(days=30)) is None

    @pytest.mark.asyncio
    async def test_find_recent_booking_prefers_newest(self):
        store = self.create_store()
        await store.create_booking(_booking(created_at=T0 - timedelta(days=3)))
        newer = await store.create_booking(_booking(created_at=T0 - timedelta(days=1)))
        found = await store.find_recent_booking_for_sender(PHONE, T0 - timedelta(days=30))
        assert found.id == newer.id

    @pytest.mark.asyncio
    async def test_find_recent_booking_window_and_exclusions(self):
        store = self.create_store()
        near = await store.create_booking(_booking(start=T0 + timedelta(days=5)))
        await store.create_booking(_booking(start=T0 + timedelta(days=200), created_at=T0 - timedelta(days=1)))
        since = T0 - timedelta(days=30)

        found = await store.find_recent_booking_for_sender(
            PHONE, since, near=T0 + timedelta(days=7), window=timedelta(days=60)
        )
        assert found.id == near.id

        found = await store.find_recent_booking_for_sender(
            PHONE, since, near=T0 + timedelta(days=7), window=timedelta(days=60), exclude_ids=(near.id,)
        )
        assert found is None

    @pytest.mark.asyncio
    async def test_list_bookings_by_status(self):
        store = self.create_store()
        a = await store.create_booking(_booking())
        b = await store.create_booking(_booking(status=BookingStatus.CANCELED))
        assert [x.id for x in await store.list_bookings()] == [a.id, b.id]
        assert [x.id for x in await store.list_bookings((BookingStatus.CANCELED,))] == [b.id]

    @pytest.mark.asyncio
    async def test_dogs_in_window_counts_confirmed_overlaps(self):
        store = self.create_store()
        start = T0 + timedelta(days=6)
        await store.create_booking(_booking(start=start, dogs_count=2, status=BookingStatus.CONFIRMED))
        await store.create_booking(_booking(start=start, dogs_count=5, status=BookingStatus.PENDING))
        await store.create_booking(_booking(start=start + timedelta(days=30), status=BookingStatus.CONFIRMED))
        mine = await store.create_booking(_booking(start=start, dogs_count=3, status=BookingStatus.CONFIRMED))

        assert await store.dogs_in_window(start, start + timedelta(days=1)) == 5
        assert await store.dogs_in_window(start, start + timedelta(days=1), exclude_id=mine.id) == 2

    @pytest.mark.asyncio
    async def test_bookings_ended_before(self):
        store = self.create_store()
        old = await store.create_booking(_booking(start=T0 - timedelta(days=20)))
        await store.create_booking(_booking(start=T0 - timedelta(days=20), status=BookingStatus.ARCHIVED))
        await store.create_booking(_booking(start=T0 + timedelta(days=1)))
        found = await store.bookings_ended_before(T0 - timedelta(days=7), (BookingStatus.PENDING,))
        assert [b.id for b in found] == [old.id]

    # -- clients & pets ------------------------------------------------------

    @pytest.mark.asyncio
    async def test_ensure_client_creates_once(self):
        store = self.create_store()
        first = await store.ensure_client(PHONE, mark_private=True)
        second = await store.ensure_client(PHONE, name="Ana")
        assert first.id == second.id
        assert second.name == "Ana"
        assert second.is_private is True
        assert second.trusted is False

    @pytest.mark.asyncio
    async def test_ensure_client_keeps_existing_name(self):
        store = self.create_store()
        await store.ensure_client(PHONE, name="Ana")
        client = await store.ensure_client(PHONE, name="Someone Else")
        assert client.name == "Ana"

    @pytest.mark.asyncio
    async def test_set_client_trusted(self):
        store = self.create_store()
        client = await store.ensure_client(PHONE)
        await store.set_client_trusted(client.id, True)
        assert (await store.find_client(PHONE)).trusted is True

    @pytest.mark.asyncio
    async def test_link_pet_deduplicates_per_booking(self):
        store = self.create_store()
        booking = await store.create_booking(_booking())
        await store.link_pet_to_booking(booking.id, "Vida")
        await store.link_pet_to_booking(booking.id, "vida", age_months=4)
        await store.link_pet_to_booking(booking.id, "Luna")
        pets = await store.pets_for_booking(booking.id)
        assert [p.name for p in pets] == ["Vida", "Luna"]
        assert pets[0].age_months == 4
