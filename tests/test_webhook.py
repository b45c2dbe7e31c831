"""
HTTP surface tests through FastAPI's TestClient.

In-memory store, quiet console notifier, memory calendar.
"""

from datetime import datetime
from zoneinfo import ZoneInfo

import pytest
from fastapi.testclient import TestClient

from booking_inbox.adapters.memory_calendar import MemoryCalendar
from booking_inbox.adapters.memory_store import InMemoryRecordStore
from booking_inbox.bookings import BookingService
from booking_inbox.communication.console_notifier import ConsoleNotifier
from booking_inbox.communication.outbox import NotificationOutbox
from booking_inbox.config import IntakeSettings
from booking_inbox.domain.store import RecordStoreError
from booking_inbox.pipeline import IntakePipeline, PipelineConfig
from booking_inbox.reparse import ReparseJob
from booking_inbox.web import PING_TEXT, create_app

LA = ZoneInfo("America/Los_Angeles")
TOKEN = "s3cret"
PHONE = "+15551234567"
# 2025-11-01 12:00 in Los Angeles
SAT_NOV_1_MS = 1762023600000


def _app(store, calendar=None, settings=None):
    settings = settings or IntakeSettings()
    bookings = BookingService(store, calendar=calendar, settings=settings)
    pipeline = IntakePipeline(PipelineConfig(
        store=store,
        outbox=NotificationOutbox(ConsoleNotifier(quiet=True)),
        bookings=bookings,
        settings=settings,
    ))
    return create_app(pipeline, bookings, ReparseJob(pipeline, store), token=TOKEN)


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def calendar():
    return MemoryCalendar()


@pytest.fixture
def client(store, calendar):
    with TestClient(_app(store, calendar)) as c:
        yield c


def _forward(client, body="Hi! Board my dog from Nov 7 to Nov 9?", **fields):
    payload = {"from": PHONE, "body": body, "timestamp": SAT_NOV_1_MS, **fields}
    return client.post(f"/webhooks/sms-forward?token={TOKEN}", json=payload)


# ---------------------------------------------------------------------------
# Ingress
# ---------------------------------------------------------------------------


def test_health(client):
    assert client.get("/health").json() == {"ok": True}


def test_ping(client):
    resp = client.get("/webhooks/ping")
    assert resp.status_code == 200
    assert resp.text == PING_TEXT


@pytest.mark.parametrize("query", ["", "?token=wrong"])
def test_webhook_rejects_bad_token(client, store, query):
    resp = client.post(f"/webhooks/sms-forward{query}", json={"from": PHONE, "body": "Board Max Nov 7"})
    assert resp.status_code == 401


@pytest.mark.parametrize("payload", [{"from": PHONE}, {"body": "Board Max Nov 7"}, {"from": " ", "body": "x"}])
def test_webhook_requires_sender_and_body(client, payload):
    resp = client.post(f"/webhooks/sms-forward?token={TOKEN}", json=payload)
    assert resp.status_code == 400


def test_webhook_json_creates_booking(client, store):
    resp = _forward(client)

    assert resp.status_code == 200
    data = resp.json()
    assert data["ok"] is True
    assert data["deduped"] is False
    assert data["candidate"] is True
    assert data["bookingIds"] == data["createdBookingIds"] == [data["bookingId"]]

    booking = client.portal.call(store.get_booking, data["bookingId"])
    assert booking.start_at == datetime(2025, 11, 7, 17, 0, tzinfo=LA)
    assert booking.end_at == datetime(2025, 11, 9, 17, 0, tzinfo=LA)


def test_webhook_form_body(client):
    resp = client.post(
        f"/webhooks/sms-forward?token={TOKEN}",
        data={"from": PHONE, "body": "Can you board Max Nov 7 to Nov 9?", "timestamp": str(SAT_NOV_1_MS)},
    )
    assert resp.status_code == 200
    assert resp.json()["candidate"] is True


def test_webhook_query_parameters(client):
    resp = client.post(
        "/webhooks/sms-forward",
        params={"token": TOKEN, "from": PHONE, "body": "Board Max Nov 7 to Nov 9?", "timestamp": SAT_NOV_1_MS},
    )
    assert resp.status_code == 200
    assert resp.json()["bookingId"] is not None


def test_webhook_redelivery_is_deduped(client, store):
    first = _forward(client).json()
    second = _forward(client).json()

    assert second["deduped"] is True
    assert second["messageId"] == first["messageId"]
    assert second["bookingId"] == first["bookingId"]
    assert len(client.portal.call(store.list_bookings)) == 1


def test_webhook_small_talk(client):
    data = _forward(client, body="thanks, see you soon!").json()
    assert data["candidate"] is False
    assert data["bookingId"] is None
    assert data["messageId"] is not None


def test_webhook_store_failure_is_500():
    class _Down(InMemoryRecordStore):
        async def find_message_by_eid(self, eid):
            raise RecordStoreError("database is locked")

    with TestClient(_app(_Down())) as client:
        resp = _forward(client)
    assert resp.status_code == 500
    assert resp.json()["ok"] is False


def test_webhook_retry_after_500_books(calendar):
    class _Flaky(InMemoryRecordStore):
        failures = 1

        async def create_booking(self, booking):
            if self.failures:
                self.failures -= 1
                raise RecordStoreError("database is locked")
            return await super().create_booking(booking)

    store = _Flaky()
    with TestClient(_app(store, calendar)) as client:
        assert _forward(client).status_code == 500
        resp = _forward(client)
        bookings = client.portal.call(store.list_bookings)

    assert resp.status_code == 200
    data = resp.json()
    assert data["deduped"] is False
    assert [b.id for b in bookings] == [data["bookingId"]]


# ---------------------------------------------------------------------------
# Booking actions
# ---------------------------------------------------------------------------


def test_confirm_then_decline(client, calendar):
    booking_id = _forward(client).json()["bookingId"]

    resp = client.post(f"/api/actions/confirm/{booking_id}")
    assert resp.status_code == 200
    data = resp.json()
    assert data["booking"]["status"] == "CONFIRMED"
    assert data["booking"]["serviceType"] == "Overnight"
    assert data["newTotal"] == 1
    assert data["transparency"] == "transparent"
    assert booking_id in calendar.events

    resp = client.post(f"/api/actions/decline/{booking_id}")
    assert resp.status_code == 200
    assert resp.json()["booking"]["status"] == "CANCELED"
    assert booking_id not in calendar.events


def test_confirm_twice_is_conflict(client):
    booking_id = _forward(client).json()["bookingId"]
    client.post(f"/api/actions/confirm/{booking_id}")
    resp = client.post(f"/api/actions/confirm/{booking_id}")
    assert resp.status_code == 409


@pytest.mark.parametrize("action", ["confirm", "decline"])
def test_unknown_booking_is_404(client, action):
    assert client.post(f"/api/actions/{action}/999").status_code == 404


def test_availability(client):
    booking_id = _forward(client).json()["bookingId"]
    client.post(f"/api/actions/confirm/{booking_id}")

    resp = client.get("/api/availability", params={
        "start": "2025-11-08T00:00:00-08:00", "end": "2025-11-08T23:59:00-08:00",
    })

    assert resp.status_code == 200
    data = resp.json()
    assert data["dogsOverlapping"] == 1
    assert data["willExceed"] is False
    assert data["busy"] == []       # one dog is below capacity, event stays transparent


@pytest.mark.parametrize("params", [
    {},
    {"start": "2025-11-08"},
    {"start": "soon", "end": "2025-11-09"},
    {"start": "2025-11-09", "end": "2025-11-08"},
])
def test_availability_bad_window(client, params):
    assert client.get("/api/availability", params=params).status_code == 400


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


def test_reparse_requires_token(client):
    assert client.post("/admin/intake/reparse").status_code == 401


def test_reparse_summary(client):
    _forward(client, body="thanks, see you soon!")
    resp = client.post(f"/admin/intake/reparse?token={TOKEN}&days=36500&onlyUnlinked=true")

    assert resp.status_code == 200
    data = resp.json()
    assert data["scanned"] == 1
    assert data["created"] == 0
    assert data["touchedBookings"] == []
    assert "since" in data
