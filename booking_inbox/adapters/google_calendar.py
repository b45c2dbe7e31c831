"""
GoogleCalendar — CalendarService over the Google Calendar v3 REST API.

Authenticates with an OAuth refresh token (GOOGLE_CLIENT_ID,
GOOGLE_CLIENT_SECRET, GOOGLE_REFRESH_TOKEN) and keys every event on a
shared extended property ``bookingId``.
"""

import time
from datetime import datetime
from urllib.parse import quote

import requests

from booking_inbox.domain.calendar import (
    BusyInterval,
    CalendarService,
    Transparency,
    event_summary,
)
from booking_inbox.domain.store import Booking

TOKEN_URL = "https://oauth2.googleapis.com/token"
BASE_URL = "https://www.googleapis.com/calendar/v3"

# refresh the access token this many seconds before it expires
_EXPIRY_MARGIN = 60


class GoogleCalendar(CalendarService):
    """Adapter: real Google Calendar HTTP client."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        refresh_token: str,
        calendar_id: str = "primary",
        timeout: float = 10.0,
    ):
        self._client_id = client_id
        self._client_secret = client_secret
        self._refresh_token = refresh_token
        self._calendar_id = calendar_id
        self._timeout = timeout
        self._access_token: str | None = None
        self._expires_at = 0.0
        self.session = requests.Session()

    # -- auth ----------------------------------------------------------------

    def _headers(self) -> dict[str, str]:
        if self._access_token is None or time.time() >= self._expires_at:
            resp = self.session.post(
                TOKEN_URL,
                data={
                    "client_id": self._client_id,
                    "client_secret": self._client_secret,
                    "refresh_token": self._refresh_token,
                    "grant_type": "refresh_token",
                },
                timeout=self._timeout,
            )
            resp.raise_for_status()
            data = resp.json()
            self._access_token = data["access_token"]
            self._expires_at = time.time() + int(data.get("expires_in", 3600)) - _EXPIRY_MARGIN
        return {"Authorization": f"Bearer {self._access_token}"}

    def _events_url(self, event_id: str | None = None) -> str:
        url = f"{BASE_URL}/calendars/{quote(self._calendar_id, safe='')}/events"
        return f"{url}/{event_id}" if event_id else url

    def _find_event_id(self, booking_id: int) -> str | None:
        resp = self.session.get(
            self._events_url(),
            headers=self._headers(),
            params={
                "sharedExtendedProperty": f"bookingId={booking_id}",
                "maxResults": 1,
                "singleEvents": "true",
            },
            timeout=self._timeout,
        )
        resp.raise_for_status()
        items = resp.json().get("items", [])
        return items[0]["id"] if items else None

    # -- port ----------------------------------------------------------------

    async def list_busy(self, start: datetime, end: datetime) -> list[BusyInterval]:
        resp = self.session.post(
            f"{BASE_URL}/freeBusy",
            headers=self._headers(),
            json={
                "timeMin": start.isoformat(),
                "timeMax": end.isoformat(),
                "items": [{"id": self._calendar_id}],
            },
            timeout=self._timeout,
        )
        resp.raise_for_status()
        busy = resp.json().get("calendars", {}).get(self._calendar_id, {}).get("busy", [])
        return [
            BusyInterval(
                start=datetime.fromisoformat(b["start"].replace("Z", "+00:00")),
                end=datetime.fromisoformat(b["end"].replace("Z", "+00:00")),
            )
            for b in busy
        ]

    async def publish_busy_event(self, booking: Booking, transparency: Transparency) -> None:
        body = {
            "summary": event_summary(booking, transparency),
            "start": {"dateTime": booking.start_at.isoformat()},
            "end": {"dateTime": booking.end_at.isoformat()},
            "transparency": transparency,
            "extendedProperties": {"shared": {"bookingId": str(booking.id)}},
        }
        event_id = self._find_event_id(booking.id)
        if event_id:
            resp = self.session.put(
                self._events_url(event_id), headers=self._headers(), json=body, timeout=self._timeout
            )
        else:
            resp = self.session.post(
                self._events_url(), headers=self._headers(), json=body, timeout=self._timeout
            )
        resp.raise_for_status()

    async def retract_busy_event(self, booking_id: int) -> None:
        event_id = self._find_event_id(booking_id)
        if not event_id:
            return
        resp = self.session.delete(
            self._events_url(event_id), headers=self._headers(), timeout=self._timeout
        )
        # already gone is fine
        if resp.status_code not in (404, 410):
            resp.raise_for_status()
