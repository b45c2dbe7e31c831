"""
Adapter contract tests for Notifier.

The same contract is verified against:
  - ConsoleNotifier   (always runs)
  - HttpPushNotifier  (always runs, against a recording session)
  - EmailNotifier     (skipped if email credentials are not set)
"""

import os

import pytest

from booking_inbox.communication.console_notifier import ConsoleNotifier
from booking_inbox.communication.email_notifier import EmailNotifier
from booking_inbox.communication.ports import Notification
from booking_inbox.communication.push_notifier import HttpPushNotifier

from tests.contracts.notifier_contract import NotifierContract

# ---------------------------------------------------------------------------
# Console — always runs
# ---------------------------------------------------------------------------


class TestConsoleNotifierContract(NotifierContract):

    def create_notifier(self):
        self._notifier = ConsoleNotifier(quiet=True)
        return self._notifier

    def delivered(self):
        return [{"title": n.title, "body": n.body, "url": n.url} for n in self._notifier.sent]


# ---------------------------------------------------------------------------
# Push relay — the HTTP session is replaced by a recorder
# ---------------------------------------------------------------------------


class _Response:
    status_code = 201

    def raise_for_status(self):
        return None


class _RecordingSession:

    def __init__(self):
        self.headers = {}
        self.posts = []

    def post(self, url, json=None, timeout=None):
        self.posts.append({"url": url, "json": json, "timeout": timeout})
        return _Response()


class TestHttpPushNotifierContract(NotifierContract):

    def create_notifier(self):
        self._notifier = HttpPushNotifier("https://relay.example/notify", token="s3cret")
        self._session = _RecordingSession()
        self._notifier.session = self._session
        return self._notifier

    def delivered(self):
        return [p["json"] for p in self._session.posts]


def test_push_notifier_sends_bearer_token():
    notifier = HttpPushNotifier("https://relay.example/notify", token="s3cret")
    assert notifier.session.headers["Authorization"] == "Bearer s3cret"


# ---------------------------------------------------------------------------
# Real email — skipped without credentials
# ---------------------------------------------------------------------------

EMAIL_USER = os.environ.get("EMAIL_USER", "")
EMAIL_PASSWORD = os.environ.get("EMAIL_PASSWORD", "")
OWNER_EMAIL = os.environ.get("OWNER_EMAIL", "")

CREDS_AVAILABLE = all([EMAIL_USER, EMAIL_PASSWORD, OWNER_EMAIL])


@pytest.mark.skipif(
    not CREDS_AVAILABLE,
    reason="Email credentials not set",
)
class TestEmailNotifierContract(NotifierContract):

    def create_notifier(self):
        return EmailNotifier(
            smtp_host=os.environ.get("EMAIL_SMTP_HOST", "smtp.gmail.com"),
            smtp_port=int(os.environ.get("EMAIL_SMTP_PORT", "587")),
            smtp_user=EMAIL_USER,
            smtp_password=EMAIL_PASSWORD,
            owner_email=OWNER_EMAIL,
        )

    def delivered(self):
        return None


def test_email_message_links_to_booking():
    notifier = EmailNotifier(
        smtp_host="smtp.example", smtp_port=587, smtp_user="inbox@example.com",
        smtp_password="x", owner_email="owner@example.com", base_url="https://inbox.example/",
    )
    msg = notifier.build_message(Notification("📩 New booking message", "+1555: hi", "/booking/3"))
    assert msg["To"] == "owner@example.com"
    assert msg["Subject"] == "📩 New booking message"
    assert "https://inbox.example/booking/3" in msg.get_payload(decode=True).decode("utf-8")
