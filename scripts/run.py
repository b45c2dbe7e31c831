"""
Local process runner for the booking inbox webhook.

Serves the FastAPI app with uvicorn.  The SMS forwarder posts each inbound
message to /webhooks/sms-forward?token=SMS_FORWARD_TOKEN.

Usage:
    source .env && python scripts/run.py

Environment variables (all optional unless noted):
    SMS_FORWARD_TOKEN       - shared secret for the webhook (required)
    DB_PATH                 - SQLite database path (default: data/booking_inbox.db)
    HOST, PORT              - bind address (default: 0.0.0.0:8000)
    ANTHROPIC_API_KEY       - enables the Claude classification oracle
    NOTIFY_CHANNEL          - "console", "push" or "email" (default: console)
    PUSH_RELAY_URL, PUSH_RELAY_TOKEN            (NOTIFY_CHANNEL=push)
    EMAIL_SMTP_HOST, EMAIL_SMTP_PORT, EMAIL_USER,
    EMAIL_PASSWORD, OWNER_EMAIL, PUBLIC_BASE_URL (NOTIFY_CHANNEL=email)
    GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET,
    GOOGLE_REFRESH_TOKEN, GOOGLE_CALENDAR_ID     - enable calendar publishing

    Intake tunables: LOOKBACK_DAYS, THREAD_MATCH_WINDOW_DAYS, CANDIDATE_POLICY,
    ORACLE_VETO_SCORE, AUTO_CONFIRM_TRUSTED, CAPACITY, AUTO_ARCHIVE_DAYS, BUSINESS_TZ
"""

import logging
import os
import sys

import uvicorn

# Make sure project root is on sys.path when run as a script
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from booking_inbox.web import create_app
from booking_inbox.wiring import build_services

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-7s  %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
log = logging.getLogger(__name__)


def _require_env(name: str) -> str:
    value = os.environ.get(name)
    if not value:
        print(f"ERROR: environment variable {name!r} is not set.", file=sys.stderr)
        sys.exit(1)
    return value


def main() -> None:
    token = _require_env("SMS_FORWARD_TOKEN")
    services = build_services()
    app = create_app(services.pipeline, services.bookings, services.reparse, token=token)

    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", "8000"))
    log.info(
        "Booking inbox started on %s:%d  policy=%s  tz=%s",
        host, port, services.settings.candidate_policy, services.settings.timezone,
    )
    uvicorn.run(app, host=host, port=port, log_level="info")


if __name__ == "__main__":
    main()
