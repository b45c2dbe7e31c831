"""
HTTP surface: SMS-forward webhook, booking actions, availability, reparse.

Transport only.  Decisions live in IntakePipeline, BookingService and
ReparseJob; this module parses requests and maps their errors to status
codes.
"""

import json
import logging
import secrets
from datetime import datetime, timezone

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from booking_inbox.bookings import BookingNotFound, BookingService, InvalidTransition
from booking_inbox.domain.store import Booking, RecordStoreError
from booking_inbox.pipeline import InboundMessage, IntakePipeline
from booking_inbox.reparse import ReparseAlreadyRunning, ReparseJob

log = logging.getLogger(__name__)

PING_TEXT = "Webhook is up. Use POST with JSON or form fields: {from, body, timestamp}."


def _parse_instant(raw: str | None, field_name: str) -> datetime:
    if not raw:
        raise HTTPException(status_code=400, detail=f"{field_name} is required")
    try:
        value = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        raise HTTPException(status_code=400, detail=f"{field_name} must be an ISO date/time") from None
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _parse_timestamp(raw) -> int | None:
    """Provider timestamp in epoch milliseconds; anything unusable is ignored."""
    if raw in (None, ""):
        return None
    try:
        value = int(float(raw))
    except (TypeError, ValueError):
        return None
    return value if value > 0 else None


def _flag(raw) -> bool:
    return str(raw).lower() in ("1", "true", "yes", "on")


async def _payload(request: Request) -> dict:
    """Fields from a JSON body, a form body, or the query string, in that order."""
    fields: dict = {}
    content_type = request.headers.get("content-type", "")
    raw = await request.body()
    if "application/json" in content_type or raw.lstrip().startswith(b"{"):
        try:
            decoded = json.loads(raw or b"{}")
        except ValueError:
            decoded = None
        if isinstance(decoded, dict):
            fields = decoded
    elif raw:
        form = await request.form()
        fields = {k: v for k, v in form.items() if isinstance(v, str)}
    if not fields.get("from"):
        fields = {**dict(request.query_params), **fields}
        fields.pop("token", None)
    return fields


def _booking_json(booking: Booking) -> dict:
    return {
        "id": booking.id,
        "status": booking.status.value,
        "serviceType": booking.service_type.value,
        "startAt": booking.start_at.isoformat(),
        "endAt": booking.end_at.isoformat(),
        "clientName": booking.client_name,
        "dogsCount": booking.dogs_count,
    }


def create_app(
    pipeline: IntakePipeline,
    bookings: BookingService,
    reparse: ReparseJob,
    token: str | None = None,
) -> FastAPI:
    """
    Build the application.  With *token* set, the webhook and admin routes
    require a matching ?token= query parameter.
    """
    app = FastAPI(title="booking-inbox")

    def check_token(request: Request) -> None:
        if token is None:
            return
        given = request.query_params.get("token") or ""
        if not secrets.compare_digest(given, token):
            raise HTTPException(status_code=401, detail="unauthorized")

    @app.exception_handler(RecordStoreError)
    async def store_unavailable(request: Request, exc: RecordStoreError):
        log.error("%s %s: record store error: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=500, content={"ok": False, "error": "store unavailable"})

    @app.exception_handler(BookingNotFound)
    async def booking_not_found(request: Request, exc: BookingNotFound):
        return JSONResponse(status_code=404, content={"ok": False, "error": str(exc)})

    @app.exception_handler(InvalidTransition)
    async def invalid_transition(request: Request, exc: InvalidTransition):
        return JSONResponse(status_code=409, content={"ok": False, "error": str(exc)})

    @app.exception_handler(ReparseAlreadyRunning)
    async def reparse_running(request: Request, exc: ReparseAlreadyRunning):
        return JSONResponse(status_code=409, content={"ok": False, "error": str(exc)})

    # -- ingress -------------------------------------------------------------

    @app.get("/health")
    async def health():
        return {"ok": True}

    @app.get("/webhooks/ping", response_class=PlainTextResponse)
    async def ping():
        return PING_TEXT

    @app.post("/webhooks/sms-forward")
    async def sms_forward(request: Request):
        check_token(request)
        fields = await _payload(request)
        sender = str(fields.get("from") or "").strip()
        body = str(fields.get("body") or "").strip()
        if not sender or not body:
            raise HTTPException(status_code=400, detail="from and body are required")

        timestamp = _parse_timestamp(fields.get("timestamp"))
        received_at = (
            datetime.fromtimestamp(timestamp / 1000, tz=timezone.utc)
            if timestamp else datetime.now(timezone.utc)
        )
        inbound = InboundMessage(
            sender=sender,
            body=body,
            received_at=received_at,
            platform=str(fields.get("platform") or "sms").lower(),
            timestamp=timestamp,
            thread_id=fields.get("threadId") or None,
            provider_message_id=fields.get("providerMessageId") or None,
        )
        result = await pipeline.process(inbound)
        return {
            "ok": True,
            "deduped": result.action == "deduped",
            "candidate": result.candidate,
            "messageId": result.message_id,
            "bookingId": result.booking_id,
            "bookingIds": result.booking_ids,
            "createdBookingIds": result.created_booking_ids,
        }

    # -- booking actions -----------------------------------------------------

    @app.post("/api/actions/confirm/{booking_id}")
    async def confirm(booking_id: int):
        result = await bookings.confirm(booking_id)
        return {
            "ok": True,
            "booking": _booking_json(result.booking),
            "newTotal": result.new_total,
            "transparency": result.transparency,
        }

    @app.post("/api/actions/decline/{booking_id}")
    async def decline(booking_id: int):
        booking = await bookings.decline(booking_id)
        return {"ok": True, "booking": _booking_json(booking)}

    @app.get("/api/availability")
    async def availability(start: str | None = None, end: str | None = None):
        start_at = _parse_instant(start, "start")
        end_at = _parse_instant(end, "end")
        try:
            result = await bookings.availability(start_at, end_at)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from None
        return {
            "start": result.start.isoformat(),
            "end": result.end.isoformat(),
            "busy": [{"start": b.start.isoformat(), "end": b.end.isoformat()} for b in result.busy],
            "dogsOverlapping": result.dogs_overlapping,
            "willExceed": result.will_exceed,
        }

    # -- admin ---------------------------------------------------------------

    @app.post("/admin/intake/reparse")
    async def run_reparse(request: Request, days: int = 180, onlyUnlinked: str = "false"):
        check_token(request)
        summary = await reparse.run(days=days, only_unlinked=_flag(onlyUnlinked))
        return {
            "ok": True,
            "since": summary.since.isoformat(),
            "scanned": summary.scanned,
            "updated": summary.updated,
            "created": summary.created,
            "linked": summary.linked,
            "touchedBookings": summary.touched_bookings,
        }

    return app
