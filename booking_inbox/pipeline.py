"""
Intake pipeline: one inbound message in, booking records out.

Deterministic parsing decides; the AI oracle may only veto.

Flow:
  1. Code: EID → already stored?  → "deduped", no writes
     (a stored candidate still without a booking resumes at step 5)
  2. Code: keywords + date segments + service → candidate?
  3. AI (optional): second opinion; a confident non-booking label vetoes
  4. Code: insert the Message (the EID unique constraint is the real guard)
  5. Code: per segment, find the sender's in-flight booking or create one;
     patch missing fields, never touch CANCELED or a CONFIRMED booking's dates
  6. Code: link the message, attach pets, auto-confirm trusted clients
  7. Outbox: notify the owner, best effort
"""

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Literal

from booking_inbox.bookings import BookingService
from booking_inbox.communication.outbox import NotificationOutbox
from booking_inbox.communication.ports import Notification
from booking_inbox.config import IntakeSettings
from booking_inbox.domain.oracle import ClassificationOracle, OracleVerdict
from booking_inbox.domain.segments import DateSegment, ServiceType
from booking_inbox.domain.store import (
    Booking,
    BookingStatus,
    Client,
    DuplicateMessageError,
    Message,
    RecordStore,
)
from booking_inbox.parsing.eid import build_eid
from booking_inbox.parsing.keywords import find_keywords
from booking_inbox.parsing.pets import RoverMeta, extract_dogs_count, extract_pet_names, extract_rover_meta
from booking_inbox.parsing.service import duration_service, is_legacy_service, vocabulary_service
from booking_inbox.parsing.temporal import parse_segments

log = logging.getLogger(__name__)

_RELAY_RX = re.compile(r"@r\.rover\.com$", re.IGNORECASE)

# a booking in one of these states is never revived by a new message
_CLOSED = (BookingStatus.CANCELED, BookingStatus.ARCHIVED)

NOTES_CREATED = "Created from SMS (filtered booking candidate)"


@dataclass
class InboundMessage:
    """One webhook delivery, as received."""
    sender: str
    body: str
    received_at: datetime
    platform: str = "sms"
    timestamp: int | None = None            # provider timestamp (ms) when given
    thread_id: str | None = None
    provider_message_id: str | None = None

    @property
    def eid(self) -> str:
        ts = self.timestamp if self.timestamp is not None else int(self.received_at.timestamp() * 1000)
        return build_eid(
            self.platform,
            sender=self.sender,
            timestamp=ts,
            body=self.body,
            thread_id=self.thread_id or self.sender,
            provider_message_id=self.provider_message_id,
        )


@dataclass
class Extraction:
    """Everything the deterministic parsers read from one body."""
    keywords: list[str]
    segments: list[DateSegment]
    named_service: ServiceType | None
    legacy_service: bool
    dogs_count: int
    meta: RoverMeta
    pet_names: list[str]

    @property
    def service(self) -> ServiceType:
        return self.service_for(self.segments[0]) if self.segments else (
            self.named_service or ServiceType.UNSPECIFIED
        )

    def service_for(self, segment: DateSegment) -> ServiceType:
        return self.named_service or duration_service(segment)


def extract(body: str, ref: datetime) -> Extraction:
    """Run every parser over *body*; *ref* anchors relative dates."""
    return Extraction(
        keywords=find_keywords(body),
        segments=parse_segments(body, ref),
        named_service=vocabulary_service(body),
        legacy_service=is_legacy_service(body),
        dogs_count=extract_dogs_count(body),
        meta=extract_rover_meta(body),
        pet_names=extract_pet_names(body),
    )


def is_candidate(extraction: Extraction, policy: str = "strict") -> bool:
    """
    strict:     dates AND booking vocabulary AND not a walk-only request
    dates_only: dates AND not a walk-only request
    """
    if not extraction.segments or extraction.legacy_service:
        return False
    return policy == "dates_only" or bool(extraction.keywords)


def is_relay(sender: str, platform: str = "sms") -> bool:
    return platform == "rover" or bool(_RELAY_RX.search(sender))


@dataclass
class PipelineConfig:
    store: RecordStore
    outbox: NotificationOutbox
    oracle: ClassificationOracle | None = None
    bookings: BookingService | None = None
    settings: IntakeSettings = field(default_factory=IntakeSettings)


@dataclass
class PipelineResult:
    action: Literal[
        "deduped",          # EID already stored, nothing written
        "not_candidate",    # message stored unlinked
        "booked",           # message stored and linked to booking(s)
    ]
    eid: str
    candidate: bool = False
    message_id: int | None = None
    booking_ids: list[int] = field(default_factory=list)
    created_booking_ids: list[int] = field(default_factory=list)
    details: str = ""

    @property
    def booking_id(self) -> int | None:
        return self.booking_ids[0] if self.booking_ids else None


@dataclass
class Reconciliation:
    booking_ids: list[int] = field(default_factory=list)
    created_ids: list[int] = field(default_factory=list)
    patched_ids: list[int] = field(default_factory=list)
    client: Client | None = None


class IntakePipeline:
    """
    Stateless pipeline step: process one inbound message.

    Call process() once per webhook delivery.  reconcile() is shared with the
    batch reparse job.
    """

    def __init__(self, config: PipelineConfig):
        self._cfg = config

    @property
    def settings(self) -> IntakeSettings:
        return self._cfg.settings

    def reference_instant(self, received_at: datetime) -> datetime:
        """The received instant on the business's wall clock."""
        if received_at.tzinfo is None:
            return received_at.replace(tzinfo=self.settings.tz)
        return received_at.astimezone(self.settings.tz)

    async def process(self, inbound: InboundMessage) -> PipelineResult:
        eid = inbound.eid
        log.debug("eid=%s from=%s body=%.60r", eid[:12], inbound.sender, inbound.body)

        # Step 1: cheap pre-check; the store's unique constraint is the real guard
        existing = await self._cfg.store.find_message_by_eid(eid)
        if existing is not None:
            if existing.is_booking_candidate and existing.booking_id is None:
                return await self._resume(existing, inbound)
            log.info("eid=%s skip: already processed", eid[:12])
            return self._deduped(existing)

        # Step 2: deterministic extraction
        ref = self.reference_instant(inbound.received_at)
        extraction = extract(inbound.body, ref)
        candidate = is_candidate(extraction, self.settings.candidate_policy)

        # Step 3: optional second opinion, may only narrow
        verdict = await self._consult_oracle(inbound.body)
        if candidate and verdict is not None and verdict.vetoes(self.settings.oracle_veto_score):
            log.info("eid=%s oracle veto: %s %.2f", eid[:12], verdict.label, verdict.score)
            candidate = False

        # Step 4: persist the message, claiming the EID
        try:
            message = await self._cfg.store.create_message(Message(
                eid=eid,
                platform=inbound.platform,
                thread_id=inbound.thread_id or inbound.sender,
                sender=inbound.sender,
                body=inbound.body[:self.settings.body_limit],
                received_at=ref,
                is_booking_candidate=candidate,
                keywords=extraction.keywords,
                segments=extraction.segments,
                classify_label=verdict.label if verdict else None,
                classify_score=verdict.score if verdict else None,
                extracted_json=json.dumps(verdict.extracted, ensure_ascii=False) if verdict else None,
            ))
        except DuplicateMessageError:
            log.info("eid=%s skip: stored by a concurrent delivery", eid[:12])
            existing = await self._cfg.store.find_message_by_eid(eid)
            return self._deduped(existing) if existing else PipelineResult(action="deduped", eid=eid)

        log.info(
            "eid=%s msg=%d keywords=%s segments=%d candidate=%s",
            eid[:12], message.id, extraction.keywords, len(extraction.segments), candidate,
        )

        if not candidate:
            self._notify(inbound, booking_id=None)
            await self._cfg.outbox.dispatch()
            return PipelineResult(
                action="not_candidate", eid=eid, candidate=False, message_id=message.id,
            )

        return await self._book(message, extraction, inbound)

    async def _resume(self, message: Message, inbound: InboundMessage) -> PipelineResult:
        """
        A stored candidate with no booking: an earlier delivery failed between
        steps 4 and 6.  Re-run reconciliation against the stored message.
        """
        extraction = extract(message.body, self.reference_instant(message.received_at))
        if not extraction.segments:
            log.info("eid=%s skip: stored candidate no longer has dates", message.eid[:12])
            return self._deduped(message)
        log.info("eid=%s msg=%d resuming unfinished intake", message.eid[:12], message.id)
        return await self._book(message, extraction, inbound)

    async def _book(self, message: Message, extraction: Extraction, inbound: InboundMessage) -> PipelineResult:
        # Step 5: find-or-create booking threads
        rec = await self.reconcile(message, extraction)

        # Step 6: link + soft side effects
        await self._cfg.store.update_message(message.id, booking_id=rec.booking_ids[0])
        await self._attach_pets(rec.booking_ids[0], extraction, rec.client)
        await self._auto_confirm(rec)

        # Step 7: tell the owner
        self._notify(inbound, booking_id=rec.booking_ids[0])
        await self._cfg.outbox.dispatch()

        return PipelineResult(
            action="booked",
            eid=message.eid,
            candidate=True,
            message_id=message.id,
            booking_ids=rec.booking_ids,
            created_booking_ids=rec.created_ids,
            details=f"created={len(rec.created_ids)} patched={len(rec.patched_ids)}",
        )

    # -- reconciliation ------------------------------------------------------

    async def reconcile(self, message: Message, extraction: Extraction) -> Reconciliation:
        """
        Resolve one booking per segment for the message's sender.

        The lookback is measured from the message's received time.  Bookings
        already claimed by an earlier segment of the same message are skipped.
        """
        s = self.settings
        store = self._cfg.store
        sender = message.sender
        relay = is_relay(sender, message.platform)
        since = message.received_at - timedelta(days=s.lookback_days)
        window = timedelta(days=s.thread_match_window_days)

        rec = Reconciliation()
        if not relay:
            rec.client = await store.ensure_client(sender, name=extraction.meta.owner_name, mark_private=True)

        for segment in extraction.segments:
            service = extraction.service_for(segment)
            found = await store.find_recent_booking_for_sender(
                sender, since, near=segment.start_at, window=window,
                exclude_ids=tuple(rec.booking_ids),
            )

            if found is None or found.status in _CLOSED:
                booking = await store.create_booking(Booking(
                    source="ROVER" if relay else "SMS",
                    client_name=extraction.meta.owner_name or (rec.client.name if rec.client else None) or sender,
                    client_phone=None if relay else sender,
                    rover_relay=sender if relay else None,
                    dogs_count=extraction.dogs_count,
                    service_type=service,
                    start_at=segment.start_at,
                    end_at=segment.end_at,
                    status=BookingStatus.PENDING,
                    notes=NOTES_CREATED,
                    client_id=rec.client.id if rec.client else None,
                    created_at=message.received_at,
                ))
                log.info(
                    "msg=%s booking=%d created %s %s → %s%s",
                    message.id, booking.id, service.value, segment.start_at.isoformat(),
                    segment.end_at.isoformat(),
                    f" (booking {found.id} is {found.status.value})" if found else "",
                )
                rec.created_ids.append(booking.id)
                rec.booking_ids.append(booking.id)
                continue

            patch = self.patch_for(found, segment, service)
            if patch:
                await store.update_booking(found.id, **patch)
                rec.patched_ids.append(found.id)
                log.info("msg=%s booking=%d patched %s", message.id, found.id, sorted(patch))
            rec.booking_ids.append(found.id)

        return rec

    def patch_for(self, booking: Booking, segment: DateSegment, service: ServiceType) -> dict:
        """
        Missing fields only: a service when the booking has none, fresh dates
        while it is PENDING and they moved by more than the tolerance.
        """
        patch = {}
        if booking.service_type == ServiceType.UNSPECIFIED and service != ServiceType.UNSPECIFIED:
            patch["service_type"] = service
        if booking.status == BookingStatus.PENDING:
            tolerance = timedelta(seconds=self.settings.date_tolerance_seconds)
            if (abs(booking.start_at - segment.start_at) > tolerance
                    or abs(booking.end_at - segment.end_at) > tolerance):
                patch["start_at"] = segment.start_at
                patch["end_at"] = segment.end_at
        return patch

    # -- soft side effects ---------------------------------------------------

    async def _consult_oracle(self, body: str) -> OracleVerdict | None:
        if self._cfg.oracle is None:
            return None
        try:
            return await self._cfg.oracle.classify(body)
        except Exception as exc:
            log.warning("oracle unavailable, deterministic result stands: %s", exc)
            return None

    async def _attach_pets(self, booking_id: int, extraction: Extraction, client: Client | None) -> None:
        meta = extraction.meta
        names = extraction.pet_names
        if meta.pet_name and meta.pet_name not in names:
            names = [meta.pet_name, *names]
        for name in names:
            try:
                details = {}
                if name == meta.pet_name:
                    details = {"age_months": meta.pet_age_months, "weight_lbs": meta.pet_weight_lbs}
                await self._cfg.store.link_pet_to_booking(
                    booking_id, name, client_id=client.id if client else None, **details
                )
            except Exception as exc:
                log.warning("booking=%d pet %r not linked: %s", booking_id, name, exc)

    async def _auto_confirm(self, rec: Reconciliation) -> None:
        client = rec.client
        if not (self.settings.auto_confirm_trusted and self._cfg.bookings is not None):
            return
        if client is None or not (client.trusted and client.is_private):
            return
        for booking_id in rec.created_ids:
            try:
                await self._cfg.bookings.confirm(booking_id)
                log.info("booking=%d auto-confirmed for trusted client %d", booking_id, client.id)
            except Exception as exc:
                log.warning("booking=%d auto-confirm failed: %s", booking_id, exc)

    def _notify(self, inbound: InboundMessage, booking_id: int | None) -> None:
        self._cfg.outbox.enqueue(Notification(
            title="📩 New booking message" if booking_id else "📩 New message",
            body=f"{inbound.sender}: {inbound.body[:100]}",
            url=f"/booking/{booking_id}" if booking_id else "/",
        ))

    @staticmethod
    def _deduped(existing: Message) -> PipelineResult:
        return PipelineResult(
            action="deduped",
            eid=existing.eid,
            candidate=existing.is_booking_candidate,
            message_id=existing.id,
            booking_ids=[existing.booking_id] if existing.booking_id else [],
        )
