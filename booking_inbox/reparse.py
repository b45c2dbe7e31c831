"""
Batch reparse: re-run extraction over stored inbound messages.

Used after the resolver learns new phrasings.  Each message is parsed
against its own received time, so "this weekend" means the weekend after
the message arrived.  A linked message moves its still-PENDING booking onto
its first segment; when several messages share a booking the newest one
decides.  Re-running over already-correct messages changes nothing.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from booking_inbox.config import IntakeSettings
from booking_inbox.domain.oracle import OracleVerdict
from booking_inbox.domain.store import BookingStatus, Message, RecordStore
from booking_inbox.pipeline import Extraction, IntakePipeline, extract, is_candidate

log = logging.getLogger(__name__)


class ReparseAlreadyRunning(RuntimeError):
    def __init__(self):
        super().__init__("a reparse run is already in progress")


@dataclass
class ReparseSummary:
    since: datetime
    scanned: int = 0
    updated: int = 0        # messages whose stored extraction changed
    created: int = 0        # bookings created
    linked: int = 0         # messages newly linked to a booking
    touched_bookings: list[int] = field(default_factory=list)


class ReparseJob:

    def __init__(self, pipeline: IntakePipeline, store: RecordStore, settings: IntakeSettings | None = None):
        self._pipeline = pipeline
        self._store = store
        self._settings = settings or pipeline.settings
        self._lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._lock.locked()

    async def run(
        self,
        days: int = 180,
        only_unlinked: bool = False,
        limit: int = 5000,
        now: datetime | None = None,
    ) -> ReparseSummary:
        """Raises ReparseAlreadyRunning instead of waiting for the lock."""
        if self._lock.locked():
            raise ReparseAlreadyRunning()
        async with self._lock:
            now = now or datetime.now(timezone.utc)
            since = now - timedelta(days=days)
            summary = ReparseSummary(since=since)
            messages = await self._store.list_inbound_messages(since, only_unlinked=only_unlinked, limit=limit)
            log.info("reparse: %d message(s) since %s", len(messages), since.isoformat())

            # the newest linked message decides its booking's dates
            newest = {m.booking_id: m.id for m in messages if m.booking_id is not None}

            # sequential: reconciliation reads what the previous message wrote
            for message in messages:
                summary.scanned += 1
                await self._reparse_one(message, summary, newest.get(message.booking_id) == message.id)

            log.info(
                "reparse done: scanned=%d updated=%d created=%d linked=%d bookings=%d",
                summary.scanned, summary.updated, summary.created, summary.linked,
                len(summary.touched_bookings),
            )
            return summary

    async def _reparse_one(self, message: Message, summary: ReparseSummary, newest: bool = False) -> None:
        ref = self._pipeline.reference_instant(message.received_at)
        extraction = extract(message.body, ref)
        candidate = is_candidate(extraction, self._settings.candidate_policy)

        # a recorded oracle veto still stands
        if candidate and message.classify_label is not None and message.classify_score is not None:
            verdict = OracleVerdict(message.classify_label, message.classify_score)
            candidate = not verdict.vetoes(self._settings.oracle_veto_score)

        patch = {}
        if extraction.keywords != message.keywords:
            patch["keywords"] = extraction.keywords
        if [(s.start_at, s.end_at) for s in extraction.segments] != [(s.start_at, s.end_at) for s in message.segments]:
            patch["segments"] = extraction.segments
        if candidate != message.is_booking_candidate:
            patch["is_booking_candidate"] = candidate

        if candidate and message.booking_id is None:
            rec = await self._pipeline.reconcile(message, extraction)
            patch["booking_id"] = rec.booking_ids[0]
            summary.created += len(rec.created_ids)
            summary.linked += 1
            for booking_id in rec.booking_ids:
                if booking_id not in summary.touched_bookings:
                    summary.touched_bookings.append(booking_id)
        elif candidate and newest and extraction.segments:
            await self._repair_booking(message, extraction, summary)

        if patch:
            await self._store.update_message(message.id, **patch)
            summary.updated += 1
            log.debug("reparse msg=%d changed %s body=%.60r", message.id, sorted(patch), message.body)

    async def _repair_booking(self, message: Message, extraction: Extraction, summary: ReparseSummary) -> None:
        """Move a still-PENDING linked booking onto the message's first segment."""
        booking = await self._store.get_booking(message.booking_id)
        if booking is None or booking.status != BookingStatus.PENDING:
            return
        segment = extraction.segments[0]
        patch = self._pipeline.patch_for(booking, segment, extraction.service_for(segment))
        if not patch:
            return
        await self._store.update_booking(booking.id, **patch)
        log.info("reparse msg=%d booking=%d repaired %s", message.id, booking.id, sorted(patch))
        if booking.id not in summary.touched_bookings:
            summary.touched_bookings.append(booking.id)
