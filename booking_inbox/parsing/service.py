"""
Service classifier: explicit vocabulary first, then the duration of the
first resolved segment.

Walking is no longer offered.  It is still recognised so that walk-only
requests can be kept out of the booking flow, but it is never returned as
a classification.
"""

import re
from datetime import datetime

from booking_inbox.domain.segments import DateSegment, ServiceType
from booking_inbox.parsing.temporal import OVERNIGHT_SPAN, parse_segments

_VOCABULARY: list[tuple[ServiceType, re.Pattern]] = [
    (ServiceType.OVERNIGHT, re.compile(
        r"\b(?:overnights?|board(?:ing)?|sleep(?:over)?s?|hospedaje|hospedar)\b", re.IGNORECASE)),
    (ServiceType.DAYCARE, re.compile(
        r"\b(?:doggy[\s-]*)?day[\s-]*care\b|\bguarder[ií]a\b", re.IGNORECASE)),
    (ServiceType.DROP_IN, re.compile(
        r"\b(?:drop[\s-]*ins?|check[\s-]*ins?|visitas?|visitar)\b", re.IGNORECASE)),
]

_WALK_RX = re.compile(r"\b(?:walk(?:s|er|ers|ing)?|paseos?|pasear)\b", re.IGNORECASE)


def vocabulary_service(text: str | None) -> ServiceType | None:
    """Service named outright in the text, or None."""
    for service, rx in _VOCABULARY:
        if text and rx.search(text):
            return service
    return None


def duration_service(segment: DateSegment) -> ServiceType:
    """A span that rounds to at least one day is an overnight stay."""
    if segment.end_at - segment.start_at >= OVERNIGHT_SPAN:
        return ServiceType.OVERNIGHT
    return ServiceType.DAYCARE


def classify_service(
    text: str | None,
    segments: list[DateSegment] | None = None,
    ref: datetime | None = None,
) -> ServiceType:
    """
    Overnight, Daycare, Drop-in or Unspecified.

    Pass *segments* when they are already resolved; otherwise the text is
    resolved against *ref* (now, if omitted).
    """
    named = vocabulary_service(text)
    if named is not None:
        return named
    if segments is None:
        segments = parse_segments(text, ref or datetime.now().astimezone())
    if segments:
        return duration_service(segments[0])
    return ServiceType.UNSPECIFIED


def is_legacy_service(text: str | None) -> bool:
    """True for walk-only requests: walking words and no other service word."""
    return bool(text) and bool(_WALK_RX.search(text)) and vocabulary_service(text) is None
