from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from booking_inbox.domain.segments import DateSegment, ServiceType
from booking_inbox.parsing.service import (
    classify_service,
    duration_service,
    is_legacy_service,
    vocabulary_service,
)

LA = ZoneInfo("America/Los_Angeles")
REF = datetime(2025, 11, 1, 12, tzinfo=LA)


def _seg(hours):
    start = datetime(2025, 11, 7, 9, tzinfo=LA)
    return DateSegment(start, start + timedelta(hours=hours), "x")


@pytest.mark.parametrize("text,service", [
    ("overnight please", ServiceType.OVERNIGHT),
    ("can you board him", ServiceType.OVERNIGHT),
    ("a sleepover for Luna", ServiceType.OVERNIGHT),
    ("necesito hospedaje", ServiceType.OVERNIGHT),
    ("doggy day care", ServiceType.DAYCARE),
    ("daycare on Monday", ServiceType.DAYCARE),
    ("guardería", ServiceType.DAYCARE),
    ("a drop-in visit", ServiceType.DROP_IN),
    ("quick check in at noon", ServiceType.DROP_IN),
    ("una visita", ServiceType.DROP_IN),
])
def test_vocabulary(text, service):
    assert vocabulary_service(text) == service


def test_no_vocabulary():
    assert vocabulary_service("hello there") is None
    assert vocabulary_service(None) is None


def test_duration():
    assert duration_service(_seg(48)) == ServiceType.OVERNIGHT
    assert duration_service(_seg(12)) == ServiceType.OVERNIGHT
    assert duration_service(_seg(8)) == ServiceType.DAYCARE


def test_vocabulary_overrides_duration():
    # single-day segment, but the client said overnight
    assert classify_service("overnight on Nov 7", ref=REF) == ServiceType.OVERNIGHT


def test_duration_from_first_segment():
    assert classify_service("Nov 7 to Nov 9?", ref=REF) == ServiceType.OVERNIGHT
    assert classify_service("Nov 7 from 8am to 5pm", ref=REF) == ServiceType.DAYCARE


def test_given_segments_are_used():
    assert classify_service("are you free?", segments=[_seg(8)]) == ServiceType.DAYCARE


def test_unspecified_without_signals():
    assert classify_service("thanks!", ref=REF) == ServiceType.UNSPECIFIED


def test_walk_is_never_produced():
    assert classify_service("a walk on Nov 7", ref=REF) != ServiceType.WALK


@pytest.mark.parametrize("text,legacy", [
    ("Can you walk Max on Tuesday?", True),
    ("un paseo el lunes", True),
    ("walker needed", True),
    ("board Max, and a walk each day", False),
    ("overnight stay", False),
    ("", False),
])
def test_legacy_walk_requests(text, legacy):
    assert is_legacy_service(text) is legacy
