"""
Clock-time and day-part extraction.

Only explicit clock times are trusted: a token needs minutes ("9:30"),
an am/pm marker ("4pm", "9.30 am") or a preceding "at" ("at 9").  A bare
number is far more often a day of the month than an hour.
"""

import re
from dataclasses import dataclass
from datetime import time

_CLOCK_RX = re.compile(
    r"(?P<at>\bat\s+|@\s*)?~?\s*"
    r"(?P<hour>\d{1,2})(?:[:.h](?P<minute>\d{2}))?"
    r"(?:\s*(?P<ap>[ap])\.?\s*m\b\.?|(?P<ap_short>[ap])\b)?",
    re.IGNORECASE,
)

_CLOCK_TEXT = r"~?\s*\d{1,2}(?:[:.h]\d{2})?(?:\s*[ap]\.?\s*m\b\.?|[ap]\b)?"

_RANGE_RX = re.compile(
    r"\b(?:from|de|desde)\s+(?P<a>" + _CLOCK_TEXT + r")"
    r"\s*(?:to|till|til|until|-|a|hasta)\s*"
    r"(?P<b>" + _CLOCK_TEXT + r")",
    re.IGNORECASE,
)
_EXPLICIT_RX = re.compile(r"[:.h]\d{2}|\d[ap]\b|\d\s*[ap]\.?\s*m\b", re.IGNORECASE)

_DROP_RX = re.compile(r"\b(?:drop(?:ping)?[\s-]*off|dejar(?:lo|la)?)\b", re.IGNORECASE)
_PICK_RX = re.compile(r"\b(?:pick(?:ing)?[\s-]*up|recoger(?:lo|la)?)\b", re.IGNORECASE)

_DAY_PARTS = {
    "morning": 9,
    "mañana": 9,
    "afternoon": 14,
    "tarde": 14,
    "evening": 18,
    "night": 20,
    "noche": 20,
}
_DAY_PART_RX = re.compile(r"\b(" + "|".join(_DAY_PARTS) + r")\b", re.IGNORECASE)

# how far after a drop-off / pick-up phrase we look for its time
_PHRASE_REACH = 40


@dataclass(frozen=True)
class ClockRange:
    """Clock times attached to the start and/or end of a stay."""
    start: time | None
    end: time | None


def _to_time(hour: str, minute: str | None, meridiem: str | None) -> time | None:
    h = int(hour)
    m = int(minute) if minute else 0
    ap = (meridiem or "").lower()
    if ap and not 1 <= h <= 12:
        return None
    if ap == "p" and h < 12:
        h += 12
    if ap == "a" and h == 12:
        h = 0
    if 0 <= h <= 23 and 0 <= m <= 59:
        return time(h, m)
    return None


def parse_clock(token: str, require_explicit: bool = True) -> time | None:
    """
    Parse the first clock time in *token* ("9.30am", "~ 4pm", "17:00").

    With *require_explicit* a bare hour is only accepted after "at".
    """
    for m in _CLOCK_RX.finditer(token):
        meridiem = m.group("ap") or m.group("ap_short")
        explicit = bool(m.group("minute") or meridiem or m.group("at"))
        if require_explicit and not explicit:
            continue
        parsed = _to_time(m.group("hour"), m.group("minute"), meridiem)
        if parsed is not None:
            return parsed
    return None


def _time_after(rx: re.Pattern, text: str) -> time | None:
    m = rx.search(text)
    if not m:
        return None
    tail = re.split(r"[.!?\n]\s", text[m.end():m.end() + _PHRASE_REACH], maxsplit=1)[0]
    return parse_clock(tail)


def extract_clock_range(text: str) -> ClockRange | None:
    """
    Find drop-off / pick-up times, or a generic "from X to Y" clock range.

    Drop-off and pick-up phrases win over the generic range.  Returns None
    when no explicit clock time is present.
    """
    drop = _time_after(_DROP_RX, text)
    pick = _time_after(_PICK_RX, text)
    if drop or pick:
        return ClockRange(start=drop, end=pick)

    for m in _RANGE_RX.finditer(text):
        a_raw, b_raw = m.group("a"), m.group("b")
        if not (_EXPLICIT_RX.search(a_raw) or _EXPLICIT_RX.search(b_raw)):
            continue
        a = parse_clock(a_raw, require_explicit=False)
        b = parse_clock(b_raw, require_explicit=False)
        if a and b:
            return ClockRange(start=a, end=b)
    return None


def day_part_hour(text: str) -> int | None:
    """Hour for the first day-part word in *text* (morning → 9 …), else None."""
    m = _DAY_PART_RX.search(text)
    if not m:
        return None
    return _DAY_PARTS[m.group(1).lower()]
