"""
Temporal expression resolver.

Turns free text plus a reference instant into DateSegments.  The resolver is
an ordered list of strategies, loosest last; the first strategy returning a
non-empty list wins:

  1. explicit numeric ranges       "11/20 to 11/23"
  2. relative single days          "today", "tonight", "tomorrow"
  3. relative weeks                "next week"
  4. weekends and weekdays         "this weekend", "fri-sun", "next Tuesday"
  5. named holidays                "Thanksgiving", "Nochebuena"
  6. month-relative expressions    "2nd weekend of Dec", "next month 12-19"
  7. bare weekday names            "Thursday morning"
  8. token scan                    "Nov 7 to Nov 9", "13-18 de noviembre",
                                   "the 27th and 28th" + a holiday name

Stages 2-7 decline when the text holds a month-name or slash date that exists
on the calendar, so the token scan gets the last word on those.  Nothing
here raises: an impossible date (Feb 30, 24/7) is dropped token by token
and never blocks another stage.
"""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from booking_inbox.domain.segments import DateSegment, ServiceType
from booking_inbox.parsing.calendar_math import (
    FULL_WEEKDAYS,
    MONTH_RX,
    WEEKDAYS,
    canonical_holiday,
    HOLIDAY_RX,
    infer_year,
    last_weekday_of_month,
    month_number,
    next_weekday,
    nth_weekend_saturday,
    PAST_GRACE,
    resolve_holiday,
    this_or_next_weekday,
    week_span,
)
from booking_inbox.parsing.clock import day_part_hour, extract_clock_range

log = logging.getLogger(__name__)

DEFAULT_HOUR = 17
OVERNIGHT_SPAN = timedelta(hours=12)  # a span that rounds to a full day

# how far from a date token a day-part word may sit
_DAY_PART_REACH = 40
# longest gap between two tokens read as one range
_PAIR_GAP = 30

_ORD = r"(?:st|nd|rd|th)?"
_CONNECTOR = r"(?:to|through|thru|until|till|hasta|al|a|-)"
# the whole gap between two date tokens: optional day-part or clock, then a connector
_JOIN_RX = re.compile(
    r"^\s*,?\s*"
    r"(?:(?:in\s+the\s+|por\s+la\s+)?(?:morning|afternoon|evening|night|ma[ñn]ana|tarde|noche)\s*,?\s*)?"
    r"(?:(?:at|a\s+las)\s+\d{1,2}(?::\d{2})?\s*(?:[ap]\.?\s*m\.?)?\s*,?\s*)?"
    r"(?:to|through|thru|until|till|hasta|al|a|-)\s*$",
    re.IGNORECASE,
)
_NUM_DATE = r"(\d{1,2})[/-](\d{1,2})(?:[/-](\d{4}|\d{2}))?"
_NOT_CLOCK = r"(?!\d|[:.]\d|\s*[ap]\.?\s*m\b|[ap]\b)"
# "Nov 7 - 2 dogs", "I may 3 dogs": a count, not a day
_NOT_COUNT = r"(?!\s*(?:small\s+|big\s+|little\s+)?(?:dogs?|pups?|puppies|perr[oa]s?|perrit[oa]s?)\b)"
# "I may need": the verb, not the month
_VERB_MAY_RX = re.compile(r"\b(?:i|you|we|they|he|she|it|who|that|which)\s+$", re.IGNORECASE)

_ALL_WEEKDAYS = {**WEEKDAYS, **FULL_WEEKDAYS}
_WEEKDAY_ALT = (
    r"(" + "|".join(sorted(_ALL_WEEKDAYS, key=len, reverse=True)) + r")(?![a-záéíóúñ])"
)
_FULL_WEEKDAY_ALT = (
    r"(" + "|".join(sorted(FULL_WEEKDAYS, key=len, reverse=True)) + r")(?![a-záéíóúñ])"
)

# explicit date tokens, used by the gate and by the token scan
_MONTH_DAY_RX = re.compile(
    r"\b(" + MONTH_RX + r")\.?\s+(\d{1,2})" + _ORD + r"(?!\d)" + _NOT_COUNT + r"(?:\s*,?\s*(\d{4}))?",
    re.IGNORECASE,
)
_DAY_MONTH_RX = re.compile(
    r"\b(\d{1,2})" + _ORD + r"\s+(?:(?:de|del|of)\s+)?(" + MONTH_RX + r")\.?"
    r"(?:\s*,?\s*(?:de\s+)?(\d{4}))?",
    re.IGNORECASE,
)
# "1/2 day", "24/7" are not dates
_SLASH_DATE_RX = re.compile(
    r"(?<![\d/])(\d{1,2})/(\d{1,2})(?:/(\d{4}|\d{2}))?(?![\d/])"
    r"(?!\s*(?:days?|hours?|hrs?|d[ií]as?|horas?)\b)",
    re.IGNORECASE,
)
_DASH_DATE_RX = re.compile(r"(?<![\d-])(\d{1,2})-(\d{1,2})-(\d{4}|\d{2})(?![\d-])")
_COMPACT_MONTH_FIRST_RX = re.compile(
    r"\b(" + MONTH_RX + r")\.?\s+(\d{1,2})" + _ORD + r"\s*" + _CONNECTOR + r"\s*"
    r"(\d{1,2})" + _ORD + _NOT_CLOCK + _NOT_COUNT + r"(?:\s*,?\s*(\d{4}))?",
    re.IGNORECASE,
)
_COMPACT_DAY_FIRST_RX = re.compile(
    r"\b(\d{1,2})" + _ORD + r"\s*" + _CONNECTOR + r"\s*(\d{1,2})" + _ORD
    + r"\s+(?:(?:de|del|of)\s+)?(" + MONTH_RX + r")\.?(?:\s*,?\s*(?:de\s+)?(\d{4}))?",
    re.IGNORECASE,
)
_BARE_ORDINAL_RX = re.compile(r"(?<![\d/])\b(\d{1,2})(?:st|nd|rd|th)\b(?!\s+weekend)", re.IGNORECASE)


# ---------------------------------------------------------------------------
# shared helpers
# ---------------------------------------------------------------------------

def _normalize(text: str) -> str:
    """Same-length rewrite: dashes to '-', curly quotes to "'"."""
    return (
        text.replace("–", "-").replace("—", "-")
        .replace("’", "'").replace("‘", "'")
    )


def _year(raw: str | None, ref: datetime, month: int, day: int) -> int:
    if raw:
        y = int(raw)
        return 2000 + y if y < 100 else y
    return infer_year(ref, month, day)


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _hint(start: datetime, end: datetime) -> ServiceType:
    return ServiceType.OVERNIGHT if end - start >= OVERNIGHT_SPAN else ServiceType.DAYCARE


def _build(
    text: str,
    ref: datetime,
    source: str,
    start_day: date,
    end_day: date,
    start_hour: int = DEFAULT_HOUR,
    end_hour: int = DEFAULT_HOUR,
) -> DateSegment:
    """
    Attach clock times to a day span and return the segment.

    Explicit clock times in the text win over the given default hours.
    Reversed days are swapped; an end before the start on the same day
    rolls over to the next day.
    """
    if end_day < start_day:
        start_day, end_day = end_day, start_day
    clock = extract_clock_range(text)
    start_t = clock.start if clock and clock.start else time(start_hour)
    end_t = clock.end if clock and clock.end else time(end_hour)
    start = datetime.combine(start_day, start_t, tzinfo=ref.tzinfo)
    end = datetime.combine(end_day, end_t, tzinfo=ref.tzinfo)
    if end < start:
        end += timedelta(days=1)
    return DateSegment(start_at=start, end_at=end, source_text=source.strip(), service_hint=_hint(start, end))


def has_explicit_date(text: str, ref: datetime | None = None) -> bool:
    """
    True when the text names a real month-and-day or slash date.  *ref*
    only matters for Feb 29; without one the current year is assumed.
    """
    return bool(scan_date_tokens(_normalize(text), ref or datetime.now()))


def _bare_ordinals(text: str) -> list[re.Match]:
    """Ordinals like "27th" that are not part of a holiday name."""
    blocked = [m.span() for m in HOLIDAY_RX.finditer(text)]
    return [
        m for m in _BARE_ORDINAL_RX.finditer(text)
        if not any(lo <= m.start() < hi for lo, hi in blocked)
    ]


# ---------------------------------------------------------------------------
# strategies
# ---------------------------------------------------------------------------

class Strategy(ABC):
    """One pattern class of the cascade."""

    name = "strategy"
    gated = True  # decline when explicit dates are present

    @abstractmethod
    def try_match(self, text: str, ref: datetime) -> list[DateSegment] | None:
        """Segments for *text* relative to *ref*, or None to fall through."""
        ...


class NumericRangeStrategy(Strategy):
    """mm/dd[/yy] <connector> mm/dd[/yy], every occurrence."""

    name = "numeric_range"
    gated = False

    _RX = re.compile(
        r"(?<![\d/])" + _NUM_DATE + r"\s*" + _CONNECTOR + r"\s*" + _NUM_DATE + r"(?![\d/])",
        re.IGNORECASE,
    )

    def try_match(self, text, ref):
        out = []
        for m in self._RX.finditer(text):
            m1, d1, y1, m2, d2, y2 = (m.group(i) for i in range(1, 7))
            mm1, dd1, mm2, dd2 = int(m1), int(d1), int(m2), int(d2)
            start = _safe_date(_year(y1, ref, mm1, dd1), mm1, dd1) if 1 <= mm1 <= 12 else None
            end = _safe_date(_year(y2, ref, mm2, dd2), mm2, dd2) if 1 <= mm2 <= 12 else None
            if start is None or end is None:
                log.debug("numeric range %r discarded: invalid date", m.group(0))
                continue
            if end < start and not y2 and end.month < start.month:
                # "12/28 - 1/2": the end crossed into next year
                end = _safe_date(end.year + 1, end.month, end.day) or end
            out.append(_build(text, ref, m.group(0), start, end))
        return out or None


class RelativeDayStrategy(Strategy):
    """today / tonight / tomorrow, first mention only."""

    name = "relative_day"

    _RX = re.compile(r"\b(today|hoy|tonight|esta\s+noche|tomorrow)\b", re.IGNORECASE)

    def try_match(self, text, ref):
        m = self._RX.search(text)
        if not m:
            return None
        word = re.sub(r"\s+", " ", m.group(1).lower())
        today = ref.date()
        if word in ("tonight", "esta noche"):
            start = datetime.combine(today, time(19), tzinfo=ref.tzinfo)
            end = datetime.combine(today + timedelta(days=1), time(8), tzinfo=ref.tzinfo)
            return [DateSegment(start, end, m.group(0), _hint(start, end))]
        day = today + timedelta(days=1) if word == "tomorrow" else today
        start_hour = day_part_hour(text) or DEFAULT_HOUR
        return [_build(text, ref, m.group(0), day, day, start_hour=start_hour)]


class WeekStrategy(Strategy):
    """this/next week: Monday 09:00 to Sunday 17:00."""

    name = "week"

    _RX = re.compile(
        r"\b(?:(this|next)\s+week|(esta|la\s+pr[oó]xima)\s+semana)\b",
        re.IGNORECASE,
    )

    def try_match(self, text, ref):
        m = self._RX.search(text)
        if not m:
            return None
        which = "this" if (m.group(1) or m.group(2)).lower() in ("this", "esta") else "next"
        monday, sunday = week_span(ref.date(), which)
        return [_build(text, ref, m.group(0), monday, sunday, start_hour=9)]


class WeekendStrategy(Strategy):
    """
    Weekends and weekday phrases:

    - "this/next (long) weekend", "este/próximo fin de semana (largo)":
      Friday 17:00 to Sunday 17:00, Monday for a long weekend.  "this" is
      the coming Friday (today included), "next" the Friday strictly after.
    - weekday ranges: "fri-sun", "thu to sat", "lunes a viernes".
    - "this Friday", "next Tuesday".
    """

    name = "weekend"

    _WEEKEND_RX = re.compile(
        r"\b(this|next|este|el\s+pr[oó]ximo|pr[oó]ximo)\s+(long\s+)?"
        r"(?:weekend|fin\s+de\s+semana)(\s+largo)?\b",
        re.IGNORECASE,
    )
    _RANGE_RX = re.compile(
        r"\b" + _WEEKDAY_ALT + r"\s*(?:to|through|thru|until|till|hasta|al|a|-)\s*" + _WEEKDAY_ALT,
        re.IGNORECASE,
    )
    _SINGLE_RX = re.compile(
        r"\b(this|next|este|el\s+pr[oó]ximo|pr[oó]ximo)\s+" + _WEEKDAY_ALT,
        re.IGNORECASE,
    )

    def try_match(self, text, ref):
        today = ref.date()

        m = self._WEEKEND_RX.search(text)
        if m:
            which = m.group(1).lower()
            friday = this_or_next_weekday(today, 4) if which in ("this", "este") else next_weekday(today, 4)
            long_weekend = bool(m.group(2) or m.group(3))
            end_day = friday + timedelta(days=3 if long_weekend else 2)
            return [_build(text, ref, m.group(0), friday, end_day)]

        m = self._RANGE_RX.search(text)
        if m:
            first = this_or_next_weekday(today, _ALL_WEEKDAYS[m.group(1).lower()])
            last = this_or_next_weekday(first, _ALL_WEEKDAYS[m.group(2).lower()])
            if last <= first:
                last += timedelta(days=7)
            return [_build(text, ref, m.group(0), first, last, start_hour=9)]

        m = self._SINGLE_RX.search(text)
        if m:
            weekday = _ALL_WEEKDAYS[m.group(2).lower()]
            this = m.group(1).lower() in ("this", "este")
            day = this_or_next_weekday(today, weekday) if this else next_weekday(today, weekday)
            start_hour = day_part_hour(text) or 9
            return [_build(text, ref, m.group(0), day, day, start_hour=start_hour)]
        return None


class HolidayStrategy(Strategy):
    """
    Named US holidays, 09:00 to 17:00 on the day.  Two holidays joined by a
    connector ("Christmas Eve through New Year's Day") make one range.

    Declines when bare ordinals are present: "the 27th and 28th" around
    Thanksgiving belong to the token scan.
    """

    name = "holiday"

    def try_match(self, text, ref):
        found = list(HOLIDAY_RX.finditer(text))
        if not found or _bare_ordinals(text):
            return None
        first = found[0]
        start = resolve_holiday(first.group(1), ref)
        if len(found) > 1:
            second = found[1]
            if _JOIN_RX.match(text[first.end():second.start()]):
                end = resolve_holiday(second.group(1), ref)
                if end < start:
                    end = resolve_holiday(second.group(1), ref.replace(year=ref.year + 1))
                source = text[first.start():second.end()]
                return [_build(text, ref, source, start, end, start_hour=9)]
        log.debug("holiday %s resolved to %s", canonical_holiday(first.group(1)), start)
        return [_build(text, ref, first.group(0), start, start, start_hour=9)]


class MonthRelativeStrategy(Strategy):
    """
    "2nd weekend of December" (Saturday 09:00 to Sunday 17:00),
    "this/next month on the 19th", "next month 12-19", "first of March".
    """

    name = "month_relative"

    _ORDINALS = {
        "first": 1, "1st": 1, "second": 2, "2nd": 2, "third": 3, "3rd": 3,
        "fourth": 4, "4th": 4, "fifth": 5, "5th": 5,
    }
    _NTH_WEEKEND_RX = re.compile(
        r"\b(first|second|third|fourth|fifth|last|1st|2nd|3rd|4th|5th)\s+weekend\s+(?:of|in)\s+("
        + MONTH_RX + r")",
        re.IGNORECASE,
    )
    _REL_MONTH_RX = re.compile(
        r"\b(?:(this|next)\s+month|(este|el\s+pr[oó]ximo|pr[oó]ximo)\s+mes)\b",
        re.IGNORECASE,
    )
    _DAY_RANGE_RX = re.compile(
        r"(\d{1,2})" + _ORD + r"\s*(?:-|to|al|a|hasta|through|thru|until|till)\s*(\d{1,2})" + _ORD + _NOT_CLOCK,
        re.IGNORECASE,
    )
    _ON_DAY_RX = re.compile(r"\b(?:on\s+the|the|el|d[ií]a)\s+(\d{1,2})" + _ORD + r"\b", re.IGNORECASE)
    _FIRST_OF_RX = re.compile(
        r"\b(?:first|primero)\s+(?:of|de)\s+(" + MONTH_RX + r")", re.IGNORECASE
    )

    def try_match(self, text, ref):
        return self._nth_weekend(text, ref) or self._relative_month(text, ref) or self._first_of(text, ref)

    def _nth_weekend(self, text, ref):
        m = self._NTH_WEEKEND_RX.search(text)
        if not m:
            return None
        month = month_number(m.group(2))
        which = m.group(1).lower()

        def saturday(year):
            if which == "last":
                return last_weekday_of_month(year, month, 5)
            return nth_weekend_saturday(year, month, self._ORDINALS[which])

        sat = saturday(ref.year)
        if sat is not None and sat < ref.date() - PAST_GRACE:
            sat = saturday(ref.year + 1)
        if sat is None:
            return None
        return [_build(text, ref, m.group(0), sat, sat + timedelta(days=1), start_hour=9)]

    def _relative_month(self, text, ref):
        m = self._REL_MONTH_RX.search(text)
        if not m:
            return None
        year, month = ref.year, ref.month
        if (m.group(1) or "").lower() == "next" or m.group(2):
            year, month = (year + 1, 1) if month == 12 else (year, month + 1)

        rest = text[m.end():m.end() + 40]
        rng = self._DAY_RANGE_RX.search(rest)
        if rng:
            start = _safe_date(year, month, int(rng.group(1)))
            end = _safe_date(year, month, int(rng.group(2)))
            if start and end:
                return [_build(text, ref, text[m.start():m.end() + rng.end()], start, end)]
            return None
        on = self._ON_DAY_RX.search(text)
        if on:
            day = _safe_date(year, month, int(on.group(1)))
            if day:
                return [_build(text, ref, on.group(0), day, day)]
        return None

    def _first_of(self, text, ref):
        m = self._FIRST_OF_RX.search(text)
        if not m:
            return None
        month = month_number(m.group(1))
        day = date(infer_year(ref, month, 1), month, 1)
        return [_build(text, ref, m.group(0), day, day)]


class BareWeekdayStrategy(Strategy):
    """A lone full weekday name: the coming one, today included."""

    name = "bare_weekday"

    _RX = re.compile(r"\b" + _FULL_WEEKDAY_ALT, re.IGNORECASE)

    def try_match(self, text, ref):
        m = self._RX.search(text)
        if not m:
            return None
        day = this_or_next_weekday(ref.date(), FULL_WEEKDAYS[m.group(1).lower()])
        start_hour = day_part_hour(text[m.start():m.end() + _DAY_PART_REACH]) or 9
        return [_build(text, ref, m.group(0), day, day, start_hour=start_hour)]


@dataclass
class _Anchor:
    """A date token (or compact range) found by the token scan."""
    pos: int
    end: int
    first: date
    last: date | None = None
    explicit_year: bool = False


class TokenScanStrategy(Strategy):
    """
    Generic scan for month-name and numeric date tokens anywhere in the text.

    Compact ranges ("Nov 13-18", "7 al 9 de noviembre") pair themselves;
    other adjacent tokens pair when a connector sits between them.  With no
    month token at all, bare ordinals are anchored to a holiday's month.
    """

    name = "token_scan"
    gated = False

    def try_match(self, text, ref):
        anchors = scan_date_tokens(text, ref) or self._holiday_ordinals(text, ref)
        if not anchors:
            return None

        out = []
        i = 0
        while i < len(anchors):
            a = anchors[i]
            b = None
            if a.last is None and i + 1 < len(anchors) and anchors[i + 1].last is None:
                between = text[a.end:anchors[i + 1].pos]
                if len(between) <= _PAIR_GAP and _JOIN_RX.match(between):
                    b = anchors[i + 1]
                    i += 1
            i += 1

            start_day = a.first
            end_day = a.last or (b.first if b else a.first)
            if end_day < start_day and not (b and b.explicit_year):
                bumped = _safe_date(end_day.year + 1, end_day.month, end_day.day)
                if bumped and end_day.month < start_day.month:
                    end_day = bumped
            tail = b.end if b else a.end
            lo = max(a.pos - _DAY_PART_REACH, 0)
            if b is not None:
                # "Nov 7 morning to Nov 9 evening"
                start_part = day_part_hour(text[lo:b.pos])
                end_part = day_part_hour(text[b.pos:tail + _DAY_PART_REACH])
            elif a.last is not None:
                start_part = day_part_hour(text[lo:a.end])
                end_part = day_part_hour(text[a.end:tail + _DAY_PART_REACH])
            else:
                start_part = day_part_hour(text[lo:a.end + _DAY_PART_REACH])
                end_part = None
            out.append(_build(
                text, ref, text[a.pos:tail], start_day, end_day,
                start_hour=start_part or DEFAULT_HOUR,
                end_hour=end_part or DEFAULT_HOUR,
            ))
        return out or None

    def _holiday_ordinals(self, text, ref) -> list[_Anchor]:
        holiday = HOLIDAY_RX.search(text)
        if not holiday:
            return []
        anchor = resolve_holiday(holiday.group(1), ref)
        out = []
        for m in _bare_ordinals(text):
            parsed = _safe_date(anchor.year, anchor.month, int(m.group(1)))
            if parsed:
                out.append(_Anchor(m.start(), m.end(), parsed))
        return out


def _verb_may(text: str, m: re.Match, group: int) -> bool:
    """Lowercase "may" after a pronoun is the verb."""
    if m.group(group) != "may":
        return False
    return bool(_VERB_MAY_RX.search(text[max(m.start(group) - 12, 0):m.start(group)]))


def scan_date_tokens(text: str, ref: datetime) -> list[_Anchor]:
    """
    Every explicit date token in *text* that exists on the calendar, in text
    order.  Overlapping tokens are consumed once; impossible ones (Feb 30,
    24/7) are dropped.
    """
    taken: list[tuple[int, int]] = []
    anchors: list[_Anchor] = []

    def free(m):
        return not any(m.start() < hi and lo < m.end() for lo, hi in taken)

    for m in _COMPACT_MONTH_FIRST_RX.finditer(text):
        if not free(m) or _verb_may(text, m, 1):
            continue
        month = month_number(m.group(1))
        d1, d2 = int(m.group(2)), int(m.group(3))
        y = _year(m.group(4), ref, month, d1)
        first, last = _safe_date(y, month, d1), _safe_date(y, month, d2)
        taken.append(m.span())
        if first and last:
            anchors.append(_Anchor(m.start(), m.end(), first, last, bool(m.group(4))))

    for m in _COMPACT_DAY_FIRST_RX.finditer(text):
        if not free(m):
            continue
        month = month_number(m.group(3))
        d1, d2 = int(m.group(1)), int(m.group(2))
        y = _year(m.group(4), ref, month, d1)
        first, last = _safe_date(y, month, d1), _safe_date(y, month, d2)
        taken.append(m.span())
        if first and last:
            anchors.append(_Anchor(m.start(), m.end(), first, last, bool(m.group(4))))

    for rx, month_group, day_group in ((_MONTH_DAY_RX, 1, 2), (_DAY_MONTH_RX, 2, 1)):
        for m in rx.finditer(text):
            if not free(m) or _verb_may(text, m, month_group):
                continue
            month = month_number(m.group(month_group))
            day = int(m.group(day_group))
            taken.append(m.span())
            parsed = _safe_date(_year(m.group(3), ref, month, day), month, day)
            if parsed:
                anchors.append(_Anchor(m.start(), m.end(), parsed, None, bool(m.group(3))))

    for rx in (_SLASH_DATE_RX, _DASH_DATE_RX):
        for m in rx.finditer(text):
            if not free(m):
                continue
            month, day = int(m.group(1)), int(m.group(2))
            taken.append(m.span())
            if not 1 <= month <= 12:
                continue
            parsed = _safe_date(_year(m.group(3), ref, month, day), month, day)
            if parsed:
                anchors.append(_Anchor(m.start(), m.end(), parsed, None, bool(m.group(3))))

    anchors.sort(key=lambda a: a.pos)
    return anchors


STRATEGIES: list[Strategy] = [
    NumericRangeStrategy(),
    RelativeDayStrategy(),
    WeekStrategy(),
    WeekendStrategy(),
    HolidayStrategy(),
    MonthRelativeStrategy(),
    BareWeekdayStrategy(),
    TokenScanStrategy(),
]


def parse_segments(text: str | None, ref: datetime) -> list[DateSegment]:
    """
    Resolve *text* against *ref* into segments, ordered by where their date
    tokens appear; identical {start, end} pairs are reported once.
    """
    if not text or not text.strip():
        return []
    norm = _normalize(text)
    explicit = bool(scan_date_tokens(norm, ref))

    for strategy in STRATEGIES:
        if strategy.gated and explicit:
            continue
        try:
            found = strategy.try_match(norm, ref)
        except (ValueError, OverflowError, KeyError) as exc:
            log.debug("stage %s failed on %.60r: %s", strategy.name, text, exc)
            continue
        if not found:
            continue
        log.debug("stage %s matched %d segment(s) in %.60r", strategy.name, len(found), text)
        seen = set()
        out = []
        for seg in found:
            key = (seg.start_at, seg.end_at)
            if key not in seen:
                seen.add(key)
                out.append(seg)
        return out
    return []


def first_segment(text: str | None, ref: datetime) -> DateSegment | None:
    segments = parse_segments(text, ref)
    return segments[0] if segments else None
