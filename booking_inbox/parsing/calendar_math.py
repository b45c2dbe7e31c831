"""
Holiday and relative-date calculator.

Fixed-rule date arithmetic only: US holidays (observed date, not the
federal "observed" Monday shift), weekday lookups and Monday–Sunday weeks.
Weekdays use Python's numbering, Monday = 0.
"""

import re
from datetime import date, datetime, timedelta

# a date this far in the past is assumed to mean next year
PAST_GRACE = timedelta(days=7)

MONTHS: dict[str, int] = {
    # english
    "january": 1, "jan": 1, "february": 2, "feb": 2, "march": 3, "mar": 3,
    "april": 4, "apr": 4, "may": 5, "june": 6, "jun": 6, "july": 7, "jul": 7,
    "august": 8, "aug": 8, "september": 9, "sept": 9, "sep": 9,
    "october": 10, "oct": 10, "november": 11, "nov": 11, "december": 12, "dec": 12,
    # spanish
    "enero": 1, "ene": 1, "febrero": 2, "marzo": 3, "abril": 4, "abr": 4,
    "mayo": 5, "junio": 6, "julio": 7, "agosto": 8, "ago": 8,
    "septiembre": 9, "setiembre": 9, "octubre": 10, "noviembre": 11,
    "diciembre": 12, "dic": 12,
}
MONTH_RX = r"(?:" + "|".join(sorted(MONTHS, key=len, reverse=True)) + r")(?![a-záéíóúñ])"

WEEKDAYS: dict[str, int] = {
    "monday": 0, "mon": 0, "tuesday": 1, "tues": 1, "tue": 1,
    "wednesday": 2, "weds": 2, "wed": 2, "thursday": 3, "thurs": 3, "thur": 3, "thu": 3,
    "friday": 4, "fri": 4, "saturday": 5, "sat": 5, "sunday": 6, "sun": 6,
}
WEEKDAY_RX = r"(?:" + "|".join(sorted(WEEKDAYS, key=len, reverse=True)) + r")\b"

# full names only: abbreviations are too noisy without "this"/"next"
FULL_WEEKDAYS: dict[str, int] = {
    "monday": 0, "tuesday": 1, "wednesday": 2, "thursday": 3, "friday": 4,
    "saturday": 5, "sunday": 6,
    "lunes": 0, "martes": 1, "miércoles": 2, "miercoles": 2, "jueves": 3,
    "viernes": 4, "sábado": 5, "sabado": 5, "domingo": 6,
}


def month_number(name: str) -> int | None:
    return MONTHS.get(name.lower().rstrip("."))


def infer_year(ref: datetime, month: int, day: int) -> int:
    """
    Year for a month/day typed without one: the reference year, unless that
    date is more than a week behind the reference, then the next year.
    """
    y = ref.year
    try:
        candidate = date(y, month, day)
    except ValueError:
        # Feb 29 outside a leap year: validity is the caller's concern
        return y
    return y + 1 if candidate < ref.date() - PAST_GRACE else y


def this_or_next_weekday(ref: date, weekday: int) -> date:
    """The given weekday on or after *ref*."""
    return ref + timedelta(days=(weekday - ref.weekday()) % 7)


def next_weekday(ref: date, weekday: int) -> date:
    """The given weekday strictly after *ref*."""
    return ref + timedelta(days=(weekday - ref.weekday()) % 7 or 7)


def week_span(ref: date, which: str) -> tuple[date, date]:
    """Monday and Sunday of this week, or of next week."""
    monday = ref - timedelta(days=ref.weekday())
    if which == "next":
        monday += timedelta(days=7)
    return monday, monday + timedelta(days=6)


def nth_weekday_of_month(year: int, month: int, weekday: int, n: int) -> date | None:
    """e.g. 4th Thursday of November; None when the month has no nth one."""
    first = date(year, month, 1)
    day = first + timedelta(days=(weekday - first.weekday()) % 7 + 7 * (n - 1))
    return day if day.month == month else None


def last_weekday_of_month(year: int, month: int, weekday: int) -> date:
    nxt = date(year + month // 12, month % 12 + 1, 1)
    last = nxt - timedelta(days=1)
    return last - timedelta(days=(last.weekday() - weekday) % 7)


def nth_weekend_saturday(year: int, month: int, n: int) -> date | None:
    """Saturday opening the nth weekend (Sat–Sun) of a month."""
    return nth_weekday_of_month(year, month, 5, n)


def us_holidays(year: int) -> dict[str, date]:
    """Canonical holiday name → date for *year*."""
    return {
        "new year's day": date(year, 1, 1),
        "mlk day": nth_weekday_of_month(year, 1, 0, 3),
        "presidents day": nth_weekday_of_month(year, 2, 0, 3),
        "memorial day": last_weekday_of_month(year, 5, 0),
        "independence day": date(year, 7, 4),
        "labor day": nth_weekday_of_month(year, 9, 0, 1),
        "columbus day": nth_weekday_of_month(year, 10, 0, 2),
        "halloween": date(year, 10, 31),
        "thanksgiving": nth_weekday_of_month(year, 11, 3, 4),
        "christmas eve": date(year, 12, 24),
        "christmas": date(year, 12, 25),
        "new year's eve": date(year, 12, 31),
    }


# spoken name → canonical name
HOLIDAY_ALIASES: dict[str, str] = {
    "new year's day": "new year's day",
    "new years day": "new year's day",
    "new year's": "new year's day",
    "new years": "new year's day",
    "new year": "new year's day",
    "año nuevo": "new year's day",
    "new year's eve": "new year's eve",
    "new years eve": "new year's eve",
    "nochevieja": "new year's eve",
    "christmas day": "christmas",
    "christmas": "christmas",
    "xmas": "christmas",
    "navidad": "christmas",
    "christmas eve": "christmas eve",
    "nochebuena": "christmas eve",
    "thanksgiving": "thanksgiving",
    "acción de gracias": "thanksgiving",
    "accion de gracias": "thanksgiving",
    "halloween": "halloween",
    "memorial day": "memorial day",
    "independence day": "independence day",
    "fourth of july": "independence day",
    "4th of july": "independence day",
    "labor day": "labor day",
    "columbus day": "columbus day",
    "mlk day": "mlk day",
    "martin luther king day": "mlk day",
    "presidents day": "presidents day",
    "presidents' day": "presidents day",
    "president's day": "presidents day",
}

HOLIDAY_RX = re.compile(
    r"\b("
    + "|".join(
        re.escape(alias).replace(r"\ ", r"\s+")
        for alias in sorted(HOLIDAY_ALIASES, key=len, reverse=True)
    )
    + r")(?![a-záéíóúñ])",
    re.IGNORECASE,
)


def find_holiday(text: str) -> re.Match | None:
    """First holiday mention in *text* (apostrophes already normalised)."""
    return HOLIDAY_RX.search(text)


def canonical_holiday(spoken: str) -> str:
    return HOLIDAY_ALIASES[re.sub(r"\s+", " ", spoken.lower())]


def resolve_holiday(name: str, ref: datetime) -> date:
    """
    Date of a named holiday nearest ahead of *ref*: this year's occurrence
    unless it is more than a week past, then next year's.
    """
    canonical = canonical_holiday(name)
    day = us_holidays(ref.year)[canonical]
    if day < ref.date() - PAST_GRACE:
        day = us_holidays(ref.year + 1)[canonical]
    return day
