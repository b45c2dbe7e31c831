"""
Booking-intent vocabulary scan (English + Spanish).

Each vocabulary entry is a canonical term plus the spellings that count as
that term.  Multi-word terms tolerate any run of spaces or a hyphen between
their words, or none at all: "drop in", "drop-in" and "dropin" all report
"drop in".
"""

import re

_VOCABULARY: dict[str, list[str]] = {
    # english
    "book": ["book"],
    "booking": ["booking"],
    "reserve": ["reserve"],
    "reservation": ["reservation"],
    "rover": ["rover"],
    "sitter": ["sitter"],
    "sitting": ["sitting"],
    "board": ["board"],
    "boarding": ["boarding"],
    "overnight": ["overnight"],
    "stay": ["stay"],
    "doggy day care": ["doggy day care"],
    "day care": ["day care"],
    "drop in": ["drop in"],
    "drop off": ["drop off"],
    "pick up": ["pick up"],
    # spanish
    "cuidar": ["cuidar"],
    "cuidado": ["cuidado"],
    "hospedaje": ["hospedaje"],
    "hospedar": ["hospedar"],
    "guardería": ["guardería", "guarderia"],
    "paseo": ["paseo"],
    "pasear": ["pasear"],
    "desde": ["desde"],
    "hasta": ["hasta"],
    "dejar": ["dejar"],
    "recoger": ["recoger"],
    # seasonal / travel cues
    "thanksgiving": ["thanksgiving"],
    "christmas": ["christmas"],
    "holiday": ["holiday"],
    "travel": ["travel"],
}


def _compile(spelling: str) -> re.Pattern:
    words = [re.escape(w) for w in spelling.split()]
    return re.compile(r"\b" + r"[\s\-]*".join(words) + r"\b", re.IGNORECASE)


_PATTERNS: list[tuple[str, re.Pattern]] = [
    (term, _compile(spelling))
    for term, spellings in _VOCABULARY.items()
    for spelling in spellings
]


def find_keywords(text: str | None) -> list[str]:
    """
    Return the booking vocabulary found in *text*, ordered by first
    occurrence, each canonical term at most once.  Empty list when nothing
    matches.
    """
    if not text:
        return []

    first_seen: dict[str, int] = {}
    for term, pattern in _PATTERNS:
        m = pattern.search(text)
        if m and (term not in first_seen or m.start() < first_seen[term]):
            first_seen[term] = m.start()

    return sorted(first_seen, key=lambda t: (first_seen[t], -len(t)))
