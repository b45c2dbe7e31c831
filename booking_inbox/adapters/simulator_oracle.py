"""
SimulatorClassificationOracle — deterministic keyword oracle for tests and
for running without an API key.

No LLM calls, no network.  Obvious spam gives SPAM at 0.9, a booking word
BOOKING_REQUEST at 0.6, anything else OTHER at 0.2.  Only the spam verdict
is confident enough to veto a candidate at the default threshold.
"""

import re

from booking_inbox.domain.oracle import BOOKING_REQUEST, ClassificationOracle, OracleVerdict

_BOOKING_WORDS = re.compile(
    r"\b(?:book|booking|reserve|reservation|overnight|board(?:ing)?|day\s?care|"
    r"drop[\s-]?in|walk|sitter|sitting|cuidar|hospedaje|guarder[ií]a)\b",
    re.IGNORECASE,
)
_SPAM_WORDS = re.compile(
    r"\b(?:unsubscribe|winner|free\s+gift|click\s+here|crypto|loan\s+approved)\b",
    re.IGNORECASE,
)


class SimulatorClassificationOracle(ClassificationOracle):

    async def classify(self, text: str) -> OracleVerdict:
        if _SPAM_WORDS.search(text or ""):
            return OracleVerdict(label="SPAM", score=0.9)
        if _BOOKING_WORDS.search(text or ""):
            return OracleVerdict(label=BOOKING_REQUEST, score=0.6)
        return OracleVerdict(label="OTHER", score=0.2)
