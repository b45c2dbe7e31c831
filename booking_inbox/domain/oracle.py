"""
ClassificationOracle port — optional second opinion on a message.

The oracle is advisory.  Its label can only narrow a deterministic decision
(veto a candidate); dates it extracts are kept for audit and never become
booking dates.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

BOOKING_REQUEST = "BOOKING_REQUEST"


@dataclass
class OracleVerdict:
    label: str                  # BOOKING_REQUEST, DATE_QUESTION, GENERAL, SPAM, OTHER
    score: float                # 0.0–1.0
    extracted: dict = field(default_factory=dict)

    def vetoes(self, threshold: float) -> bool:
        """A confident non-booking label overrules a candidate."""
        return self.label != BOOKING_REQUEST and self.score >= threshold


class ClassificationOracle(ABC):
    """
    Port: label a raw message body.

    Implementations may use an LLM (ClaudeClassificationOracle) or keyword
    matching (SimulatorClassificationOracle).  Both satisfy the same contract.
    """

    @abstractmethod
    async def classify(self, text: str) -> OracleVerdict:
        ...
