"""
ClaudeClassificationOracle — asks Claude for a label on a raw message.

The system prompt lives in prompts/classify_booking.txt and is the source of
truth for the label set.  The prompt returns JSON that maps directly to
OracleVerdict.
"""

import json
import os

import anthropic

from booking_inbox.domain.oracle import ClassificationOracle, OracleVerdict
from booking_inbox.prompts import load_prompt

_LABELS = {"BOOKING_REQUEST", "DATE_QUESTION", "GENERAL", "SPAM"}


class ClaudeClassificationOracle(ClassificationOracle):
    """Oracle backed by Claude claude-haiku-4-5-20251001 (fast + cheap)."""

    def __init__(self, api_key: str | None = None, model: str = "claude-haiku-4-5-20251001"):
        self._client = anthropic.Anthropic(api_key=api_key or os.environ["ANTHROPIC_API_KEY"])
        self._model = model
        self._system = load_prompt("classify_booking")

    async def classify(self, text: str) -> OracleVerdict:
        response = self._client.messages.create(
            model=self._model,
            max_tokens=256,
            temperature=0,
            system=self._system,
            messages=[{"role": "user", "content": f"Message:\n{text}"}],
        )

        raw = response.content[0].text.strip()
        # Strip markdown code fences if the model wraps the JSON
        if raw.startswith("```"):
            raw = raw.split("```")[1]
            if raw.startswith("json"):
                raw = raw[4:]
        data = json.loads(raw)

        label = str(data.get("label", "GENERAL")).upper()
        if label not in _LABELS:
            label = "GENERAL"
        extracted = data.get("extracted") or {}
        return OracleVerdict(
            label=label,
            score=min(max(float(data.get("score", 0.0)), 0.0), 1.0),
            extracted=extracted if isinstance(extracted, dict) else {},
        )
