"""
DateSegment — one resolved {start, end} span extracted from a message.

Segments are transient: the resolver produces them, the orchestrator turns
them into booking dates, and the message keeps a JSON copy for audit.
"""

import json
from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class ServiceType(str, Enum):
    OVERNIGHT = "Overnight"
    DAYCARE = "Daycare"
    DROP_IN = "Drop-in"
    UNSPECIFIED = "Unspecified"
    # legacy label, still readable from old rows but never produced
    WALK = "Walk"


@dataclass(frozen=True)
class DateSegment:
    start_at: datetime
    end_at: datetime
    source_text: str
    service_hint: ServiceType = ServiceType.UNSPECIFIED

    def to_json_dict(self) -> dict:
        return {
            "startISO": self.start_at.isoformat(),
            "endISO": self.end_at.isoformat(),
            "text": self.source_text,
        }


def segments_to_json(segments: list[DateSegment]) -> str:
    """Persisted form: JSON array of {startISO, endISO, text}."""
    return json.dumps([s.to_json_dict() for s in segments], ensure_ascii=False)


def segments_from_json(raw: str | None) -> list[DateSegment]:
    """Inverse of segments_to_json; unreadable entries are skipped."""
    if not raw:
        return []
    try:
        items = json.loads(raw)
    except ValueError:
        return []
    out = []
    for item in items if isinstance(items, list) else []:
        try:
            out.append(DateSegment(
                start_at=datetime.fromisoformat(item["startISO"]),
                end_at=datetime.fromisoformat(item["endISO"]),
                source_text=item.get("text", ""),
            ))
        except (KeyError, TypeError, ValueError):
            continue
    return out
