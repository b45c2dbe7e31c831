"""
Tunables for intake and booking actions.

Pure parsing code never reads the environment; scripts build an
IntakeSettings once (from_env) and pass it down.
"""

import os
from dataclasses import dataclass
from typing import Literal
from zoneinfo import ZoneInfo

CandidatePolicy = Literal["strict", "dates_only"]


@dataclass
class IntakeSettings:
    lookback_days: int = 30                 # thread search window behind a message
    thread_match_window_days: int = 60      # booking start must be this close to the segment
    date_tolerance_seconds: int = 60        # smaller date changes are not a refresh
    candidate_policy: CandidatePolicy = "strict"
    oracle_veto_score: float = 0.8
    auto_confirm_trusted: bool = False
    capacity: int = 10                      # dogs at once before the calendar shows busy
    archive_grace_days: int = 7
    body_limit: int = 2000
    timezone: str = "America/Los_Angeles"

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @classmethod
    def from_env(cls) -> "IntakeSettings":
        policy = os.environ.get("CANDIDATE_POLICY", "strict")
        if policy not in ("strict", "dates_only"):
            raise ValueError(f"Unknown candidate policy: {policy!r}")
        return cls(
            lookback_days=int(os.environ.get("LOOKBACK_DAYS", "30")),
            thread_match_window_days=int(os.environ.get("THREAD_MATCH_WINDOW_DAYS", "60")),
            candidate_policy=policy,
            oracle_veto_score=float(os.environ.get("ORACLE_VETO_SCORE", "0.8")),
            auto_confirm_trusted=os.environ.get("AUTO_CONFIRM_TRUSTED", "").lower() in ("1", "true", "yes"),
            capacity=int(os.environ.get("CAPACITY", "10")),
            archive_grace_days=int(os.environ.get("AUTO_ARCHIVE_DAYS", "7")),
            timezone=os.environ.get("BUSINESS_TZ", "America/Los_Angeles"),
        )
