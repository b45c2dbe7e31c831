"""
Message identity key (EID).

The EID is the only idempotency mechanism: a redelivered webhook must hash
to the same key, two distinct messages essentially never should.
"""

import hashlib

BODY_PREFIX = 120


def build_eid(
    platform: str | None,
    sender: str | None = None,
    timestamp: int | str | None = None,
    body: str | None = None,
    thread_id: str | None = None,
    provider_message_id: str | None = None,
) -> str:
    """
    sha256 hex digest over (platform, thread, provider message id) when the
    provider assigned an id; otherwise over (platform, sender, timestamp,
    first 120 chars of the body).
    """
    platform = platform or "sms"
    if thread_id and provider_message_id:
        key = f"{platform}::{thread_id}::{provider_message_id}"
    else:
        key = f"{platform}::{sender or ''}::{'' if timestamp is None else timestamp}::{(body or '')[:BODY_PREFIX]}"
    return hashlib.sha256(key.encode("utf-8")).hexdigest()
