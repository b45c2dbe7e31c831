#!/usr/bin/env python3
"""
Maintenance sweep: archive bookings whose stay ended more than
AUTO_ARCHIVE_DAYS ago and mark their messages read.

Usage (from project root, e.g. from cron once a night):
    python scripts/archive.py
"""

import asyncio
import logging
import os
import sys

# Allow running as `python scripts/archive.py` from project root.
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from booking_inbox.wiring import build_services

logging.basicConfig(level=logging.INFO, format="%(levelname)-7s  %(message)s")


async def main() -> None:
    services = build_services()
    archived = await services.bookings.archive_elapsed()
    if archived:
        print(f"Archived {len(archived)} booking(s): {', '.join(str(b) for b in archived)}")
    else:
        print("Nothing to archive.")


if __name__ == "__main__":
    asyncio.run(main())
