#!/usr/bin/env python3
"""
Operator CLI: re-run intake extraction over stored messages.

Usage (from project root):
    python scripts/reparse.py                    # last 180 days, all messages
    python scripts/reparse.py 30                 # last 30 days
    python scripts/reparse.py 30 unlinked        # only messages without a booking
"""

import asyncio
import logging
import os
import sys

# Allow running as `python scripts/reparse.py` from project root.
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from booking_inbox.wiring import build_services

logging.basicConfig(level=logging.INFO, format="%(levelname)-7s  %(message)s")


async def main() -> None:
    days = int(sys.argv[1]) if len(sys.argv) >= 2 else 180
    only_unlinked = len(sys.argv) >= 3 and sys.argv[2] == "unlinked"

    services = build_services()
    summary = await services.reparse.run(days=days, only_unlinked=only_unlinked)

    print(f"\nReparsed messages since {summary.since:%Y-%m-%d %H:%M}")
    print("-" * 40)
    print(f"  scanned   {summary.scanned:>6}")
    print(f"  updated   {summary.updated:>6}")
    print(f"  created   {summary.created:>6}")
    print(f"  linked    {summary.linked:>6}")
    if summary.touched_bookings:
        print(f"  bookings  {', '.join(str(b) for b in summary.touched_bookings)}")
    print()


if __name__ == "__main__":
    asyncio.run(main())
