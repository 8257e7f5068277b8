#!/usr/bin/env python3
"""
Mark every existing turf in the SQLite database as verified.

One-off migration for listings created before moderation existed.  Turfs
that are already verified are left alone; every other turf is verified
and activated.  Owners are not notified.

Usage:
    python -m turf_platform_api.verify_turfs --db ./turf_platform.db

Exits with status 1 if the database cannot be found and 2 if any turf
could not be updated.
"""

import argparse
import asyncio
import os
import sys

from turf_platform_api.app.core.exceptions import StoreError
from turf_platform_api.app.core.logging_config import setup_logging
from turf_platform_api.app.core.store import SqliteRecordStore
from turf_platform_api.app.services.moderation_service import ModerationService


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Verify all existing turfs (SQLite).")
    ap.add_argument("--db", required=True, help="Path to SQLite DB file (e.g., ./turf_platform.db)")
    ap.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    args = ap.parse_args(argv)

    if not os.path.exists(args.db):
        print(f"[!] DB not found: {args.db}", file=sys.stderr)
        return 1

    setup_logging(args.log_level)
    store = SqliteRecordStore(os.path.abspath(args.db))
    try:
        store.initialise()
        result = asyncio.run(ModerationService(store).verify_all_existing())
    except StoreError as e:
        print(f"[!] {e.message}", file=sys.stderr)
        return 1

    print(f"[+] Turfs checked:      {result.total}")
    print(f"[+] Newly verified:     {result.updated}")
    print(f"[+] Already verified:   {result.already_verified}")
    if not result.success:
        print(f"[!] Errors:             {result.errors} ({', '.join(result.failed_ids)})", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
