#!/usr/bin/env python3
"""Compute content DNA for every title on a user's watchlist that lacks it.

Runs the same scan as ``POST /api/dna/scan`` and waits for the queue to
drain, printing progress as items complete.

Usage:
    python scripts/scan_missing_dna.py --user-id=ID [--dry-run]

Options:
    --dry-run   Only list the titles that have no DNA yet
    --user-id   User whose watchlist is scanned
"""

import argparse
import asyncio

from streamsense.db.database import async_session_maker
from streamsense.db.crud.watchlist import get_watchlist_refs
from streamsense.db.errors import is_missing_table_error
from streamsense.services.dna import ContentDNAService, DNAComputationQueue, DNAProgressEvent
from streamsense.utils.http_client import close_all_clients
from streamsense.utils.logging import setup_logging


def print_progress(event: DNAProgressEvent) -> None:
    if event.status in ("completed", "retrying", "abandoned"):
        suffix = f" ({event.error})" if event.error else ""
        print(f"  {event.key:20} {event.status}{suffix}  [queued={event.queue_size}]")


async def scan_missing_dna(user_id: str, dry_run: bool = False) -> None:
    dna_service = ContentDNAService(async_session_maker)

    if dry_run:
        async with async_session_maker() as db:
            refs = await get_watchlist_refs(db, user_id)
        try:
            existing = await dna_service.existing_keys(refs)
        except Exception as e:
            if not is_missing_table_error(e):
                raise
            print("content_dna table does not exist yet; run the migrations first")
            return

        missing = [f"{mt.value}-{tmdb_id}" for tmdb_id, mt in refs if f"{mt.value}-{tmdb_id}" not in existing]
        print(f"Found {len(refs)} watchlist titles, {len(missing)} without DNA\n")
        for key in missing:
            print(f"  - {key}")
        return

    queue = DNAComputationQueue(dna_service, on_progress=print_progress)
    try:
        queued = await queue.scan_watchlist_for_missing_dna(user_id)
        if not queued:
            print("Nothing to compute!")
            return

        print(f"Queued {queued} titles for DNA computation\n")
        await queue.wait_until_idle()
        print("\nDone.")
    finally:
        await close_all_clients()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Compute missing content DNA for a user's watchlist")
    parser.add_argument("--user-id", required=True, help="User whose watchlist is scanned")
    parser.add_argument("--dry-run", action="store_true", help="Only list titles without DNA")
    args = parser.parse_args()

    setup_logging("INFO")
    asyncio.run(scan_missing_dna(user_id=args.user_id, dry_run=args.dry_run))
