#!/usr/bin/env python3
"""
Migration script to rewrite stored matches in the current record format.

Ledgers written by the first version of the app hold records shaped as
{player1, player2, result, date}. They are readable as-is, but this script:
1. Reads the ledger from the configured backend (legacy records are mapped
   onto participantA / participantB / outcome / recordedAt)
2. Keeps records that cannot be decoded at all exactly as stored, and
   reports how many there are
3. Writes the ledger back in canonical form, preserving order

Safe to run more than once.
"""

import os
import sys

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv
load_dotenv()

from ledger.elo import aggregate
from ledger.models import readable_matches
from ledger.store import StorageError, select_store


def migrate(store) -> tuple[int, int]:
    """
    Rewrite the ledger held by store.

    Returns:
        (rewritten, unreadable): decoded records written in canonical form,
        and undecodable records written back unchanged
    """
    entries = store.read()
    if not entries:
        return 0, 0

    matches = readable_matches(entries)
    store.write(entries)
    return len(matches), len(entries) - len(matches)


def main():
    store = select_store()

    print("Starting migration of stored matches...")
    print()

    try:
        entries = store.read()
    except StorageError as e:
        print(f"Error: {e}")
        sys.exit(1)

    if not entries:
        print("Ledger is empty, nothing to migrate.")
        return

    print(f"=== Rewriting {len(entries)} records ===")
    try:
        rewritten, unreadable = migrate(store)
    except StorageError as e:
        print(f"Error: {e}")
        sys.exit(1)

    ratings = aggregate(readable_matches(entries))
    print(f"  -> {rewritten} matches in current format, {len(ratings)} participants")
    if unreadable:
        print(f"  -> Warning: {unreadable} records could not be decoded and were kept as stored")
    print()
    print("=== Migration Complete ===")


if __name__ == '__main__':
    main()
