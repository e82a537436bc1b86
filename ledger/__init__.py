"""
Match ledger with Elo ratings derived from the full match history.

Usage:
    python -m ledger --help
    python -m ledger --add alice bob --result a
    python -m ledger --ratings
"""

from ledger.constants import (
    K_FACTOR,
    DEFAULT_RATING,
    KV_DEFAULT_KEY,
    DEFAULT_LEDGER_FILE,
)
from ledger.models import Match, Outcome, normalize_matches
from ledger.elo import aggregate, expected_score, leaderboard
from ledger.store import (
    LedgerStore,
    KVStore,
    FileStore,
    MemoryStore,
    StorageError,
    StorageReadError,
    StorageWriteError,
    select_store,
)
from ledger.service import LedgerService, ValidationError

__all__ = [
    # Constants
    'K_FACTOR',
    'DEFAULT_RATING',
    'KV_DEFAULT_KEY',
    'DEFAULT_LEDGER_FILE',
    # Records
    'Match',
    'Outcome',
    'normalize_matches',
    # Ratings
    'aggregate',
    'expected_score',
    'leaderboard',
    # Storage
    'LedgerStore',
    'KVStore',
    'FileStore',
    'MemoryStore',
    'StorageError',
    'StorageReadError',
    'StorageWriteError',
    'select_store',
    # Operations
    'LedgerService',
    'ValidationError',
]
