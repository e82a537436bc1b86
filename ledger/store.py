"""
Durable storage for the match ledger.

Three interchangeable backends share one contract: read() returns the full
ordered match list, write() replaces it. Which one a process uses is decided
once, by select_store(), from what the environment makes available.

Stored entries that cannot be decoded come back from read() as
UnreadableRecord and are written back unchanged, so a rewrite of the ledger
never loses them.
"""

import json
import os
import time
from abc import ABC, abstractmethod
from functools import wraps
from pathlib import Path
from urllib.parse import quote

import requests

from ledger.constants import (
    BACKEND_NAMES,
    DEFAULT_LEDGER_FILE,
    KV_DEFAULT_KEY,
    KV_MAX_RETRIES,
    KV_REQUEST_TIMEOUT,
    KV_RETRY_BASE_DELAY,
    KV_RETRY_MAX_DELAY,
)
from ledger.models import Match, normalize_matches


class StorageError(Exception):
    """Base class for ledger storage failures."""


class StorageReadError(StorageError):
    """The backend could not be read."""


class StorageWriteError(StorageError):
    """The backend did not durably accept a write."""

    def __init__(self, message: str, matches=None):
        super().__init__(message)
        # The state the caller attempted to persist
        self.matches = list(matches) if matches is not None else []


def kv_retry(func):
    """Decorator to retry KV requests on connection errors with exponential backoff."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        for attempt in range(KV_MAX_RETRIES):
            try:
                return func(*args, **kwargs)
            except (requests.ConnectionError, requests.Timeout) as e:
                if attempt < KV_MAX_RETRIES - 1:
                    wait_time = min(KV_RETRY_BASE_DELAY * (2 ** attempt), KV_RETRY_MAX_DELAY)
                    print(f"KV connection error, retrying in {wait_time}s... "
                          f"(attempt {attempt + 1}/{KV_MAX_RETRIES}): {e}")
                    time.sleep(wait_time)
                    continue
                raise
    return wrapper


def serialize_matches(matches) -> str:
    """Encode a match list as the JSON array every backend persists."""
    return json.dumps([match.to_dict() for match in matches], indent=2)


class LedgerStore(ABC):
    """Interface shared by all ledger backends."""

    name = None

    @abstractmethod
    def read(self) -> list[Match]:
        """Full ledger in stored order."""

    @abstractmethod
    def write(self, matches: list[Match]) -> None:
        """Replace the whole ledger."""

    def describe(self) -> str:
        return self.name


class KVStore(LedgerStore):
    """
    Ledger kept as one JSON value in a managed key-value store.

    Talks to the Vercel KV / Upstash REST API. Every write replaces the whole
    value; atomicity of that replace is the store's.
    """

    name = 'kv'

    def __init__(self, base_url: str, token: str, key: str = KV_DEFAULT_KEY, session: requests.Session = None):
        self.base_url = base_url.rstrip('/')
        self.key = key
        self.session = session or requests.Session()
        self.session.headers['Authorization'] = f'Bearer {token}'

    def _url(self, command: str) -> str:
        return f"{self.base_url}/{command}/{quote(self.key, safe='')}"

    @staticmethod
    def _result(resp):
        """The 'result' member of a REST reply, which must be a JSON object."""
        body = resp.json()
        if not isinstance(body, dict):
            raise ValueError(f"unexpected KV reply: {type(body).__name__}")
        return body.get('result')

    @kv_retry
    def _get(self):
        resp = self.session.get(self._url('get'), timeout=KV_REQUEST_TIMEOUT)
        resp.raise_for_status()
        return self._result(resp)

    @kv_retry
    def _set(self, payload: str):
        resp = self.session.post(self._url('set'), data=payload.encode('utf-8'), timeout=KV_REQUEST_TIMEOUT)
        resp.raise_for_status()
        return self._result(resp)

    def read(self) -> list[Match]:
        try:
            raw = self._get()
        except (requests.RequestException, ValueError) as e:
            raise StorageReadError(f"Failed to read matches from KV: {e}") from e
        # A missing key comes back as a null result
        return normalize_matches(raw, keep_unreadable=True)

    def write(self, matches: list[Match]) -> None:
        try:
            self._set(serialize_matches(matches))
        except (requests.RequestException, ValueError) as e:
            raise StorageWriteError(f"Failed to save matches to KV: {e}", matches) from e

    def describe(self) -> str:
        return f"kv (key '{self.key}')"


class FileStore(LedgerStore):
    """Ledger kept as a JSON array in a local file."""

    name = 'file'

    def __init__(self, path):
        self.path = Path(path)

    def read(self) -> list[Match]:
        if not self.path.exists():
            return []
        try:
            content = self.path.read_bytes()
        except OSError as e:
            raise StorageReadError(f"Failed to read matches from {self.path}: {e}") from e
        # Corrupt content (bad encoding or bad JSON) reads as an empty ledger
        # so new matches can still be recorded
        return normalize_matches(content, keep_unreadable=True)

    def write(self, matches: list[Match]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(serialize_matches(matches), encoding='utf-8')
        except OSError as e:
            raise StorageWriteError(f"Failed to save matches to {self.path}: {e}", matches) from e

    def describe(self) -> str:
        return f"file ({self.path})"


class MemoryStore(LedgerStore):
    """Ledger kept in process memory; lost on restart."""

    name = 'memory'

    def __init__(self, matches=None):
        self._matches = list(matches) if matches else []

    def read(self) -> list[Match]:
        return list(self._matches)

    def write(self, matches: list[Match]) -> None:
        self._matches = list(matches)

    def describe(self) -> str:
        return "memory (not persisted)"


def _is_writable_location(path: Path) -> bool:
    """True if path can be created or overwritten by this process."""
    if path.exists():
        return os.access(path, os.W_OK)
    directory = path.parent
    while not directory.exists():
        if directory.parent == directory:
            return False
        directory = directory.parent
    return os.access(directory, os.W_OK)


def select_store(environ=None) -> LedgerStore:
    """
    Build the ledger backend for this process.

    Priority:
    1. LEDGER_BACKEND, if set (kv, file or memory)
    2. KV, when KV_REST_API_URL and KV_REST_API_TOKEN are both set
    3. File at LEDGER_FILE_PATH (default data/matches.json), when writable
    4. In-memory

    Raises:
        ValueError: if LEDGER_BACKEND names an unknown or unconfigured backend
    """
    env = os.environ if environ is None else environ

    backend = (env.get('LEDGER_BACKEND') or '').strip().lower() or None
    kv_url = env.get('KV_REST_API_URL')
    kv_token = env.get('KV_REST_API_TOKEN')
    kv_key = env.get('LEDGER_KV_KEY') or KV_DEFAULT_KEY
    file_path = Path(env.get('LEDGER_FILE_PATH') or DEFAULT_LEDGER_FILE)

    if backend is not None and backend not in BACKEND_NAMES:
        raise ValueError(f"Unknown LEDGER_BACKEND '{backend}' (expected one of: {', '.join(BACKEND_NAMES)})")
    if backend == 'kv' and not (kv_url and kv_token):
        raise ValueError("LEDGER_BACKEND=kv requires KV_REST_API_URL and KV_REST_API_TOKEN")

    if backend is None:
        if kv_url and kv_token:
            backend = 'kv'
        elif _is_writable_location(file_path):
            backend = 'file'
        else:
            backend = 'memory'

    if backend == 'kv':
        store = KVStore(kv_url, kv_token, key=kv_key)
    elif backend == 'file':
        store = FileStore(file_path)
    else:
        store = MemoryStore()

    print(f"Ledger storage: {store.describe()}")
    return store
