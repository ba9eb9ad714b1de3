"""
Cache of previously generated legend roasts, keyed by normalized subject name.

A broken or unreachable store is never fatal: reads degrade to a miss and
writes are logged and skipped.
"""

import json
import logging
import re
import sqlite3
import threading
import time
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, Optional, Protocol, Tuple

from card_schema import RoastCard

logger = logging.getLogger(__name__)

CACHE_KEY_PREFIX = "legend:"
CACHE_TTL_SECONDS = 30 * 24 * 60 * 60

_WHITESPACE_RE = re.compile(r'\s+')


def cache_key(name: str) -> str:
    """legend:<lower-cased name, whitespace runs replaced by a dash>"""
    return CACHE_KEY_PREFIX + _WHITESPACE_RE.sub('-', name.strip().lower())


class CardCache(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str, ttl: int) -> None: ...


class InMemoryCardCache:
    """Process-local cache with per-entry expiry."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._entries: Dict[str, Tuple[str, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at <= self._clock():
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: str, ttl: int) -> None:
        with self._lock:
            self._entries[key] = (value, self._clock() + ttl)


class SqliteCardCache:
    """Cache persisted in a SQLite file so it survives restarts."""

    def __init__(self, db_path: str, clock: Callable[[], float] = time.time):
        self._db_path = db_path
        self._clock = clock
        with self._connect() as conn:
            conn.execute(
                "CREATE TABLE IF NOT EXISTS legend_cache ("
                "key TEXT PRIMARY KEY, value TEXT NOT NULL, expires_at REAL NOT NULL)"
            )

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """One transaction on a fresh connection, closed afterwards."""
        conn = sqlite3.connect(self._db_path)
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def get(self, key: str) -> Optional[str]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT value FROM legend_cache WHERE key = ? AND expires_at > ?",
                (key, self._clock()),
            ).fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str, ttl: int) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO legend_cache (key, value, expires_at) VALUES (?, ?, ?)",
                (key, value, self._clock() + ttl),
            )


def get_cached_card(cache: CardCache, key: str) -> Optional[RoastCard]:
    """Read a cached card; unavailable stores and malformed values count as a miss."""
    try:
        raw = cache.get(key)
    except Exception as e:
        logger.warning("[CACHE] Read failed for %s, treating as miss: %s", key, e)
        return None

    if not raw:
        return None

    try:
        data = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
        return RoastCard.model_validate(data)
    except Exception as e:
        logger.warning("[CACHE] Malformed entry for %s, treating as miss: %s", key, e)
        return None


def put_cached_card(cache: CardCache, key: str, card: RoastCard, ttl: int = CACHE_TTL_SECONDS) -> bool:
    """Write a card to the cache. Returns False when the store refused the write."""
    try:
        cache.set(key, card.model_dump_json(), ttl)
        logger.info("[CACHE] Stored %s for %d days", key, ttl // 86400)
        return True
    except Exception as e:
        logger.warning("[CACHE] Write failed for %s: %s", key, e)
        return False
