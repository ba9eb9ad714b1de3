"""
Permanent storage for shareable cards plus the career-score leaderboard.

Every resolved request gets its own record; records are never deduplicated
and never expire.
"""

import json
import logging
import secrets
import sqlite3
import threading
import time
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Protocol

from pydantic import BaseModel

from card_schema import RoastCard

logger = logging.getLogger(__name__)

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


class CardStorageError(Exception):
    """Raised when a shareable card could not be persisted"""
    pass


class StoredCard(BaseModel):
    """Stored card data - full result with no truncation"""
    result: RoastCard
    dreamRole: str
    createdAt: int


class RankInfo(BaseModel):
    rank: int
    totalCards: int
    percentile: int


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_card_id() -> str:
    """Short id: base36 millisecond timestamp plus six random base36 chars."""
    timestamp = _to_base36(int(time.time() * 1000))
    random_part = "".join(secrets.choice(_BASE36) for _ in range(6))
    return f"{timestamp}-{random_part}"


def _rank_info(rank: int, total: int) -> RankInfo:
    # rank is 0-based, highest score first
    percentile = round((total - rank - 1) / (total - 1) * 100) if total > 1 else 100
    return RankInfo(rank=rank + 1, totalCards=total, percentile=percentile)


class CardStore(Protocol):
    def store_card(self, result: RoastCard, dream_role: str) -> str: ...

    def get_card(self, card_id: str) -> Optional[StoredCard]: ...

    def get_card_rank(self, card_id: str) -> Optional[RankInfo]: ...

    def total_cards(self) -> int: ...


class InMemoryCardStore:
    """Process-local card store, mainly for tests and single-process demos."""

    def __init__(self):
        self._cards: Dict[str, StoredCard] = {}
        self._lock = threading.Lock()

    def store_card(self, result: RoastCard, dream_role: str) -> str:
        card_id = generate_card_id()
        stored = StoredCard(result=result, dreamRole=dream_role, createdAt=int(time.time() * 1000))
        with self._lock:
            while card_id in self._cards:
                card_id = generate_card_id()
            self._cards[card_id] = stored
        logger.info("[STORAGE] Stored card %s", card_id)
        return card_id

    def get_card(self, card_id: str) -> Optional[StoredCard]:
        with self._lock:
            return self._cards.get(card_id)

    def get_card_rank(self, card_id: str) -> Optional[RankInfo]:
        with self._lock:
            stored = self._cards.get(card_id)
            if stored is None:
                return None
            scores: List[int] = [c.result.careerScore for c in self._cards.values()]
        score = stored.result.careerScore
        rank = sum(1 for s in scores if s > score)
        return _rank_info(rank, len(scores))

    def total_cards(self) -> int:
        with self._lock:
            return len(self._cards)


class SqliteCardStore:
    """Card store backed by a SQLite file."""

    def __init__(self, db_path: str):
        self._db_path = db_path
        with self._connect() as conn:
            conn.execute(
                "CREATE TABLE IF NOT EXISTS cards ("
                "id TEXT PRIMARY KEY, dream_role TEXT NOT NULL, score INTEGER NOT NULL, "
                "result_json TEXT NOT NULL, created_at INTEGER NOT NULL)"
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_cards_score ON cards (score)")

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def store_card(self, result: RoastCard, dream_role: str) -> str:
        card_id = generate_card_id()
        try:
            with self._connect() as conn:
                conn.execute(
                    "INSERT INTO cards (id, dream_role, score, result_json, created_at) VALUES (?, ?, ?, ?, ?)",
                    (card_id, dream_role, result.careerScore, result.model_dump_json(), int(time.time() * 1000)),
                )
        except sqlite3.Error as e:
            raise CardStorageError(f"Failed to store card: {e}") from e
        logger.info("[STORAGE] Stored card %s", card_id)
        return card_id

    def get_card(self, card_id: str) -> Optional[StoredCard]:
        try:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT dream_role, result_json, created_at FROM cards WHERE id = ?", (card_id,)
                ).fetchone()
            if row is None:
                return None
            return StoredCard(
                result=RoastCard.model_validate(json.loads(row["result_json"])),
                dreamRole=row["dream_role"],
                createdAt=row["created_at"],
            )
        except Exception as e:
            logger.error("[STORAGE] Failed to retrieve card %s: %s", card_id, e)
            return None

    def get_card_rank(self, card_id: str) -> Optional[RankInfo]:
        try:
            with self._connect() as conn:
                row = conn.execute("SELECT score FROM cards WHERE id = ?", (card_id,)).fetchone()
                if row is None:
                    return None
                rank = conn.execute("SELECT COUNT(*) FROM cards WHERE score > ?", (row["score"],)).fetchone()[0]
                total = conn.execute("SELECT COUNT(*) FROM cards").fetchone()[0]
            return _rank_info(rank, total)
        except sqlite3.Error as e:
            logger.error("[STORAGE] Failed to get card rank for %s: %s", card_id, e)
            return None

    def total_cards(self) -> int:
        try:
            with self._connect() as conn:
                return conn.execute("SELECT COUNT(*) FROM cards").fetchone()[0]
        except sqlite3.Error as e:
            logger.error("[STORAGE] Failed to count cards: %s", e)
            return 0
