"""SQLite storage adapter.

Implements the core SeenStorePort using a simple SQLite database.
"""

from __future__ import annotations

import logging
import os
import sqlite3
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Sequence

from newspulse.core.dedup import compute_content_hash
from newspulse.core.models import CandidateItem, StoreStats

LOGGER = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SQLiteSeenStore:
    """Thin SQLite wrapper that satisfies the SeenStorePort contract.

    Every call opens its own connection and commits before returning, so the
    store can be used from worker threads and nothing is buffered in memory.
    """

    def __init__(self, db_path: str, clock: Optional[Callable[[], datetime]] = None) -> None:
        self._db_path = db_path
        self._clock = clock or _utcnow

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        """Create the database file and schema if they do not exist.

        An existing file is reused as-is, which is how seen records survive a
        restart.
        """

        directory = os.path.dirname(self._db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        with self._connect() as conn:
            # seen_news stores one row per surfaced (url, title) pair.
            # Fields:
            # - hash: SHA-256 of normalized url + "|" + normalized title (PRIMARY KEY)
            # - title: original headline, for inspection
            # - category: category tag of the item when first seen
            # - first_seen: ISO-8601 UTC timestamp used for retention cleanup
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS seen_news (
                    hash TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    category TEXT NOT NULL,
                    first_seen TEXT NOT NULL
                )
                """
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_first_seen ON seen_news(first_seen)")
        LOGGER.info("Deduplication database initialized at %s", self._db_path)

    def filter_new(self, items: Sequence[CandidateItem]) -> list[CandidateItem]:
        """Return the items not seen before, recording each one as it passes.

        Inserting before moving on means a duplicate later in the same batch
        is rejected exactly like a duplicate from a previous run.
        """

        if not items:
            return []

        new_items: list[CandidateItem] = []
        first_seen = self._clock().astimezone(timezone.utc).isoformat()
        with self._connect() as conn:
            for item in items:
                content_hash = compute_content_hash(item.url, item.title)
                cur = conn.execute(
                    """
                    INSERT OR IGNORE INTO seen_news (hash, title, category, first_seen)
                    VALUES (?, ?, ?, ?)
                    """,
                    (content_hash, item.title, item.category, first_seen),
                )
                if cur.rowcount == 1:
                    new_items.append(item)

        LOGGER.info("Dedup: %s items in, %s new", len(items), len(new_items))
        return new_items

    def is_seen(self, url: str, title: str) -> bool:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT 1 FROM seen_news WHERE hash = ?",
                (compute_content_hash(url, title),),
            ).fetchone()
        return row is not None

    def cleanup(self, retention_days: int = 7) -> int:
        """Delete records first seen before the retention window; return the count."""

        cutoff = self._clock().astimezone(timezone.utc) - timedelta(days=retention_days)
        with self._connect() as conn:
            cur = conn.execute(
                "DELETE FROM seen_news WHERE first_seen < ?",
                (cutoff.isoformat(),),
            )
            removed = cur.rowcount
        LOGGER.info("Dedup cleanup: removed %s entries older than %s days", removed, retention_days)
        return removed

    def stats(self) -> StoreStats:
        """Return the total record count and how many were first seen today."""

        now = self._clock()
        local_midnight = now.astimezone().replace(hour=0, minute=0, second=0, microsecond=0)
        today_start = local_midnight.astimezone(timezone.utc)
        with self._connect() as conn:
            total = conn.execute("SELECT COUNT(*) FROM seen_news").fetchone()[0]
            today = conn.execute(
                "SELECT COUNT(*) FROM seen_news WHERE first_seen >= ?",
                (today_start.isoformat(),),
            ).fetchone()[0]
        return StoreStats(total=int(total), today=int(today))
