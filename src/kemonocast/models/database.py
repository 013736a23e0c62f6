"""
Post cache and sync bookkeeping on top of SQLite.

Provides the PostStore class, which owns every persisted post and
per-creator sync record. Each public method opens its own connection and
commits before returning, so a store instance can be shared by request
threads.
"""

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional

from dateutil import parser as date_parser

from .entities import Post, SyncRecord
from .schema import create_all_tables

logger = logging.getLogger(__name__)

# Seconds a writer waits for a competing transaction to finish
BUSY_TIMEOUT = 30.0


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


class PostStore:
    """
    Durable store of posts per creator.

    Posts are keyed by (id, service, creator_id); writing a post with an
    existing key replaces the stored record. Rows live until replaced;
    nothing is evicted.

    Example:
        >>> store = PostStore(Path("data/kemono.db"))
        >>> store.initialize()
        >>> store.upsert_many(posts)
        >>> latest = store.get_all("patreon", "123456")
    """

    def __init__(self, db_path: Path):
        """
        Initialize the store.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def initialize(self) -> None:
        """
        Initialize database schema.

        Creates all tables and indexes if they don't exist.
        Safe to call multiple times (idempotent).
        """
        create_all_tables(self.db_path)

    @contextmanager
    def get_connection(self):
        """
        Context manager for database connections.

        Commits on success, rolls back and re-raises on error, and always
        closes the connection.

        Yields:
            sqlite3.Connection: Database connection with row factory set
        """
        conn = sqlite3.connect(str(self.db_path), timeout=BUSY_TIMEOUT)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA encoding = 'UTF-8'")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    # -------------------------------------------------------------------
    #  Posts
    # -------------------------------------------------------------------

    def has_any(self, service: str, creator_id: str) -> bool:
        """Return True if at least one post is stored for the creator."""
        with self.get_connection() as conn:
            cursor = conn.execute(
                "SELECT 1 FROM posts WHERE service = ? AND creator_id = ? LIMIT 1",
                (service, creator_id),
            )
            return cursor.fetchone() is not None

    def get_all(self, service: str, creator_id: str) -> List[Post]:
        """
        Retrieve all posts for a creator, newest first.

        Posts with equal published timestamps come back in the order they
        were first stored.

        Args:
            service: Upstream service name
            creator_id: Creator id on that service

        Returns:
            List of Post objects ordered by published date descending
        """
        with self.get_connection() as conn:
            cursor = conn.execute(
                """
                SELECT post_data FROM posts
                WHERE service = ? AND creator_id = ?
                ORDER BY published DESC, rowid ASC
                """,
                (service, creator_id),
            )
            rows = cursor.fetchall()
        return [Post.model_validate_json(row["post_data"]) for row in rows]

    def upsert_many(self, posts: Iterable[Post]) -> int:
        """
        Insert or replace posts.

        The whole batch is written in one transaction. When a batch holds
        the same identity more than once, the last occurrence wins. A
        replaced row keeps its original position for tie ordering.

        Args:
            posts: Posts to store

        Returns:
            int: Number of posts processed
        """
        fetched_at = _utcnow()
        saved = 0
        with self.get_connection() as conn:
            for post in posts:
                conn.execute(
                    """
                    INSERT INTO posts (id, service, creator_id, post_data, published, fetched_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    ON CONFLICT (id, service, creator_id) DO UPDATE SET
                        post_data = excluded.post_data,
                        published = excluded.published,
                        fetched_at = excluded.fetched_at
                    """,
                    (
                        *post.identity,
                        post.model_dump_json(),
                        post.published or "",
                        fetched_at,
                    ),
                )
                saved += 1
        logger.debug("Upserted %d post(s)", saved)
        return saved

    def count(self, service: str, creator_id: str) -> int:
        """Return the number of posts stored for the creator."""
        with self.get_connection() as conn:
            cursor = conn.execute(
                "SELECT COUNT(*) FROM posts WHERE service = ? AND creator_id = ?",
                (service, creator_id),
            )
            return cursor.fetchone()[0]

    # -------------------------------------------------------------------
    #  Sync bookkeeping
    # -------------------------------------------------------------------

    def mark_synced(
        self,
        service: str,
        creator_id: str,
        backfill_complete: bool = False,
    ) -> None:
        """
        Record that a sync for the creator just finished.

        Uses an upsert on (service, creator_id). Once a backfill has been
        recorded as complete, later calls never clear the flag.

        Args:
            service: Upstream service name
            creator_id: Creator id on that service
            backfill_complete: True when this sync paginated the full history
        """
        with self.get_connection() as conn:
            conn.execute(
                """
                INSERT INTO creators (service, creator_id, last_synced, backfill_complete)
                VALUES (?, ?, ?, ?)
                ON CONFLICT (service, creator_id) DO UPDATE SET
                    last_synced = excluded.last_synced,
                    backfill_complete = MAX(backfill_complete, excluded.backfill_complete)
                """,
                (service, creator_id, _utcnow(), 1 if backfill_complete else 0),
            )

    def get_sync_record(self, service: str, creator_id: str) -> Optional[SyncRecord]:
        """
        Retrieve the sync record for a creator.

        Returns:
            SyncRecord or None if the creator was never synced
        """
        with self.get_connection() as conn:
            cursor = conn.execute(
                """
                SELECT last_synced, backfill_complete FROM creators
                WHERE service = ? AND creator_id = ?
                """,
                (service, creator_id),
            )
            row = cursor.fetchone()
        if row is None:
            return None
        return SyncRecord(
            service=service,
            creator_id=creator_id,
            last_synced=date_parser.isoparse(row["last_synced"]),
            backfill_complete=bool(row["backfill_complete"]),
        )

    def get_last_synced(self, service: str, creator_id: str) -> Optional[datetime]:
        """Return when the creator was last synced, or None."""
        record = self.get_sync_record(service, creator_id)
        return record.last_synced if record else None

    def is_backfilled(self, service: str, creator_id: str) -> bool:
        """Return True once a full backfill has completed for the creator."""
        record = self.get_sync_record(service, creator_id)
        return bool(record and record.backfill_complete)
