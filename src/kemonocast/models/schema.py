"""
SQLite schema and database initialization.

Defines the post cache schema: one row per post, keyed by
(id, service, creator_id), plus one sync bookkeeping row per creator.
"""

import sqlite3
from pathlib import Path
from typing import List


SCHEMA_SQL = """
-- ============================================================
-- POSTS: Cached upstream post records
-- ============================================================
CREATE TABLE IF NOT EXISTS posts (
    id              TEXT    NOT NULL,
    service         TEXT    NOT NULL,
    creator_id      TEXT    NOT NULL,
    post_data       TEXT    NOT NULL,  -- JSON-serialized post record
    published       TEXT    NOT NULL DEFAULT '',
    fetched_at      TEXT    NOT NULL,  -- ISO-8601, UTC
    PRIMARY KEY (id, service, creator_id)
);

CREATE INDEX IF NOT EXISTS idx_posts_creator ON posts(service, creator_id, published DESC);

-- ============================================================
-- CREATORS: Sync bookkeeping per creator
-- ============================================================
CREATE TABLE IF NOT EXISTS creators (
    service           TEXT    NOT NULL,
    creator_id        TEXT    NOT NULL,
    last_synced       TEXT    NOT NULL,  -- ISO-8601, UTC
    backfill_complete INTEGER NOT NULL DEFAULT 0 CHECK (backfill_complete IN (0, 1)),
    PRIMARY KEY (service, creator_id)
);
"""


def create_all_tables(db_path: Path) -> None:
    """
    Create all tables and indexes.

    Safe to call multiple times (idempotent). A creators table from
    before the backfill flag existed gets the column added.

    Args:
        db_path: Path to SQLite database file
    """
    conn = sqlite3.connect(str(db_path))
    try:
        conn.execute("PRAGMA journal_mode = WAL")
        conn.executescript(SCHEMA_SQL)
        _add_backfill_flag(conn)
        conn.commit()
    finally:
        conn.close()


def get_table_names(db_path: Path) -> List[str]:
    """
    List the tables present in a database.

    Args:
        db_path: Path to SQLite database file

    Returns:
        Sorted list of table names
    """
    conn = sqlite3.connect(str(db_path))
    try:
        cursor = conn.execute(
            "SELECT name FROM sqlite_master WHERE type = 'table' ORDER BY name"
        )
        return [row[0] for row in cursor.fetchall()]
    finally:
        conn.close()


def _add_backfill_flag(conn: sqlite3.Connection) -> None:
    """
    Upgrade a creators table created without the backfill flag.

    Older databases only wrote a creators row once a sync had finished,
    and the first sync of a creator was always a full backfill, so every
    existing row is marked as backfilled.
    """
    columns = [row[1] for row in conn.execute("PRAGMA table_info(creators)")]
    if "backfill_complete" in columns:
        return
    conn.execute(
        "ALTER TABLE creators ADD COLUMN backfill_complete INTEGER NOT NULL DEFAULT 0"
    )
    conn.execute("UPDATE creators SET backfill_complete = 1")
