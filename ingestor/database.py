"""Database schema and connection management for SQLite."""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from ingestor.config import DATABASE_PATH

BUSY_TIMEOUT_SECONDS = 30.0


def _migrate_progress_outcome_column(cursor: sqlite3.Cursor) -> None:
    """
    Add the outcome column to ingestion_progress tables created without it.

    Rows written before the column existed only ever recorded successes.
    """
    cursor.execute("PRAGMA table_info(ingestion_progress)")
    columns = {row["name"] for row in cursor.fetchall()}

    if columns and "outcome" not in columns:
        cursor.execute(
            "ALTER TABLE ingestion_progress ADD COLUMN outcome TEXT NOT NULL DEFAULT 'done'"
        )


def init_database() -> None:
    """
    Initialize database and create tables if they don't exist.
    """
    db_path = Path(DATABASE_PATH)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    with get_db_connection() as conn:
        cursor = conn.cursor()

        cursor.execute("PRAGMA journal_mode=WAL")

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS ingestion_progress (
                content_hash TEXT NOT NULL,
                chunk_index INTEGER NOT NULL,
                total_chunks INTEGER NOT NULL,
                filename TEXT NOT NULL,
                outcome TEXT NOT NULL DEFAULT 'done',
                completed_at TEXT NOT NULL,
                PRIMARY KEY (content_hash, chunk_index)
            )
        """)

        _migrate_progress_outcome_column(cursor)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS file_records (
                content_hash TEXT PRIMARY KEY,
                filename TEXT NOT NULL,
                size INTEGER NOT NULL,
                total_chunks INTEGER NOT NULL,
                chunk_target_size INTEGER NOT NULL,
                status TEXT NOT NULL,
                failure_reason TEXT,
                completed_chunks INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL,
                started_at TEXT,
                completed_at TEXT
            )
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_ingestion_progress_hash ON ingestion_progress(content_hash)
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_file_records_status ON file_records(status)
        """)

        conn.commit()


@contextmanager
def get_db_connection() -> Generator[sqlite3.Connection, None, None]:
    """
    Context manager for database connections.

    Every connection runs with synchronous=FULL so a commit is on disk
    before the caller moves on.
    """
    conn = sqlite3.connect(DATABASE_PATH, timeout=BUSY_TIMEOUT_SECONDS)
    conn.row_factory = sqlite3.Row
    try:
        conn.execute("PRAGMA synchronous=FULL")
        yield conn
    finally:
        conn.close()
