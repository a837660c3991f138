"""Chunk progress repository for database operations."""

from datetime import datetime
from typing import Optional, Set

from common.logging_config import get_logger
from ingestor.database import get_db_connection
from ingestor.types import ChunkOutcome

logger = get_logger(__name__)


class ChunkProgressRepository:
    @staticmethod
    def record(
        content_hash: str,
        chunk_index: int,
        total_chunks: int,
        filename: str,
        outcome: ChunkOutcome,
        completed_at: datetime,
    ) -> None:
        """
        Insert a chunk outcome; an existing row for the same index is left as is.
        """
        with get_db_connection() as conn:
            conn.execute(
                """
                INSERT OR IGNORE INTO ingestion_progress
                (content_hash, chunk_index, total_chunks, filename, outcome, completed_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (content_hash, chunk_index, total_chunks, filename, outcome.value, completed_at.isoformat())
            )
            conn.commit()

    @staticmethod
    def get_outcome(content_hash: str, chunk_index: int) -> Optional[ChunkOutcome]:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT outcome FROM ingestion_progress WHERE content_hash = ? AND chunk_index = ?",
                (content_hash, chunk_index)
            )
            row = cursor.fetchone()
            return ChunkOutcome(row["outcome"]) if row else None

    @staticmethod
    def resolved_indices(content_hash: str, outcome: Optional[ChunkOutcome] = None) -> Set[int]:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            if outcome is None:
                cursor.execute(
                    "SELECT chunk_index FROM ingestion_progress WHERE content_hash = ?",
                    (content_hash,)
                )
            else:
                cursor.execute(
                    "SELECT chunk_index FROM ingestion_progress WHERE content_hash = ? AND outcome = ?",
                    (content_hash, outcome.value)
                )
            return {row["chunk_index"] for row in cursor.fetchall()}

    @staticmethod
    def delete_for(content_hash: str) -> int:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM ingestion_progress WHERE content_hash = ?", (content_hash,))
            conn.commit()
            deleted = cursor.rowcount

        logger.debug(f"Cleared {deleted} progress rows [content_hash={content_hash}]")
        return deleted

    @staticmethod
    def delete_orphaned() -> int:
        """
        Remove progress rows whose file record is terminal or missing.
        """
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                DELETE FROM ingestion_progress
                WHERE content_hash NOT IN (
                    SELECT content_hash FROM file_records
                    WHERE status NOT IN ('completed', 'failed')
                )
                """
            )
            conn.commit()
            return cursor.rowcount
