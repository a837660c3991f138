"""File record repository for database operations."""

from datetime import datetime
from typing import List, Optional

from common.logging_config import get_logger
from ingestor.database import get_db_connection
from ingestor.types import FailureReason, FileRecord, FileStatus

logger = get_logger(__name__)

TERMINAL_STATUSES = (FileStatus.COMPLETED.value, FileStatus.FAILED.value)

_SELECT_RECORDS = """
    SELECT f.content_hash, f.filename, f.size, f.total_chunks, f.chunk_target_size,
           f.status, f.failure_reason, f.created_at, f.started_at, f.completed_at,
           CASE
               WHEN f.status IN ('completed', 'failed') THEN f.completed_chunks
               ELSE (
                   SELECT COUNT(*) FROM ingestion_progress p
                   WHERE p.content_hash = f.content_hash AND p.outcome = 'done'
               )
           END AS completed_chunks
    FROM file_records f
"""


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _row_to_record(row) -> FileRecord:
    return FileRecord(
        content_hash=row["content_hash"],
        filename=row["filename"],
        size=row["size"],
        total_chunks=row["total_chunks"],
        chunk_target_size=row["chunk_target_size"],
        status=FileStatus(row["status"]),
        created_at=datetime.fromisoformat(row["created_at"]),
        started_at=_parse_timestamp(row["started_at"]),
        completed_at=_parse_timestamp(row["completed_at"]),
        failure_reason=FailureReason(row["failure_reason"]) if row["failure_reason"] else None,
        completed_chunks=row["completed_chunks"],
    )


class FileRecordRepository:
    @staticmethod
    def insert_if_absent(
        content_hash: str,
        filename: str,
        size: int,
        total_chunks: int,
        chunk_target_size: int,
        created_at: datetime,
        status: FileStatus = FileStatus.QUEUED,
    ) -> bool:
        """
        Insert a record unless one already exists for the content hash.

        Returns:
            True if a new row was inserted
        """
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT OR IGNORE INTO file_records
                (content_hash, filename, size, total_chunks, chunk_target_size, status, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (content_hash, filename, size, total_chunks, chunk_target_size,
                 status.value, created_at.isoformat())
            )
            conn.commit()
            inserted = cursor.rowcount == 1

        if inserted:
            logger.info(f"Created file record [content_hash={content_hash}] name={filename} total_chunks={total_chunks}")
        return inserted

    @staticmethod
    def get_by_hash(content_hash: str) -> Optional[FileRecord]:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(_SELECT_RECORDS + " WHERE f.content_hash = ?", (content_hash,))
            row = cursor.fetchone()

            if row is None:
                return None

            return _row_to_record(row)

    @staticmethod
    def list_all(status: Optional[FileStatus] = None) -> List[FileRecord]:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            if status is None:
                cursor.execute(_SELECT_RECORDS + " ORDER BY f.created_at DESC")
            else:
                cursor.execute(
                    _SELECT_RECORDS + " WHERE f.status = ? ORDER BY f.created_at DESC",
                    (status.value,)
                )
            return [_row_to_record(row) for row in cursor.fetchall()]

    @staticmethod
    def mark_processing(content_hash: str, started_at: datetime) -> int:
        """
        Move a non-terminal record to processing; started_at is kept from the first start.
        """
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                UPDATE file_records
                SET status = ?, started_at = COALESCE(started_at, ?)
                WHERE content_hash = ? AND status NOT IN (?, ?)
                """,
                (FileStatus.PROCESSING.value, started_at.isoformat(), content_hash, *TERMINAL_STATUSES)
            )
            conn.commit()
            return cursor.rowcount

    @staticmethod
    def mark_terminal(
        content_hash: str,
        status: FileStatus,
        completed_at: datetime,
        completed_chunks: int,
        failure_reason: Optional[FailureReason] = None,
    ) -> int:
        """
        Finalize a non-terminal record. Terminal rows are never rewritten.
        """
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                UPDATE file_records
                SET status = ?, completed_at = ?, completed_chunks = ?, failure_reason = ?
                WHERE content_hash = ? AND status NOT IN (?, ?)
                """,
                (
                    status.value,
                    completed_at.isoformat(),
                    completed_chunks,
                    failure_reason.value if failure_reason else None,
                    content_hash,
                    *TERMINAL_STATUSES,
                )
            )
            conn.commit()
            updated = cursor.rowcount

        if updated:
            logger.info(f"File record finalized [content_hash={content_hash}] status={status.value}")
        return updated

    @staticmethod
    def delete(content_hash: str) -> bool:
        logger.debug(f"Deleting file record [content_hash={content_hash}]")
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM file_records WHERE content_hash = ?", (content_hash,))
            conn.commit()
            return cursor.rowcount == 1

    @staticmethod
    def delete_terminal_completed_before(cutoff: datetime) -> List[str]:
        """
        Remove terminal records finalized before cutoff.

        Returns:
            Content hashes of the removed records
        """
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT content_hash FROM file_records
                WHERE status IN (?, ?) AND completed_at < ?
                """,
                (*TERMINAL_STATUSES, cutoff.isoformat())
            )
            hashes = [row["content_hash"] for row in cursor.fetchall()]

            if hashes:
                placeholders = ','.join('?' for _ in hashes)
                cursor.execute(
                    f"DELETE FROM file_records WHERE content_hash IN ({placeholders})",
                    hashes
                )
            conn.commit()

        if hashes:
            logger.info(f"Purged {len(hashes)} terminal file records completed before {cutoff.isoformat()}")
        return hashes
