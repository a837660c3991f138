"""Durable checkpoint store over file records and chunk progress."""

import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import List, Optional

from common.logging_config import get_logger
from ingestor.exceptions import CheckpointStoreError
from ingestor.repositories import ChunkProgressRepository, FileRecordRepository
from ingestor.types import ChunkOutcome, FailureReason, FileRecord, FileStatus

logger = get_logger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@contextmanager
def _storage_errors(operation: str):
    try:
        yield
    except sqlite3.Error as e:
        logger.error(f"Checkpoint store {operation} failed: {e}")
        raise CheckpointStoreError(f"{operation} failed: {e}") from e


class CheckpointStore:
    """
    Persistence boundary of the pipeline.

    Every write is committed before the method returns; a method that raises
    CheckpointStoreError has not durably recorded anything the caller may rely on.
    """

    def record_chunk_done(self, content_hash: str, chunk_index: int,
                          total_chunks: int = 0, filename: str = "") -> None:
        """
        Durably record that a chunk was extracted. Idempotent.
        """
        with _storage_errors("record_chunk_done"):
            ChunkProgressRepository.record(
                content_hash, chunk_index, total_chunks, filename, ChunkOutcome.DONE, utc_now()
            )

    def record_chunk_failed(self, content_hash: str, chunk_index: int,
                            total_chunks: int = 0, filename: str = "") -> None:
        """
        Durably record a failed chunk so a resumed pass does not retry it.

        Never overwrites a chunk already recorded as done.
        """
        with _storage_errors("record_chunk_failed"):
            ChunkProgressRepository.record(
                content_hash, chunk_index, total_chunks, filename, ChunkOutcome.FAILED, utc_now()
            )

    def is_chunk_done(self, content_hash: str, chunk_index: int) -> bool:
        with _storage_errors("is_chunk_done"):
            return ChunkProgressRepository.get_outcome(content_hash, chunk_index) == ChunkOutcome.DONE

    def failed_chunks(self, content_hash: str) -> List[int]:
        with _storage_errors("failed_chunks"):
            return sorted(ChunkProgressRepository.resolved_indices(content_hash, ChunkOutcome.FAILED))

    def done_chunks(self, content_hash: str) -> List[int]:
        with _storage_errors("done_chunks"):
            return sorted(ChunkProgressRepository.resolved_indices(content_hash, ChunkOutcome.DONE))

    def list_pending_chunks(self, content_hash: str, total_chunks: int) -> List[int]:
        """
        Resumption query.

        Args:
            content_hash: Content identity
            total_chunks: Chunk count of the file

        Returns:
            Ascending indices in [0, total_chunks) with no recorded outcome
        """
        with _storage_errors("list_pending_chunks"):
            resolved = ChunkProgressRepository.resolved_indices(content_hash)
        return [index for index in range(total_chunks) if index not in resolved]

    def upsert_file_record(
        self,
        content_hash: str,
        filename: str,
        size: int,
        total_chunks: int,
        chunk_target_size: int,
    ) -> FileRecord:
        """
        Create a queued record if absent; an existing record keeps its status.

        Returns:
            The stored record (pre-existing or new)
        """
        with _storage_errors("upsert_file_record"):
            FileRecordRepository.insert_if_absent(
                content_hash, filename, size, total_chunks, chunk_target_size, utc_now()
            )
            record = FileRecordRepository.get_by_hash(content_hash)
        if record is None:
            raise CheckpointStoreError(f"File record vanished after upsert [content_hash={content_hash}]")
        return record

    def set_file_status(
        self,
        content_hash: str,
        status: FileStatus,
        timestamp: Optional[datetime] = None,
        completed_chunks: int = 0,
        failure_reason: Optional[FailureReason] = None,
    ) -> bool:
        """
        Apply a status change to a non-terminal record.

        Returns:
            True if the record was updated, False if it is absent or already terminal
        """
        timestamp = timestamp or utc_now()
        with _storage_errors("set_file_status"):
            if status == FileStatus.PROCESSING:
                updated = FileRecordRepository.mark_processing(content_hash, timestamp)
            elif status.is_terminal:
                updated = FileRecordRepository.mark_terminal(
                    content_hash, status, timestamp, completed_chunks, failure_reason
                )
            else:
                raise ValueError(f"Cannot set status {status.value} on an existing record")
        return updated > 0

    def clear_chunk_progress(self, content_hash: str) -> int:
        with _storage_errors("clear_chunk_progress"):
            return ChunkProgressRepository.delete_for(content_hash)

    def get_file_record(self, content_hash: str) -> Optional[FileRecord]:
        with _storage_errors("get_file_record"):
            return FileRecordRepository.get_by_hash(content_hash)

    def list_file_records(self, status: Optional[FileStatus] = None) -> List[FileRecord]:
        with _storage_errors("list_file_records"):
            return FileRecordRepository.list_all(status)

    def delete_file_record(self, content_hash: str) -> bool:
        with _storage_errors("delete_file_record"):
            ChunkProgressRepository.delete_for(content_hash)
            return FileRecordRepository.delete(content_hash)

    def sweep_orphaned_progress(self) -> int:
        with _storage_errors("sweep_orphaned_progress"):
            return ChunkProgressRepository.delete_orphaned()

    def purge_terminal_records(self, cutoff: datetime) -> List[str]:
        with _storage_errors("purge_terminal_records"):
            return FileRecordRepository.delete_terminal_completed_before(cutoff)
