"""File status lifecycle and retention policy."""

from datetime import timedelta
from typing import Dict, FrozenSet, Optional

from common.logging_config import get_logger
from ingestor.exceptions import (
    FileRecordBusyError,
    FileRecordNotFoundError,
    InvalidStatusTransitionError,
)
from ingestor.services.checkpoint_store import CheckpointStore, utc_now
from ingestor.types import FailureReason, FileRecord, FileStatus

logger = get_logger(__name__)

# processing -> processing is a resume after restart
ALLOWED_TRANSITIONS: Dict[FileStatus, FrozenSet[FileStatus]] = {
    FileStatus.QUEUED: frozenset({FileStatus.PROCESSING}),
    FileStatus.PROCESSING: frozenset({FileStatus.PROCESSING, FileStatus.COMPLETED, FileStatus.FAILED}),
    FileStatus.COMPLETED: frozenset(),
    FileStatus.FAILED: frozenset(),
}


def check_transition(current: FileStatus, target: FileStatus) -> None:
    """
    Raises:
        InvalidStatusTransitionError: If current -> target is not a lifecycle edge
    """
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidStatusTransitionError(
            f"Cannot move file from {current.value} to {target.value}"
        )


class LifecycleManager:
    """
    Derives file status from chunk outcomes and persists it.

    Finalization writes the terminal status before clearing chunk progress, so
    a crash in between leaves only orphaned progress rows, which the retention
    sweep removes.
    """

    def __init__(self, store: CheckpointStore):
        self.store = store

    def begin(self, record: FileRecord) -> None:
        """Move a queued (or interrupted) record to processing."""
        check_transition(record.status, FileStatus.PROCESSING)
        self.store.set_file_status(record.content_hash, FileStatus.PROCESSING, utc_now())
        if record.status == FileStatus.PROCESSING:
            logger.info(f"Resuming file [content_hash={record.content_hash}] name={record.filename}")
        else:
            logger.info(f"Started file [content_hash={record.content_hash}] name={record.filename}")

    def finalize(self, content_hash: str, total_chunks: int) -> FileStatus:
        """
        Settle the terminal status once every chunk has an outcome.

        Args:
            content_hash: Content identity
            total_chunks: Chunk count of the file

        Returns:
            COMPLETED if every chunk succeeded, FAILED otherwise

        Raises:
            InvalidStatusTransitionError: If some chunks have no outcome yet
        """
        pending = self.store.list_pending_chunks(content_hash, total_chunks)
        if pending:
            raise InvalidStatusTransitionError(
                f"Cannot finalize {content_hash}: {len(pending)} chunks unresolved"
            )

        failed = self.store.failed_chunks(content_hash)
        done = len(self.store.done_chunks(content_hash))

        if failed:
            status = FileStatus.FAILED
            self.store.set_file_status(
                content_hash, status, utc_now(),
                completed_chunks=done, failure_reason=FailureReason.CHUNK_FAILURES
            )
            logger.warning(
                f"File failed [content_hash={content_hash}] "
                f"{len(failed)}/{total_chunks} chunks failed: {failed}"
            )
        else:
            status = FileStatus.COMPLETED
            self.store.set_file_status(content_hash, status, utc_now(), completed_chunks=done)
            logger.info(f"File completed [content_hash={content_hash}] chunks={total_chunks}")

        self.store.clear_chunk_progress(content_hash)
        return status

    def mark_corrupt(self, content_hash: str) -> None:
        """Finalize a record whose stored chunk count no longer matches its content."""
        done = len(self.store.done_chunks(content_hash))
        self.store.set_file_status(
            content_hash, FileStatus.FAILED, utc_now(),
            completed_chunks=done, failure_reason=FailureReason.CORRUPT
        )
        self.store.clear_chunk_progress(content_hash)
        logger.error(f"File marked corrupt [content_hash={content_hash}]")

    def delete_record(self, content_hash: str) -> FileRecord:
        """
        Remove a terminal file record.

        Raises:
            FileRecordNotFoundError: If no record exists
            FileRecordBusyError: If the record is still queued or processing
        """
        record = self.store.get_file_record(content_hash)
        if record is None:
            raise FileRecordNotFoundError(f"No file record for {content_hash}")
        if not record.status.is_terminal:
            raise FileRecordBusyError(
                f"File {content_hash} is {record.status.value}; only completed or failed records can be deleted"
            )
        self.store.delete_file_record(content_hash)
        logger.info(f"Deleted file record [content_hash={content_hash}] name={record.filename}")
        return record

    def apply_retention(self, retention_days: int) -> Optional[int]:
        """
        Sweep orphaned progress rows and purge expired terminal records.

        Args:
            retention_days: Age in days after which terminal records are purged (0 keeps them)

        Returns:
            Number of purged records, or None when retention is disabled
        """
        swept = self.store.sweep_orphaned_progress()
        if swept:
            logger.info(f"Swept {swept} orphaned chunk progress rows")

        if retention_days <= 0:
            return None

        cutoff = utc_now() - timedelta(days=retention_days)
        return len(self.store.purge_terminal_records(cutoff))
