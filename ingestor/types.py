"""Ingestor data type definitions."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class FileStatus(str, Enum):
    """Coarse status of a file record as seen by callers."""
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (FileStatus.COMPLETED, FileStatus.FAILED)


class FailureReason(str, Enum):
    """Why a file record ended in FAILED."""
    CHUNK_FAILURES = "chunk_failures"
    CORRUPT = "corrupt"


class ChunkOutcome(str, Enum):
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class Chunk:
    """
    One line-aligned slice of an input's text.
    """
    content_hash: str
    index: int
    total_chunks: int
    text: str
    start_offset: int

    @property
    def end_offset(self) -> int:
        return self.start_offset + len(self.text)


@dataclass(frozen=True)
class FileRecord:
    """
    Durable per-content record; filename is display metadata only.
    """
    content_hash: str
    filename: str
    size: int
    total_chunks: int
    chunk_target_size: int
    status: FileStatus
    created_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    failure_reason: Optional[FailureReason] = None
    completed_chunks: int = 0
