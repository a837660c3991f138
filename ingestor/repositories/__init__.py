"""Repository layer for data access."""

from ingestor.repositories.file_record_repository import FileRecordRepository
from ingestor.repositories.chunk_progress_repository import ChunkProgressRepository

__all__ = [
    "FileRecordRepository",
    "ChunkProgressRepository",
]
