"""Pydantic schemas for file record endpoints."""

from typing import List, Optional

from pydantic import BaseModel

from ingestor.types import FileRecord


class FileRecordResponse(BaseModel):
    """Response model for one file record and its chunk progress."""
    content_hash: str
    filename: str
    size: int
    status: str
    total_chunks: int
    completed_chunks: int
    progress: str
    failure_reason: Optional[str] = None
    created_at: str
    started_at: Optional[str] = None
    completed_at: Optional[str] = None

    @classmethod
    def from_record(cls, record: FileRecord) -> "FileRecordResponse":
        return cls(
            content_hash=record.content_hash,
            filename=record.filename,
            size=record.size,
            status=record.status.value,
            total_chunks=record.total_chunks,
            completed_chunks=record.completed_chunks,
            progress=f"{record.completed_chunks}/{record.total_chunks}",
            failure_reason=record.failure_reason.value if record.failure_reason else None,
            created_at=record.created_at.isoformat(),
            started_at=record.started_at.isoformat() if record.started_at else None,
            completed_at=record.completed_at.isoformat() if record.completed_at else None,
        )


class ListFilesResponse(BaseModel):
    """Response model for file record listing."""
    files: List[FileRecordResponse]


class UploadFileResponse(BaseModel):
    """Response model for file upload."""
    file: FileRecordResponse
    duplicate: bool


class DeleteFileResponse(BaseModel):
    """Response model for file record deletion."""
    content_hash: str
    filename: str
    deleted: bool
