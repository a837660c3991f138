"""Pydantic schemas for API requests and responses."""

from ingestor.schemas.files import (
    FileRecordResponse,
    ListFilesResponse,
    UploadFileResponse,
    DeleteFileResponse
)
from ingestor.schemas.settings import SettingsResponse, UpdateSettingsRequest
from ingestor.schemas.common import ErrorResponse

__all__ = [
    "FileRecordResponse",
    "ListFilesResponse",
    "UploadFileResponse",
    "DeleteFileResponse",
    "SettingsResponse",
    "UpdateSettingsRequest",
    "ErrorResponse"
]
