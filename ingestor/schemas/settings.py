"""Pydantic schemas for pipeline settings endpoints."""

from typing import Optional

from pydantic import BaseModel


class SettingsResponse(BaseModel):
    """Response model for the current pipeline settings."""
    enabled: bool
    poll_interval: float
    chunk_target_size: int
    max_concurrent_files: int
    retention_days: int


class UpdateSettingsRequest(BaseModel):
    """Request model for a partial settings update; omitted fields are unchanged."""
    enabled: Optional[bool] = None
    poll_interval: Optional[float] = None
    chunk_target_size: Optional[int] = None
    max_concurrent_files: Optional[int] = None
    retention_days: Optional[int] = None
