"""Hot-reloadable pipeline settings stored in a JSON file."""

import json
import shutil
import threading
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from common.constants import (
    DEFAULT_CHUNK_TARGET_SIZE,
    DEFAULT_MAX_CONCURRENT_FILES,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_RETENTION_DAYS,
)
from common.logging_config import get_logger
from ingestor.exceptions import InvalidSettingsError

logger = get_logger(__name__)


class PipelineSettings(BaseModel):
    """Immutable snapshot of the settings read at the start of every tick."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    enabled: bool = True
    poll_interval: float = Field(default=DEFAULT_POLL_INTERVAL_SECONDS, gt=0)
    chunk_target_size: int = Field(default=DEFAULT_CHUNK_TARGET_SIZE, gt=0)
    max_concurrent_files: int = Field(default=DEFAULT_MAX_CONCURRENT_FILES, ge=1)
    retention_days: int = Field(default=DEFAULT_RETENTION_DAYS, ge=0)


class SettingsStore:
    """
    Owns the current PipelineSettings snapshot.

    The backing file is re-read whenever its modification time changes, so an
    edit on disk is picked up by the next call to current(). The snapshot is
    replaced as a whole, never mutated.
    """

    def __init__(self, settings_path: Path):
        """
        Args:
            settings_path: Path to the JSON settings file (created with defaults if missing)
        """
        self.settings_path = Path(settings_path)
        self._lock = threading.Lock()
        self._mtime: Optional[float] = None
        self._snapshot = self._load()

    def _file_mtime(self) -> Optional[float]:
        try:
            return self.settings_path.stat().st_mtime
        except OSError:
            return None

    def _load(self) -> PipelineSettings:
        """
        Load settings from file, creating defaults if necessary.

        Returns:
            Validated settings snapshot
        """
        self.settings_path.parent.mkdir(parents=True, exist_ok=True)

        if not self.settings_path.exists():
            settings = PipelineSettings()
            self._write(settings)
            return settings

        try:
            with open(self.settings_path, 'r') as f:
                data = json.load(f)
            settings = PipelineSettings.model_validate(data)
        except (json.JSONDecodeError, ValidationError, OSError) as e:
            backup_path = self.settings_path.with_suffix('.json.bak')
            logger.error(f"Invalid settings file {self.settings_path}, using defaults (backup: {backup_path}): {e}")
            try:
                shutil.copy(self.settings_path, backup_path)
            except OSError as copy_error:
                logger.warning(f"Could not back up settings file: {copy_error}")
            settings = PipelineSettings()

        self._mtime = self._file_mtime()
        return settings

    def _write(self, settings: PipelineSettings) -> None:
        tmp_path = self.settings_path.with_suffix('.json.tmp')
        with open(tmp_path, 'w') as f:
            json.dump(settings.model_dump(), f, indent=2)
        tmp_path.replace(self.settings_path)
        self._mtime = self._file_mtime()

    def current(self) -> PipelineSettings:
        """
        Get the current settings, reloading the file if it changed on disk.

        Returns:
            Settings snapshot
        """
        mtime = self._file_mtime()
        if mtime is not None and mtime != self._mtime:
            with self._lock:
                if mtime != self._mtime:
                    previous = self._snapshot
                    self._snapshot = self._load()
                    if self._snapshot != previous:
                        logger.info(f"Reloaded pipeline settings: {self._snapshot.model_dump()}")
        return self._snapshot

    def update(self, changes: Dict[str, Any]) -> PipelineSettings:
        """
        Validate, persist and swap in new settings.

        Args:
            changes: Settings fields to change; omitted fields keep their current value

        Returns:
            The new snapshot

        Raises:
            InvalidSettingsError: If the merged settings are invalid
        """
        with self._lock:
            if self._file_mtime() != self._mtime:
                self._snapshot = self._load()
            merged = {**self._snapshot.model_dump(), **changes}
            try:
                settings = PipelineSettings.model_validate(merged)
            except ValidationError as e:
                raise InvalidSettingsError(str(e)) from e
            self._write(settings)
            self._snapshot = settings
        logger.info(f"Updated pipeline settings: {settings.model_dump()}")
        return settings
