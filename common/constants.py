"""Project-wide constants (accepted input types, pipeline defaults)."""

from typing import FrozenSet

ACCEPTED_TEXT_EXTENSIONS: FrozenSet[str] = frozenset({
    ".txt", ".text", ".md", ".markdown", ".rst", ".log",
    ".csv", ".tsv", ".json", ".jsonl", ".yaml", ".yml",
    ".xml", ".html", ".htm", ".ini", ".cfg", ".toml",
})

DEFAULT_POLL_INTERVAL_SECONDS: float = 30.0
DEFAULT_CHUNK_TARGET_SIZE: int = 4000  # characters
DEFAULT_MAX_CONCURRENT_FILES: int = 4
DEFAULT_RETENTION_DAYS: int = 0  # 0 keeps terminal records forever

CHECKPOINT_WRITE_MAX_RETRIES: int = 3
CHECKPOINT_WRITE_BACKOFF_SECONDS: float = 0.5

EXTRACTOR_TIMEOUT_SECONDS: float = 300.0
SHUTDOWN_GRACE_SECONDS: float = 60.0
