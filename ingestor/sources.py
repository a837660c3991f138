"""Watch-directory input source: discovery, reading and removal of inputs."""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Set

from common.constants import ACCEPTED_TEXT_EXTENSIONS
from common.logging_config import get_logger

logger = get_logger(__name__)

INCOMING_DIR_NAME = ".incoming"


def is_accepted_name(name: str) -> bool:
    """
    Check whether a filename has an accepted plain-text extension (or none).

    Args:
        name: File name (no directory part needed)

    Returns:
        True if the file may enter the pipeline
    """
    suffix = Path(name).suffix.lower()
    return suffix == "" or suffix in ACCEPTED_TEXT_EXTENSIONS


@dataclass(frozen=True)
class InputFile:
    """A discovered input in the watch directory."""
    path: Path
    display_name: str
    discovered_at: float


class DirectorySource:
    """
    Input source backed by a flat watch directory.

    Hidden entries (including the .incoming staging directory) are never
    routed into the pipeline.
    """

    def __init__(self, watch_dir: Path):
        """
        Args:
            watch_dir: Directory scanned each tick (created if missing)
        """
        self.watch_dir = Path(watch_dir)
        self.incoming_dir = self.watch_dir / INCOMING_DIR_NAME
        self._reported_unsupported: Set[str] = set()

    def ensure_directories(self) -> None:
        self.watch_dir.mkdir(parents=True, exist_ok=True)
        self.incoming_dir.mkdir(parents=True, exist_ok=True)

    def scan(self) -> List[InputFile]:
        """
        List pending inputs oldest-first by modification time.

        Unsupported files are skipped with a warning logged once per file.

        Returns:
            Accepted inputs in discovery order
        """
        if not self.watch_dir.is_dir():
            logger.debug(f"Watch directory {self.watch_dir} does not exist")
            return []

        inputs: List[InputFile] = []
        seen_unsupported: Set[str] = set()

        for entry in self.watch_dir.iterdir():
            if entry.name.startswith(".") or not entry.is_file():
                continue

            if not is_accepted_name(entry.name):
                seen_unsupported.add(entry.name)
                if entry.name not in self._reported_unsupported:
                    logger.warning(f"Skipping unsupported file type: {entry.name}")
                continue

            try:
                mtime = entry.stat().st_mtime
            except OSError:
                # removed between listing and stat
                continue

            inputs.append(InputFile(path=entry, display_name=entry.name, discovered_at=mtime))

        self._reported_unsupported = seen_unsupported
        inputs.sort(key=lambda item: (item.discovered_at, item.display_name))
        return inputs

    def read(self, item: InputFile) -> bytes:
        """
        Raises:
            OSError: If the file can no longer be read
        """
        return item.path.read_bytes()

    def remove(self, item: InputFile) -> bool:
        """
        Delete a fully processed input.

        Returns:
            True if the file was deleted, False if it was already gone
        """
        try:
            item.path.unlink()
        except FileNotFoundError:
            return False
        logger.info(f"Removed processed input {item.display_name}")
        return True

    def submit(self, name: str, data: bytes) -> Path:
        """
        Place new content into the watch directory atomically.

        The data is staged under .incoming/ and renamed into place, so a scan
        never observes a partially written file. An existing file with the same
        name gets a numeric suffix instead of being overwritten.

        Args:
            name: Display name of the input
            data: Raw bytes

        Returns:
            Final path of the written input
        """
        self.ensure_directories()
        safe_name = Path(name).name
        target = self.watch_dir / safe_name
        counter = 1
        while target.exists():
            target = self.watch_dir / f"{Path(safe_name).stem}-{counter}{Path(safe_name).suffix}"
            counter += 1

        staged = self.incoming_dir / target.name
        staged.write_bytes(data)
        staged.replace(target)
        logger.info(f"Accepted input {target.name} ({len(data)} bytes)")
        return target
