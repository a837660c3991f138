"""Shared pytest fixtures for all tests."""

import asyncio
from pathlib import Path
from typing import List, Optional, Set, Tuple

import pytest

from ingestor import service_locator
from ingestor.database import init_database
from ingestor.dispatch_loop import DispatchLoop
from ingestor.extractor_client import Extractor
from ingestor.services.checkpoint_store import CheckpointStore
from ingestor.services.lifecycle import LifecycleManager
from ingestor.settings import SettingsStore
from ingestor.sources import DirectorySource


class FakeExtractor(Extractor):
    """
    In-memory extractor recording every call.

    Args:
        fail_indices: Chunk indices that report failure
        raise_indices: Chunk indices whose call raises
        delay: Seconds each call sleeps before answering
    """

    def __init__(self, fail_indices: Optional[Set[int]] = None,
                 raise_indices: Optional[Set[int]] = None, delay: float = 0.0):
        self.fail_indices = fail_indices or set()
        self.raise_indices = raise_indices or set()
        self.delay = delay
        self.calls: List[Tuple[str, int, str]] = []
        self.closed = False

    async def extract(self, content_hash: str, chunk_index: int, text: str) -> bool:
        self.calls.append((content_hash, chunk_index, text))
        if self.delay:
            await asyncio.sleep(self.delay)
        if chunk_index in self.raise_indices:
            raise RuntimeError(f"extractor crashed on chunk {chunk_index}")
        return chunk_index not in self.fail_indices

    async def close(self) -> None:
        self.closed = True

    def indices_for(self, content_hash: str) -> List[int]:
        return [index for digest, index, _ in self.calls if digest == content_hash]


@pytest.fixture
def test_db(tmp_path, monkeypatch) -> Path:
    """
    Create a temporary test database for each test.
    """
    db_path = tmp_path / "ingest.db"
    monkeypatch.setattr("ingestor.database.DATABASE_PATH", str(db_path))
    monkeypatch.setattr("ingestor.config.DATABASE_PATH", str(db_path))
    init_database()
    return db_path


@pytest.fixture
def store(test_db) -> CheckpointStore:
    return CheckpointStore()


@pytest.fixture
def lifecycle(store) -> LifecycleManager:
    return LifecycleManager(store)


@pytest.fixture
def watch_dir(tmp_path) -> Path:
    path = tmp_path / "inbox"
    path.mkdir()
    return path


@pytest.fixture
def source(watch_dir) -> DirectorySource:
    source = DirectorySource(watch_dir)
    source.ensure_directories()
    return source


@pytest.fixture
def settings_store(tmp_path) -> SettingsStore:
    """
    Settings store with a small chunk size so multi-chunk files stay short.
    """
    settings_store = SettingsStore(tmp_path / "settings.json")
    settings_store.update({"chunk_target_size": 64, "poll_interval": 0.05})
    return settings_store


@pytest.fixture
def extractor() -> FakeExtractor:
    return FakeExtractor()


@pytest.fixture
def dispatch_loop(store, lifecycle, source, extractor, settings_store) -> DispatchLoop:
    return DispatchLoop(
        store=store,
        lifecycle=lifecycle,
        source=source,
        extractor=extractor,
        settings_store=settings_store,
        shutdown_grace=5.0,
    )


@pytest.fixture(autouse=True)
def reset_service_locator():
    yield
    service_locator.reset()


def numbered_lines(count: int) -> bytes:
    """Build 'line1\\nline2\\n...' content."""
    return "".join(f"line{i}\n" for i in range(1, count + 1)).encode("utf-8")


def drop_file(watch_dir: Path, name: str, data: bytes) -> Path:
    path = watch_dir / name
    path.write_bytes(data)
    return path