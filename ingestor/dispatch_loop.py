"""Background task that discovers inputs and dispatches their chunks to the extractor."""

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Set

from common.constants import CHECKPOINT_WRITE_BACKOFF_SECONDS, CHECKPOINT_WRITE_MAX_RETRIES
from common.logging_config import get_logger
from ingestor.chunker import chunk, identify
from ingestor.exceptions import (
    CheckpointStoreError,
    ChunkCountMismatchError,
    UnsupportedInputError,
)
from ingestor.extractor_client import Extractor
from ingestor.services.checkpoint_store import CheckpointStore
from ingestor.services.lifecycle import LifecycleManager
from ingestor.settings import PipelineSettings, SettingsStore
from ingestor.sources import DirectorySource, InputFile
from ingestor.types import Chunk, FileStatus

logger = get_logger(__name__)


@dataclass
class TickSummary:
    """Outcome counts of one scan."""
    discovered: int = 0
    completed: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    deduplicated: List[str] = field(default_factory=list)
    deferred: List[str] = field(default_factory=list)
    rejected: List[str] = field(default_factory=list)


class DispatchLoop:
    """
    Timer-driven ingestion loop.

    Each tick re-reads the settings snapshot and builds its work list from the
    watch directory and the checkpoint store; nothing carries over between
    ticks except the guard against dispatching one content hash twice at once.
    Files run concurrently up to max_concurrent_files, chunks of one file run
    strictly in index order.
    """

    def __init__(
        self,
        store: CheckpointStore,
        lifecycle: LifecycleManager,
        source: DirectorySource,
        extractor: Extractor,
        settings_store: SettingsStore,
        shutdown_grace: float = 60.0,
    ):
        """
        Args:
            store: Checkpoint store
            lifecycle: Status lifecycle manager
            source: Input source for the watch directory
            extractor: Extraction collaborator
            settings_store: Hot-reloadable settings
            shutdown_grace: Seconds stop() waits for in-flight chunks before cancelling
        """
        self.store = store
        self.lifecycle = lifecycle
        self.source = source
        self.extractor = extractor
        self.settings_store = settings_store
        self.shutdown_grace = shutdown_grace
        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()
        self._wake_event = asyncio.Event()
        self._in_flight: Set[str] = set()
        self._rejected: Dict[Path, float] = {}

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the background dispatch task."""
        if self._running:
            logger.warning("Dispatch loop already running")
            return

        self._running = True
        self._stop_event = asyncio.Event()
        self._wake_event = asyncio.Event()
        self._task = asyncio.create_task(self._run())
        logger.info(f"Started dispatch loop (interval: {self.settings_store.current().poll_interval}s)")

    async def stop(self) -> None:
        """
        Stop dispatching new chunks and wait for in-flight ones to be recorded.

        The task is cancelled only if it outlives the shutdown grace period.
        """
        if not self._running:
            return

        self._running = False
        self._stop_event.set()
        self._wake_event.set()

        if self._task:
            try:
                await asyncio.wait_for(asyncio.shield(self._task), timeout=self.shutdown_grace)
            except asyncio.TimeoutError:
                logger.warning(f"Dispatch loop did not stop within {self.shutdown_grace}s, cancelling")
                self._task.cancel()
                try:
                    await self._task
                except asyncio.CancelledError:
                    pass
            self._task = None

        await self.extractor.close()
        logger.info("Stopped dispatch loop")

    def wake(self) -> None:
        """Run the next tick now instead of waiting out the poll interval."""
        self._wake_event.set()

    async def _run(self) -> None:
        """Main loop for the dispatch task."""
        while self._running:
            settings = self.settings_store.current()

            if settings.enabled:
                try:
                    await self.run_tick(settings)
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    logger.error(f"Error in dispatch tick: {e}", exc_info=True)
            else:
                logger.debug("Ingestion disabled, skipping tick")

            await self._sleep(settings.poll_interval)

    async def _sleep(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self._wake_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass
        self._wake_event.clear()

    async def run_tick(self, settings: Optional[PipelineSettings] = None) -> TickSummary:
        """
        Execute one scan over the watch directory.

        Args:
            settings: Snapshot to use (read fresh from the settings store if omitted)

        Returns:
            Per-tick outcome summary
        """
        settings = settings or self.settings_store.current()
        summary = TickSummary()

        try:
            purged = self.lifecycle.apply_retention(settings.retention_days)
            if purged:
                logger.info(f"Retention purged {purged} file records")
        except CheckpointStoreError as e:
            logger.warning(f"Retention sweep skipped: {e}")

        inputs = self.source.scan()
        summary.discovered = len(inputs)
        current_paths = {item.path for item in inputs}
        self._rejected = {path: mtime for path, mtime in self._rejected.items() if path in current_paths}
        if not inputs:
            logger.debug("No pending inputs")
            return summary

        logger.info(f"Tick discovered {len(inputs)} inputs")
        semaphore = asyncio.Semaphore(settings.max_concurrent_files)

        async def guarded(item: InputFile) -> None:
            async with semaphore:
                if self._stop_event.is_set():
                    summary.deferred.append(item.display_name)
                    return
                await self.process_input(item, settings, summary)

        results = await asyncio.gather(*(guarded(item) for item in inputs), return_exceptions=True)
        for item, result in zip(inputs, results):
            if isinstance(result, Exception):
                logger.error(f"Unexpected error processing {item.display_name}: {result}", exc_info=result)
                summary.deferred.append(item.display_name)
        return summary

    async def process_input(
        self,
        item: InputFile,
        settings: PipelineSettings,
        summary: Optional[TickSummary] = None,
    ) -> Optional[FileStatus]:
        """
        Carry one input from discovery to a terminal status, or as far as possible.

        Returns:
            The terminal status reached, or None if the input was rejected or deferred
        """
        summary = summary if summary is not None else TickSummary()

        try:
            data = self.source.read(item)
        except OSError as e:
            logger.warning(f"Could not read input {item.display_name}: {e}")
            summary.deferred.append(item.display_name)
            return None

        content_hash = identify(data)
        if content_hash in self._in_flight:
            logger.debug(f"Content of {item.display_name} already dispatching [content_hash={content_hash}]")
            summary.deferred.append(item.display_name)
            return None

        self._in_flight.add(content_hash)
        try:
            status = await self._process(item, data, content_hash, settings, summary)
        except UnsupportedInputError as e:
            if self._rejected.get(item.path) != item.discovered_at:
                logger.warning(f"Rejected input {item.display_name}: {e}")
            self._rejected[item.path] = item.discovered_at
            summary.rejected.append(item.display_name)
            return None
        except CheckpointStoreError as e:
            logger.error(
                f"Checkpoint store unavailable, abandoning {item.display_name} until next tick "
                f"[content_hash={content_hash}]: {e}"
            )
            summary.deferred.append(item.display_name)
            return None
        finally:
            self._in_flight.discard(content_hash)

        if status is None:
            summary.deferred.append(item.display_name)
        elif status == FileStatus.COMPLETED:
            summary.completed.append(item.display_name)
        else:
            summary.failed.append(item.display_name)
        return status

    async def _process(
        self,
        item: InputFile,
        data: bytes,
        content_hash: str,
        settings: PipelineSettings,
        summary: TickSummary,
    ) -> Optional[FileStatus]:
        existing = self.store.get_file_record(content_hash)
        if existing is not None and existing.status.is_terminal:
            logger.info(
                f"Content of {item.display_name} already {existing.status.value} as "
                f"{existing.filename} [content_hash={content_hash}], removing input"
            )
            self.source.remove(item)
            summary.deduplicated.append(item.display_name)
            return existing.status

        target_size = existing.chunk_target_size if existing else settings.chunk_target_size
        chunks = chunk(data, target_size)

        record = self.store.upsert_file_record(
            content_hash, item.display_name, len(data), len(chunks), target_size
        )
        if record.status.is_terminal:
            self.source.remove(item)
            summary.deduplicated.append(item.display_name)
            return record.status
        if record.chunk_target_size != target_size:
            chunks = chunk(data, record.chunk_target_size)

        self.lifecycle.begin(record)

        if record.total_chunks != len(chunks):
            error = ChunkCountMismatchError(content_hash, record.total_chunks, len(chunks))
            logger.error(f"Refusing to dispatch {item.display_name}: {error}")
            self.lifecycle.mark_corrupt(content_hash)
            self.source.remove(item)
            return FileStatus.FAILED

        pending = self.store.list_pending_chunks(content_hash, record.total_chunks)
        if pending:
            logger.info(
                f"Dispatching {len(pending)}/{record.total_chunks} chunks of {item.display_name} "
                f"[content_hash={content_hash}]"
            )

        for index in pending:
            if self._stop_event.is_set():
                logger.info(
                    f"Shutdown requested, leaving {item.display_name} at chunk {index}/{record.total_chunks}"
                )
                return None
            chunk_item = chunks[index]
            succeeded = await self._extract(chunk_item)
            await self._record_outcome(chunk_item, succeeded, record.filename)

        status = self.lifecycle.finalize(content_hash, record.total_chunks)
        self.source.remove(item)
        return status

    async def _extract(self, chunk_item: Chunk) -> bool:
        logger.debug(
            f"Extracting chunk {chunk_item.index + 1}/{chunk_item.total_chunks} "
            f"[content_hash={chunk_item.content_hash}] chars={len(chunk_item.text)}"
        )
        try:
            return await self.extractor.extract(chunk_item.content_hash, chunk_item.index, chunk_item.text)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(
                f"Extractor raised on chunk {chunk_item.index} [content_hash={chunk_item.content_hash}]: {e}",
                exc_info=True
            )
            return False

    async def _record_outcome(self, chunk_item: Chunk, succeeded: bool, filename: str) -> None:
        """
        Durably record a chunk outcome, retrying with exponential backoff.

        Raises:
            CheckpointStoreError: If the write never succeeds; the chunk stays pending
        """
        write = self.store.record_chunk_done if succeeded else self.store.record_chunk_failed

        for attempt in range(CHECKPOINT_WRITE_MAX_RETRIES):
            try:
                write(chunk_item.content_hash, chunk_item.index, chunk_item.total_chunks, filename)
                return
            except CheckpointStoreError as e:
                if attempt == CHECKPOINT_WRITE_MAX_RETRIES - 1:
                    raise
                delay = CHECKPOINT_WRITE_BACKOFF_SECONDS * (2 ** attempt)
                logger.warning(
                    f"Checkpoint write failed for chunk {chunk_item.index} "
                    f"[content_hash={chunk_item.content_hash}], retrying in {delay}s: {e}"
                )
                await asyncio.sleep(delay)
