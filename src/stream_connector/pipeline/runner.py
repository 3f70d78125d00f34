"""Per-partition worker loop: fetch, handle, then checkpoint."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

import structlog

from stream_connector.errors import FetchError
from stream_connector.pipeline.checkpoint import CheckpointStore, MemoryCheckpointStore
from stream_connector.sources.base import Records, Source

logger = structlog.get_logger()

RecordsHandler = Callable[[int, Records], Awaitable[None]]


class SourceRunner:
    """Drives a Source with one asyncio task per partition index.

    Each worker has at most one fetch in flight and only stores a cursor
    after the handler has accepted the batch.  A failed fetch is retried
    after ``poll_interval`` with the unchanged stored cursor.
    """

    def __init__(
        self,
        source: Source,
        handler: RecordsHandler,
        checkpoints: CheckpointStore | None = None,
        poll_interval: float = 1.0,
    ) -> None:
        self._source = source
        self._handler = handler
        self._checkpoints = checkpoints or MemoryCheckpointStore()
        self._poll_interval = poll_interval
        self._running = False
        self._tasks: list[asyncio.Task[None]] = []

    @property
    def checkpoints(self) -> CheckpointStore:
        return self._checkpoints

    @property
    def running(self) -> bool:
        return self._running

    async def run(self) -> None:
        """Start all partition workers and block until stopped."""
        self._running = True
        workers = self._source.number_of_workers()
        self._tasks = [
            asyncio.create_task(self._worker(partition), name=f"partition-{partition}")
            for partition in range(workers)
        ]
        logger.info("source_runner.started", workers=workers)

        if not self._tasks:
            self._running = False
            return

        try:
            done, _ = await asyncio.wait(
                self._tasks, return_when=asyncio.FIRST_EXCEPTION
            )
        finally:
            self._running = False
            for task in self._tasks:
                task.cancel()
            await asyncio.gather(*self._tasks, return_exceptions=True)
            self._tasks = []

        for task in done:
            if not task.cancelled() and task.exception() is not None:
                raise task.exception()  # type: ignore[misc]
        logger.info("source_runner.stopped", workers=workers)

    def stop(self) -> None:
        """Signal all workers to stop; in-flight fetches are cancelled."""
        self._running = False
        for task in self._tasks:
            task.cancel()

    async def _worker(self, partition: int) -> None:
        try:
            while self._running:
                cursor = self._checkpoints.get_checkpoint(partition)
                try:
                    records = await self._source.fetch(partition, cursor)
                except FetchError:
                    logger.exception(
                        "source_runner.fetch_failed",
                        partition=partition,
                        last_sequence=cursor,
                    )
                    await asyncio.sleep(self._poll_interval)
                    continue

                if records.empty:
                    await asyncio.sleep(self._poll_interval)
                    continue

                await self._handler(partition, records)
                self._checkpoints.put_checkpoint(partition, records.last_sequence)
        finally:
            self._source.close(partition)
