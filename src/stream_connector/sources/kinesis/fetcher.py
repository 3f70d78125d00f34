"""Resumable per-shard fetch: one iterator + one GetRecords per call."""

from __future__ import annotations

import asyncio
from functools import partial

import structlog

from stream_connector.errors import FetchError
from stream_connector.sources.base import Records
from stream_connector.sources.kinesis.catalog import ShardCatalog
from stream_connector.sources.kinesis.client import (
    AFTER_SEQUENCE_NUMBER,
    TRIM_HORIZON,
    KinesisService,
    RecordPage,
)

logger = structlog.get_logger()


class ShardFetcher:
    """Reads the next batch of a shard given the caller's last cursor.

    Holds no read position of its own: every call acquires a fresh shard
    iterator, so nothing needs releasing between calls and the caller's
    cursor is the only resumption state.
    """

    def __init__(
        self,
        service: KinesisService,
        catalog: ShardCatalog,
        *,
        max_records: int | None = None,
        default_timeout: float | None = None,
    ) -> None:
        self._service = service
        self._catalog = catalog
        self._max_records = max_records
        self._default_timeout = default_timeout

    async def fetch(
        self,
        partition: int,
        last_sequence: str = "",
        *,
        timeout: float | None = None,
    ) -> Records:
        """Fetch records of *partition* after *last_sequence*.

        An empty *last_sequence* starts at the trim horizon.  Task
        cancellation propagates unchanged; an expired *timeout* raises
        FetchError.  Either way no batch is returned, so the caller keeps
        its original cursor.
        """
        shard_id = self._catalog.shard_id(partition)
        if timeout is None:
            timeout = self._default_timeout
        loop = asyncio.get_running_loop()

        try:
            async with asyncio.timeout(timeout):
                iterator = await self._acquire_iterator(
                    loop, partition, shard_id, last_sequence
                )
                page = await self._pull(
                    loop, partition, shard_id, last_sequence, iterator
                )
        except TimeoutError as exc:
            msg = (
                f"Fetch from shard '{shard_id}' of stream "
                f"'{self._catalog.stream_name}' timed out after {timeout}s"
            )
            raise FetchError(
                msg,
                partition=partition,
                shard_id=shard_id,
                last_sequence=last_sequence,
            ) from exc

        records = self._assemble(page, last_sequence)
        logger.debug(
            "shard_fetcher.fetched",
            stream=self._catalog.stream_name,
            shard_id=shard_id,
            records=len(records),
            last_sequence=records.last_sequence,
        )
        return records

    async def _acquire_iterator(
        self,
        loop: asyncio.AbstractEventLoop,
        partition: int,
        shard_id: str,
        last_sequence: str,
    ) -> str:
        if last_sequence:
            call = partial(
                self._service.get_shard_iterator,
                self._catalog.stream_name,
                shard_id,
                AFTER_SEQUENCE_NUMBER,
                last_sequence,
            )
        else:
            call = partial(
                self._service.get_shard_iterator,
                self._catalog.stream_name,
                shard_id,
                TRIM_HORIZON,
            )
        try:
            return await loop.run_in_executor(None, call)
        except Exception as exc:
            msg = f"Unable to acquire iterator for shard '{shard_id}': {exc}"
            raise FetchError(
                msg,
                partition=partition,
                shard_id=shard_id,
                last_sequence=last_sequence,
            ) from exc

    async def _pull(
        self,
        loop: asyncio.AbstractEventLoop,
        partition: int,
        shard_id: str,
        last_sequence: str,
        iterator: str,
    ) -> RecordPage:
        try:
            return await loop.run_in_executor(
                None,
                partial(self._service.get_records, iterator, self._max_records),
            )
        except Exception as exc:
            msg = f"Unable to get records from shard '{shard_id}': {exc}"
            raise FetchError(
                msg,
                partition=partition,
                shard_id=shard_id,
                last_sequence=last_sequence,
            ) from exc

    @staticmethod
    def _assemble(page: RecordPage, last_sequence: str) -> Records:
        data: list[bytes] = []
        cursor = last_sequence
        for record in page.records:
            data.append(record.data)
            cursor = record.sequence_number
        return Records(
            data=tuple(data),
            last_sequence=cursor,
            millis_behind_latest=page.millis_behind_latest,
        )
