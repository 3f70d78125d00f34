"""Shared fixtures: an in-memory Kinesis service double."""

from __future__ import annotations

from typing import Any

import pytest

from stream_connector.sources.kinesis.client import (
    AFTER_SEQUENCE_NUMBER,
    TRIM_HORIZON,
    KinesisRecord,
    RecordPage,
)


class FakeKinesisService:
    """Holds shards as ordered record lists; iterators are ``shard:position``."""

    def __init__(
        self,
        shards: dict[str, list[tuple[str, bytes]]] | None = None,
        *,
        stream_name: str = "orders",
        shard_order: list[str] | None = None,
    ) -> None:
        self.stream_name = stream_name
        self.shards: dict[str, list[KinesisRecord]] = {
            shard_id: [KinesisRecord(data=d, sequence_number=s) for s, d in records]
            for shard_id, records in (shards or {}).items()
        }
        self._shard_order = shard_order
        self.calls: list[tuple[str, Any]] = []
        self.fail_describe: Exception | None = None
        self.fail_iterator: Exception | None = None
        self.fail_records: Exception | None = None

    def append(self, shard_id: str, sequence_number: str, data: bytes) -> None:
        self.shards[shard_id].append(
            KinesisRecord(data=data, sequence_number=sequence_number)
        )

    def expire(self, shard_id: str, count: int) -> None:
        """Drop the oldest *count* records, as retention would."""
        del self.shards[shard_id][:count]

    def list_shard_ids(self, stream_name: str) -> list[str]:
        self.calls.append(("list_shard_ids", stream_name))
        if self.fail_describe is not None:
            raise self.fail_describe
        if stream_name != self.stream_name:
            msg = f"Stream {stream_name} not found"
            raise LookupError(msg)
        return list(self._shard_order or self.shards)

    def get_shard_iterator(
        self,
        stream_name: str,
        shard_id: str,
        iterator_type: str,
        starting_sequence_number: str | None = None,
    ) -> str:
        self.calls.append(
            (
                "get_shard_iterator",
                (stream_name, shard_id, iterator_type, starting_sequence_number),
            )
        )
        if self.fail_iterator is not None:
            raise self.fail_iterator
        records = self.shards[shard_id]
        if iterator_type == TRIM_HORIZON:
            position = 0
        elif iterator_type == AFTER_SEQUENCE_NUMBER:
            assert starting_sequence_number is not None
            position = next(
                (
                    i
                    for i, r in enumerate(records)
                    if int(r.sequence_number) > int(starting_sequence_number)
                ),
                len(records),
            )
        else:
            msg = f"Unsupported iterator type {iterator_type}"
            raise ValueError(msg)
        return f"{shard_id}:{position}"

    def get_records(self, shard_iterator: str, limit: int | None = None) -> RecordPage:
        self.calls.append(("get_records", (shard_iterator, limit)))
        if self.fail_records is not None:
            raise self.fail_records
        shard_id, _, position = shard_iterator.rpartition(":")
        start = int(position)
        records = self.shards[shard_id][start:]
        if limit is not None:
            records = records[:limit]
        end = start + len(records)
        return RecordPage(
            records=list(records),
            next_iterator=f"{shard_id}:{end}",
            millis_behind_latest=0,
        )


@pytest.fixture
def orders_service() -> FakeKinesisService:
    """Stream ``orders`` with two shards, reported out of order."""
    return FakeKinesisService(
        {
            "shard-0001": [
                ("49000000000000000001", b"p1"),
                ("49000000000000000002", b"p2"),
            ],
            "shard-0002": [],
        },
        shard_order=["shard-0002", "shard-0001"],
    )


@pytest.fixture
def fake_service_factory():
    return FakeKinesisService


@pytest.fixture
def orders_config() -> dict[str, Any]:
    return {"streamName": "orders", "region": "us-east-1"}
