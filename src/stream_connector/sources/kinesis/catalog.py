"""Shard catalog: stable index to shard id mapping for a stream."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

import structlog

from stream_connector.errors import DiscoveryError, InvalidIndexError
from stream_connector.sources.kinesis.client import KinesisService

logger = structlog.get_logger()


@dataclass(frozen=True, slots=True)
class ShardCatalog:
    """Shards of one stream, sorted by ascending shard id.

    The sort makes partition index N denote the same shard across restarts,
    which is what lets a host-persisted cursor be applied to the right shard.
    """

    stream_name: str
    shard_ids: tuple[str, ...]

    def __len__(self) -> int:
        return len(self.shard_ids)

    def __iter__(self) -> Iterator[str]:
        return iter(self.shard_ids)

    def shard_id(self, index: int) -> str:
        """Return the shard id at *index*; negative indexes are rejected."""
        if not 0 <= index < len(self.shard_ids):
            raise InvalidIndexError(index, len(self.shard_ids))
        return self.shard_ids[index]


def discover_shards(service: KinesisService, stream_name: str) -> ShardCatalog:
    """Enumerate and sort the shards of *stream_name*."""
    try:
        shard_ids = service.list_shard_ids(stream_name)
    except Exception as exc:
        msg = f"Unable to describe kinesis stream '{stream_name}': {exc}"
        raise DiscoveryError(msg) from exc

    catalog = ShardCatalog(
        stream_name=stream_name,
        shard_ids=tuple(sorted(set(shard_ids))),
    )
    logger.info(
        "shard_catalog.discovered",
        stream=stream_name,
        shards=len(catalog),
    )
    return catalog
