"""KinesisSource: Source implementation for Amazon Kinesis Data Streams."""

from __future__ import annotations

from typing import Any

import structlog

from stream_connector.config.loader import ConfigData, load_kinesis_config
from stream_connector.config.models import KinesisSourceConfig, SourceType
from stream_connector.errors import DiscoveryError
from stream_connector.sources.base import Records
from stream_connector.sources.kinesis.catalog import ShardCatalog, discover_shards
from stream_connector.sources.kinesis.client import (
    KinesisService,
    create_kinesis_service,
)
from stream_connector.sources.kinesis.fetcher import ShardFetcher
from stream_connector.sources.registry import register_source

logger = structlog.get_logger()


class KinesisSource:
    """Reads Kinesis shards by partition index.

    Each shard maps to one worker; index order is the ascending shard id
    order fixed at load time.  The service handle is shared by every
    worker and never mutated after construction.
    """

    def __init__(
        self,
        config: KinesisSourceConfig,
        service: KinesisService,
        catalog: ShardCatalog,
    ) -> None:
        self._config = config
        self._service = service
        self._catalog = catalog
        self._fetcher = ShardFetcher(
            service,
            catalog,
            max_records=config.max_records,
            default_timeout=config.fetch_timeout_seconds,
        )

    @property
    def config(self) -> KinesisSourceConfig:
        return self._config

    @property
    def catalog(self) -> ShardCatalog:
        return self._catalog

    def number_of_workers(self) -> int:
        """Return the number of shards to hand to the worker pool."""
        return len(self._catalog)

    async def fetch(
        self,
        partition: int,
        last_sequence: str = "",
        *,
        timeout: float | None = None,
    ) -> Records:
        """Retrieve the next batch of records for *partition*."""
        return await self._fetcher.fetch(partition, last_sequence, timeout=timeout)

    def close(self, partition: int) -> None:
        """No-op; iterators are re-acquired on every fetch."""

    def health(self) -> dict[str, Any]:
        """Return Kinesis health information."""
        return {
            "source_type": SourceType.AWS_KINESIS.value,
            "stream": self._config.stream_name,
            "region": self._config.region,
            "shards": list(self._catalog.shard_ids),
        }


def load(data: ConfigData, *, service: KinesisService | None = None) -> KinesisSource:
    """Decode *data*, connect to Kinesis and discover the stream's shards.

    Returns a ready source or raises; a source whose discovery failed is
    never returned.
    """
    config = load_kinesis_config(data)

    if service is None:
        try:
            service = create_kinesis_service(config)
        except Exception as exc:
            msg = f"Unable to create kinesis service session: {exc}"
            raise DiscoveryError(msg) from exc

    catalog = discover_shards(service, config.stream_name)
    logger.info(
        "kinesis_source.loaded",
        stream=config.stream_name,
        region=config.region,
        workers=len(catalog),
    )
    return KinesisSource(config, service, catalog)


register_source(SourceType.AWS_KINESIS, load)
