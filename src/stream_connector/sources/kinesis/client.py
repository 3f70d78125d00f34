"""Kinesis service capability and its boto3 adapter."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

import structlog

from stream_connector.config.models import KinesisSourceConfig

logger = structlog.get_logger()

TRIM_HORIZON = "TRIM_HORIZON"
AFTER_SEQUENCE_NUMBER = "AFTER_SEQUENCE_NUMBER"


@dataclass(frozen=True, slots=True)
class KinesisRecord:
    data: bytes
    sequence_number: str
    partition_key: str = ""


@dataclass(frozen=True, slots=True)
class RecordPage:
    """Result of a single GetRecords call."""

    records: list[KinesisRecord] = field(default_factory=list)
    next_iterator: str | None = None
    millis_behind_latest: int | None = None


@runtime_checkable
class KinesisService(Protocol):
    """The three Kinesis operations a source needs.

    Implementations hold no per-shard state and must be safe to share
    between concurrent shard workers.
    """

    def list_shard_ids(self, stream_name: str) -> list[str]:
        """Return every shard id of *stream_name*, in service order."""
        ...

    def get_shard_iterator(
        self,
        stream_name: str,
        shard_id: str,
        iterator_type: str,
        starting_sequence_number: str | None = None,
    ) -> str:
        """Return a shard iterator positioned per *iterator_type*."""
        ...

    def get_records(self, shard_iterator: str, limit: int | None = None) -> RecordPage:
        """Pull the records available at *shard_iterator*."""
        ...


class Boto3KinesisService:
    """KinesisService backed by a boto3 ``kinesis`` client."""

    def __init__(self, client: Any) -> None:
        self._client = client

    def list_shard_ids(self, stream_name: str) -> list[str]:
        shard_ids: list[str] = []
        params: dict[str, Any] = {"StreamName": stream_name}
        while True:
            resp = self._client.describe_stream(**params)
            description = resp["StreamDescription"]
            shards = description.get("Shards", [])
            shard_ids.extend(shard["ShardId"] for shard in shards)
            if not description.get("HasMoreShards") or not shards:
                return shard_ids
            params["ExclusiveStartShardId"] = shards[-1]["ShardId"]

    def get_shard_iterator(
        self,
        stream_name: str,
        shard_id: str,
        iterator_type: str,
        starting_sequence_number: str | None = None,
    ) -> str:
        params: dict[str, Any] = {
            "StreamName": stream_name,
            "ShardId": shard_id,
            "ShardIteratorType": iterator_type,
        }
        if starting_sequence_number is not None:
            params["StartingSequenceNumber"] = starting_sequence_number
        resp = self._client.get_shard_iterator(**params)
        return resp["ShardIterator"]

    def get_records(self, shard_iterator: str, limit: int | None = None) -> RecordPage:
        params: dict[str, Any] = {"ShardIterator": shard_iterator}
        if limit is not None:
            params["Limit"] = limit
        resp = self._client.get_records(**params)
        records = [
            KinesisRecord(
                data=record["Data"],
                sequence_number=record["SequenceNumber"],
                partition_key=record.get("PartitionKey", ""),
            )
            for record in resp.get("Records", [])
        ]
        return RecordPage(
            records=records,
            next_iterator=resp.get("NextShardIterator"),
            millis_behind_latest=resp.get("MillisBehindLatest"),
        )


def create_kinesis_service(config: KinesisSourceConfig) -> Boto3KinesisService:
    """Build a boto3-backed service for *config*.

    Uses static credentials when both key id and secret are configured,
    otherwise the default credential chain.
    """
    import boto3

    session_kwargs: dict[str, Any] = {"region_name": config.region}
    if config.has_static_credentials:
        assert config.aws_secret_access_key is not None
        session_kwargs["aws_access_key_id"] = config.aws_access_key_id
        session_kwargs["aws_secret_access_key"] = (
            config.aws_secret_access_key.get_secret_value()
        )
        if config.aws_session_token is not None:
            session_kwargs["aws_session_token"] = (
                config.aws_session_token.get_secret_value()
            )

    session = boto3.session.Session(**session_kwargs)
    client = session.client("kinesis", endpoint_url=config.endpoint_url)
    logger.debug(
        "kinesis_client.created",
        region=config.region,
        endpoint_url=config.endpoint_url,
        static_credentials=config.has_static_credentials,
    )
    return Boto3KinesisService(client)
