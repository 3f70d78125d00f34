"""Unit tests for KinesisSource loading and the Source contract."""

from __future__ import annotations

import asyncio
import json
from unittest.mock import patch

import pytest

from stream_connector.errors import (
    ConfigurationError,
    DiscoveryError,
    InvalidIndexError,
)
from stream_connector.sources import registry
from stream_connector.sources.base import Source
from stream_connector.sources.kinesis.source import KinesisSource, load
from stream_connector.sources.registry import (
    load_source,
    register_source,
    registered_source_types,
)


class TestLoad:
    def test_load_discovers_sorted_shards(self, orders_service, orders_config):
        source = load(json.dumps(orders_config).encode(), service=orders_service)

        assert isinstance(source, KinesisSource)
        assert source.number_of_workers() == 2
        assert source.catalog.shard_id(0) == "shard-0001"
        assert source.config.stream_name == "orders"

    def test_satisfies_source_protocol(self, orders_service, orders_config):
        source = load(orders_config, service=orders_service)
        assert isinstance(source, Source)

    def test_load_ignores_unknown_keys(self, orders_service):
        source = load(
            b'{"streamName":"orders","region":"us-east-1","type":"awskinesis"}',
            service=orders_service,
        )
        assert source.number_of_workers() == 2

    def test_invalid_config_fails_before_network(self, orders_service):
        with pytest.raises(ConfigurationError):
            load(b'{"region": "us-east-1"}', service=orders_service)
        assert orders_service.calls == []

    def test_undecodable_config(self, orders_service):
        with pytest.raises(ConfigurationError):
            load(b"not json", service=orders_service)
        assert orders_service.calls == []

    def test_discovery_failure_returns_no_source(self, orders_service, orders_config):
        orders_service.fail_describe = RuntimeError("AccessDenied")
        result = None

        with pytest.raises(DiscoveryError):
            result = load(orders_config, service=orders_service)
        assert result is None

    def test_client_construction_failure(self, orders_config):
        with (
            patch(
                "stream_connector.sources.kinesis.source.create_kinesis_service",
                side_effect=RuntimeError("no region endpoint"),
            ),
            pytest.raises(DiscoveryError, match="session"),
        ):
            load(orders_config)

    def test_builds_boto3_service_when_none_given(
        self, orders_service, orders_config
    ):
        with patch(
            "stream_connector.sources.kinesis.source.create_kinesis_service",
            return_value=orders_service,
        ) as factory:
            source = load(orders_config)

        factory.assert_called_once()
        assert factory.call_args.args[0].stream_name == "orders"
        assert source.number_of_workers() == 2


@pytest.mark.asyncio
class TestKinesisSourceFetch:
    async def test_orders_scenario(self, orders_service, orders_config):
        source = load(orders_config, service=orders_service)

        first = await source.fetch(0, "")
        assert list(first.data) == [b"p1", b"p2"]
        assert first.last_sequence == "49000000000000000002"

        second = await source.fetch(0, first.last_sequence)
        assert list(second.data) == []
        assert second.last_sequence == "49000000000000000002"

    async def test_partitions_are_independent(self, orders_service, orders_config):
        source = load(orders_config, service=orders_service)
        orders_service.append("shard-0002", "50000000000000000001", b"q1")

        p0, p1 = await asyncio.gather(source.fetch(0, ""), source.fetch(1, ""))

        assert p0.data == (b"p1", b"p2")
        assert p1.data == (b"q1",)
        assert p1.last_sequence == "50000000000000000001"

    async def test_index_out_of_range(self, orders_service, orders_config):
        source = load(orders_config, service=orders_service)
        with pytest.raises(InvalidIndexError):
            await source.fetch(source.number_of_workers(), "")

    async def test_configured_max_records(self, orders_service):
        source = load(
            {"streamName": "orders", "region": "us-east-1", "maxRecords": 1},
            service=orders_service,
        )
        records = await source.fetch(0, "")
        assert records.data == (b"p1",)


class TestKinesisSourceLifecycle:
    def test_close_is_noop(self, orders_service, orders_config):
        source = load(orders_config, service=orders_service)
        calls_before = list(orders_service.calls)

        assert source.close(0) is None
        assert source.close(99) is None
        assert orders_service.calls == calls_before

    def test_health(self, orders_service, orders_config):
        source = load(orders_config, service=orders_service)
        assert source.health() == {
            "source_type": "awskinesis",
            "stream": "orders",
            "region": "us-east-1",
            "shards": ["shard-0001", "shard-0002"],
        }


class TestRegistry:
    def test_awskinesis_is_builtin(self):
        assert "awskinesis" in registered_source_types()

    def test_load_source_dispatches(self, orders_service, orders_config):
        with patch(
            "stream_connector.sources.kinesis.source.create_kinesis_service",
            return_value=orders_service,
        ):
            source = load_source("awskinesis", orders_config)
        assert isinstance(source, KinesisSource)

    def test_unknown_source_type(self):
        with pytest.raises(ConfigurationError, match="Unknown source type"):
            load_source("sqs", {})

    def test_register_custom_source(
        self, orders_service, orders_config, monkeypatch: pytest.MonkeyPatch
    ):
        monkeypatch.setattr(registry, "_LOADERS", dict(registry._LOADERS))

        def custom_loader(data):
            return load(data, service=orders_service)

        register_source("custom-kinesis", custom_loader)
        source = load_source("custom-kinesis", orders_config)
        assert source.number_of_workers() == 2
