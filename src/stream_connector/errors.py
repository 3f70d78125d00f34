"""Exception taxonomy for stream connectors."""

from __future__ import annotations


class ConnectorError(Exception):
    """Base class for every error raised by a connector."""


class ConfigurationError(ConnectorError, ValueError):
    """Connector configuration is malformed or incomplete.

    Raised before any network call is attempted.
    """


class DiscoveryError(ConnectorError):
    """Client construction or shard enumeration failed at load time."""


class FetchError(ConnectorError):
    """A single fetch call failed; retry with the same cursor."""

    def __init__(
        self,
        message: str,
        *,
        partition: int,
        shard_id: str,
        last_sequence: str,
    ) -> None:
        super().__init__(message)
        self.partition = partition
        self.shard_id = shard_id
        self.last_sequence = last_sequence


class InvalidIndexError(ConnectorError, IndexError):
    """Partition index outside the discovered shard range."""

    def __init__(self, partition: int, count: int) -> None:
        super().__init__(
            f"Partition index {partition} out of range for {count} shard(s)"
        )
        self.partition = partition
        self.count = count
