"""Source protocol exposed to the host ingestion framework.

Defines Records (the result of one fetch) and Source (the protocol every
partitioned-log connector must satisfy).  The host owns worker scheduling
and cursor persistence; a source only maps partition indexes to reads.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class Records:
    """One fetched batch for a single partition.

    ``last_sequence`` is the cursor to hand back on the next fetch.  It is
    the sequence number of the last record in ``data``, or the caller's
    cursor unchanged when the batch is empty.
    """

    data: tuple[bytes, ...]
    last_sequence: str
    millis_behind_latest: int | None = None

    def __len__(self) -> int:
        return len(self.data)

    @property
    def empty(self) -> bool:
        return not self.data


@runtime_checkable
class Source(Protocol):
    """Protocol that every partitioned-log connector must satisfy.

    The host runs ``number_of_workers()`` workers, one per partition index,
    with at most one in-flight ``fetch`` per index.
    """

    def number_of_workers(self) -> int:
        """Return the number of partitions (= worker concurrency)."""
        ...

    async def fetch(
        self,
        partition: int,
        last_sequence: str = "",
        *,
        timeout: float | None = None,
    ) -> Records:
        """Pull the next batch for *partition* after *last_sequence*."""
        ...

    def close(self, partition: int) -> None:
        """Release per-partition resources."""
        ...

    def health(self) -> dict[str, Any]:
        """Return source-specific health information."""
        ...
