"""Host-side cursor stores for per-partition resumption."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Protocol, runtime_checkable

import structlog

logger = structlog.get_logger()


@runtime_checkable
class CheckpointStore(Protocol):
    """Stores the last returned cursor for each partition index."""

    def get_checkpoint(self, partition: int) -> str:
        """Return the stored cursor, or ``""`` when none exists."""
        ...

    def put_checkpoint(self, partition: int, sequence_number: str) -> None:
        """Persist *sequence_number* as the cursor for *partition*."""
        ...


class MemoryCheckpointStore:
    """Process-local checkpoints; lost on restart."""

    def __init__(self, initial: dict[int, str] | None = None) -> None:
        self._checkpoints: dict[int, str] = dict(initial or {})

    def get_checkpoint(self, partition: int) -> str:
        return self._checkpoints.get(partition, "")

    def put_checkpoint(self, partition: int, sequence_number: str) -> None:
        self._checkpoints[partition] = sequence_number

    def snapshot(self) -> dict[int, str]:
        return dict(self._checkpoints)


class JsonFileCheckpointStore:
    """Checkpoints kept in a JSON file keyed by stream name and partition.

    File layout::

        {"<stream>": {"0": "<sequence>", "1": "<sequence>"}}

    Writes go to a temp file that is renamed over the original.
    """

    def __init__(self, path: str | Path, stream_name: str) -> None:
        self._path = Path(path)
        self._stream_name = stream_name
        self._data: dict[str, dict[str, str]] = self._read()

    def _read(self) -> dict[str, dict[str, str]]:
        if not self._path.exists():
            return {}
        with self._path.open() as f:
            data = json.load(f)
        if not isinstance(data, dict):
            msg = f"Expected a JSON object in checkpoint file {self._path}"
            raise ValueError(msg)
        return data

    def get_checkpoint(self, partition: int) -> str:
        return self._data.get(self._stream_name, {}).get(str(partition), "")

    def put_checkpoint(self, partition: int, sequence_number: str) -> None:
        self._data.setdefault(self._stream_name, {})[str(partition)] = sequence_number
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        with tmp.open("w") as f:
            json.dump(self._data, f, indent=2, sort_keys=True)
        os.replace(tmp, self._path)
        logger.debug(
            "checkpoint.stored",
            stream=self._stream_name,
            partition=partition,
            sequence_number=sequence_number,
        )
