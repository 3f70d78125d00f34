"""Typer CLI for stream connectors."""

from __future__ import annotations

import asyncio
from pathlib import Path

import structlog
import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from stream_connector.config.loader import load_connector_file, load_kinesis_config
from stream_connector.config.models import ConnectorFileConfig, SourceType
from stream_connector.errors import ConnectorError
from stream_connector.observability.logging import setup_logging
from stream_connector.pipeline.checkpoint import (
    CheckpointStore,
    JsonFileCheckpointStore,
    MemoryCheckpointStore,
)
from stream_connector.pipeline.runner import SourceRunner
from stream_connector.sources.base import Records, Source
from stream_connector.sources.registry import load_source, registered_source_types

logger = structlog.get_logger()
console = Console()
app = typer.Typer(name="stream-connector", help="Partitioned-log source connector CLI")


@app.callback()
def main(
    log_level: str = typer.Option("WARNING", "--log-level", help="Root log level"),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit JSON log lines"),
) -> None:
    setup_logging(json=json_logs, level=log_level)


def _load_file(config_path: str) -> ConnectorFileConfig:
    path = Path(config_path)
    if not path.exists():
        console.print(f"[red]Config file not found: {path}[/red]")
        raise typer.Exit(1)
    return load_connector_file(path)


def _load_source(config_path: str) -> tuple[ConnectorFileConfig, Source]:
    try:
        file_config = _load_file(config_path)
        source = load_source(file_config.source_type, file_config.source)
    except ConnectorError as exc:
        console.print(f"[red]Load failed:[/red] {escape(str(exc))}")
        raise typer.Exit(1) from exc
    return file_config, source


def _print_records(partition: int, records: Records) -> None:
    for data in records.data:
        text = escape(data.decode("utf-8", errors="replace"))
        console.print(f"[cyan]p={partition}[/cyan] {text}")


@app.command()
def validate(
    config_path: str = typer.Argument(..., help="Path to connector YAML/JSON"),
) -> None:
    """Validate a connector file without contacting the stream service."""
    try:
        file_config = _load_file(config_path)
        if file_config.source_type not in registered_source_types():
            msg = f"Unknown source type '{file_config.source_type}'"
            raise ConnectorError(msg)
        kinesis = None
        if file_config.source_type == SourceType.AWS_KINESIS:
            kinesis = load_kinesis_config(file_config.source)
        console.print(f"[green]Valid[/green] source_type={file_config.source_type}")
        if kinesis is not None:
            console.print(f"  stream: {kinesis.stream_name}")
            console.print(f"  region: {kinesis.region}")
            creds = "static" if kinesis.has_static_credentials else "default chain"
            console.print(f"  credentials: {creds}")
        console.print(
            f"  poll interval: {file_config.runner.poll_interval_seconds}s"
        )
    except ConnectorError as exc:
        console.print(f"[red]Validation error:[/red] {escape(str(exc))}")
        raise typer.Exit(1) from exc


@app.command()
def shards(
    config_path: str = typer.Argument(..., help="Path to connector YAML/JSON"),
) -> None:
    """Discover the stream's partitions and show their index assignment."""
    _, source = _load_source(config_path)
    health = source.health()

    table = Table(title=f"Partitions of {health.get('stream', '?')}")
    table.add_column("Index", style="cyan", justify="right")
    table.add_column("Shard ID")
    for index, shard_id in enumerate(health.get("shards", [])):
        table.add_row(str(index), shard_id)

    console.print(table)
    console.print(f"workers: {source.number_of_workers()}")


@app.command()
def fetch(
    config_path: str = typer.Argument(..., help="Path to connector YAML/JSON"),
    partition: int = typer.Option(0, "--partition", "-p", help="Partition index"),
    cursor: str = typer.Option("", "--cursor", "-c", help="Last sequence number"),
    timeout: float | None = typer.Option(None, "--timeout", help="Deadline (s)"),
) -> None:
    """Fetch a single batch from one partition and print the next cursor."""
    _, source = _load_source(config_path)
    try:
        records = asyncio.run(source.fetch(partition, cursor, timeout=timeout))
    except ConnectorError as exc:
        console.print(f"[red]Fetch failed:[/red] {escape(str(exc))}")
        raise typer.Exit(1) from exc
    finally:
        source.close(partition)

    _print_records(partition, records)
    console.print(f"records: {len(records.data)}")
    console.print(f"cursor: {records.last_sequence}")


@app.command()
def tail(
    config_path: str = typer.Argument(..., help="Path to connector YAML/JSON"),
    checkpoint_file: str | None = typer.Option(
        None, "--checkpoint-file", help="JSON file for persisted cursors"
    ),
) -> None:
    """Follow every partition, printing records as they arrive."""
    file_config, source = _load_source(config_path)
    checkpoint_path = checkpoint_file or file_config.runner.checkpoint_file

    checkpoints: CheckpointStore
    if checkpoint_path:
        stream = str(source.health().get("stream", file_config.source_type))
        checkpoints = JsonFileCheckpointStore(checkpoint_path, stream)
    else:
        checkpoints = MemoryCheckpointStore()

    async def handler(partition: int, records: Records) -> None:
        _print_records(partition, records)

    runner = SourceRunner(
        source,
        handler,
        checkpoints=checkpoints,
        poll_interval=file_config.runner.poll_interval_seconds,
    )
    console.print(
        f"[yellow]Tailing {source.number_of_workers()} partition(s)[/yellow]"
    )
    try:
        asyncio.run(runner.run())
    except KeyboardInterrupt:
        runner.stop()
        console.print("[yellow]Stopped[/yellow]")
