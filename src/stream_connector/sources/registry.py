"""Source-type registry: maps a source type name to its loader."""

from __future__ import annotations

import importlib
from collections.abc import Callable

from stream_connector.config.loader import ConfigData
from stream_connector.errors import ConfigurationError
from stream_connector.sources.base import Source

SourceLoader = Callable[[ConfigData], Source]

_LOADERS: dict[str, SourceLoader] = {}

# Modules that register a built-in source type on import
_BUILTIN_MODULES = ("stream_connector.sources.kinesis.source",)


def register_source(source_type: str, loader: SourceLoader) -> None:
    """Register *loader* under *source_type*, replacing any previous one."""
    _LOADERS[str(source_type)] = loader


def _ensure_builtins() -> None:
    for module in _BUILTIN_MODULES:
        importlib.import_module(module)


def registered_source_types() -> list[str]:
    """Return the sorted names of every known source type."""
    _ensure_builtins()
    return sorted(_LOADERS)


def load_source(source_type: str, data: ConfigData) -> Source:
    """Build a ready source of *source_type* from its config *data*."""
    _ensure_builtins()
    loader = _LOADERS.get(str(source_type))
    if loader is None:
        known = ", ".join(sorted(_LOADERS))
        msg = f"Unknown source type '{source_type}' (known: {known})"
        raise ConfigurationError(msg)
    return loader(data)
