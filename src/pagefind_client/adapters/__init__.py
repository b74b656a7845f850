"""Adapters layer - transports for bundle files."""

from .chunk_source import (
    AbstractChunkSource,
    FilesystemChunkSource,
    HttpChunkSource,
    build_chunk_source,
)


__all__ = [
    "AbstractChunkSource",
    "FilesystemChunkSource",
    "HttpChunkSource",
    "build_chunk_source",
]
