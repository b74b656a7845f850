"""Service layer - chunk loading orchestration."""

from .chunk_store import ChunkStore, fetch_decompressed


__all__ = [
    "ChunkStore",
    "fetch_decompressed",
]
