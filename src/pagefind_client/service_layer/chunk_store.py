"""Content-addressed, load-once chunk store.

Index and filter chunks are fetched, decoded and handed to the engine at
most once per hash. Fragment chunks are fetched and parsed once and the
parsed record is shared. The first request for a hash starts a task; every
concurrent or later request for the same hash awaits that same task, so a
chunk needed by several in-flight queries is still fetched once.

Chunks are immutable for a given bundle build, so nothing is ever evicted.
A failed load stays memoized and fails every waiter the same way.
"""

from __future__ import annotations

import asyncio
import logging

from pydantic import ValidationError

from pagefind_client.adapters.chunk_source import AbstractChunkSource
from pagefind_client.domain.errors import ChunkFetchError, DecodeError
from pagefind_client.domain.model import ChunkKind, Fragment
from pagefind_client.engine.bridge import EngineSession
from pagefind_client.observability.metrics import CHUNK_BYTES, CHUNK_FETCHES
from pagefind_client.observability.tracing import create_span
from pagefind_client.search.decompress import decompress


logger = logging.getLogger(__name__)


async def fetch_decompressed(
    source: AbstractChunkSource,
    path: str,
    kind: str,
    semaphore: asyncio.Semaphore | None = None,
) -> bytes:
    """Fetch one bundle file and strip its compression/signature."""
    try:
        if semaphore is None:
            raw = await source.fetch(path)
        else:
            async with semaphore:
                raw = await source.fetch(path)
        data = decompress(raw, source.describe(path))
    except (ChunkFetchError, DecodeError):
        CHUNK_FETCHES.labels(kind=kind, outcome="error").inc()
        raise

    CHUNK_FETCHES.labels(kind=kind, outcome="ok").inc()
    CHUNK_BYTES.labels(kind=kind).inc(len(data))
    return data


class ChunkStore:
    """Memoized loader for index, filter and fragment chunks."""

    def __init__(
        self,
        source: AbstractChunkSource,
        engine: EngineSession,
        max_concurrency: int = 16,
    ):
        """Initialize chunk store.

        Args:
            source: Transport for bundle files
            engine: Engine session that index/filter chunks are loaded into
            max_concurrency: Upper bound on simultaneous fetches
        """
        self.source = source
        self.engine = engine
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._loaded: dict[ChunkKind, dict[str, asyncio.Task[None]]] = {
            ChunkKind.INDEX: {},
            ChunkKind.FILTER: {},
        }
        self._fragments: dict[str, asyncio.Task[Fragment]] = {}

    async def load(self, kind: ChunkKind, chunk_hash: str) -> None:
        """Ensure a chunk is loaded. Safe to call concurrently for the same hash."""
        if kind is ChunkKind.FRAGMENT:
            await self.fragment(chunk_hash)
            return

        pending = self._loaded[kind]
        task = pending.get(chunk_hash)
        if task is None:
            task = asyncio.ensure_future(self._load_into_engine(kind, chunk_hash))
            pending[chunk_hash] = task
        # Shielded so one cancelled waiter does not cancel the load for the others
        await asyncio.shield(task)

    async def fragment(self, chunk_hash: str) -> Fragment:
        """Return the shared, parsed fragment for ``chunk_hash``.

        The returned record is shared by every caller; copy it before
        modifying.
        """
        task = self._fragments.get(chunk_hash)
        if task is None:
            task = asyncio.ensure_future(self._load_fragment(chunk_hash))
            self._fragments[chunk_hash] = task
        return await asyncio.shield(task)

    def is_loaded(self, kind: ChunkKind, chunk_hash: str) -> bool:
        tasks = self._fragments if kind is ChunkKind.FRAGMENT else self._loaded[kind]
        task = tasks.get(chunk_hash)
        return task is not None and task.done() and not task.cancelled() and task.exception() is None

    def stats(self) -> dict[str, int]:
        """Number of memoized chunks per kind (in flight or finished)."""
        return {
            ChunkKind.INDEX.value: len(self._loaded[ChunkKind.INDEX]),
            ChunkKind.FILTER.value: len(self._loaded[ChunkKind.FILTER]),
            ChunkKind.FRAGMENT.value: len(self._fragments),
        }

    async def _load_into_engine(self, kind: ChunkKind, chunk_hash: str) -> None:
        with create_span("pagefind.chunk.load", attributes={"pagefind.chunk.kind": kind.value}):
            data = await fetch_decompressed(self.source, kind.path(chunk_hash), kind.value, self._semaphore)
            await self.engine.load_chunk(kind, data)
        logger.debug("Loaded %s chunk %s (%d bytes)", kind.value, chunk_hash, len(data))

    async def _load_fragment(self, chunk_hash: str) -> Fragment:
        path = ChunkKind.FRAGMENT.path(chunk_hash)
        data = await fetch_decompressed(self.source, path, ChunkKind.FRAGMENT.value, self._semaphore)
        try:
            fragment = Fragment.model_validate_json(data)
        except ValidationError as exc:
            raise DecodeError(self.source.describe(path), f"invalid fragment JSON: {exc}") from exc
        logger.debug("Loaded fragment %s (%s)", chunk_hash, fragment.url)
        return fragment
