"""Pagefind search client.

Drives the pagefind engine the way the browser client does: fetch the
manifest, boot the engine with the selected language's metadata, then for
every query load the index/filter chunks the engine asks for before running
the search. Result fragments are fetched lazily and enriched per query with
an excerpt and heading-anchored sub-results.

Usage::

    async with PagefindClient("https://example.com/pagefind/") as client:
        response = await client.search("webpack configuration")
        for result in response.results[:5]:
            fragment = await result.data()
            print(fragment.title, fragment.url)
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping, Sequence
import functools
import logging
import time
from typing import Self

from pydantic import ValidationError

from pagefind_client.adapters.chunk_source import AbstractChunkSource, build_chunk_source, ensure_trailing_slash
from pagefind_client.config import Settings
from pagefind_client.domain.errors import ChunkFetchError, EngineUninitializedError, ManifestFetchError
from pagefind_client.domain.model import (
    ChunkKind,
    EntryManifest,
    Fragment,
    LanguageIndex,
    RankingWeights,
    SearchResponse,
    SearchResult,
    SearchTimings,
    WeightedLocation,
)
from pagefind_client.engine.bridge import EngineBridge, EngineExports, EngineSession
from pagefind_client.engine.wasm import WasmtimeExports
from pagefind_client.observability.context import bind_bundle
from pagefind_client.observability.logging import configure_logging
from pagefind_client.observability.metrics import SEARCH_LATENCY, SEARCH_RESULTS, track_latency
from pagefind_client.observability.tracing import create_span
from pagefind_client.search.excerpt import ZERO_WIDTH_SPACE, build_excerpt, calculate_excerpt_region
from pagefind_client.search.query import encode_filters, encode_sort, normalize, parse_hashes, parse_response
from pagefind_client.search.sub_results import calculate_sub_results
from pagefind_client.service_layer.chunk_store import ChunkStore, fetch_decompressed


logger = logging.getLogger(__name__)

ENTRY_FILE = "pagefind-entry.json"

EngineFactory = Callable[[bytes], EngineExports]


def setup_logging(settings: Settings | None = None) -> Settings:
    """Configure root logging from ``PAGEFIND_LOG_LEVEL`` and ``PAGEFIND_LOG_JSON``.

    For applications and scripts embedding the client. The client itself never
    touches logging configuration unless asked to (see ``create_search_client``).

    Returns:
        The settings that were applied
    """
    settings = settings or Settings()
    configure_logging(level=settings.log_level, json_output=settings.log_json)
    return settings


def enrich_fragment(
    fragment: Fragment,
    weighted_locations: list[WeightedLocation],
    excerpt_length: int,
) -> Fragment:
    """Attach query-specific matches, excerpt and sub-results to a fragment copy."""
    fragment.weighted_locations = list(weighted_locations)
    fragment.locations = [location.location for location in weighted_locations]

    if not fragment.raw_content:
        fragment.raw_content = fragment.content.replace("<", "&lt;").replace(">", "&gt;")
        fragment.content = fragment.content.replace(ZERO_WIDTH_SPACE, "")

    excerpt_start = calculate_excerpt_region(weighted_locations, excerpt_length)
    fragment.excerpt = build_excerpt(fragment.raw_content, excerpt_start, excerpt_length, fragment.locations)
    fragment.sub_results = calculate_sub_results(fragment, excerpt_length)
    return fragment


class PagefindClient:
    """Search client for one pagefind bundle."""

    def __init__(
        self,
        base_path: str | None = None,
        *,
        excerpt_length: int | None = None,
        ranking: RankingWeights | None = None,
        settings: Settings | None = None,
        source: AbstractChunkSource | None = None,
        engine_factory: EngineFactory | None = None,
    ):
        """Initialize client. Call ``init()`` (or use ``async with``) before searching.

        Args:
            base_path: Bundle location; defaults to ``settings.base_path``
            excerpt_length: Words per excerpt; defaults to ``settings.excerpt_length``
            ranking: Ranking overrides; defaults to the ``settings`` ranking fields
            settings: Settings instance, loaded from the environment when omitted
            source: Transport override (mainly for tests)
            engine_factory: Builds the engine exports from the engine binary
        """
        self.settings = settings or Settings()
        resolved_base = base_path or self.settings.base_path
        if not resolved_base:
            raise ValueError("A base path is required (argument or PAGEFIND_BASE_PATH)")

        self.base_path = ensure_trailing_slash(resolved_base)
        self.excerpt_length = excerpt_length if excerpt_length is not None else self.settings.excerpt_length
        if self.excerpt_length < 0:
            raise ValueError(f"excerpt_length must not be negative, got {self.excerpt_length}")
        self.ranking = ranking if ranking is not None else self.settings.ranking_weights()

        self._source = source or build_chunk_source(self.base_path, self.settings)
        self._engine_factory = engine_factory or WasmtimeExports.instantiate
        self._session: EngineSession | None = None
        self._chunks: ChunkStore | None = None
        self.manifest: EntryManifest | None = None
        self.language: str | None = None

    async def __aenter__(self) -> Self:
        if not self.is_initialized:
            await self.init()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    @property
    def is_initialized(self) -> bool:
        return self._session is not None and self._chunks is not None

    @property
    def chunks(self) -> ChunkStore:
        if self._chunks is None:
            raise EngineUninitializedError()
        return self._chunks

    async def aclose(self) -> None:
        """Release the transport (HTTP connections)."""
        await self._source.aclose()

    async def init(self) -> None:
        """Fetch the manifest, boot the engine and apply ranking overrides.

        Raises:
            ManifestFetchError: If the manifest cannot be fetched or parsed
            NoLanguageIndexError: If the manifest lists no languages
            ChunkFetchError: If the metadata or engine binary cannot be fetched
            DecodeError: If the metadata or engine binary cannot be decoded
        """
        bind_bundle(self.base_path)

        with create_span("pagefind.init", attributes={"pagefind.base_path": self.base_path}):
            manifest = await self._fetch_manifest()
            language, index = manifest.select_language(self._source.describe(ENTRY_FILE))
            logger.info(
                "Using pagefind index for language %s (%d pages, engine %s)",
                language,
                index.page_count,
                index.wasm or "unknown",
            )

            meta_bytes, wasm_bytes = await asyncio.gather(
                fetch_decompressed(self._source, self._meta_path(index), "meta"),
                fetch_decompressed(self._source, self._wasm_path(index), "wasm"),
            )

            session = EngineSession.start(EngineBridge(self._engine_factory(wasm_bytes)), meta_bytes)
            if self.ranking is not None:
                await session.set_ranking_weights(self.ranking.to_engine_json())
                logger.debug("Applied ranking weights: %s", self.ranking.model_dump())

        self.manifest = manifest
        self.language = language
        self._session = session
        self._chunks = ChunkStore(self._source, session, max_concurrency=self.settings.max_concurrent_requests)

    async def search(
        self,
        term: str,
        filters: Mapping[str, Sequence[str]] | None = None,
        sort: Mapping[str, str] | None = None,
        *,
        verbose: bool = False,
    ) -> SearchResponse:
        """Search the bundle.

        Args:
            term: Raw user query; wrap in double quotes for an exact phrase
            filters: Facet name -> accepted values
            sort: Sort field -> "asc"/"desc" (only the first entry is used)
            verbose: Log normalization, chunk loading and timings at INFO

        Returns:
            SearchResponse with results in engine relevance order

        Raises:
            EngineUninitializedError: If ``init()`` has not completed
            ChunkFetchError: If a required chunk cannot be fetched
            DecodeError: If a required chunk cannot be decoded
            MalformedResponseError: If the engine response cannot be parsed
        """
        if self._session is None or self._chunks is None:
            raise EngineUninitializedError()
        session, chunks = self._session, self._chunks
        level = logging.INFO if verbose else logging.DEBUG

        start = time.perf_counter()
        query = normalize(term)
        logger.log(level, 'Normalized search term: "%s"', query.text)

        if not query.text:
            return SearchResponse.empty()

        filters_json = encode_filters(filters)
        sort_spec = encode_sort(sort)
        exact_label = str(query.exact).lower()

        with (
            create_span("pagefind.search", attributes={"pagefind.query": query.text, "pagefind.exact": query.exact}),
            track_latency(SEARCH_LATENCY, exact=exact_label),
        ):
            index_hashes = parse_hashes(session.request_indexes(query.text))
            filter_hashes = parse_hashes(session.request_filter_indexes(filters_json))

            await asyncio.gather(
                *(chunks.load(ChunkKind.INDEX, chunk_hash) for chunk_hash in index_hashes),
                *(chunks.load(ChunkKind.FILTER, chunk_hash) for chunk_hash in filter_hashes),
            )
            logger.log(level, "Loaded %d index + %d filter chunks", len(index_hashes), len(filter_hashes))

            search_start = time.perf_counter()
            raw = await session.search(query.text, filters_json, sort_spec, query.exact)
            parsed = parse_response(raw)

            results = [
                SearchResult(
                    id=hit.hash,
                    score=hit.score,
                    words=hit.words,
                    weighted_locations=hit.weighted_locations,
                    _loader=functools.partial(self._load_fragment, hit.hash, hit.weighted_locations),
                )
                for hit in parsed.hits
            ]

        end = time.perf_counter()
        search_ms = (end - search_start) * 1000
        total_ms = (end - start) * 1000
        SEARCH_RESULTS.labels(exact=exact_label).observe(len(results))
        logger.log(
            level,
            'Found %d result%s for "%s" in %.0fms (%.0fms total)',
            len(results),
            "" if len(results) == 1 else "s",
            query.text,
            search_ms,
            total_ms,
        )

        return SearchResponse(
            results=results,
            unfiltered_result_count=parsed.unfiltered_result_count,
            filters=parsed.filters,
            total_filters=parsed.total_filters,
            timings=SearchTimings(preload=total_ms - search_ms, search=search_ms, total=total_ms),
        )

    async def _load_fragment(self, chunk_hash: str, weighted_locations: list[WeightedLocation]) -> Fragment:
        shared = await self.chunks.fragment(chunk_hash)
        return enrich_fragment(shared.model_copy(deep=True), weighted_locations, self.excerpt_length)

    async def _fetch_manifest(self) -> EntryManifest:
        url = self._source.describe(ENTRY_FILE)
        try:
            raw = await self._source.fetch(ENTRY_FILE)
        except ChunkFetchError as exc:
            logger.error("Failed to fetch manifest %s: %s", url, exc)
            raise ManifestFetchError(url, status=exc.status, reason=exc.reason) from exc

        try:
            return EntryManifest.model_validate_json(raw)
        except ValidationError as exc:
            logger.error("Invalid manifest %s: %s", url, exc)
            raise ManifestFetchError(url, reason=f"invalid manifest: {exc.error_count()} errors") from exc

    @staticmethod
    def _meta_path(index: LanguageIndex) -> str:
        return f"pagefind.{index.hash}.pf_meta"

    @staticmethod
    def _wasm_path(index: LanguageIndex) -> str:
        return f"wasm.{index.wasm or 'unknown'}.pagefind"


async def create_search_client(
    base_path: str | None = None,
    *,
    excerpt_length: int | None = None,
    ranking: RankingWeights | None = None,
    settings: Settings | None = None,
    configure_logs: bool = False,
) -> PagefindClient:
    """Create and initialize a Pagefind search client.

    Args:
        base_path: Bundle URL or directory (must contain pagefind-entry.json)
        excerpt_length: Number of words in excerpts (default 30)
        ranking: Custom ranking weight overrides
        settings: Settings instance, loaded from the environment when omitted
        configure_logs: Apply the log level and format from ``settings`` first
    """
    if configure_logs:
        settings = setup_logging(settings)
    client = PagefindClient(base_path, excerpt_length=excerpt_length, ranking=ranking, settings=settings)
    try:
        await client.init()
    except BaseException:
        await client.aclose()
        raise
    return client
