"""Python search client for static Pagefind bundles."""

from pagefind_client.client import PagefindClient, create_search_client, enrich_fragment, setup_logging
from pagefind_client.config import Settings
from pagefind_client.domain import (
    Anchor,
    ChunkFetchError,
    DecodeError,
    EngineUninitializedError,
    Fragment,
    MalformedResponseError,
    ManifestFetchError,
    NoLanguageIndexError,
    PagefindError,
    RankingWeights,
    SearchResponse,
    SearchResult,
    SearchTimings,
    SubResult,
    WeightedLocation,
)


__all__ = [
    "Anchor",
    "ChunkFetchError",
    "DecodeError",
    "EngineUninitializedError",
    "Fragment",
    "MalformedResponseError",
    "ManifestFetchError",
    "NoLanguageIndexError",
    "PagefindClient",
    "PagefindError",
    "RankingWeights",
    "SearchResponse",
    "SearchResult",
    "SearchTimings",
    "Settings",
    "SubResult",
    "WeightedLocation",
    "create_search_client",
    "enrich_fragment",
    "setup_logging",
]
