"""Domain layer - data model and errors with no infrastructure dependencies."""

from pagefind_client.domain.errors import (
    ChunkFetchError,
    DecodeError,
    EngineUninitializedError,
    MalformedResponseError,
    ManifestFetchError,
    NoLanguageIndexError,
    PagefindError,
)
from pagefind_client.domain.model import (
    Anchor,
    ChunkKind,
    EntryManifest,
    Fragment,
    LanguageIndex,
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
    "ChunkKind",
    "DecodeError",
    "EngineUninitializedError",
    "EntryManifest",
    "Fragment",
    "LanguageIndex",
    "MalformedResponseError",
    "ManifestFetchError",
    "NoLanguageIndexError",
    "PagefindError",
    "RankingWeights",
    "SearchResponse",
    "SearchResult",
    "SearchTimings",
    "SubResult",
    "WeightedLocation",
]
