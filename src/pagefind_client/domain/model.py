"""Domain model - manifest, fragments and search results.

Wire-shaped records (manifest, fragment, anchors, locations) are Pydantic
models so the JSON the bundle ships is validated at the boundary. Search
results hold a deferred fragment loader and are plain dataclasses.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum

import orjson
from pydantic import BaseModel, ConfigDict, Field

from .errors import NoLanguageIndexError


class ChunkKind(str, Enum):
    """The three content-addressed chunk kinds of a pagefind bundle."""

    INDEX = "index"
    FILTER = "filter"
    FRAGMENT = "fragment"

    def path(self, chunk_hash: str) -> str:
        """Relative path of a chunk below the bundle root."""
        return f"{self.value}/{chunk_hash}.pf_{self.value}"


# Manifest


class LanguageIndex(BaseModel):
    """One language entry of ``pagefind-entry.json``."""

    model_config = ConfigDict(frozen=True)

    hash: str
    wasm: str | None = None
    page_count: int = 0


class EntryManifest(BaseModel):
    """The bundle manifest, mapping language code to its index."""

    model_config = ConfigDict(frozen=True)

    version: str = ""
    languages: dict[str, LanguageIndex] = Field(default_factory=dict)

    def select_language(self, url: str | None = None) -> tuple[str, LanguageIndex]:
        """Pick the language index with the most pages.

        Args:
            url: Where the manifest was read from, reported in the error

        Raises:
            NoLanguageIndexError: If the manifest lists no languages
        """
        if not self.languages:
            raise NoLanguageIndexError(url)
        # max() keeps the first entry on ties, matching manifest order
        return max(self.languages.items(), key=lambda item: item[1].page_count)


class RankingWeights(BaseModel):
    """Ranking overrides forwarded to the engine. ``None`` keeps the engine default."""

    model_config = ConfigDict(frozen=True)

    term_similarity: float | None = None
    page_length: float | None = None
    term_saturation: float | None = None
    term_frequency: float | None = None

    def is_default(self) -> bool:
        return all(value is None for value in self.model_dump().values())

    def to_engine_json(self) -> str:
        return orjson.dumps(self.model_dump()).decode("utf-8")


# Fragments


class WeightedLocation(BaseModel):
    """One matched-term occurrence inside a fragment's word stream."""

    model_config = ConfigDict(frozen=True)

    weight: float
    balanced_score: float
    location: int


class Anchor(BaseModel):
    """An element with an id inside the page (headings become sub-results)."""

    model_config = ConfigDict(frozen=True, extra="allow")

    element: str
    id: str
    text: str | None = None
    location: int


class SubResult(BaseModel):
    """A heading-scoped slice of a fragment's matches."""

    title: str
    url: str
    anchor: Anchor | None = None
    weighted_locations: list[WeightedLocation] = Field(default_factory=list)
    locations: list[int] = Field(default_factory=list)
    excerpt: str = ""


class Fragment(BaseModel):
    """The full record for one page.

    The raw fields come from the fragment chunk and never change. The
    enrichment fields (``weighted_locations`` onward) are filled per query on
    a deep copy.
    """

    model_config = ConfigDict(extra="allow")

    url: str
    raw_url: str | None = None
    content: str = ""
    raw_content: str | None = None
    word_count: int = 0
    filters: dict[str, list[str]] = Field(default_factory=dict)
    meta: dict[str, str] = Field(default_factory=dict)
    anchors: list[Anchor] = Field(default_factory=list)

    weighted_locations: list[WeightedLocation] = Field(default_factory=list)
    locations: list[int] = Field(default_factory=list)
    sub_results: list[SubResult] = Field(default_factory=list)
    excerpt: str = ""

    @property
    def title(self) -> str:
        return self.meta.get("title", "")


# Search results


@dataclass
class SearchResult:
    """A scored hit. ``data()`` fetches and enriches the fragment on demand."""

    id: str
    score: float
    words: list[int]
    weighted_locations: list[WeightedLocation] = field(default_factory=list, repr=False)
    _loader: Callable[[], Awaitable[Fragment]] | None = field(default=None, repr=False, compare=False)

    async def data(self) -> Fragment:
        if self._loader is None:
            raise RuntimeError(f"No fragment loader bound for result {self.id}")
        return await self._loader()


@dataclass(frozen=True)
class SearchTimings:
    """Milliseconds spent loading chunks (preload), in the engine (search) and overall."""

    preload: float = 0.0
    search: float = 0.0
    total: float = 0.0


@dataclass
class SearchResponse:
    """Results in engine relevance order plus facet counts."""

    results: list[SearchResult] = field(default_factory=list)
    unfiltered_result_count: int = 0
    filters: dict[str, dict[str, int]] = field(default_factory=dict)
    total_filters: dict[str, dict[str, int]] = field(default_factory=dict)
    timings: SearchTimings = field(default_factory=SearchTimings)

    @classmethod
    def empty(cls) -> SearchResponse:
        return cls()
