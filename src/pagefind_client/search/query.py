"""Query normalization and engine wire-format encoding/decoding.

The engine expects queries normalized the same way the pagefind browser
client normalizes them, filters as a JSON object and sorting as a single
``field:direction`` string. Its search response is one delimiter-based
string::

    <unfilteredCount>:<results>:<filters>__PF_UNFILTERED_DELIM__<totalFilters>

where ``<results>`` is a space-separated list of ``hash@score@locations``
entries and each location is ``weight>balancedScore>wordOffset``.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
import re
from typing import NamedTuple

import orjson

from pagefind_client.domain.errors import MalformedResponseError
from pagefind_client.domain.model import WeightedLocation


EXACT_PHRASE_PATTERN = re.compile(r'^\s*".+"\s*$')
PUNCTUATION_PATTERN = re.compile(r"""[.`~!@#$%^&*(){}\[\]\\|:;'",<>/?\-]""")
WHITESPACE_RUN_PATTERN = re.compile(r"\s+")

UNFILTERED_DELIM = "__PF_UNFILTERED_DELIM__"
FILTER_DELIM = "__PF_FILTER_DELIM__"
VALUE_DELIM = "__PF_VALUE_DELIM__"

RESPONSE_PATTERN = re.compile(r"^(\d+):([^:]*):(.*)" + UNFILTERED_DELIM + r"(.*)$", re.DOTALL)
FILTER_VALUE_PATTERN = re.compile(r"^(.*):(\d+)$", re.DOTALL)

# Location weights are fixed-point with 24 as the unit
WEIGHT_SCALE = 24


class NormalizedQuery(NamedTuple):
    text: str
    exact: bool


def normalize(raw_query: str) -> NormalizedQuery:
    """Normalize a user query into the form the engine indexes terms by.

    A query wrapped entirely in one pair of double quotes is an exact phrase
    search. Normalization lowercases, strips punctuation and collapses
    whitespace.
    """
    exact = bool(EXACT_PHRASE_PATTERN.match(raw_query))
    text = raw_query.lower().strip()
    text = PUNCTUATION_PATTERN.sub("", text)
    text = WHITESPACE_RUN_PATTERN.sub(" ", text).strip()
    return NormalizedQuery(text=text, exact=exact)


def encode_filters(filters: Mapping[str, Sequence[str]] | None) -> str:
    """Encode facet filters as the JSON object the engine expects."""
    payload = {name: list(values) for name, values in (filters or {}).items()}
    return orjson.dumps(payload).decode("utf-8")


def encode_sort(sort: Mapping[str, str] | None) -> str:
    """Encode a sort request as ``field:direction``.

    The engine accepts a single sort field; only the first entry is used.
    """
    for sort_field, direction in (sort or {}).items():
        return f"{sort_field}:{direction}"
    return ""


def parse_hashes(raw: str) -> list[str]:
    """Split a space-separated chunk hash list returned by the engine."""
    return [chunk_hash for chunk_hash in raw.split(" ") if chunk_hash]


def parse_filters(raw: str | None) -> dict[str, dict[str, int]]:
    """Parse a filter count string.

    Format: ``filter1:value1:3__PF_VALUE_DELIM__value2:5__PF_FILTER_DELIM__filter2:...``.
    Values may themselves contain colons; the count is the trailing ``:digits``.
    An entry with a missing or malformed count is recorded with count 0.
    """
    output: dict[str, dict[str, int]] = {}
    if not raw:
        return output

    for block in raw.split(FILTER_DELIM):
        filter_name, _, values = block.partition(":")
        counts = output.setdefault(filter_name, {})
        if not values:
            continue
        for value_block in values.split(VALUE_DELIM):
            if not value_block:
                continue
            match = FILTER_VALUE_PATTERN.match(value_block)
            if match:
                counts[match.group(1)] = int(match.group(2))
            else:
                value, sep, _ = value_block.rpartition(":")
                counts[value if sep else value_block] = 0
    return output


@dataclass(frozen=True)
class RawHit:
    """One result entry of an engine response, before a fragment is attached."""

    hash: str
    score: float
    weighted_locations: list[WeightedLocation] = field(default_factory=list)

    @property
    def words(self) -> list[int]:
        return [location.location for location in self.weighted_locations]


@dataclass(frozen=True)
class ParsedResponse:
    unfiltered_result_count: int
    hits: list[RawHit]
    filters: dict[str, dict[str, int]]
    total_filters: dict[str, dict[str, int]]


def _parse_location(raw: str, entry: str) -> WeightedLocation:
    parts = raw.split(">")
    if len(parts) != 3:
        raise MalformedResponseError(entry, f"location {raw!r} is not weight>balanced_score>offset")
    weight, balanced_score, location = parts
    try:
        return WeightedLocation(
            weight=int(weight) / WEIGHT_SCALE,
            balanced_score=float(balanced_score),
            location=int(location),
        )
    except ValueError as exc:
        raise MalformedResponseError(entry, f"location {raw!r} is not numeric") from exc


def _parse_hit(entry: str) -> RawHit:
    parts = entry.split("@")
    if len(parts) != 3:
        raise MalformedResponseError(entry, "result entry is not hash@score@locations")
    chunk_hash, score, all_locations = parts
    try:
        parsed_score = float(score)
    except ValueError as exc:
        raise MalformedResponseError(entry, f"score {score!r} is not numeric") from exc
    locations = [_parse_location(raw, entry) for raw in all_locations.split(",")] if all_locations else []
    return RawHit(hash=chunk_hash, score=parsed_score, weighted_locations=locations)


def parse_response(raw: str) -> ParsedResponse:
    """Parse a raw engine search response.

    Raises:
        MalformedResponseError: If the response does not follow the wire grammar
    """
    match = RESPONSE_PATTERN.match(raw)
    if match is None:
        raise MalformedResponseError(raw, "response does not match count:results:filters grammar")

    unfiltered, all_results, filters, total_filters = match.groups()
    hits = [_parse_hit(entry) for entry in all_results.split(" ") if entry]
    return ParsedResponse(
        unfiltered_result_count=int(unfiltered),
        hits=hits,
        filters=parse_filters(filters),
        total_filters=parse_filters(total_filters),
    )
