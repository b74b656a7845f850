"""Split a fragment's matches into heading-anchored sub-results.

Matches are walked in word order. Everything before the first heading
belongs to the page itself; each heading then opens a section that collects
the matches up to the next heading. Sections without matches are dropped.
"""

from __future__ import annotations

from collections import deque
import re
from urllib.parse import quote, urljoin, urlsplit, urlunsplit

from pagefind_client.domain.model import Anchor, Fragment, SubResult, WeightedLocation
from pagefind_client.search.excerpt import build_excerpt, calculate_excerpt_region


HEADING_PATTERN = re.compile(r"h\d", re.IGNORECASE)
NON_WHITESPACE_PATTERN = re.compile(r"\S")
ABSOLUTE_URL_PATTERN = re.compile(r"^((https?:)?//)")

# Relative urls are resolved against a throwaway origin, then stripped back out
PLACEHOLDER_ORIGIN = "https://example.com"

# Printable ASCII that WHATWG URL serialization leaves untouched in paths and fragments
_PATH_SAFE = "/%!$&'()*+,;=:@~[]^|"
_FRAGMENT_SAFE = "!#$%&'()*+,/:;=?@[\\]^{|}~"

DEFAULT_PORTS = {"http": "80", "https": "443"}


def _normalize_netloc(scheme: str, netloc: str) -> str:
    """Lowercase the host and drop the scheme's default port; userinfo is kept as written."""
    userinfo, at, host = netloc.rpartition("@")
    host = host.lower()
    default_port = DEFAULT_PORTS.get(scheme)
    if default_port and host.endswith(f":{default_port}"):
        host = host[: -len(default_port) - 1]
    return f"{userinfo}{at}{host}"


def _remove_dot_segments(path: str) -> str:
    if "/." not in path or path.startswith("//"):
        return path
    return urlsplit(urljoin(PLACEHOLDER_ORIGIN, path)).path


def _with_fragment(url: str, fragment: str) -> str:
    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    netloc = _normalize_netloc(scheme, parts.netloc)
    path = quote(_remove_dot_segments(parts.path), safe=_PATH_SAFE) or "/"
    return urlunsplit((scheme, netloc, path, parts.query, quote(fragment, safe=_FRAGMENT_SAFE)))


def anchored_url(url: str, anchor_id: str) -> str:
    """Point ``url`` at the element ``anchor_id`` using a URL fragment.

    Absolute (and protocol-relative) urls keep their origin, with the scheme
    and host lowercased and dot segments resolved. Site-relative
    urls stay relative but are normalized and percent-encoded as if they
    were absolute.
    """
    if ABSOLUTE_URL_PATTERN.match(url):
        return _with_fragment(url, anchor_id)

    if not url.startswith("/"):
        url = f"/{url}"
    resolved = _with_fragment(urljoin(PLACEHOLDER_ORIGIN, url), anchor_id)
    return resolved.removeprefix(PLACEHOLDER_ORIGIN)


def heading_anchors(anchors: list[Anchor]) -> list[Anchor]:
    """Headings with visible text, in word order."""
    headings = [
        anchor
        for anchor in anchors
        if HEADING_PATTERN.search(anchor.element) and anchor.text and NON_WHITESPACE_PATTERN.search(anchor.text)
    ]
    return sorted(headings, key=lambda anchor: anchor.location)


def _close_section(
    section: SubResult,
    section_start: int,
    end_range: int | None,
    raw_content: str,
    excerpt_length: int,
) -> SubResult | None:
    if not section.locations:
        return None

    relative = [
        WeightedLocation(
            weight=location.weight,
            balanced_score=location.balanced_score,
            location=location.location - section_start,
        )
        for location in section.weighted_locations
    ]
    excerpt_start = calculate_excerpt_region(relative, excerpt_length) + section_start
    length = excerpt_length if end_range is None else min(end_range - excerpt_start, excerpt_length)
    section.excerpt = build_excerpt(
        raw_content,
        excerpt_start,
        length,
        section.locations,
        not_before=section_start,
        not_from=end_range,
    )
    return section


def calculate_sub_results(fragment: Fragment, excerpt_length: int) -> list[SubResult]:
    """Segment the fragment's weighted locations into heading-scoped sub-results.

    Args:
        fragment: Fragment with ``weighted_locations`` already set for the query
        excerpt_length: Maximum excerpt length in words

    Returns:
        Sub-results in page order, each carrying only its own matches
    """
    anchors = deque(heading_anchors(fragment.anchors))
    raw_content = fragment.raw_content or ""
    results: list[SubResult] = []

    section_start = 0
    section = SubResult(title=fragment.title, url=fragment.url)

    for word in fragment.weighted_locations:
        if not anchors or word.location < anchors[0].location:
            section.weighted_locations.append(word)
            section.locations.append(word.location)
            continue

        next_anchor = anchors.popleft()
        closed = _close_section(section, section_start, next_anchor.location, raw_content, excerpt_length)
        if closed is not None:
            results.append(closed)

        while anchors and word.location >= anchors[0].location:
            next_anchor = anchors.popleft()

        section_start = next_anchor.location
        section = SubResult(
            title=next_anchor.text or "",
            url=anchored_url(fragment.url, next_anchor.id),
            anchor=next_anchor,
            weighted_locations=[word],
            locations=[word.location],
        )

    end_range = anchors[0].location if anchors else None
    closed = _close_section(section, section_start, end_range, raw_content, excerpt_length)
    if closed is not None:
        results.append(closed)
    return results
