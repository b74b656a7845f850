"""Excerpt extraction around the densest cluster of matched words.

Fragments store their content as a word stream: either zero-width-space
delimited (pre-tokenized content such as CJK) or plain whitespace separated
text. Matched words are addressed by their offset in that stream.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
import re

from pagefind_client.domain.model import WeightedLocation


ZERO_WIDTH_SPACE = "\u200b"
WORD_SPLIT_PATTERN = re.compile(r"[\r\n\s]+")

MARK_OPEN = "<mark>"
MARK_CLOSE = "</mark>"


def calculate_excerpt_region(word_positions: Sequence[WeightedLocation], excerpt_length: int) -> int:
    """Find the start offset of the window with the highest matched-word density.

    Args:
        word_positions: Matched locations; scores at the same offset are summed
        excerpt_length: Window width in words

    Returns:
        Offset of the densest window. When several contiguous windows tie, the
        middle one of the first tied run is returned so the excerpt is centered
        on the cluster rather than pinned to its start.
    """
    if not word_positions:
        return 0

    words = [0.0] * (max(position.location for position in word_positions) + 1)
    for position in word_positions:
        words[position.location] += position.balanced_score

    if len(words) <= excerpt_length:
        return 0

    densest = sum(words[:excerpt_length])
    working_sum = densest
    densest_at = [0]

    for start in range(1, len(words) - excerpt_length + 1):
        working_sum += words[start + excerpt_length - 1] - words[start - 1]
        if working_sum > densest:
            densest = working_sum
            densest_at = [start]
        elif working_sum == densest and densest_at[-1] == start - 1:
            densest_at.append(start)

    return densest_at[len(densest_at) // 2]


def split_words(content: str) -> tuple[list[str], str]:
    """Tokenize fragment content, returning the words and the joiner to rebuild it."""
    if ZERO_WIDTH_SPACE in content:
        return content.split(ZERO_WIDTH_SPACE), ""
    return WORD_SPLIT_PATTERN.split(content), " "


def build_excerpt(
    content: str,
    start: int,
    length: int,
    locations: Iterable[int],
    not_before: int | None = None,
    not_from: int | None = None,
) -> str:
    """Build a highlighted excerpt of ``length`` words starting at ``start``.

    Args:
        content: Raw fragment content
        start: First word offset of the excerpt
        length: Number of words
        locations: Word offsets to wrap in ``<mark>``
        not_before: Lower bound of the usable word range (inclusive)
        not_from: Upper bound of the usable word range (exclusive)

    Returns:
        The excerpt text, with the window clamped into the bounds
    """
    words, joiner = split_words(content)

    for location in locations:
        if not 0 <= location < len(words) or words[location].startswith(MARK_OPEN):
            continue
        words[location] = f"{MARK_OPEN}{words[location]}{MARK_CLOSE}"

    end_cap = len(words) if not_from is None else not_from
    start_cap = 0 if not_before is None else not_before

    if end_cap - start_cap < length:
        length = end_cap - start_cap
    if start + length > end_cap:
        start = end_cap - length
    if start < start_cap:
        start = start_cap

    return joiner.join(words[start : start + max(length, 0)]).strip()
