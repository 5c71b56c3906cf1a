"""
Fuzzy repair suggestions for broken heading links.

Candidates are ranked by Jaro-Winkler similarity, which rewards characters
shared in the same relative order and tolerates transpositions, so typos like
`Wiregaurd` still rank `Wireguard` first.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

# Standard Jaro-Winkler constants: prefix weight and max common prefix length.
_PREFIX_SCALE = 0.1
_MAX_PREFIX = 4


@dataclass(frozen=True)
class Suggestion:
    heading: str
    score: float
    """Similarity to the broken heading, from 0.0 to 1.0."""


def _jaro(a: str, b: str) -> float:
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0

    window = max(max(len(a), len(b)) // 2 - 1, 0)
    a_matched = [False] * len(a)
    b_matched = [False] * len(b)

    matches = 0
    for i, char in enumerate(a):
        lo = max(0, i - window)
        hi = min(i + window + 1, len(b))
        for j in range(lo, hi):
            if not b_matched[j] and b[j] == char:
                a_matched[i] = b_matched[j] = True
                matches += 1
                break
    if matches == 0:
        return 0.0

    # Count matched characters that appear in a different order.
    transpositions = 0
    j = 0
    for i, char in enumerate(a):
        if not a_matched[i]:
            continue
        while not b_matched[j]:
            j += 1
        if char != b[j]:
            transpositions += 1
        j += 1

    m = float(matches)
    return (m / len(a) + m / len(b) + (m - transpositions / 2) / m) / 3


def similarity(a: str, b: str) -> float:
    """
    Case-insensitive Jaro-Winkler similarity of two strings.

    Returns 1.0 for identical strings and 0.0 for strings with no characters
    in common.
    """
    a = a.casefold()
    b = b.casefold()
    jaro = _jaro(a, b)

    prefix = 0
    for char_a, char_b in zip(a[:_MAX_PREFIX], b[:_MAX_PREFIX]):
        if char_a != char_b:
            break
        prefix += 1

    return min(1.0, jaro + prefix * _PREFIX_SCALE * (1.0 - jaro))


def rank_suggestions(
    broken_heading: str, candidates: Sequence[str], limit: int | None = None
) -> list[Suggestion]:
    """
    Rank `candidates` by similarity to `broken_heading`, best first.

    Every candidate is returned (no threshold); ties keep the candidates'
    original order. Pass `limit` to keep only the top entries.
    """
    scored = [Suggestion(heading, similarity(broken_heading, heading)) for heading in candidates]
    # sorted() is stable, so equal scores stay in document order.
    ranked = sorted(scored, key=lambda s: s.score, reverse=True)
    if limit is not None and limit > 0:
        ranked = ranked[:limit]
    return ranked
