"""String similarity used to cluster pending submissions."""

from __future__ import annotations

from functools import lru_cache
from typing import Tuple

import jellyfish

from .helpers import normalize_name

DEFAULT_LENGTH_RATIO_CUTOFF = 1.5

_SIMILARITY_CACHE_SIZE = 8192


def _ordered_pair(text1: str, text2: str) -> Tuple[str, str]:
    """Return a deterministic ordering of two strings for cache keys."""

    return (text1, text2) if text1 <= text2 else (text2, text1)


@lru_cache(maxsize=_SIMILARITY_CACHE_SIZE)
def _cached_similarity(first: str, second: str, length_ratio_cutoff: float) -> float:
    if first == second:
        return 1.0
    if not first or not second:
        return 0.0

    longer, shorter = (first, second) if len(first) > len(second) else (second, first)
    if len(longer) > len(shorter) * length_ratio_cutoff:
        return 0.0

    distance = jellyfish.levenshtein_distance(shorter, longer)
    return 1.0 - distance / len(longer)


def string_similarity(
    text1: str | None,
    text2: str | None,
    *,
    length_ratio_cutoff: float = DEFAULT_LENGTH_RATIO_CUTOFF,
) -> float:
    """Return the normalised Levenshtein similarity of two names in ``[0, 1]``.

    Comparison ignores case and surrounding whitespace. Identical keys score
    ``1.0`` and an empty key scores ``0.0``. When the longer key exceeds the
    shorter one by more than ``length_ratio_cutoff`` the pair is rejected
    outright with ``0.0`` (``"MIT"`` never matches a long program name).
    """

    first, second = _ordered_pair(normalize_name(text1), normalize_name(text2))
    return _cached_similarity(first, second, length_ratio_cutoff)


__all__ = ["string_similarity", "DEFAULT_LENGTH_RATIO_CUTOFF"]
