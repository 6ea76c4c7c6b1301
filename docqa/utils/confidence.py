"""Relevance and confidence scoring for retrieved chunks.

The vector index reports cosine *distance* (0 = identical, up to 2 for
opposite vectors).  Everything user-facing is expressed as *relevance*,
``1 - distance`` clamped to [0.0, 1.0], and the answer confidence is the
mean relevance of the hits used to build it.
"""

from collections.abc import Iterable


def relevance_from_distance(distance: float) -> float:
    """Convert a cosine distance into a relevance score in [0.0, 1.0].

    Distances above 1.0 (dissimilar high-dimensional vectors) clamp to 0.0;
    slightly negative distances from float noise clamp to 1.0.
    """
    return max(0.0, min(1.0, 1.0 - distance))


def mean_confidence(distances: Iterable[float], ndigits: int = 3) -> float:
    """Average relevance across *distances*, rounded to *ndigits*.

    Returns 0.0 for an empty input.
    """
    relevances = [relevance_from_distance(d) for d in distances]
    if not relevances:
        return 0.0
    return round(sum(relevances) / len(relevances), ndigits)
