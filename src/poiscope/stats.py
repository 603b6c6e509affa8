"""Aggregate statistics over a POI set. Pure functions, no caching."""

from collections import Counter
from collections.abc import Iterable

from poiscope.models import DistanceBucket, EnrichedPOI, Statistics
from poiscope.taxonomy import OTHER_LABEL

# Bucket lower bounds in metres; each bucket runs to the next bound, the last is open.
HISTOGRAM_EDGES_M: tuple[float, ...] = (0, 100, 200, 300, 500, 1000, 1500)


def distance_histogram(
    distances: Iterable[float], edges: tuple[float, ...] = HISTOGRAM_EDGES_M
) -> tuple[DistanceBucket, ...]:
    """Count distances into [edges[i], edges[i+1]) buckets, the last open-ended.

    Distances below the first edge are counted in the first bucket so that the
    counts always sum to the number of inputs.
    """
    counts = [0] * len(edges)
    for d in distances:
        idx = 0
        for i, low in enumerate(edges):
            if d >= low:
                idx = i
            else:
                break
        counts[idx] += 1
    highs: list[float | None] = [*edges[1:], None]
    return tuple(
        DistanceBucket(low_m=low, high_m=high, count=count)
        for low, high, count in zip(edges, highs, counts)
    )


def compute_statistics(pois: Iterable[EnrichedPOI]) -> Statistics:
    """Summarise a POI set.

    Args:
        pois: Usually the visible (filtered) set.

    Returns:
        Statistics with counts, percentages, top category, and a distance
        histogram. Every field is well-defined for an empty input.
    """
    items = list(pois)
    total = len(items)

    # Counter preserves first-encountered order, which max() relies on for ties
    by_category = Counter(p.category or OTHER_LABEL for p in items)
    by_tag = Counter(p.tag_value for p in items if p.tag_value)

    average = sum(p.distance_m for p in items) / total if total else 0.0
    top = max(by_category, key=by_category.__getitem__) if by_category else None
    percentages = (
        {label: round(count / total * 100, 2) for label, count in by_category.items()}
        if total
        else {}
    )

    return Statistics(
        total_count=total,
        average_distance=average,
        counts_by_category=dict(by_category),
        counts_by_tag=dict(by_tag),
        top_category=top,
        unique_tag_count=len(by_tag),
        percentage_by_category=percentages,
        distance_histogram=distance_histogram(p.distance_m for p in items),
    )
