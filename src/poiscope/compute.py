"""Pipeline computation layer — distance enrichment, classification, and filtering."""

import asyncio
import math
from collections.abc import Iterable

from poiscope.config import DEFAULT_FETCH_TIMEOUT_MS
from poiscope.fetch import OverpassFetcher
from poiscope.models import (
    Coordinate,
    EnrichedPOI,
    PipelineResult,
    QueryState,
    RawPOI,
)
from poiscope.query import build_query, tag_values_for
from poiscope.stats import compute_statistics
from poiscope.taxonomy import OTHER_LABEL, CategoryTaxonomy

EARTH_RADIUS_M = 6_371_008.8  # IUGG mean radius


def distance_m(a: Coordinate, b: Coordinate) -> float:
    """Haversine great-circle distance in metres."""
    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)
    dlat = lat2 - lat1
    dlon = math.radians(b.longitude - a.longitude)

    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    # Clamp guards asin against h drifting past 1.0 for antipodal points
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(min(1.0, h)))


def classify(tag_value: str | None, taxonomy: CategoryTaxonomy) -> str | None:
    """Return the first category (declaration order) listing tag_value, else None."""
    return taxonomy.category_for(tag_value)


def enrich(
    raw: Iterable[RawPOI],
    origin: Coordinate,
    taxonomy: CategoryTaxonomy | None = None,
) -> tuple[EnrichedPOI, ...]:
    """Attach distance from origin, and the category when a taxonomy is given.

    Args:
        raw: POIs as returned by the fetcher.
        origin: Query centre the distances are measured from.
        taxonomy: Classifies each POI in the same pass. None leaves category unset.

    Returns:
        EnrichedPOI tuple in input order.
    """
    tag_key = taxonomy.tag_key if taxonomy is not None else "amenity"
    out: list[EnrichedPOI] = []
    for poi in raw:
        tag_value = poi.tags.get(tag_key)
        out.append(
            EnrichedPOI(
                id=poi.id,
                coordinate=poi.coordinate,
                tags=poi.tags,
                distance_m=distance_m(origin, poi.coordinate),
                tag_value=tag_value,
                category=classify(tag_value, taxonomy) if taxonomy is not None else None,
            )
        )
    return tuple(out)


def filter_pois(
    enriched: Iterable[EnrichedPOI], selected: Iterable[str]
) -> tuple[EnrichedPOI, ...]:
    """Keep POIs whose category is selected. An empty selection keeps nothing."""
    allowed = frozenset(selected)
    if not allowed:
        return ()
    return tuple(p for p in enriched if p.category is not None and p.category in allowed)


def group_by_category(
    pois: Iterable[EnrichedPOI],
    taxonomy: CategoryTaxonomy | None = None,
) -> dict[str, tuple[EnrichedPOI, ...]]:
    """Group POIs by category label, nearest first within each group.

    Groups follow taxonomy order when a taxonomy is given, otherwise first
    appearance. Unclassified POIs go under "Other", last.
    """
    groups: dict[str, list[EnrichedPOI]] = {}
    if taxonomy is not None:
        groups = {label: [] for label in taxonomy.labels}
    for poi in pois:
        groups.setdefault(poi.category or OTHER_LABEL, []).append(poi)
    if OTHER_LABEL in groups:
        groups[OTHER_LABEL] = groups.pop(OTHER_LABEL)
    return {
        label: tuple(sorted(items, key=lambda p: p.distance_m))
        for label, items in groups.items()
        if items
    }


def display_name(poi: EnrichedPOI) -> str:
    return poi.name or "Unnamed POI"


async def run_pipeline(
    state: QueryState,
    taxonomy: CategoryTaxonomy,
    fetcher: OverpassFetcher,
    timeout_ms: int = DEFAULT_FETCH_TIMEOUT_MS,
) -> PipelineResult:
    """One complete pass: build → fetch → enrich/classify → filter → aggregate.

    Raises:
        BuildError: Invalid radius or origin.
        FetchError: Timeout, server, or network failure.
    """
    payload = build_query(
        state.origin,
        state.radius_m,
        tag_values_for(taxonomy, state.selected_categories),
        tag_key=taxonomy.tag_key,
    )
    raw = await fetcher.fetch(payload, timeout_ms)
    enriched = enrich(raw, state.origin, taxonomy)
    visible = filter_pois(enriched, state.selected_categories)
    return PipelineResult(
        state=state,
        enriched=enriched,
        visible=visible,
        statistics=compute_statistics(visible),
    )


def run(
    state: QueryState,
    taxonomy: CategoryTaxonomy,
    fetcher: OverpassFetcher | None = None,
    timeout_ms: int = DEFAULT_FETCH_TIMEOUT_MS,
) -> PipelineResult:
    """Top-level synchronous entry point for script-style callers.

    Args:
        state: Origin, radius, and category selection.
        taxonomy: Category definitions.
        fetcher: Data source client. A default Overpass client if None.
        timeout_ms: Hard deadline for the fetch.

    Returns:
        Fully computed PipelineResult.
    """
    return asyncio.run(
        run_pipeline(state, taxonomy, fetcher or OverpassFetcher(), timeout_ms)
    )
