"""Data model definitions — immutable values passed between query, fetch, enrich, and aggregate stages."""

from collections.abc import Mapping
from dataclasses import dataclass, field, replace


@dataclass(frozen=True)
class Coordinate:
    """A WGS84 point in decimal degrees."""

    latitude: float
    longitude: float

    @property
    def is_valid(self) -> bool:
        return -90.0 <= self.latitude <= 90.0 and -180.0 <= self.longitude <= 180.0


@dataclass(frozen=True)
class RawPOI:
    """A single tagged node as returned by the data source. Never mutated."""

    id: str  # OSM element id, stringified
    coordinate: Coordinate
    tags: Mapping[str, str] = field(default_factory=dict, hash=False)


@dataclass(frozen=True)
class EnrichedPOI:
    """RawPOI plus distance from the query origin and its category label."""

    id: str
    coordinate: Coordinate
    tags: Mapping[str, str] = field(hash=False)
    distance_m: float  # Great-circle distance from origin (metres)
    tag_value: str | None  # Value of the taxonomy tag key ("restaurant", ...)
    category: str | None  # Category label, None when unclassified

    @property
    def name(self) -> str | None:
        return self.tags.get("name")


@dataclass(frozen=True)
class QueryState:
    """Current query parameters. Replaced wholesale on every user mutation."""

    origin: Coordinate
    radius_m: int
    selected_categories: frozenset[str] = frozenset()

    def with_origin(self, origin: Coordinate) -> "QueryState":
        return replace(self, origin=origin)

    def with_radius(self, radius_m: int) -> "QueryState":
        return replace(self, radius_m=radius_m)

    def with_selection(self, selected: frozenset[str]) -> "QueryState":
        return replace(self, selected_categories=frozenset(selected))


@dataclass(frozen=True)
class DistanceBucket:
    """One histogram bar: POIs with low_m <= distance < high_m."""

    low_m: float
    high_m: float | None  # None = open-ended final bucket
    count: int

    @property
    def label(self) -> str:
        if self.high_m is None:
            return f"{self.low_m:g}+ m"
        return f"{self.low_m:g}-{self.high_m:g} m"


@dataclass(frozen=True)
class Statistics:
    """Summary of a POI set. Always recomputed from scratch."""

    total_count: int
    average_distance: float
    counts_by_category: dict[str, int]
    counts_by_tag: dict[str, int]
    top_category: str | None
    unique_tag_count: int
    percentage_by_category: dict[str, float]
    distance_histogram: tuple[DistanceBucket, ...]


@dataclass(frozen=True)
class PipelineResult:
    """The sole input to renderers. Snapshot of the last published pipeline state."""

    state: QueryState  # Parameters that produced `enriched`
    enriched: tuple[EnrichedPOI, ...]  # Full classified set from the last good fetch
    visible: tuple[EnrichedPOI, ...]  # After category filter
    statistics: Statistics  # Computed over `visible`
    loading: bool = False
    error: str | None = None  # User-facing message of the last failed fetch
