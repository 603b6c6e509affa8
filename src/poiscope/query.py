"""Overpass QL payload construction. No network access happens here."""

import math
import re
from collections.abc import Iterable

from poiscope.errors import BuildError
from poiscope.models import Coordinate
from poiscope.taxonomy import CategoryTaxonomy

OVERPASS_SERVER_TIMEOUT_S = 25


def _quote(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def build_query(
    origin: Coordinate,
    radius_m: float,
    tag_values: Iterable[str] = (),
    *,
    tag_key: str = "amenity",
    timeout_s: int = OVERPASS_SERVER_TIMEOUT_S,
) -> str:
    """Build an Overpass QL query for tagged nodes around a point.

    An empty ``tag_values`` means "every node carrying ``tag_key``"; otherwise
    only nodes whose tag value is one of ``tag_values`` are requested.

    Args:
        origin: Centre of the search circle.
        radius_m: Search radius in metres. Must be positive and finite.
        tag_values: Allowed tag values, e.g. {"restaurant", "fast_food"}.
        tag_key: OSM tag key to filter on.
        timeout_s: Server-side query timeout embedded in the payload.

    Returns:
        The query payload string.

    Raises:
        BuildError: On an invalid radius or coordinate.
    """
    if not math.isfinite(radius_m) or radius_m <= 0:
        raise BuildError(f"radius must be a positive number of metres: {radius_m}")
    if not (math.isfinite(origin.latitude) and math.isfinite(origin.longitude)):
        raise BuildError(f"coordinate is not finite: {origin}")
    if not origin.is_valid:
        raise BuildError(
            f"coordinate out of range: lat={origin.latitude}, lon={origin.longitude}"
        )

    values = sorted(set(tag_values))
    if values:
        pattern = "|".join(re.escape(v) for v in values)
        tag_filter = f'["{_quote(tag_key)}"~"^({_quote(pattern)})$"]'
    else:
        tag_filter = f'["{_quote(tag_key)}"]'

    radius = str(int(radius_m)) if float(radius_m).is_integer() else repr(float(radius_m))
    return (
        f"[out:json][timeout:{timeout_s}];\n"
        f"node(around:{radius},{origin.latitude},{origin.longitude}){tag_filter};\n"
        "out;"
    )


def tag_values_for(
    taxonomy: CategoryTaxonomy, selected: Iterable[str]
) -> tuple[str, ...]:
    """Union of tag values for the selected categories, in taxonomy order."""
    chosen = set(selected)
    out: dict[str, None] = {}
    for label, values in taxonomy.categories.items():
        if label in chosen:
            out.update(dict.fromkeys(sorted(values)))
    return tuple(out)
