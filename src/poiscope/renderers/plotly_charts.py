"""Plotly figures for the analytics and map views.

Renderers are pure consumers: they take a Statistics or a visible POI set and
return a Figure. No pipeline state is read or written here.
"""

import math
from collections.abc import Sequence

import plotly.graph_objects as go

from poiscope.compute import display_name
from poiscope.models import Coordinate, EnrichedPOI, Statistics
from poiscope.taxonomy import CategoryTaxonomy

_BAR_COLOR = "rgba(0, 90, 200, 0.7)"
_ORIGIN_COLOR = "#111111"
_MARGIN = dict(l=10, r=10, t=40, b=10)
_CIRCLE_STEPS = 72
_EARTH_RADIUS_M = 6_371_008.8


def render_category_bar(stats: Statistics, taxonomy: CategoryTaxonomy) -> go.Figure:
    """Bar chart of POI counts per category, coloured by the taxonomy."""
    labels = list(stats.counts_by_category)
    fig = go.Figure(
        go.Bar(
            x=labels,
            y=[stats.counts_by_category[label] for label in labels],
            marker_color=[taxonomy.color_for(label) for label in labels],
            name="POIs per category",
        )
    )
    fig.update_layout(title="POIs per category", margin=_MARGIN, showlegend=False)
    return fig


def render_category_donut(stats: Statistics, taxonomy: CategoryTaxonomy) -> go.Figure:
    labels = list(stats.percentage_by_category)
    fig = go.Figure(
        go.Pie(
            labels=labels,
            values=[stats.percentage_by_category[label] for label in labels],
            hole=0.5,
            marker=dict(colors=[taxonomy.color_for(label) for label in labels]),
            sort=False,
        )
    )
    fig.update_layout(title="Category share (%)", margin=_MARGIN)
    return fig


def render_tag_bar(stats: Statistics) -> go.Figure:
    """Amenities in radius, one bar per raw tag value."""
    tags = list(stats.counts_by_tag)
    fig = go.Figure(
        go.Bar(
            x=tags,
            y=[stats.counts_by_tag[t] for t in tags],
            marker_color=_BAR_COLOR,
            name="Amenities in Radius",
        )
    )
    fig.update_layout(title="Amenities in radius", margin=_MARGIN, showlegend=False)
    return fig


def render_distance_histogram(stats: Statistics) -> go.Figure:
    buckets = stats.distance_histogram
    fig = go.Figure(
        go.Bar(
            x=[b.label for b in buckets],
            y=[b.count for b in buckets],
            marker_color=_BAR_COLOR,
            name="Distance from origin",
        )
    )
    fig.update_layout(
        title="Distance from origin",
        margin=_MARGIN,
        showlegend=False,
        xaxis=dict(type="category"),
    )
    return fig


def _circle(center: Coordinate, radius_m: float) -> tuple[list[float], list[float]]:
    """Approximate the search circle as a closed lat/lon ring."""
    lats: list[float] = []
    lons: list[float] = []
    d_lat = math.degrees(radius_m / _EARTH_RADIUS_M)
    d_lon = d_lat / max(math.cos(math.radians(center.latitude)), 1e-6)
    for i in range(_CIRCLE_STEPS):
        theta = 2 * math.pi * i / _CIRCLE_STEPS
        lats.append(center.latitude + d_lat * math.sin(theta))
        lons.append(center.longitude + d_lon * math.cos(theta))
    return [*lats, lats[0]], [*lons, lons[0]]


def render_poi_map(
    pois: Sequence[EnrichedPOI],
    origin: Coordinate,
    radius_m: float,
    taxonomy: CategoryTaxonomy,
    zoom: int = 15,
) -> go.Figure:
    """OpenStreetMap-tiled map with one marker trace per category.

    Args:
        pois: Visible POI set.
        origin: Query centre, drawn as a marker with the radius circle.
        radius_m: Search radius in metres.
        taxonomy: Supplies the category colours.
        zoom: Initial map zoom level.

    Returns:
        Plotly Figure object.
    """
    ring_lat, ring_lon = _circle(origin, radius_m)
    traces: list[go.Scattermap] = [
        go.Scattermap(
            lat=ring_lat,
            lon=ring_lon,
            mode="lines",
            line=dict(color=_ORIGIN_COLOR, width=1),
            hoverinfo="skip",
            name="radius",
        )
    ]

    grouped: dict[str | None, list[EnrichedPOI]] = {}
    for poi in pois:
        grouped.setdefault(poi.category, []).append(poi)
    for category, items in grouped.items():
        traces.append(
            go.Scattermap(
                lat=[p.coordinate.latitude for p in items],
                lon=[p.coordinate.longitude for p in items],
                mode="markers",
                marker=dict(size=10, color=taxonomy.color_for(category), opacity=0.7),
                text=[f"{display_name(p)}<br>{p.tag_value or ''}" for p in items],
                hoverinfo="text",
                name=category or "Other",
            )
        )

    traces.append(
        go.Scattermap(
            lat=[origin.latitude],
            lon=[origin.longitude],
            mode="markers",
            marker=dict(size=14, color=_ORIGIN_COLOR),
            hoverinfo="skip",
            name="origin",
        )
    )

    fig = go.Figure(data=traces)
    fig.update_layout(
        map=dict(
            style="open-street-map",
            center=dict(lat=origin.latitude, lon=origin.longitude),
            zoom=zoom,
        ),
        margin=dict(l=0, r=0, t=0, b=0),
        legend=dict(orientation="h"),
    )
    return fig
