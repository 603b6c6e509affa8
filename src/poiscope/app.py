"""poiscope — Streamlit dashboard for OpenStreetMap points of interest around a location."""

import streamlit as st
from dotenv import load_dotenv

load_dotenv()

from poiscope.compute import display_name, filter_pois, group_by_category, run  # noqa: E402
from poiscope.config import (  # noqa: E402
    DEFAULT_PLACE,
    DEFAULT_RADIUS_M,
    RADIUS_MAX_M,
    RADIUS_MIN_M,
    RADIUS_STEP_M,
    SAVED_PLACES,
    Settings,
    clamp_radius,
    configure_logging,
)
from poiscope.errors import BuildError, FetchError  # noqa: E402
from poiscope.fetch import OverpassFetcher  # noqa: E402
from poiscope.models import Coordinate, QueryState  # noqa: E402
from poiscope.renderers.plotly_charts import (  # noqa: E402
    render_category_bar,
    render_category_donut,
    render_distance_histogram,
    render_poi_map,
    render_tag_bar,
)
from poiscope.stats import compute_statistics  # noqa: E402
from poiscope.taxonomy import DEFAULT_TAXONOMY  # noqa: E402

_settings = Settings.from_env()
configure_logging(_settings.log_level)
_taxonomy = DEFAULT_TAXONOMY

st.set_page_config(page_title="OSM Analytics Dashboard", page_icon="📍", layout="wide")

# --- Session state initialization ---
if "result" not in st.session_state:
    st.session_state.result = None
if "error_msg" not in st.session_state:
    st.session_state.error_msg = None
if "lat" not in st.session_state:
    st.session_state.lat = DEFAULT_PLACE.coordinate.latitude
if "lon" not in st.session_state:
    st.session_state.lon = DEFAULT_PLACE.coordinate.longitude
if "radius" not in st.session_state:
    st.session_state.radius = DEFAULT_RADIUS_M
if "selected" not in st.session_state:
    st.session_state.selected = list(_taxonomy.labels)


def _run_query() -> None:
    """Fetch for the current inputs. On failure the last good result stays on screen."""
    state = QueryState(
        origin=Coordinate(st.session_state.lat, st.session_state.lon),
        radius_m=clamp_radius(st.session_state.radius),
        selected_categories=frozenset(st.session_state.selected),
    )
    fetcher = OverpassFetcher(_settings.overpass_url)
    st.session_state.error_msg = None
    with st.spinner("Loading POIs..."):
        try:
            st.session_state.result = run(
                state, _taxonomy, fetcher, timeout_ms=_settings.fetch_timeout_ms
            )
        except FetchError as e:
            st.session_state.error_msg = e.user_message
        except BuildError as e:
            st.session_state.error_msg = f"Invalid query: {e}"


def _on_saved_place() -> None:
    name = st.session_state.saved_place
    place = next((p for p in SAVED_PLACES if p.name == name), None)
    if place is None:
        return
    st.session_state.lat = place.coordinate.latitude
    st.session_state.lon = place.coordinate.longitude
    _run_query()


# --- Header ---
st.markdown("## [OSM](https://www.openstreetmap.org/) Analytics Dashboard")

# --- Input panel ---
col1, col2, col3, col4 = st.columns([1, 1, 2, 1])
with col1:
    st.number_input("Lat", key="lat", min_value=-90.0, max_value=90.0, format="%.6f", step=0.000001)
with col2:
    st.number_input("Lon", key="lon", min_value=-180.0, max_value=180.0, format="%.6f", step=0.000001)
with col3:
    st.selectbox(
        "Saved Places",
        [p.name for p in SAVED_PLACES],
        index=SAVED_PLACES.index(DEFAULT_PLACE),
        key="saved_place",
        on_change=_on_saved_place,
    )
with col4:
    st.number_input(
        "Radius (m)",
        key="radius",
        min_value=RADIUS_MIN_M,
        max_value=RADIUS_MAX_M,
        step=RADIUS_STEP_M,
    )

col5, col6 = st.columns([4, 1])
with col5:
    st.multiselect(
        "Filter Categories", list(_taxonomy.labels), key="selected", on_change=_run_query
    )
with col6:
    st.markdown("<div style='height:1.9rem'></div>", unsafe_allow_html=True)
    submitted = st.button("Update Map", use_container_width=True)

# Initial query on first load; later runs come from widget callbacks or the button
if submitted or st.session_state.result is None and st.session_state.error_msg is None:
    _run_query()

result = st.session_state.result
# The last fetch was made for this selection, so filtering locally is exact
visible = filter_pois(result.enriched, st.session_state.selected) if result else ()
stats = compute_statistics(visible)

# --- Status message ---
if st.session_state.error_msg:
    st.error(st.session_state.error_msg)
elif result is not None and not visible and st.session_state.selected:
    st.info("No POIs found.")

# --- Tabs ---
tab_map, tab_analytics, tab_list = st.tabs(["Map", "Analytics", "List"])

with tab_map:
    if result is not None:
        st.plotly_chart(
            render_poi_map(visible, result.state.origin, result.state.radius_m, _taxonomy),
            use_container_width=True,
        )

with tab_analytics:
    if stats.total_count:
        m1, m2, m3, m4 = st.columns(4)
        m1.metric("Total POIs", stats.total_count)
        m2.metric("Avg distance", f"{stats.average_distance:.0f} m")
        m3.metric("Top category", stats.top_category or "-")
        m4.metric("Unique tags", stats.unique_tag_count)
        c1, c2 = st.columns(2)
        c1.plotly_chart(render_category_bar(stats, _taxonomy), use_container_width=True)
        c2.plotly_chart(render_category_donut(stats, _taxonomy), use_container_width=True)
        c3, c4 = st.columns(2)
        c3.plotly_chart(render_tag_bar(stats), use_container_width=True)
        c4.plotly_chart(render_distance_histogram(stats), use_container_width=True)

with tab_list:
    st.markdown("### List of Points of Interest")
    if not visible:
        st.markdown("No POIs available.")
    for label, items in group_by_category(visible, _taxonomy).items():
        st.markdown(f"**{label}** ({len(items)})")
        st.markdown(
            "\n".join(
                f"- {display_name(p)} ({p.tag_value}) · {p.distance_m:.0f} m" for p in items
            )
        )
