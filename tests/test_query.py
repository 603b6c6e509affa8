import math

import pytest

from helpers import NYC
from poiscope.errors import BuildError
from poiscope.models import Coordinate
from poiscope.query import build_query, tag_values_for


def test_empty_tag_filter_requests_all_amenities():
    query = build_query(NYC, 500)
    assert query.startswith("[out:json][timeout:25];")
    assert 'node(around:500,40.7075,-74.0113)["amenity"];' in query
    assert query.rstrip().endswith("out;")


def test_tag_filter_is_sorted_anchored_alternation():
    query = build_query(NYC, 500, {"restaurant", "fast_food"})
    assert '["amenity"~"^(fast_food|restaurant)$"]' in query


def test_custom_tag_key_and_fractional_radius():
    query = build_query(NYC, 250.5, ["park"], tag_key="leisure")
    assert "around:250.5," in query
    assert '["leisure"~"^(park)$"]' in query


def test_regex_metacharacters_are_escaped():
    query = build_query(NYC, 100, ["a.b"])
    assert r"a\\.b" in query


@pytest.mark.parametrize("radius", [0, -10, math.inf, math.nan])
def test_invalid_radius_raises_build_error(radius):
    with pytest.raises(BuildError):
        build_query(NYC, radius)


@pytest.mark.parametrize(
    "origin",
    [Coordinate(91.0, 0.0), Coordinate(0.0, -181.0), Coordinate(math.nan, 0.0)],
)
def test_invalid_coordinate_raises_build_error(origin):
    with pytest.raises(BuildError):
        build_query(origin, 500)


def test_build_error_is_a_value_error():
    with pytest.raises(ValueError):
        build_query(NYC, 0)


def test_tag_values_for_follows_taxonomy_order(taxonomy):
    values = tag_values_for(taxonomy, {"Money", "Food"})
    assert values == ("fast_food", "restaurant", "atm", "bank")


def test_tag_values_for_deduplicates_shared_values(taxonomy):
    values = tag_values_for(taxonomy, {"Food", "Cafe"})
    assert values.count("restaurant") == 1
    assert "cafe" in values


def test_tag_values_for_empty_selection(taxonomy):
    assert tag_values_for(taxonomy, ()) == ()
