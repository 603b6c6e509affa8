import pytest

from helpers import enriched_poi
from poiscope.stats import HISTOGRAM_EDGES_M, compute_statistics, distance_histogram


def _counts(stats):
    return [b.count for b in stats.distance_histogram]


def test_empty_set_is_well_defined():
    stats = compute_statistics([])
    assert stats.total_count == 0
    assert stats.average_distance == 0.0
    assert stats.counts_by_category == {}
    assert stats.counts_by_tag == {}
    assert stats.top_category is None
    assert stats.unique_tag_count == 0
    assert stats.percentage_by_category == {}
    assert len(stats.distance_histogram) == len(HISTOGRAM_EDGES_M)
    assert sum(_counts(stats)) == 0


def test_counts_average_and_unique_tags():
    pois = [
        enriched_poi("1", 50, "restaurant", "Food"),
        enriched_poi("2", 150, "restaurant", "Food"),
        enriched_poi("3", 250, "fast_food", "Food"),
        enriched_poi("4", 350, "bank", "Money"),
    ]
    stats = compute_statistics(pois)

    assert stats.total_count == 4
    assert stats.average_distance == pytest.approx(200)
    assert stats.counts_by_category == {"Food": 3, "Money": 1}
    assert stats.counts_by_tag == {"restaurant": 2, "fast_food": 1, "bank": 1}
    assert stats.unique_tag_count == 3
    assert stats.top_category == "Food"
    assert stats.percentage_by_category == {"Food": 75.0, "Money": 25.0}


def test_top_category_tie_goes_to_first_encountered():
    pois = [
        enriched_poi("1", 10, "bank", "Money"),
        enriched_poi("2", 20, "cafe", "Cafe"),
        enriched_poi("3", 30, "cafe", "Cafe"),
        enriched_poi("4", 40, "atm", "Money"),
    ]
    assert compute_statistics(pois).top_category == "Money"


def test_unclassified_counts_as_other_and_untagged_is_not_a_tag():
    pois = [
        enriched_poi("1", 10, None, None),
        enriched_poi("2", 20, "bench", None),
    ]
    stats = compute_statistics(pois)
    assert stats.counts_by_category == {"Other": 2}
    assert stats.counts_by_tag == {"bench": 1}


def test_percentages_are_rounded_and_sum_to_about_100():
    pois = [
        enriched_poi("1", 10, "restaurant", "Food"),
        enriched_poi("2", 10, "bank", "Money"),
        enriched_poi("3", 10, "cafe", "Cafe"),
    ]
    stats = compute_statistics(pois)
    assert stats.percentage_by_category == {"Food": 33.33, "Money": 33.33, "Cafe": 33.33}
    assert sum(stats.percentage_by_category.values()) == pytest.approx(100, abs=0.1)


def test_histogram_bucket_boundaries_are_half_open():
    distances = [0, 99.9, 100, 199.99, 200, 300, 499, 500, 999, 1000, 1499, 1500, 25000]
    buckets = distance_histogram(distances)

    assert [(b.low_m, b.high_m) for b in buckets] == [
        (0, 100),
        (100, 200),
        (200, 300),
        (300, 500),
        (500, 1000),
        (1000, 1500),
        (1500, None),
    ]
    assert [b.count for b in buckets] == [2, 2, 1, 2, 2, 2, 2]
    assert buckets[-1].label == "1500+ m"
    assert buckets[0].label == "0-100 m"


def test_histogram_counts_sum_to_total():
    pois = [enriched_poi(str(i), i * 37.5, "cafe", "Cafe") for i in range(80)]
    stats = compute_statistics(pois)
    assert sum(_counts(stats)) == stats.total_count == 80


def test_statistics_are_recomputed_from_scratch():
    first = compute_statistics([enriched_poi("1", 10, "cafe", "Cafe")])
    second = compute_statistics([enriched_poi("2", 700, "bank", "Money")])
    assert first.counts_by_category == {"Cafe": 1}
    assert second.counts_by_category == {"Money": 1}
    assert _counts(second) == [0, 0, 0, 0, 1, 0, 0]
