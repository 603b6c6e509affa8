"""End-to-end runs against a mocked Overpass endpoint."""

import asyncio

import httpx
import pytest

from helpers import NYC, north_of, overpass_node
from poiscope.compute import run, run_pipeline
from poiscope.errors import FetchTimeout
from poiscope.fetch import OverpassFetcher
from poiscope.models import QueryState
from poiscope.scheduler import QueryScheduler
from poiscope.taxonomy import CategoryTaxonomy

FOOD_ONLY = CategoryTaxonomy.from_lists({"Food": ["restaurant", "fast_food"]})

NYC_ELEMENTS = {
    "elements": [
        overpass_node(1, north_of(NYC, 100.001), amenity="restaurant"),
        overpass_node(2, north_of(NYC, 400), amenity="fast_food"),
        overpass_node(3, north_of(NYC, 50), amenity="bank"),
    ]
}


def _fetcher(handler) -> OverpassFetcher:
    return OverpassFetcher(
        "https://overpass.test/api/interpreter",
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


def _food_state() -> QueryState:
    return QueryState(origin=NYC, radius_m=500, selected_categories=frozenset({"Food"}))


def test_two_food_places_and_a_bank():
    fetcher = _fetcher(lambda request: httpx.Response(200, json=NYC_ELEMENTS))
    result = run(_food_state(), FOOD_ONLY, fetcher)

    assert len(result.enriched) == 3
    assert [p.id for p in result.visible] == ["1", "2"]

    stats = result.statistics
    assert stats.total_count == 2
    assert stats.average_distance == pytest.approx(250, abs=0.01)
    assert stats.top_category == "Food"
    assert stats.counts_by_tag == {"restaurant": 1, "fast_food": 1}
    assert stats.percentage_by_category == {"Food": 100.0}
    histogram = {(b.low_m, b.high_m): b.count for b in stats.distance_histogram}
    assert histogram == {
        (0, 100): 0,
        (100, 200): 1,
        (200, 300): 0,
        (300, 500): 1,
        (500, 1000): 0,
        (1000, 1500): 0,
        (1500, None): 0,
    }


def test_query_sent_upstream_uses_selected_tags():
    seen = []

    def handler(request):
        seen.append(request.url.params["data"])
        return httpx.Response(200, json={"elements": []})

    run(_food_state(), FOOD_ONLY, _fetcher(handler))
    assert 'node(around:500,40.7075,-74.0113)["amenity"~"^(fast_food|restaurant)$"];' in seen[0]


def test_empty_response_is_an_empty_result_not_an_error():
    fetcher = _fetcher(lambda request: httpx.Response(200, json={"elements": []}))
    result = run(_food_state(), FOOD_ONLY, fetcher)

    assert result.visible == ()
    assert result.statistics.total_count == 0
    assert result.statistics.average_distance == 0.0
    assert result.error is None


def test_timeout_raises_from_single_run():
    async def handler(request):
        await asyncio.sleep(5)
        return httpx.Response(200, json=NYC_ELEMENTS)

    with pytest.raises(FetchTimeout):
        asyncio.run(run_pipeline(_food_state(), FOOD_ONLY, _fetcher(handler), timeout_ms=50))


def test_timeout_keeps_previous_visible_set():
    calls = 0

    async def handler(request):
        nonlocal calls
        calls += 1
        if calls > 1:
            await asyncio.sleep(5)
        return httpx.Response(200, json=NYC_ELEMENTS)

    async def scenario():
        scheduler = QueryScheduler(_food_state(), FOOD_ONLY, _fetcher(handler), timeout_ms=50)
        scheduler.refresh()
        await asyncio.wait_for(scheduler.wait_idle(), 2)
        before = scheduler.result
        assert len(before.visible) == 2

        scheduler.refresh()
        await asyncio.wait_for(scheduler.wait_idle(), 2)
        after = scheduler.result

        assert after.visible == before.visible
        assert after.statistics == before.statistics
        assert after.error == "Request timed out. Try again."
        await scheduler.aclose()

    asyncio.run(scenario())
