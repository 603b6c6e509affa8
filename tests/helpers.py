"""Shared builders and fakes for the test suite."""

import asyncio
import math

from poiscope.compute import EARTH_RADIUS_M
from poiscope.models import Coordinate, EnrichedPOI, RawPOI

NYC = Coordinate(40.7075, -74.0113)


def north_of(origin: Coordinate, meters: float) -> Coordinate:
    """Point `meters` due north of origin along the meridian."""
    return Coordinate(origin.latitude + math.degrees(meters / EARTH_RADIUS_M), origin.longitude)


def raw_poi(poi_id: str, coordinate: Coordinate, **tags: str) -> RawPOI:
    return RawPOI(id=poi_id, coordinate=coordinate, tags=tags)


def enriched_poi(
    poi_id: str,
    distance: float,
    tag_value: str | None,
    category: str | None,
    name: str | None = None,
) -> EnrichedPOI:
    tags = {"amenity": tag_value} if tag_value else {}
    if name:
        tags["name"] = name
    return EnrichedPOI(
        id=poi_id,
        coordinate=NYC,
        tags=tags,
        distance_m=distance,
        tag_value=tag_value,
        category=category,
    )


def overpass_node(poi_id: int, coordinate: Coordinate, **tags: str) -> dict:
    return {
        "type": "node",
        "id": poi_id,
        "lat": coordinate.latitude,
        "lon": coordinate.longitude,
        "tags": tags,
    }


class FakeFetcher:
    """Scripted stand-in for OverpassFetcher.

    Each call consumes the next response: a tuple of RawPOI is returned, an
    exception instance is raised, and a zero-argument coroutine function is
    awaited. Calls beyond the script return an empty tuple.
    """

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls: list[str] = []
        self.cancelled: list[int] = []

    async def fetch(self, payload: str, timeout_ms: int):
        index = len(self.calls)
        self.calls.append(payload)
        response = self.responses[index] if index < len(self.responses) else ()
        try:
            if isinstance(response, BaseException):
                raise response
            if callable(response):
                return await response()
            return tuple(response)
        except asyncio.CancelledError:
            self.cancelled.append(index)
            raise
