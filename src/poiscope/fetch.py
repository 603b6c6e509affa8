"""Data source layer — executes Overpass queries with a hard timeout."""

import asyncio
import logging
from typing import Any

import httpx

from poiscope.config import DEFAULT_FETCH_TIMEOUT_MS, DEFAULT_OVERPASS_URL
from poiscope.errors import FetchTimeout, NetworkError, ServerError
from poiscope.models import Coordinate, RawPOI

logger = logging.getLogger(__name__)

USER_AGENT = "poiscope/0.1 (+https://www.openstreetmap.org/)"


def parse_elements(data: Any) -> tuple[RawPOI, ...]:
    """Convert an Overpass JSON document into RawPOI records.

    A missing or empty ``elements`` array yields an empty tuple. Elements with
    no usable position are skipped; ways and relations queried with
    ``out center`` use their centre point.
    """
    if not isinstance(data, dict):
        return ()
    pois: list[RawPOI] = []
    for element in data.get("elements") or []:
        if not isinstance(element, dict) or "id" not in element:
            continue
        point = element if "lat" in element else element.get("center") or {}
        try:
            coordinate = Coordinate(float(point["lat"]), float(point["lon"]))
        except (KeyError, TypeError, ValueError):
            continue
        tags = {str(k): str(v) for k, v in (element.get("tags") or {}).items()}
        pois.append(RawPOI(id=str(element["id"]), coordinate=coordinate, tags=tags))
    return tuple(pois)


class OverpassFetcher:
    """Issues one GET per ``fetch`` call against an Overpass interpreter endpoint.

    Cancellation is the caller's task cancellation: cancelling the awaiting
    task aborts the HTTP request and ``asyncio.CancelledError`` propagates.
    """

    def __init__(
        self,
        endpoint: str = DEFAULT_OVERPASS_URL,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.endpoint = endpoint
        self._client = client

    async def _get(self, payload: str, timeout_s: float) -> httpx.Response:
        params = {"data": payload}
        if self._client is not None:
            return await self._client.get(self.endpoint, params=params, timeout=timeout_s)
        async with httpx.AsyncClient(headers={"User-Agent": USER_AGENT}) as client:
            return await client.get(self.endpoint, params=params, timeout=timeout_s)

    async def fetch(
        self, payload: str, timeout_ms: int = DEFAULT_FETCH_TIMEOUT_MS
    ) -> tuple[RawPOI, ...]:
        """Run a query payload and return the parsed POIs.

        Args:
            payload: Overpass QL query (see ``query.build_query``).
            timeout_ms: Hard deadline for the whole request.

        Returns:
            Parsed POIs; empty when the source found nothing.

        Raises:
            FetchTimeout: The deadline expired; the request was cancelled.
            ServerError: The endpoint answered with a non-2xx status.
            NetworkError: Any other transport failure or an unreadable body.
        """
        timeout_s = timeout_ms / 1000
        logger.info("Fetching POIs from %s (timeout %d ms)", self.endpoint, timeout_ms)
        try:
            response = await asyncio.wait_for(self._get(payload, timeout_s), timeout_s)
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            logger.warning("Overpass request timed out after %d ms", timeout_ms)
            raise FetchTimeout(timeout_ms) from exc
        except httpx.HTTPError as exc:
            logger.warning("Network error while contacting Overpass API: %s", exc)
            raise NetworkError(str(exc) or type(exc).__name__) from exc

        if not response.is_success:
            logger.warning("Overpass API answered HTTP %d", response.status_code)
            raise ServerError(response.status_code)

        try:
            data = response.json()
        except ValueError as exc:
            raise NetworkError(f"invalid JSON response: {exc}") from exc

        pois = parse_elements(data)
        logger.info("Received %d elements", len(pois))
        return pois
