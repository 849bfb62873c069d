"""Geocoding service using OpenStreetMap Nominatim.

Provides forward search (what the search box queries as the user types),
conversion of a chosen result into ``CityInfo``, and reverse geocoding of a
device position.

Nominatim allows one request per second. This service does NOT throttle
itself: callers share a ``RateLimiter`` from the service context and wait on
it before each request.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from travel_guide.models import (
    CityInfo,
    Coordinates,
    NetworkError,
    SearchResult,
    UpstreamError,
)

logger = logging.getLogger(__name__)

# Address fields that name a settlement, most specific first
PRIMARY_NAME_FIELDS = ("city", "town", "village", "municipality")


def parse_search_result(item: dict[str, Any]) -> SearchResult:
    """Map one Nominatim search record to a ``SearchResult``.

    ``primary_name`` prefers city/town/village/municipality, then the
    record's ``name``, then the first comma segment of ``display_name``.
    ``secondary_info`` is ``"State, Country"`` with missing parts left out.

    Raises:
        KeyError, ValueError: If required fields are missing or malformed.
    """
    address = item.get("address") or {}
    display_name = item.get("display_name", "")

    primary_name = next(
        (address[field] for field in PRIMARY_NAME_FIELDS if address.get(field)),
        None,
    ) or item.get("name") or display_name.split(",")[0].strip()

    secondary_parts = [address[field] for field in ("state", "country") if address.get(field)]

    return SearchResult(
        id=str(item["place_id"]),
        display_name=display_name,
        primary_name=primary_name,
        secondary_info=", ".join(secondary_parts),
        coordinates=Coordinates(lat=float(item["lat"]), lng=float(item["lon"])),
        type=item.get("type") or "unknown",
        importance=float(item.get("importance") or 0),
    )


class GeocodingService(ABC):
    """Abstract base class for geocoding services."""

    @abstractmethod
    async def search_locations(self, query: str, limit: int = 5) -> list[SearchResult]:
        """Search places by free text. Empty queries return [] without a request."""
        pass

    @abstractmethod
    async def reverse_geocode(self, lat: float, lng: float) -> CityInfo | None:
        """Resolve coordinates to the containing settlement."""
        pass

    async def select_search_result(self, result: SearchResult) -> CityInfo:
        """Turn a chosen search result into ``CityInfo``.

        ``secondary_info`` is ``"State, Country"`` or just ``"Country"``, so the
        last segment is the country and the first one is the state when
        there are at least two.
        """
        parts = result.secondary_info.split(", ") if result.secondary_info else []
        return CityInfo(
            city=result.primary_name,
            country=parts[-1] if parts else "",
            state=parts[0] if len(parts) > 1 else None,
            full_address=result.display_name,
            lat=result.coordinates.lat,
            lng=result.coordinates.lng,
        )

    async def close(self) -> None:
        pass


class NominatimGeocodingService(GeocodingService):
    """Nominatim HTTP client.

    Uses a shared httpx client so consecutive searches reuse the connection.
    """

    def __init__(
        self,
        base_url: str = "https://nominatim.openstreetmap.org",
        user_agent: str = "TravelGuideApp/1.0",
        timeout: float = 20.0,
        language: str = "de",
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._language = language
        self._headers = {"User-Agent": user_agent}
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the shared HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self._timeout, headers=self._headers)
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _get_json(self, path: str, params: dict[str, Any]) -> Any:
        """GET a Nominatim endpoint and decode JSON, translating failures."""
        url = f"{self._base_url}/{path}"
        try:
            response = await self._get_client().get(url, params=params)
            response.raise_for_status()
            return response.json()
        except httpx.TimeoutException as e:
            raise NetworkError(f"Nominatim request timed out: {path}") from e
        except httpx.HTTPStatusError as e:
            raise UpstreamError(
                f"Nominatim returned {e.response.status_code} for {path}",
                status_code=e.response.status_code,
            ) from e
        except httpx.TransportError as e:
            raise NetworkError(f"Nominatim unreachable: {e}") from e
        except ValueError as e:
            raise UpstreamError(f"Nominatim returned invalid JSON for {path}") from e

    async def search_locations(self, query: str, limit: int = 5) -> list[SearchResult]:
        query = query.strip()
        if not query:
            return []

        params = {
            "q": query,
            "format": "json",
            "limit": limit,
            "addressdetails": 1,
            "accept-language": self._language,
        }
        data = await self._get_json("search", params)
        if not isinstance(data, list):
            logger.info(f"[GEOCODE] Unexpected search payload for {query!r}")
            return []

        results = []
        for item in data:
            try:
                results.append(parse_search_result(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.info(f"[GEOCODE] Skipping malformed record: {e}")
        logger.info(f"[GEOCODE] {query!r}: {len(results)} results")
        return results

    async def reverse_geocode(self, lat: float, lng: float) -> CityInfo | None:
        params = {
            "lat": lat,
            "lon": lng,
            "format": "json",
            "accept-language": self._language,
        }
        data = await self._get_json("reverse", params)
        if not isinstance(data, dict) or "display_name" not in data:
            return None

        address = data.get("address") or {}
        city = next(
            (address[field] for field in (*PRIMARY_NAME_FIELDS, "county") if address.get(field)),
            None,
        ) or data["display_name"].split(",")[0].strip()

        return CityInfo(
            city=city,
            country=address.get("country", ""),
            state=address.get("state"),
            full_address=data["display_name"],
            lat=float(data.get("lat", lat)),
            lng=float(data.get("lon", lng)),
        )
