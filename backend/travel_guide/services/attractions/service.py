"""OpenStreetMap Overpass API service for nearby attractions.

Architecture:
1. Overpass: every ``tourism`` / ``historic`` node within a radius
2. Drop unnamed or coordinate-less elements
3. Distance from the user via haversine, nearest first
4. Cap the list at ``max_attractions``

Results are what ``AttractionsCache`` memoizes per ~111 m cell.
"""

import logging
import zlib
from typing import Any

import httpx

from travel_guide.models import Attraction, NetworkError, UpstreamError
from travel_guide.utils.geo import distance_meters

logger = logging.getLogger(__name__)


def stable_rating(element_id: str) -> float:
    """Deterministic placeholder rating in [4.0, 5.0) derived from the id.

    Overpass has no ratings; a stable value keeps cached and freshly
    fetched lists identical.
    """
    return round(4.0 + (zlib.crc32(element_id.encode()) % 1000) / 1000, 2)


class AttractionsService:
    """Overpass API client for points of interest around a position."""

    OVERPASS_URL = "https://overpass-api.de/api/interpreter"

    def __init__(
        self,
        overpass_url: str = OVERPASS_URL,
        user_agent: str = "TravelGuideApp/1.0",
        timeout: float = 20.0,
        max_attractions: int = 20,
    ) -> None:
        self._overpass_url = overpass_url
        self._timeout = timeout
        self._max_attractions = max_attractions
        self._headers = {"User-Agent": user_agent}

    async def close(self) -> None:
        pass  # No persistent client to close

    @staticmethod
    def build_query(lat: float, lng: float, radius: int) -> str:
        """Build the Overpass QL query for named tourism/historic nodes."""
        return f"""
[out:json][timeout:20];
(
  node["tourism"](around:{radius},{lat},{lng});
  node["historic"](around:{radius},{lat},{lng});
);
out center 30;
"""

    async def get_nearby_attractions(
        self, lat: float, lng: float, radius: int = 5000
    ) -> list[Attraction]:
        """Fetch attractions within ``radius`` meters, nearest first.

        Raises:
            NetworkError: Overpass unreachable or timed out.
            UpstreamError: Overpass answered with an error or bad payload.
        """
        query = self.build_query(lat, lng, radius)
        try:
            async with httpx.AsyncClient(timeout=self._timeout, headers=self._headers) as client:
                response = await client.post(
                    self._overpass_url,
                    data={"data": query},
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                )
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException as e:
            raise NetworkError("Overpass request timed out") from e
        except httpx.HTTPStatusError as e:
            raise UpstreamError(
                f"Overpass returned {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.TransportError as e:
            raise NetworkError(f"Overpass unreachable: {e}") from e
        except ValueError as e:
            raise UpstreamError("Overpass returned invalid JSON") from e

        elements = data.get("elements", []) if isinstance(data, dict) else []
        attractions = self.parse_elements(elements, lat, lng)
        logger.info(f"[OSM] {len(attractions)} attractions near ({lat:.3f}, {lng:.3f})")
        return attractions

    def parse_elements(
        self, elements: list[dict[str, Any]], lat: float, lng: float
    ) -> list[Attraction]:
        """Convert Overpass elements to attractions sorted by distance."""
        attractions = []
        for index, element in enumerate(elements):
            tags = element.get("tags") or {}
            name = tags.get("name")
            if not name:
                continue

            center = element.get("center") or {}
            el_lat = element.get("lat") or center.get("lat")
            el_lng = element.get("lon") or center.get("lon")
            if not el_lat or not el_lng:
                continue

            element_id = str(element.get("id", index))
            attractions.append(Attraction(
                id=element_id,
                name=name,
                lat=el_lat,
                lng=el_lng,
                type=tags.get("tourism") or tags.get("historic") or tags.get("amenity") or "attraction",
                distance=round(distance_meters(lat, lng, el_lat, el_lng)),
                rating=stable_rating(element_id),
                description=tags.get("description") or tags.get("wikipedia:de") or "",
            ))

        attractions.sort(key=lambda a: a.distance)
        return attractions[: self._max_attractions]
