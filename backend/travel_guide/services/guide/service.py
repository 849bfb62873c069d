"""Cache-aside composition of the expensive lookups.

Every method checks its domain cache first, calls the upstream service on a
miss and writes the result back. Cache failures never fail a request; the
caches themselves are fail-open.
"""

import logging

from travel_guide.models import Attraction
from travel_guide.services.ai_description import DescriptionService
from travel_guide.services.attractions import AttractionsService
from travel_guide.services.cache import DomainCaches
from travel_guide.services.wikipedia import WikipediaService, WikipediaSummary

logger = logging.getLogger(__name__)


class TravelGuideService:
    """Attractions, descriptions and images for a place, memoized."""

    def __init__(
        self,
        caches: DomainCaches,
        attractions: AttractionsService,
        wikipedia: WikipediaService,
        ai: DescriptionService | None = None,
        radius_meters: int = 5000,
    ) -> None:
        self._caches = caches
        self._attractions = attractions
        self._wikipedia = wikipedia
        self._ai = ai
        self._radius = radius_meters

    @property
    def ai_enabled(self) -> bool:
        return self._ai is not None

    async def nearby_attractions(
        self, lat: float, lng: float, interests: list[str] | None = None
    ) -> list[Attraction]:
        """Attractions around a position, scored against interests when AI is available.

        Raises:
            NetworkError / UpstreamError: Overpass failed on a cache miss.
        """
        interests = interests or []
        cached = await self._caches.attractions.get_cached(lat, lng, interests)
        if cached is not None:
            logger.info(f"[CACHE] Attractions hit ({lat:.3f}, {lng:.3f}): {len(cached)}")
            return cached

        attractions = await self._attractions.get_nearby_attractions(lat, lng, self._radius)

        if self._ai is not None and interests and attractions:
            scored = await self._ai.classify_attractions(attractions, interests)
            if scored is not attractions:
                # Stable: equal scores keep distance order
                attractions = sorted(
                    scored, key=lambda a: a.interest_score or 0.0, reverse=True
                )

        await self._caches.attractions.cache_attractions(lat, lng, attractions, interests)
        return attractions

    async def place_description(
        self, place: str, interests: list[str] | None = None
    ) -> str | None:
        """AI description of a place, or None when no provider is configured.

        Raises whatever the provider raises on a cache miss.
        """
        interests = interests or []
        cached = await self._caches.descriptions.get_cached(place, interests)
        if cached is not None:
            logger.info(f"[CACHE] Description hit for {place}")
            return cached

        if self._ai is None:
            return None

        description = await self._ai.describe_place(place, interests)
        if description:
            await self._caches.descriptions.cache_description(place, interests, description)
        return description or None

    async def place_image(self, place: str) -> str | None:
        """Wikipedia image URL for a place, or None if there is none."""
        cached = await self._caches.images.get_cached(place)
        if cached is not None:
            logger.info(f"[CACHE] Image hit for {place}")
            return cached

        image_url = await self._wikipedia.get_place_image(place)
        if image_url:
            await self._caches.images.cache_image(place, image_url)
        return image_url

    async def place_summary(self, place: str) -> WikipediaSummary:
        """Wikipedia intro for a place. Not cached; errors come back on the summary."""
        return await self._wikipedia.fetch_summary(place)
