"""Service wiring.

``ServiceContext`` owns every long-lived collaborator: the persistent store,
the domain caches, the shared Nominatim rate limiter and the HTTP clients.
The app builds one in its lifespan and hands it to routes via ``app.state``.
"""

import logging
from dataclasses import dataclass
from typing import Callable

from travel_guide.config import Settings
from travel_guide.models import SearchState
from travel_guide.services.ai_description import DescriptionService, create_description_service
from travel_guide.services.attractions import AttractionsService
from travel_guide.services.cache import DomainCaches
from travel_guide.services.geocoding import GeocodingService, NominatimGeocodingService
from travel_guide.services.guide import TravelGuideService
from travel_guide.services.rate_limiter import RateLimiter
from travel_guide.services.search import SearchController
from travel_guide.services.storage import (
    InMemoryKeyValueStore,
    KeyValueStore,
    RedisKeyValueStore,
)
from travel_guide.services.wikipedia import WikipediaService

logger = logging.getLogger(__name__)


@dataclass
class ServiceContext:
    settings: Settings
    store: KeyValueStore
    caches: DomainCaches
    nominatim_limiter: RateLimiter
    geocoder: GeocodingService
    attractions: AttractionsService
    wikipedia: WikipediaService
    ai: DescriptionService | None
    guide: TravelGuideService

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        store: KeyValueStore | None = None,
        ai: DescriptionService | None = None,
    ) -> "ServiceContext":
        """Build all services from settings.

        ``store`` and ``ai`` override the configured ones (tests pass an
        in-memory store and a fake provider).
        """
        if store is None:
            if settings.redis_url:
                store = RedisKeyValueStore(settings.redis_url)
            else:
                logger.info("[CACHE] REDIS_URL not set, using in-memory store")
                store = InMemoryKeyValueStore()

        if ai is None:
            ai = create_description_service(
                groq_api_key=settings.groq_api_key or None,
                groq_model=settings.groq_model,
                gemini_api_key=settings.gemini_api_key or None,
                gemini_model=settings.gemini_model,
            )

        caches = DomainCaches(store)
        attractions = AttractionsService(
            overpass_url=settings.overpass_url,
            user_agent=settings.user_agent,
            timeout=settings.request_timeout_seconds,
            max_attractions=settings.max_attractions,
        )
        wikipedia = WikipediaService(
            language=settings.wikipedia_language,
            user_agent=settings.user_agent,
        )
        return cls(
            settings=settings,
            store=store,
            caches=caches,
            nominatim_limiter=RateLimiter(settings.search_rate_limit_seconds),
            geocoder=NominatimGeocodingService(
                base_url=settings.nominatim_url,
                user_agent=settings.user_agent,
                timeout=settings.request_timeout_seconds,
                language=settings.wikipedia_language,
            ),
            attractions=attractions,
            wikipedia=wikipedia,
            ai=ai,
            guide=TravelGuideService(
                caches=caches,
                attractions=attractions,
                wikipedia=wikipedia,
                ai=ai,
                radius_meters=settings.attraction_radius_meters,
            ),
        )

    def new_search_controller(
        self, on_change: Callable[[SearchState], None] | None = None
    ) -> SearchController:
        """A search controller sharing this context's geocoder and rate limiter."""
        return SearchController(
            self.geocoder,
            self.nominatim_limiter,
            debounce_seconds=self.settings.search_debounce_seconds,
            result_limit=self.settings.search_result_limit,
            on_change=on_change,
        )

    async def startup(self) -> dict[str, int]:
        return await self.caches.startup_sweep()

    async def shutdown(self) -> None:
        await self.geocoder.close()
        await self.attractions.close()
        await self.wikipedia.close()
        await self.store.close()
        logger.info("[CONTEXT] Services closed")
