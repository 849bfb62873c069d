"""Travel Guide Services.

Service layer components:
- Storage: Redis-backed key-value store with an in-memory stand-in
- Cache: bounded TTL cache and the attractions/description/image caches
- Rate limiter: minimum spacing between calls to a shared endpoint
- Geocoding: OpenStreetMap Nominatim search and reverse geocoding
- Search: debounced, race-safe incremental location search
- Attractions: OpenStreetMap Overpass points of interest
- Wikipedia: place images and summaries
- AI description: Groq (primary) + Gemini (fallback)
- Guide: cache-aside composition of the above
"""

from .storage import InMemoryKeyValueStore, KeyValueStore, RedisKeyValueStore
from .cache import (
    AttractionsCache,
    BoundedTTLCache,
    DescriptionCache,
    DomainCaches,
    PlaceImageCache,
)
from .rate_limiter import RateLimiter
from .geocoding import GeocodingService, NominatimGeocodingService
from .search import SearchController
from .attractions import AttractionsService
from .wikipedia import WikipediaService
from .ai_description import (
    DescriptionService,
    GeminiDescriptionService,
    GroqDescriptionService,
    create_description_service,
)
from .guide import TravelGuideService
from .context import ServiceContext

__all__ = [
    # Storage
    "InMemoryKeyValueStore",
    "KeyValueStore",
    "RedisKeyValueStore",
    # Cache
    "AttractionsCache",
    "BoundedTTLCache",
    "DescriptionCache",
    "DomainCaches",
    "PlaceImageCache",
    # Search
    "GeocodingService",
    "NominatimGeocodingService",
    "RateLimiter",
    "SearchController",
    # Lookups
    "AttractionsService",
    "WikipediaService",
    "DescriptionService",
    "GeminiDescriptionService",
    "GroqDescriptionService",
    "create_description_service",
    # Composition
    "ServiceContext",
    "TravelGuideService",
]
