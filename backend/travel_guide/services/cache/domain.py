"""Domain caches for the three expensive lookups.

Each class is a thin named configuration over ``BoundedTTLCache`` that owns
its namespace key, TTL, capacity, key derivation and validity rule. Callers
only see ``get_cached`` / ``cache_*`` / ``clear*``.

| Cache             | Namespace                 | TTL  | Max | Valid when                  |
|-------------------|---------------------------|------|-----|-----------------------------|
| AttractionsCache  | attractions_cache_v1      | 1 h  | 10  | stored interests == current |
| DescriptionCache  | ai_description_cache_v1   | 7 d  | 30  | (expiry only)               |
| PlaceImageCache   | city_image_cache_v1       | 24 h | 20  | URL is not null / "null"    |
"""

import logging
from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable

from travel_guide.models import Attraction
from travel_guide.services.storage import KeyValueStore

from .service import BoundedTTLCache

logger = logging.getLogger(__name__)

HOUR = 60 * 60
DAY = 24 * HOUR


def _fixed3(value: float) -> str:
    """``value`` to 3 decimals, exact ties rounded away from zero like JS ``toFixed``."""
    return f"{Decimal(value).quantize(Decimal('0.001'), rounding=ROUND_HALF_UP):f}"


def attraction_cache_key(lat: float, lng: float) -> str:
    """Round to 3 decimals (~111 m of latitude) and join as ``"lat,lng"``.

    Example:
        >>> attraction_cache_key(52.520008, 13.404954)
        '52.520,13.405'
        >>> attraction_cache_key(52.0625, -13.1875)
        '52.063,-13.188'
    """
    return f"{_fixed3(lat)},{_fixed3(lng)}"


def description_cache_key(place: str, interests: Iterable[str]) -> str:
    """Lowercased place plus the sorted interest ids.

    Example:
        >>> description_cache_key("Berlin", ["nature", "art"])
        'berlin_art,nature'
    """
    return f"{place.lower()}_{','.join(sorted(interests))}"


def is_valid_image_url(value: Any) -> bool:
    """A cached image must be a real URL string, not None or the text "null"."""
    return isinstance(value, str) and value.strip() not in ("", "null")


class AttractionsCache:
    """Nearby attractions keyed by a ~111 m coordinate cell.

    The interest set used for the fetch is stored alongside the list; a
    lookup with a different set (order ignored) is a miss even when the
    entry has not expired.
    """

    NAMESPACE = "attractions_cache_v1"
    TTL_SECONDS = HOUR
    MAX_ENTRIES = 10

    def __init__(self, store: KeyValueStore, clock: Callable[[], float] | None = None) -> None:
        kwargs = {"clock": clock} if clock else {}
        self._cache = BoundedTTLCache(store, self.MAX_ENTRIES, **kwargs)

    async def get_cached(
        self, lat: float, lng: float, interests: Iterable[str]
    ) -> list[Attraction] | None:
        wanted = set(interests)

        def matches_interests(payload: Any) -> bool:
            return (
                isinstance(payload, dict)
                and isinstance(payload.get("interests"), list)
                and set(payload["interests"]) == wanted
            )

        payload = await self._cache.get(
            self.NAMESPACE, attraction_cache_key(lat, lng), is_valid=matches_interests
        )
        if payload is None:
            return None
        try:
            return [Attraction.model_validate(item) for item in payload.get("attractions", [])]
        except ValueError as e:
            logger.info(f"[CACHE] Unreadable attractions entry, ignoring: {e}")
            return None

    async def cache_attractions(
        self,
        lat: float,
        lng: float,
        attractions: list[Attraction],
        interests: Iterable[str],
    ) -> bool:
        payload = {
            "attractions": [a.model_dump() for a in attractions],
            "interests": sorted(set(interests)),
        }
        return await self._cache.put(
            self.NAMESPACE, attraction_cache_key(lat, lng), payload, self.TTL_SECONDS
        )

    async def clear(self) -> bool:
        return await self._cache.clear(self.NAMESPACE)

    async def clear_expired(self) -> int:
        return await self._cache.invalidate_expired(self.NAMESPACE)


class DescriptionCache:
    """Generated place descriptions keyed by place and interests."""

    NAMESPACE = "ai_description_cache_v1"
    TTL_SECONDS = 7 * DAY
    MAX_ENTRIES = 30

    def __init__(self, store: KeyValueStore, clock: Callable[[], float] | None = None) -> None:
        kwargs = {"clock": clock} if clock else {}
        self._cache = BoundedTTLCache(store, self.MAX_ENTRIES, **kwargs)

    async def get_cached(self, place: str, interests: Iterable[str]) -> str | None:
        value = await self._cache.get(self.NAMESPACE, description_cache_key(place, interests))
        return value if isinstance(value, str) else None

    async def cache_description(
        self, place: str, interests: Iterable[str], description: str
    ) -> bool:
        return await self._cache.put(
            self.NAMESPACE,
            description_cache_key(place, interests),
            description,
            self.TTL_SECONDS,
        )

    async def clear_expired(self) -> int:
        return await self._cache.invalidate_expired(self.NAMESPACE)

    async def clear(self) -> bool:
        return await self._cache.clear(self.NAMESPACE)


class PlaceImageCache:
    """Place image URLs keyed by the raw (case-sensitive) place name."""

    NAMESPACE = "city_image_cache_v1"
    TTL_SECONDS = DAY
    MAX_ENTRIES = 20

    def __init__(self, store: KeyValueStore, clock: Callable[[], float] | None = None) -> None:
        kwargs = {"clock": clock} if clock else {}
        self._cache = BoundedTTLCache(store, self.MAX_ENTRIES, **kwargs)

    async def get_cached(self, place: str) -> str | None:
        return await self._cache.get(self.NAMESPACE, place, is_valid=is_valid_image_url)

    async def cache_image(self, place: str, image_url: str | None) -> bool:
        if not is_valid_image_url(image_url):
            logger.info(f"[CACHE] Not caching invalid image URL for {place}")
            return False
        return await self._cache.put(self.NAMESPACE, place, image_url, self.TTL_SECONDS)

    async def cleanup_invalid_entries(self) -> int:
        """Remove stored entries whose URL is invalid, expired or not."""
        return await self._cache.purge(
            self.NAMESPACE, lambda value: not is_valid_image_url(value)
        )

    async def clear_expired(self) -> int:
        return await self._cache.invalidate_expired(self.NAMESPACE)

    async def clear(self) -> bool:
        return await self._cache.clear(self.NAMESPACE)


class DomainCaches:
    """The three domain caches sharing one store."""

    def __init__(self, store: KeyValueStore, clock: Callable[[], float] | None = None) -> None:
        self.attractions = AttractionsCache(store, clock)
        self.descriptions = DescriptionCache(store, clock)
        self.images = PlaceImageCache(store, clock)

    async def startup_sweep(self) -> dict[str, int]:
        """Drop invalid images and expired entries across all namespaces."""
        swept = {
            "invalid_images": await self.images.cleanup_invalid_entries(),
            "attractions": await self.attractions.clear_expired(),
            "descriptions": await self.descriptions.clear_expired(),
            "images": await self.images.clear_expired(),
        }
        logger.info(f"[CACHE] Startup sweep: {swept}")
        return swept
