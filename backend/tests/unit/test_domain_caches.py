"""Unit tests for the attractions, description and image caches."""

import json

from travel_guide.models import Attraction, CacheEntry
from travel_guide.services.cache import (
    AttractionsCache,
    DescriptionCache,
    DomainCaches,
    PlaceImageCache,
    attraction_cache_key,
    description_cache_key,
    is_valid_image_url,
    serialize_namespace,
)


def make_attraction(name: str = "Brandenburger Tor", distance: int = 120) -> Attraction:
    return Attraction(
        id=name.lower().replace(" ", "-"),
        name=name,
        lat=52.5163,
        lng=13.3777,
        type="attraction",
        distance=distance,
        rating=4.5,
    )


class TestKeys:
    """Tests for key derivation helpers."""

    def test_attraction_key_rounds_to_three_decimals(self) -> None:
        assert attraction_cache_key(52.520008, 13.404954) == "52.520,13.405"
        assert attraction_cache_key(-33.8688, 151.2093) == "-33.869,151.209"

    def test_attraction_key_rounds_ties_away_from_zero(self) -> None:
        # 52.0625 and 13.1875 are exact in binary
        assert attraction_cache_key(52.0625, 13.1875) == "52.063,13.188"
        assert attraction_cache_key(-52.0625, -13.1875) == "-52.063,-13.188"

    def test_description_key_sorts_interests(self) -> None:
        assert description_cache_key("Berlin", ["nature", "art"]) == "berlin_art,nature"
        assert description_cache_key("Berlin", []) == "berlin_"

    def test_image_url_validity(self) -> None:
        assert is_valid_image_url("https://upload.wikimedia.org/a.jpg")
        assert not is_valid_image_url(None)
        assert not is_valid_image_url("")
        assert not is_valid_image_url("null")
        assert not is_valid_image_url(42)


class TestAttractionsCache:
    """Tests for AttractionsCache."""

    async def test_same_cell_hits(self, store, clock) -> None:
        cache = AttractionsCache(store, clock)
        await cache.cache_attractions(52.52, 13.405, [make_attraction()], ["history"])

        cached = await cache.get_cached(52.5204, 13.4049, ["history"])
        assert cached is not None
        assert [a.name for a in cached] == ["Brandenburger Tor"]
        assert isinstance(cached[0], Attraction)

    async def test_neighbouring_cell_misses(self, store, clock) -> None:
        cache = AttractionsCache(store, clock)
        await cache.cache_attractions(52.52, 13.405, [make_attraction()], [])

        assert await cache.get_cached(52.522, 13.405, []) is None

    async def test_interest_order_is_ignored(self, store, clock) -> None:
        cache = AttractionsCache(store, clock)
        await cache.cache_attractions(52.52, 13.405, [make_attraction()], ["art", "history"])

        assert await cache.get_cached(52.52, 13.405, ["history", "art"]) is not None

    async def test_interest_mismatch_is_miss_and_removed(self, store, clock) -> None:
        cache = AttractionsCache(store, clock)
        await cache.cache_attractions(52.52, 13.405, [make_attraction()], ["art"])

        assert await cache.get_cached(52.52, 13.405, ["food"]) is None
        assert json.loads(await store.get(AttractionsCache.NAMESPACE)) == {}

    async def test_expires_after_one_hour(self, store, clock) -> None:
        cache = AttractionsCache(store, clock)
        await cache.cache_attractions(52.52, 13.405, [make_attraction()], [])
        clock.advance(AttractionsCache.TTL_SECONDS + 1)

        assert await cache.get_cached(52.52, 13.405, []) is None

    async def test_keeps_ten_cells(self, store, clock) -> None:
        cache = AttractionsCache(store, clock)
        for i in range(11):
            await cache.cache_attractions(50 + i, 10.0, [make_attraction()], [])
            clock.advance(1)

        assert await cache.get_cached(50, 10.0, []) is None
        assert await cache.get_cached(60, 10.0, []) is not None
        blob = json.loads(await store.get(AttractionsCache.NAMESPACE))
        assert len(blob) == 10

    async def test_empty_list_is_cached(self, store, clock) -> None:
        cache = AttractionsCache(store, clock)
        await cache.cache_attractions(0.0, 0.0, [], [])

        assert await cache.get_cached(0.0, 0.0, []) == []


class TestDescriptionCache:
    """Tests for DescriptionCache."""

    async def test_round_trip_case_insensitive_place(self, store, clock) -> None:
        cache = DescriptionCache(store, clock)
        await cache.cache_description("Berlin", ["art", "food"], "Die Hauptstadt.")

        assert await cache.get_cached("berlin", ["food", "art"]) == "Die Hauptstadt."
        assert await cache.get_cached("Berlin", ["art"]) is None

    async def test_lives_for_seven_days(self, store, clock) -> None:
        cache = DescriptionCache(store, clock)
        await cache.cache_description("Ulm", [], "Münster.")
        clock.advance(DescriptionCache.TTL_SECONDS)
        assert await cache.get_cached("Ulm", []) == "Münster."

        clock.advance(1)
        assert await cache.get_cached("Ulm", []) is None


class TestPlaceImageCache:
    """Tests for PlaceImageCache."""

    async def test_valid_url_round_trip(self, store, clock) -> None:
        cache = PlaceImageCache(store, clock)
        assert await cache.cache_image("Berlin", "https://img/berlin.jpg") is True
        assert await cache.get_cached("Berlin") == "https://img/berlin.jpg"

    async def test_key_is_case_sensitive(self, store, clock) -> None:
        cache = PlaceImageCache(store, clock)
        await cache.cache_image("Berlin", "https://img/berlin.jpg")
        assert await cache.get_cached("berlin") is None

    async def test_invalid_urls_are_not_written(self, store, clock) -> None:
        cache = PlaceImageCache(store, clock)
        assert await cache.cache_image("Berlin", None) is False
        assert await cache.cache_image("Berlin", "null") is False
        assert await store.get(PlaceImageCache.NAMESPACE) is None

    async def test_cleanup_invalid_entries(self, store, clock) -> None:
        await store.set(PlaceImageCache.NAMESPACE, serialize_namespace({
            "A": CacheEntry(value="null", created_at=clock.now, ttl_seconds=86400),
            "B": CacheEntry(value=None, created_at=clock.now, ttl_seconds=86400),
            "C": CacheEntry(value="https://img/c.jpg", created_at=clock.now, ttl_seconds=86400),
        }))
        cache = PlaceImageCache(store, clock)

        assert await cache.cleanup_invalid_entries() == 2
        assert set(json.loads(await store.get(PlaceImageCache.NAMESPACE))) == {"C"}


class TestDomainCaches:
    """Tests for the startup sweep across all namespaces."""

    async def test_startup_sweep(self, store, clock) -> None:
        caches = DomainCaches(store, clock)
        await caches.attractions.cache_attractions(1.0, 1.0, [make_attraction()], [])
        await caches.descriptions.cache_description("Ulm", [], "Text")
        await caches.images.cache_image("Ulm", "https://img/ulm.jpg")
        clock.advance(2 * 60 * 60)

        swept = await caches.startup_sweep()

        assert swept == {
            "invalid_images": 0,
            "attractions": 1,
            "descriptions": 0,
            "images": 0,
        }
        assert await caches.descriptions.get_cached("Ulm", []) == "Text"
        assert await caches.images.get_cached("Ulm") == "https://img/ulm.jpg"
