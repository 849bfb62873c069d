"""Shared fixtures and fakes for unit tests."""

import pytest

from travel_guide.models import Coordinates, SearchResult, StorageError
from travel_guide.services.storage import InMemoryKeyValueStore, KeyValueStore


class FakeClock:
    """Manually advanced clock returning epoch seconds."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FailingStore(KeyValueStore):
    """A store whose every operation fails."""

    async def get(self, key: str) -> str | None:
        raise StorageError("store unavailable")

    async def set(self, key: str, value: str) -> None:
        raise StorageError("store unavailable")

    async def remove(self, key: str) -> None:
        raise StorageError("store unavailable")


class FlakyStore(InMemoryKeyValueStore):
    """In-memory store whose next ``get`` calls fail a set number of times."""

    def __init__(self) -> None:
        super().__init__()
        self.failing_reads = 0

    async def get(self, key: str) -> str | None:
        if self.failing_reads:
            self.failing_reads -= 1
            raise StorageError("read timed out")
        return await super().get(key)


def make_result(
    place_id: str = "1",
    name: str = "Berlin",
    lat: float = 52.52,
    lng: float = 13.405,
    secondary: str = "Berlin, Deutschland",
) -> SearchResult:
    return SearchResult(
        id=place_id,
        display_name=f"{name}, {secondary}" if secondary else name,
        primary_name=name,
        secondary_info=secondary,
        coordinates=Coordinates(lat=lat, lng=lng),
        type="city",
        importance=0.8,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()
