"""Unit tests for the debounced search controller.

Nothing here waits on the wall clock. The debounce sleep is either instant
or a ``Gate`` the test opens, and ``GatedGeocoder`` answers each query only
when the test releases it, so the order in which responses land is fixed by
the test itself.
"""

import asyncio
from collections import defaultdict

import pytest

from travel_guide.models import (
    CancellationError,
    CityInfo,
    NetworkError,
    SearchResult,
    SearchState,
)
from travel_guide.services.geocoding import GeocodingService
from travel_guide.services.rate_limiter import RateLimiter
from travel_guide.services.search import SEARCH_ERROR_CODE, SearchController

from conftest import make_result

DEBOUNCE = 0.3


async def no_debounce(seconds: float) -> None:
    await asyncio.sleep(0)


class Gate:
    """Replacement for ``asyncio.sleep`` that blocks until opened."""

    def __init__(self) -> None:
        self.entered = asyncio.Event()
        self.sleeps: list[float] = []
        self._opened = asyncio.Event()

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.entered.set()
        await self._opened.wait()

    def open(self) -> None:
        self._opened.set()


class FakeGeocoder(GeocodingService):
    """Returns canned results per query and records every call."""

    def __init__(self, responses: dict[str, list[SearchResult]] | None = None) -> None:
        self.responses = responses or {}
        self.calls: list[tuple[str, int]] = []
        self.error: Exception | None = None

    async def search_locations(self, query: str, limit: int = 5) -> list[SearchResult]:
        self.calls.append((query, limit))
        if self.error is not None:
            raise self.error
        return self.responses.get(query, [])[:limit]

    async def reverse_geocode(self, lat: float, lng: float) -> CityInfo | None:
        return None


class GatedGeocoder(FakeGeocoder):
    """Answers a query only once released, and ignores cancellation meanwhile,
    like a transport that can't abort an in-flight request."""

    def __init__(
        self,
        responses: dict[str, list[SearchResult]] | None = None,
        failing: frozenset[str] = frozenset(),
    ) -> None:
        super().__init__(responses)
        self.failing = failing
        self.started: defaultdict[str, asyncio.Event] = defaultdict(asyncio.Event)
        self._released: defaultdict[str, asyncio.Event] = defaultdict(asyncio.Event)
        self._tasks: dict[str, asyncio.Task] = {}

    async def search_locations(self, query: str, limit: int = 5) -> list[SearchResult]:
        self.calls.append((query, limit))
        self._tasks[query] = asyncio.current_task()
        self.started[query].set()
        while not self._released[query].is_set():
            try:
                await self._released[query].wait()
            except asyncio.CancelledError:
                pass
        if query in self.failing:
            raise NetworkError(f"{query} failed")
        return self.responses.get(query, [])[:limit]

    def release(self, query: str) -> None:
        self._released[query].set()

    async def finished(self, query: str) -> None:
        """Wait until the request for ``query`` and its aftermath have run."""
        await asyncio.wait({self._tasks[query]})


BERLIN = make_result("1", "Berlin", 52.52, 13.405, "Berlin, Deutschland")
BERN = make_result("2", "Bern", 46.948, 7.447, "Bern, Schweiz")


def make_controller(
    geocoder: GeocodingService,
    limiter: RateLimiter | None = None,
    states: list[SearchState] | None = None,
    sleep=no_debounce,
) -> SearchController:
    return SearchController(
        geocoder,
        limiter or RateLimiter(0),
        debounce_seconds=DEBOUNCE,
        result_limit=5,
        on_change=states.append if states is not None else None,
        sleep=sleep,
    )


class TestSetQuery:
    """Tests for typing into the search box."""

    async def test_berlin_scenario(self) -> None:
        geocoder = FakeGeocoder({"Berlin": [BERLIN]})
        controller = make_controller(geocoder)

        controller.set_query("Berlin")
        assert controller.state.loading is True
        assert controller.state.query == "Berlin"

        await controller.wait_until_settled()

        assert controller.state.loading is False
        assert controller.state.error is None
        assert controller.state.results == (BERLIN,)
        assert geocoder.calls == [("Berlin", 5)]

    async def test_rapid_typing_issues_one_request(self) -> None:
        geocoder = FakeGeocoder({"Ber": [BERLIN, BERN]})
        gate = Gate()
        controller = make_controller(geocoder, sleep=gate.sleep)

        controller.set_query("B")
        await gate.entered.wait()  # "B" is inside its debounce window
        controller.set_query("Be")
        controller.set_query("Ber")
        gate.open()
        await controller.wait_until_settled()

        assert geocoder.calls == [("Ber", 5)]
        assert controller.state.results == (BERLIN, BERN)
        assert set(gate.sleeps) == {DEBOUNCE}

    async def test_query_is_trimmed_for_upstream(self) -> None:
        geocoder = FakeGeocoder({"Ulm": []})
        controller = make_controller(geocoder)

        controller.set_query("  Ulm  ")
        await controller.wait_until_settled()

        assert controller.state.query == "  Ulm  "
        assert geocoder.calls == [("Ulm", 5)]

    async def test_whitespace_clears_without_request(self) -> None:
        geocoder = FakeGeocoder({"Berlin": [BERLIN]})
        controller = make_controller(geocoder)
        controller.set_query("Berlin")
        await controller.wait_until_settled()

        controller.set_query("   ")

        assert controller.state.results == ()
        assert controller.state.loading is False
        assert controller.state.error is None
        await controller.wait_until_settled()
        assert geocoder.calls == [("Berlin", 5)]

    async def test_whitespace_cancels_pending_search(self) -> None:
        geocoder = FakeGeocoder({"Berlin": [BERLIN]})
        gate = Gate()
        controller = make_controller(geocoder, sleep=gate.sleep)

        controller.set_query("Berlin")
        await gate.entered.wait()
        controller.set_query("")
        gate.open()
        await asyncio.sleep(0)

        assert geocoder.calls == []
        assert controller.state.results == ()
        assert controller.state.loading is False

    async def test_no_results_is_not_an_error(self) -> None:
        controller = make_controller(FakeGeocoder())

        controller.set_query("Xyzzy")
        await controller.wait_until_settled()

        assert controller.state.results == ()
        assert controller.state.error is None
        assert controller.state.loading is False

    async def test_listener_sees_every_state(self) -> None:
        states: list[SearchState] = []
        controller = make_controller(FakeGeocoder({"Berlin": [BERLIN]}), states=states)

        controller.set_query("Berlin")
        await controller.wait_until_settled()

        assert [s.loading for s in states] == [True, False]
        assert states[-1].results == (BERLIN,)


class TestRaceSafety:
    """Only the newest query may reach the visible state."""

    async def test_stale_response_after_newer_one_is_discarded(self) -> None:
        geocoder = GatedGeocoder({"Ber": [BERLIN, BERN], "Berlin": [BERLIN]})
        controller = make_controller(geocoder)

        controller.set_query("Ber")
        await geocoder.started["Ber"].wait()
        controller.set_query("Berlin")
        geocoder.release("Berlin")
        await controller.wait_until_settled()
        assert controller.state.results == (BERLIN,)

        geocoder.release("Ber")
        await geocoder.finished("Ber")

        assert controller.state.results == (BERLIN,)
        assert controller.state.query == "Berlin"
        assert controller.state.loading is False

    async def test_stale_response_before_newer_one_is_discarded(self) -> None:
        geocoder = GatedGeocoder({"Bern": [BERN], "Berlin": [BERLIN]})
        controller = make_controller(geocoder)

        controller.set_query("Bern")
        await geocoder.started["Bern"].wait()
        controller.set_query("Berlin")
        await geocoder.started["Berlin"].wait()

        geocoder.release("Bern")
        await geocoder.finished("Bern")
        assert controller.state.results == ()
        assert controller.state.loading is True

        geocoder.release("Berlin")
        await controller.wait_until_settled()
        assert controller.state.results == (BERLIN,)

    async def test_stale_error_is_discarded(self) -> None:
        geocoder = GatedGeocoder({"Berlin": [BERLIN]}, failing=frozenset({"Bern"}))
        controller = make_controller(geocoder)

        controller.set_query("Bern")
        await geocoder.started["Bern"].wait()
        controller.set_query("Berlin")
        geocoder.release("Berlin")
        await controller.wait_until_settled()
        geocoder.release("Bern")
        await geocoder.finished("Bern")

        assert controller.state.error is None
        assert controller.state.results == (BERLIN,)

    async def test_waiting_on_rate_limiter_then_superseded(self) -> None:
        geocoder = FakeGeocoder({"Berlin": [BERLIN]})
        gate = Gate()
        limiter = RateLimiter(1.0, sleep=gate.sleep)
        await limiter.wait()  # someone else just used the endpoint
        controller = make_controller(geocoder, limiter=limiter)

        controller.set_query("Ber")
        await gate.entered.wait()  # debounce done, blocked on the limiter
        controller.set_query("Berlin")
        gate.open()
        await controller.wait_until_settled()

        assert geocoder.calls == [("Berlin", 5)]
        assert controller.state.results == (BERLIN,)


class TestErrors:
    """Tests for failure handling."""

    async def test_network_error_sets_search_error(self) -> None:
        geocoder = FakeGeocoder({"Berlin": [BERLIN]})
        controller = make_controller(geocoder)
        controller.set_query("Berlin")
        await controller.wait_until_settled()

        geocoder.error = NetworkError("offline")
        controller.set_query("Hamburg")
        await controller.wait_until_settled()

        state = controller.state
        assert state.loading is False
        assert state.results == ()
        assert state.error is not None
        assert state.error.code == SEARCH_ERROR_CODE
        assert "offline" in state.error.message

    async def test_cancellation_is_not_surfaced(self) -> None:
        geocoder = FakeGeocoder()
        geocoder.error = CancellationError("aborted")
        controller = make_controller(geocoder)

        controller.set_query("Berlin")
        await controller.wait_until_settled()

        assert controller.state.error is None

    async def test_next_query_clears_error(self) -> None:
        geocoder = FakeGeocoder({"Berlin": [BERLIN]})
        geocoder.error = NetworkError("offline")
        controller = make_controller(geocoder)
        controller.set_query("Ber")
        await controller.wait_until_settled()
        assert controller.state.error is not None

        geocoder.error = None
        controller.set_query("Berlin")
        assert controller.state.error is None
        await controller.wait_until_settled()
        assert controller.state.results == (BERLIN,)


class TestSelectionAndLifecycle:
    """Tests for select_result, clear_search and close."""

    async def test_select_result(self) -> None:
        controller = make_controller(FakeGeocoder({"Ber": [BERLIN, BERN]}))
        controller.set_query("Ber")
        await controller.wait_until_settled()

        controller.select_result(BERN)

        state = controller.state
        assert state.selected_result == BERN
        assert state.query == "Bern"
        assert state.results == ()
        assert state.loading is False

    async def test_select_supersedes_pending_search(self) -> None:
        geocoder = FakeGeocoder({"Ber": [BERLIN, BERN]})
        gate = Gate()
        controller = make_controller(geocoder, sleep=gate.sleep)

        controller.set_query("Ber")
        await gate.entered.wait()
        controller.select_result(BERLIN)
        gate.open()
        await asyncio.sleep(0)

        assert geocoder.calls == []
        assert controller.state.results == ()
        assert controller.state.loading is False

    async def test_selected_city_info(self) -> None:
        controller = make_controller(FakeGeocoder())
        assert await controller.get_selected_city_info() is None

        controller.select_result(BERLIN)
        info = await controller.get_selected_city_info()

        assert info == CityInfo(
            city="Berlin",
            country="Deutschland",
            state="Berlin",
            full_address="Berlin, Berlin, Deutschland",
            lat=52.52,
            lng=13.405,
        )

    async def test_clear_search_resets_state(self) -> None:
        controller = make_controller(FakeGeocoder({"Berlin": [BERLIN]}))
        controller.set_query("Berlin")
        await controller.wait_until_settled()
        controller.select_result(BERLIN)

        controller.clear_search()

        assert controller.state.model_dump() == SearchState().model_dump()

    async def test_close_cancels_and_ignores(self) -> None:
        states: list[SearchState] = []
        geocoder = FakeGeocoder({"Berlin": [BERLIN]})
        gate = Gate()
        controller = make_controller(geocoder, states=states, sleep=gate.sleep)

        controller.set_query("Berlin")
        await gate.entered.wait()
        controller.close()
        gate.open()
        await asyncio.sleep(0)
        controller.set_query("Bern")
        controller.select_result(BERN)
        controller.close()

        assert controller.closed is True
        assert geocoder.calls == []
        assert len(states) == 1

    async def test_close_discards_in_flight_response(self) -> None:
        geocoder = GatedGeocoder({"Berlin": [BERLIN]})
        controller = make_controller(geocoder)

        controller.set_query("Berlin")
        await geocoder.started["Berlin"].wait()
        controller.close()
        geocoder.release("Berlin")
        await geocoder.finished("Berlin")

        assert controller.state.results == ()

    def test_negative_debounce_rejected(self) -> None:
        with pytest.raises(ValueError):
            SearchController(FakeGeocoder(), RateLimiter(0), debounce_seconds=-1)
