"""Debounced, cancellable incremental location search.

One ``SearchController`` backs one search box for as long as the box exists.
It turns keystrokes into at most one rate-limited geocoding request per pause
in typing, and guarantees that only the outcome of the most recent query is
ever applied to the visible ``SearchState``.

Lifecycle of a query:

    set_query("Ber")   -> state.loading=True, debounce task scheduled
    (debounce elapses) -> rate limiter wait -> geocoder.search_locations("Ber")
    set_query("Berl")  -> previous task cancelled, generation bumped, new task
    (response)         -> applied only if its generation is still current

Every operation that changes what the user asked for (``set_query``,
``select_result``, ``clear_search``, ``close``) bumps a generation counter.
A request captures the generation it was started under and discards its
result if the counter has moved on, even when cancelling the task did not
stop the transport in time.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from travel_guide.models import (
    CancellationError,
    CityInfo,
    SearchError,
    SearchResult,
    SearchState,
)
from travel_guide.services.geocoding import GeocodingService
from travel_guide.services.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

SEARCH_ERROR_CODE = "SEARCH_ERROR"

StateListener = Callable[[SearchState], None]


class SearchController:
    """Owns the visible search state for one search surface.

    Must be used from inside a running asyncio event loop.

    Attributes:
        _geocoder: Upstream search collaborator.
        _rate_limiter: Limiter shared with every other caller of the same
            upstream endpoint.
        _generation: Incremented whenever earlier requests become stale.
        _task: The pending debounce-then-search task, if any.
    """

    def __init__(
        self,
        geocoder: GeocodingService,
        rate_limiter: RateLimiter,
        debounce_seconds: float = 0.3,
        result_limit: int = 5,
        on_change: Optional[StateListener] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if debounce_seconds < 0:
            raise ValueError("debounce_seconds must be >= 0")
        self._geocoder = geocoder
        self._rate_limiter = rate_limiter
        self._debounce = debounce_seconds
        self._result_limit = result_limit
        self._on_change = on_change
        self._sleep = sleep
        self._state = SearchState()
        self._generation = 0
        self._task: asyncio.Task | None = None
        self._closed = False

    @property
    def state(self) -> SearchState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    # ── State plumbing ────────────────────────────────────────────────

    def _update(self, **changes: Any) -> None:
        if self._closed:
            return
        self._state = self._state.model_copy(update=changes)
        if self._on_change is not None:
            self._on_change(self._state)

    def _supersede(self) -> None:
        """Invalidate and cancel whatever is pending."""
        self._generation += 1
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    # ── Operations ────────────────────────────────────────────────────

    def set_query(self, text: str) -> None:
        """Record what the user typed and (re)start the debounce window.

        Whitespace-only text clears results immediately and never reaches
        the upstream.
        """
        if self._closed:
            logger.debug("[SEARCH] set_query on closed controller ignored")
            return

        self._supersede()
        trimmed = text.strip()

        if not trimmed:
            self._update(query=text, results=(), loading=False, error=None)
            return

        self._update(query=text, loading=True, error=None)
        generation = self._generation
        self._task = asyncio.get_running_loop().create_task(
            self._debounced_search(trimmed, generation)
        )

    def select_result(self, result: SearchResult) -> None:
        """Pick a suggestion: it becomes the query and the list closes."""
        if self._closed:
            return
        self._supersede()
        self._update(
            selected_result=result,
            query=result.primary_name,
            results=(),
            loading=False,
        )

    def clear_search(self) -> None:
        """Cancel anything pending and return to the initial state."""
        if self._closed:
            return
        self._supersede()
        self._update(**SearchState().model_dump())

    async def get_selected_city_info(self) -> CityInfo | None:
        """Resolve the selected result to ``CityInfo``; None if nothing is selected."""
        selected = self._state.selected_result
        if selected is None:
            return None
        return await self._geocoder.select_search_result(selected)

    def close(self) -> None:
        """Tear down: cancel pending work and ignore anything that still arrives."""
        if self._closed:
            return
        self._supersede()
        self._closed = True
        logger.debug("[SEARCH] Controller closed")

    async def wait_until_settled(self) -> None:
        """Wait until no debounce timer or request is pending."""
        while self._task is not None and not self._task.done():
            await asyncio.wait({self._task})

    # ── Request path ──────────────────────────────────────────────────

    def _is_current(self, generation: int) -> bool:
        return not self._closed and generation == self._generation

    async def _debounced_search(self, query: str, generation: int) -> None:
        await self._sleep(self._debounce)
        await self._rate_limiter.wait()
        if not self._is_current(generation):
            return

        logger.info(f"[SEARCH] Searching {query!r}")
        try:
            results = await self._geocoder.search_locations(query, self._result_limit)
        except CancellationError:
            logger.debug(f"[SEARCH] {query!r} aborted")
            return
        except Exception as e:
            if not self._is_current(generation):
                return
            logger.info(f"[SEARCH] {query!r} failed: {type(e).__name__}: {e}")
            self._update(
                results=(),
                loading=False,
                error=SearchError(message=str(e) or type(e).__name__, code=SEARCH_ERROR_CODE),
            )
            return

        if not self._is_current(generation):
            logger.debug(f"[SEARCH] Discarding stale results for {query!r}")
            return

        self._update(results=tuple(results), loading=False, error=None)
