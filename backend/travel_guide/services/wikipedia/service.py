"""Wikipedia API service for place images and encyclopedia summaries.

No API key required.

Architecture:
- Shared httpx client with connection pooling
- Semaphore-based rate limiting (max 3 concurrent requests)
- Retry with backoff on transient failures
- Fallback: exact title lookup → opensearch-resolved title
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)

NOT_FOUND_TEXT = "Für diesen Ort sind aktuell keine detaillierten Informationen verfügbar."
NO_EXTRACT_TEXT = "Keine Beschreibung verfügbar."


@dataclass
class SummaryError:
    """Why a summary could not be loaded."""
    code: str
    message: str
    can_retry: bool


@dataclass
class WikipediaSummary:
    """Intro text and coordinates for a place."""
    title: str
    extract: str
    lat: Optional[float] = None
    lon: Optional[float] = None
    error: Optional[SummaryError] = None


class WikipediaService:
    """Wikipedia API client for place enrichment.

    Uses a shared httpx client with connection pooling.
    Semaphore limits concurrent requests to avoid rate-limiting.
    """

    def __init__(
        self,
        language: str = "de",
        user_agent: str = "TravelGuideApp/1.0",
        timeout: float = 8.0,
    ) -> None:
        self._language = language
        self._timeout = timeout
        self._headers = {"User-Agent": user_agent, "Accept": "application/json"}
        self._client: httpx.AsyncClient | None = None
        # Max 3 concurrent requests to Wikipedia
        self._semaphore = asyncio.Semaphore(3)

    @property
    def api_url(self) -> str:
        return f"https://{self._language}.wikipedia.org/w/api.php"

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the shared HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                headers=self._headers,
                limits=httpx.Limits(max_connections=8, max_keepalive_connections=4),
                follow_redirects=True,
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request_with_retry(
        self, params: dict[str, Any], max_retries: int = 1
    ) -> Any:
        """GET the action API with one retry on timeouts and 429s.

        The last error is re-raised once retries are used up.
        """
        client = self._get_client()
        for attempt in range(max_retries + 1):
            try:
                async with self._semaphore:
                    response = await client.get(self.api_url, params=params)
                    response.raise_for_status()
                    return response.json()
            except (httpx.TimeoutException, httpx.ConnectError) as e:
                if attempt < max_retries:
                    logger.info(f"[WIKI] Retry {attempt+1}/{max_retries}: {type(e).__name__}")
                    await asyncio.sleep(1.5)
                else:
                    raise
            except httpx.HTTPStatusError as e:
                if e.response.status_code == 429 and attempt < max_retries:
                    await asyncio.sleep(2.0)
                else:
                    raise
        return None

    @staticmethod
    def normalize_title(location: str) -> str:
        """Drop everything after the first comma ("Berlin, Germany" → "Berlin")."""
        return location.split(",")[0].strip()

    @staticmethod
    def _first_page(data: dict | None) -> dict | None:
        pages = (data or {}).get("query", {}).get("pages", {})
        if not pages:
            return None
        page_id, page = next(iter(pages.items()))
        if page_id == "-1" or page.get("missing") is not None:
            return None
        return page

    async def search_titles(self, term: str, limit: int = 10) -> list[str]:
        """Resolve a free-text term to candidate article titles."""
        params = {
            "action": "opensearch",
            "format": "json",
            "search": term,
            "limit": limit,
        }
        try:
            data = await self._request_with_retry(params)
        except (httpx.HTTPError, ValueError) as e:
            logger.info(f"[WIKI] Title search failed for {term}: {type(e).__name__}")
            return []
        if isinstance(data, list) and len(data) > 1 and isinstance(data[1], list):
            return data[1]
        return []

    async def get_place_image(self, name: str, size: int = 800) -> Optional[str]:
        """Page image thumbnail for ``name``, or None if there is none."""
        params = {
            "action": "query",
            "format": "json",
            "prop": "pageimages",
            "piprop": "thumbnail",
            "pithumbsize": size,
            "titles": self.normalize_title(name),
            "redirects": 1,
        }
        try:
            page = self._first_page(await self._request_with_retry(params))
            if page is None:
                titles = await self.search_titles(self.normalize_title(name), limit=1)
                if titles:
                    params["titles"] = titles[0]
                    page = self._first_page(await self._request_with_retry(params))
        except (httpx.HTTPError, ValueError) as e:
            logger.info(f"[WIKI] {name}: image lookup failed: {type(e).__name__}")
            return None

        image_url = (page or {}).get("thumbnail", {}).get("source")
        logger.info(f"[WIKI] {name}: {'image found' if image_url else 'no image'}")
        return image_url

    async def fetch_summary(self, location: str) -> WikipediaSummary:
        """Intro extract and coordinates for ``location``.

        Never raises: failures come back as a summary with ``error`` set.
        """
        title = self.normalize_title(location)
        params = {
            "action": "query",
            "format": "json",
            "prop": "extracts|pageimages|coordinates",
            "exintro": True,
            "explaintext": True,
            "titles": title,
            "redirects": 1,
        }

        try:
            page = self._first_page(await self._request_with_retry(params))
            if page is None:
                # Disambiguation / spelling fallback
                titles = await self.search_titles(title)
                if titles:
                    params["titles"] = titles[0]
                    page = self._first_page(await self._request_with_retry(params))
        except httpx.TimeoutException:
            return self._failed(location, "TIMEOUT", "Request timed out", can_retry=True)
        except httpx.HTTPStatusError as e:
            return self._failed(location, "API_ERROR", str(e), can_retry=True)
        except httpx.TransportError:
            return self._failed(location, "NETWORK_ERROR", "Network unavailable", can_retry=True)
        except ValueError as e:
            return self._failed(location, "API_ERROR", f"Invalid response: {e}", can_retry=True)

        if page is None:
            return WikipediaSummary(
                title=location,
                extract=NOT_FOUND_TEXT,
                error=SummaryError(
                    code="NOT_FOUND",
                    message=f'Wikipedia article not found for "{location}"',
                    can_retry=False,
                ),
            )

        coords = page.get("coordinates") or []
        return WikipediaSummary(
            title=page.get("title", title),
            extract=page.get("extract") or NO_EXTRACT_TEXT,
            lat=coords[0].get("lat") if coords else None,
            lon=coords[0].get("lon") if coords else None,
        )

    @staticmethod
    def _failed(location: str, code: str, message: str, can_retry: bool) -> WikipediaSummary:
        logger.info(f"[WIKI] {location}: {code} {message}")
        return WikipediaSummary(
            title=location,
            extract=f'Informationen für "{location}" konnten nicht geladen werden.',
            error=SummaryError(code=code, message=message, can_retry=can_retry),
        )
