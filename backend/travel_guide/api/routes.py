"""API routes for Travel Guide.

Thin HTTP layer over ``ServiceContext``:
- Nominatim search / reverse geocoding, spaced by the shared rate limiter
- Nearby attractions, AI descriptions and Wikipedia images, all cache-aside
- Wikipedia summaries, fetched live
- Manual cache clearing per namespace

Every response carries ``success``; failures carry an ``AppError``.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from travel_guide.models import (
    AppError,
    Attraction,
    CityInfo,
    ErrorCode,
    NetworkError,
    RecoveryOption,
    SearchResult,
    UpstreamError,
)
from travel_guide.services.context import ServiceContext

logger = logging.getLogger(__name__)

router = APIRouter()


class SearchResponse(BaseModel):
    """Response model for location search."""
    success: bool
    results: list[SearchResult] = []
    error: Optional[AppError] = None


class ReverseGeocodeResponse(BaseModel):
    """Response model for reverse geocoding."""
    success: bool
    city: Optional[CityInfo] = None
    error: Optional[AppError] = None


class AttractionsResponse(BaseModel):
    """Response model for nearby attractions."""
    success: bool
    attractions: list[Attraction] = []
    error: Optional[AppError] = None


class DescriptionResponse(BaseModel):
    """Response model for an AI place description."""
    success: bool
    place: str
    description: Optional[str] = None
    error: Optional[AppError] = None


class ImageResponse(BaseModel):
    """Response model for a place image."""
    success: bool
    place: str
    image_url: Optional[str] = None


class SummaryResponse(BaseModel):
    """Response model for a Wikipedia place summary."""
    success: bool
    title: str
    extract: str
    lat: Optional[float] = None
    lon: Optional[float] = None


class ClearCacheResponse(BaseModel):
    """Response model for clearing a cache namespace."""
    success: bool
    cache: str


def get_context(request: Request) -> ServiceContext:
    return request.app.state.context


def parse_interests(raw: str) -> list[str]:
    """Split a comma-separated interests parameter, dropping blanks."""
    return [part.strip() for part in raw.split(",") if part.strip()]


def error_response(
    status_code: int,
    code: ErrorCode,
    message: str,
    user_message: str,
    retry: bool = False,
) -> JSONResponse:
    error = AppError(
        code=code,
        message=message,
        user_message=user_message,
        recovery_options=[RecoveryOption(label="Retry", action="retry")] if retry else [],
    )
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error.model_dump(mode="json")},
    )


def upstream_failure(e: Exception, user_message: str) -> JSONResponse:
    """502 envelope for a failed upstream call."""
    code = ErrorCode.NETWORK_ERROR if isinstance(e, NetworkError) else ErrorCode.UPSTREAM_ERROR
    return error_response(502, code, str(e), user_message, retry=True)


@router.get("/search", response_model=SearchResponse)
async def search_locations(
    request: Request,
    q: str = "",
    limit: int = Query(5, ge=1, le=20),
):
    """Location search through Nominatim.

    An empty query returns no results without touching the upstream.
    """
    if not q.strip():
        return SearchResponse(success=True, results=[])

    ctx = get_context(request)
    await ctx.nominatim_limiter.wait()
    try:
        results = await ctx.geocoder.search_locations(q, limit=limit)
    except (NetworkError, UpstreamError) as e:
        logger.info(f"[SEARCH] {q!r} failed: {e}")
        return upstream_failure(e, "Search failed. Please try again.")
    return SearchResponse(success=True, results=results)


@router.get("/reverse", response_model=ReverseGeocodeResponse)
async def reverse_geocode(
    request: Request,
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
):
    """Resolve coordinates to the enclosing city."""
    ctx = get_context(request)
    await ctx.nominatim_limiter.wait()
    try:
        city = await ctx.geocoder.reverse_geocode(lat, lng)
    except (NetworkError, UpstreamError) as e:
        logger.info(f"[GEOCODE] Reverse ({lat:.3f}, {lng:.3f}) failed: {e}")
        return upstream_failure(e, "Could not determine your location.")

    if city is None:
        return error_response(
            404,
            ErrorCode.NOT_FOUND,
            f"No place found at ({lat}, {lng})",
            "No place found at this position.",
        )
    return ReverseGeocodeResponse(success=True, city=city)


@router.get("/attractions", response_model=AttractionsResponse)
async def nearby_attractions(
    request: Request,
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    interests: str = "",
):
    """Attractions near a position, scored against optional interests."""
    ctx = get_context(request)
    try:
        attractions = await ctx.guide.nearby_attractions(lat, lng, parse_interests(interests))
    except (NetworkError, UpstreamError) as e:
        logger.info(f"[OSM] Attractions ({lat:.3f}, {lng:.3f}) failed: {e}")
        return upstream_failure(e, "Could not load nearby attractions.")
    return AttractionsResponse(success=True, attractions=attractions)


@router.get("/places/{name}/description", response_model=DescriptionResponse)
async def place_description(request: Request, name: str, interests: str = ""):
    """AI travel-guide description of a place."""
    ctx = get_context(request)
    try:
        description = await ctx.guide.place_description(name, parse_interests(interests))
    except Exception as e:
        logger.warning(f"[AI] Description for {name} failed: {e}")
        return error_response(
            502,
            ErrorCode.API_ERROR,
            str(e),
            "The description could not be generated.",
            retry=True,
        )

    if description is None:
        return error_response(
            503,
            ErrorCode.API_ERROR,
            "No AI provider configured",
            "Descriptions are currently unavailable.",
        )
    return DescriptionResponse(success=True, place=name, description=description)


@router.get("/places/{name}/image", response_model=ImageResponse)
async def place_image(request: Request, name: str):
    """Wikipedia image for a place; ``image_url`` is null when there is none."""
    image_url = await get_context(request).guide.place_image(name)
    return ImageResponse(success=True, place=name, image_url=image_url)


@router.get("/places/{name}/summary", response_model=SummaryResponse)
async def place_summary(request: Request, name: str):
    """Wikipedia intro text and coordinates for a place."""
    summary = await get_context(request).guide.place_summary(name)
    if summary.error is not None:
        if summary.error.code == "NOT_FOUND":
            return error_response(
                404, ErrorCode.NOT_FOUND, summary.error.message, summary.extract
            )
        code = (
            ErrorCode.NETWORK_ERROR
            if summary.error.code == "NETWORK_ERROR"
            else ErrorCode.UPSTREAM_ERROR
        )
        return error_response(
            502, code, summary.error.message, summary.extract, retry=summary.error.can_retry
        )
    return SummaryResponse(
        success=True,
        title=summary.title,
        extract=summary.extract,
        lat=summary.lat,
        lon=summary.lon,
    )


@router.delete("/cache/{cache_name}", response_model=ClearCacheResponse)
async def clear_cache(request: Request, cache_name: str):
    """Clear one cache namespace: attractions, descriptions or images."""
    caches = get_context(request).caches
    targets = {
        "attractions": caches.attractions,
        "descriptions": caches.descriptions,
        "images": caches.images,
    }
    target = targets.get(cache_name)
    if target is None:
        return error_response(
            404,
            ErrorCode.NOT_FOUND,
            f"Unknown cache: {cache_name}",
            f"Choose one of: {', '.join(targets)}.",
        )
    cleared = await target.clear()
    logger.info(f"[CACHE] Cleared {cache_name}: {cleared}")
    return ClearCacheResponse(success=cleared, cache=cache_name)
