"""Core data models for Travel Guide.

This module contains the Pydantic models shared by the search controller,
the persistent caches and the HTTP API: coordinates, geocoding search
results, resolved city info, attractions, and the visible search state.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class Coordinates(BaseModel):
    """Geographic coordinates with validation.

    Latitude must be between -90 and 90 degrees.
    Longitude must be between -180 and 180 degrees.
    """

    model_config = ConfigDict(frozen=True)

    lat: float = Field(..., ge=-90, le=90, description="Latitude in degrees")
    lng: float = Field(..., ge=-180, le=180, description="Longitude in degrees")


class SearchResult(BaseModel):
    """A single place returned by the geocoding search.

    Immutable. ``importance`` is the provider's own relevance score; results
    are shown in provider order and never re-ranked locally.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Provider place identifier")
    display_name: str = Field(..., description="Full provider display name")
    primary_name: str = Field(..., description="City/town/village name")
    secondary_info: str = Field(default="", description="'State, Country'")
    coordinates: Coordinates
    type: str = Field(default="unknown", description="Provider place type")
    importance: float = Field(default=0.0, description="Provider relevance score")


class CityInfo(BaseModel):
    """Location info resolved from a search result or reverse geocoding."""

    city: str
    country: str = ""
    state: Optional[str] = None
    full_address: str = ""
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class Attraction(BaseModel):
    """A nearby point of interest."""

    id: str
    name: str = Field(..., min_length=1)
    lat: float
    lng: float
    type: str = "attraction"
    distance: int = Field(default=0, ge=0, description="Distance in meters")
    rating: float = Field(default=4.0, ge=0, le=5)
    description: str = ""
    interest_score: Optional[float] = Field(
        None, description="0-10 match against the user's interests"
    )
    interest_reason: Optional[str] = None


class SearchError(BaseModel):
    """Normalized search failure shown to the user."""

    message: str
    code: str = "SEARCH_ERROR"


class SearchState(BaseModel):
    """Everything a search surface renders.

    Replaced wholesale on every change, so listeners can keep references to
    older snapshots safely.
    """

    model_config = ConfigDict(frozen=True)

    query: str = ""
    results: tuple[SearchResult, ...] = ()
    loading: bool = False
    error: Optional[SearchError] = None
    selected_result: Optional[SearchResult] = None


class CacheEntry(BaseModel):
    """A single value stored inside a cache namespace.

    Entries are replace-only: a newer ``put`` overwrites, nothing merges.
    """

    value: Any = None
    created_at: float
    ttl_seconds: float = Field(..., ge=0)

    def is_live(self, now: float) -> bool:
        return now - self.created_at <= self.ttl_seconds
