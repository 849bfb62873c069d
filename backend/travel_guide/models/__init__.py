"""Travel Guide data models."""

from .core import (
    Attraction,
    CacheEntry,
    CityInfo,
    Coordinates,
    SearchError,
    SearchResult,
    SearchState,
)
from .errors import (
    AppError,
    CancellationError,
    ErrorCode,
    NetworkError,
    RecoveryOption,
    StorageError,
    TravelGuideError,
    UpstreamError,
)

__all__ = [
    # Core
    "Attraction",
    "CacheEntry",
    "CityInfo",
    "Coordinates",
    "SearchError",
    "SearchResult",
    "SearchState",
    # Errors
    "AppError",
    "CancellationError",
    "ErrorCode",
    "NetworkError",
    "RecoveryOption",
    "StorageError",
    "TravelGuideError",
    "UpstreamError",
]
