"""Error types for Travel Guide.

Two families live here:

- Exceptions raised inside the service layer (``NetworkError``,
  ``UpstreamError``, ``CancellationError``, ``StorageError``).
- Pydantic models for the API error envelope (``ErrorCode``, ``AppError``,
  ``RecoveryOption``).

Storage errors are always handled fail-open by the caches; network and
upstream errors from the search path are folded into a ``SearchError`` on the
search state; cancellation is internal and never shown to the user.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class TravelGuideError(Exception):
    """Base class for all service-layer errors."""


class NetworkError(TravelGuideError):
    """The upstream could not be reached (offline, connect failure, timeout)."""


class UpstreamError(TravelGuideError):
    """The upstream answered, but not usefully (non-2xx or malformed payload)."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class CancellationError(TravelGuideError):
    """A request was superseded or aborted."""


class StorageError(TravelGuideError):
    """A persistent key-value store operation failed."""


class ErrorCode(str, Enum):
    """Error codes returned in API error envelopes."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_INPUT = "INVALID_INPUT"
    SEARCH_ERROR = "SEARCH_ERROR"
    UPSTREAM_ERROR = "UPSTREAM_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    NOT_FOUND = "NOT_FOUND"
    API_ERROR = "API_ERROR"


class RecoveryOption(BaseModel):
    """An action the client can offer the user after an error."""

    label: str
    action: str


class AppError(BaseModel):
    """Error payload returned by the API."""

    code: ErrorCode
    message: str
    user_message: str
    recovery_options: list[RecoveryOption] = Field(default_factory=list)
