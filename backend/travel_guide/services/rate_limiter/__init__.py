"""Rate limiting for shared upstream endpoints."""

from .service import RateLimiter

__all__ = ["RateLimiter"]
