"""Cache-aside travel guide lookups."""

from .service import TravelGuideService

__all__ = ["TravelGuideService"]
