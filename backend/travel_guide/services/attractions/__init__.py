"""Nearby attractions from OpenStreetMap Overpass."""

from .service import AttractionsService, stable_rating

__all__ = ["AttractionsService", "stable_rating"]
