"""Geocoding service module.

Provides OpenStreetMap Nominatim integration for location search and
reverse geocoding.
"""

from .service import GeocodingService, NominatimGeocodingService, parse_search_result

__all__ = ["GeocodingService", "NominatimGeocodingService", "parse_search_result"]
