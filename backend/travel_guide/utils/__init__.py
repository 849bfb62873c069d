"""Shared helpers."""

from .geo import distance_meters, haversine_distance

__all__ = ["distance_meters", "haversine_distance"]
