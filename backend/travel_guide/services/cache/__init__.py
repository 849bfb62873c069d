"""Persistent TTL caches: the generic bounded cache and its domain configurations."""

from .domain import (
    AttractionsCache,
    DescriptionCache,
    DomainCaches,
    PlaceImageCache,
    attraction_cache_key,
    description_cache_key,
    is_valid_image_url,
)
from .service import BoundedTTLCache, deserialize_namespace, serialize_namespace

__all__ = [
    "AttractionsCache",
    "BoundedTTLCache",
    "DescriptionCache",
    "DomainCaches",
    "PlaceImageCache",
    "attraction_cache_key",
    "description_cache_key",
    "deserialize_namespace",
    "is_valid_image_url",
    "serialize_namespace",
]
