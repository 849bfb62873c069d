"""Debounced incremental location search."""

from .controller import SEARCH_ERROR_CODE, SearchController

__all__ = ["SEARCH_ERROR_CODE", "SearchController"]
