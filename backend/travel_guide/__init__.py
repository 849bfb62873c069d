"""Travel Guide backend: debounced location search and persistent lookup caches."""

__version__ = "0.1.0"
