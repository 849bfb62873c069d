"""Wikipedia images and summaries."""

from .service import SummaryError, WikipediaService, WikipediaSummary

__all__ = ["SummaryError", "WikipediaService", "WikipediaSummary"]
