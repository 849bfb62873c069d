"""AI descriptions — Groq (primary) + Gemini (fallback)."""

from .service import (
    DescriptionService,
    GeminiDescriptionService,
    GroqDescriptionService,
    create_description_service,
)

__all__ = [
    "DescriptionService",
    "GeminiDescriptionService",
    "GroqDescriptionService",
    "create_description_service",
]
