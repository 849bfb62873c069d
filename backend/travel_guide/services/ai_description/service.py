"""AI description service — Groq (primary) + Gemini (fallback).

Provider-agnostic base class with two concrete implementations:
- GroqDescriptionService:   Groq LPU, llama-3.1-8b-instant
- GeminiDescriptionService: Google Gemini, gemma-3-4b-it

Two jobs, both expensive and rate-limited upstream, hence cached:
- describe a place for a traveller with given interests
- score nearby attractions 0-10 against those interests
"""

import asyncio
import json
import logging
import os
import re
from abc import ABC, abstractmethod
from typing import Any

from travel_guide.models import Attraction

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a helpful travel guide assistant. Provide detailed, interesting and "
    "useful information about places and attractions: history, sights, cultural "
    "significance and practical travel tips. Be accurate; if you are unsure about "
    "a fact, leave it out."
)

CLASSIFY_SYSTEM_PROMPT = (
    "You are a travel expert. Rate attractions based on user interests. "
    "Respond ONLY with a JSON array without markdown formatting."
)

DEFAULT_INTEREST_SCORE = 5.0


class DescriptionService(ABC):
    """Base class for AI description services.

    Prompt construction and response parsing live here. Subclasses only
    implement ``_generate()`` for their specific API client.
    """

    _timeout: float

    @abstractmethod
    async def _generate(
        self, prompt: str, system: str = SYSTEM_PROMPT, timeout: float | None = None
    ) -> str:
        """Send prompt to the AI provider and return raw text."""
        ...

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Human-readable provider name for logging."""
        ...

    # ── Utilities ─────────────────────────────────────────────────────

    @staticmethod
    def _sanitize_input(text: str, max_length: int = 500) -> str:
        """Strip control characters and cap length before prompting."""
        cleaned = re.sub(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]', '', text)
        return cleaned[:max_length].strip()

    @staticmethod
    def _extract_json(text: str) -> str:
        match = re.search(r"```(?:json)?\s*([\s\S]*?)```", text)
        if match:
            return match.group(1).strip()
        return text.strip()

    async def _bounded(self, call, timeout: float | None = None):
        """Await a provider call under this service's timeout, logging failures."""
        limit = timeout or self._timeout
        try:
            return await asyncio.wait_for(call, timeout=limit)
        except asyncio.TimeoutError:
            logger.warning(f"[{self.provider_name}] Timeout after {limit}s")
            raise
        except Exception as e:
            logger.warning(f"[{self.provider_name}] Error: {e}")
            raise

    @classmethod
    def parse_scores(cls, text: str) -> list[dict[str, Any]]:
        """Parse ``[{"name", "score", "reason"}]`` from a model reply.

        Returns [] if the reply is not a JSON array.
        """
        try:
            data = json.loads(cls._extract_json(text))
        except (json.JSONDecodeError, TypeError):
            logger.info("[AI] Could not parse attraction scores")
            return []
        return [item for item in data if isinstance(item, dict)] if isinstance(data, list) else []

    @staticmethod
    def merge_scores(
        attractions: list[Attraction], scores: list[dict[str, Any]]
    ) -> list[Attraction]:
        """Attach scores by exact name; unscored attractions get the default."""
        by_name = {item.get("name"): item for item in scores}
        merged = []
        for attraction in attractions:
            item = by_name.get(attraction.name, {})
            raw = item.get("score")
            try:
                score = DEFAULT_INTEREST_SCORE if raw is None else float(raw)
            except (TypeError, ValueError):
                score = DEFAULT_INTEREST_SCORE
            merged.append(attraction.model_copy(update={
                "interest_score": score,
                "interest_reason": str(item.get("reason") or ""),
            }))
        return merged

    # ── Shared implementations ────────────────────────────────────────

    async def describe_place(self, place: str, interests: list[str] | None = None) -> str:
        """Travel-guide description of ``place``, tailored to ``interests``.

        Raises whatever the provider raises; the caller decides on fallbacks.
        """
        place = self._sanitize_input(place, max_length=200)
        prompt = f"Tell me about {place}. Provide information about history, attractions, cultural significance, and practical travel tips."
        if interests:
            interests_str = ", ".join(self._sanitize_input(i, max_length=50) for i in interests)
            prompt += f" Focus especially on: {interests_str}."

        text = await self._generate(prompt)
        logger.info(f"[{self.provider_name}] Described {place} ({len(text)} chars)")
        return text

    async def classify_attractions(
        self, attractions: list[Attraction], interests: list[str]
    ) -> list[Attraction]:
        """Score attractions 0-10 against the interests.

        Returns the input unchanged when there is nothing to score or the
        provider fails.
        """
        if not attractions or not interests:
            return attractions

        names = ", ".join(self._sanitize_input(a.name, max_length=100) for a in attractions)
        interests_str = ", ".join(self._sanitize_input(i, max_length=50) for i in interests)
        prompt = (
            f"User interests: {interests_str}\n\n"
            f"Attractions: {names}\n\n"
            f"Rate each attraction with a score from 0-10 based on how well it matches "
            f"the interests. Respond in JSON format: "
            f'[{{"name": "Name", "score": 8, "reason": "brief explanation"}}]'
        )
        try:
            text = await self._generate(prompt, system=CLASSIFY_SYSTEM_PROMPT)
        except asyncio.TimeoutError:
            logger.info(f"[{self.provider_name}] Timeout classifying {len(attractions)} attractions")
            return attractions
        except Exception as e:
            logger.info(f"[{self.provider_name}] Classification error: {e}")
            return attractions

        scores = self.parse_scores(text)
        logger.info(f"[{self.provider_name}] Scored {len(scores)}/{len(attractions)} attractions")
        return self.merge_scores(attractions, scores)


# ═══════════════════════════════════════════════════════════════════════
# Provider: Groq  (primary)
# ═══════════════════════════════════════════════════════════════════════

class GroqDescriptionService(DescriptionService):
    """Groq LPU with Llama 3.1 8B Instant."""

    def __init__(
        self,
        api_key: str,
        model_name: str | None = None,
        timeout_seconds: float = 20.0,
    ) -> None:
        if not api_key:
            raise ValueError("Groq API key is empty")
        from groq import AsyncGroq

        self._client = AsyncGroq(api_key=api_key)
        self._model_name = model_name or "llama-3.1-8b-instant"
        self._timeout = timeout_seconds
        logger.info(f"[AI] Groq ready: {self._model_name}")

    @property
    def provider_name(self) -> str:
        return "Groq"

    async def _generate(
        self, prompt: str, system: str = SYSTEM_PROMPT, timeout: float | None = None
    ) -> str:
        completion = self._client.chat.completions.create(
            model=self._model_name,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            temperature=0.5,
            max_tokens=1500,
        )
        resp = await self._bounded(completion, timeout)
        return (resp.choices[0].message.content or "").strip()


# ═══════════════════════════════════════════════════════════════════════
# Provider: Gemini  (fallback)
# ═══════════════════════════════════════════════════════════════════════

class GeminiDescriptionService(DescriptionService):
    """Google Gemini with Gemma 3 4B."""

    def __init__(
        self,
        api_key: str,
        model_name: str | None = None,
        timeout_seconds: float = 30.0,
    ) -> None:
        if not api_key:
            raise ValueError("Gemini API key is empty")
        from google import genai

        self._client = genai.Client(api_key=api_key)
        self._model_name = model_name or "gemma-3-4b-it"
        self._timeout = timeout_seconds
        logger.info(f"[AI] Gemini ready: {self._model_name}")

    @property
    def provider_name(self) -> str:
        return "Gemini"

    async def _generate(
        self, prompt: str, system: str = SYSTEM_PROMPT, timeout: float | None = None
    ) -> str:
        # Gemma has no system role
        generation = self._client.aio.models.generate_content(
            model=self._model_name,
            contents=f"{system}\n\n{prompt}",
        )
        resp = await self._bounded(generation, timeout)
        return (resp.text or "").strip()


# ═══════════════════════════════════════════════════════════════════════
# Factory: Groq → Gemini
# ═══════════════════════════════════════════════════════════════════════

def create_description_service(
    groq_api_key: str | None = None,
    groq_model: str | None = None,
    gemini_api_key: str | None = None,
    gemini_model: str | None = None,
) -> DescriptionService | None:
    """Create the best available AI service, or None if none is configured."""
    groq_key = groq_api_key or os.getenv("GROQ_API_KEY")
    if groq_key:
        try:
            return GroqDescriptionService(api_key=groq_key, model_name=groq_model)
        except Exception as e:
            logger.info(f"[AI] Groq init failed: {e}")

    gemini_key = gemini_api_key or os.getenv("GEMINI_API_KEY")
    if gemini_key:
        try:
            return GeminiDescriptionService(api_key=gemini_key, model_name=gemini_model)
        except Exception as e:
            logger.info(f"[AI] Gemini init failed: {e}")

    logger.info("[AI] No AI provider configured; descriptions and scoring disabled")
    return None
