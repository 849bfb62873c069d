"""Runtime configuration.

Values come from environment variables (a ``.env`` file is loaded first when
present). Services take explicit constructor arguments, so only the app
wiring in ``ServiceContext.from_settings`` reads from here.
"""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"[CONFIG] Ignoring invalid {name}={raw!r}, using {default}")
        return default


def _env_int(name: str, default: int) -> int:
    return int(_env_float(name, default))


@dataclass(frozen=True)
class Settings:
    """Application settings."""

    redis_url: str = ""
    nominatim_url: str = "https://nominatim.openstreetmap.org"
    overpass_url: str = "https://overpass-api.de/api/interpreter"
    wikipedia_language: str = "de"
    user_agent: str = "TravelGuideApp/1.0"
    request_timeout_seconds: float = 20.0
    search_rate_limit_seconds: float = 1.0
    search_debounce_seconds: float = 0.3
    search_result_limit: int = 5
    attraction_radius_meters: int = 5000
    max_attractions: int = 20
    groq_api_key: str = ""
    groq_model: str = "llama-3.1-8b-instant"
    gemini_api_key: str = ""
    gemini_model: str = "gemma-3-4b-it"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment."""
        load_dotenv()
        return cls(
            redis_url=os.getenv("REDIS_URL", ""),
            nominatim_url=os.getenv("NOMINATIM_URL", cls.nominatim_url).rstrip("/"),
            overpass_url=os.getenv("OVERPASS_URL", cls.overpass_url),
            wikipedia_language=os.getenv("WIKIPEDIA_LANGUAGE", cls.wikipedia_language),
            user_agent=os.getenv("USER_AGENT", cls.user_agent),
            request_timeout_seconds=_env_float(
                "REQUEST_TIMEOUT_SECONDS", cls.request_timeout_seconds
            ),
            search_rate_limit_seconds=_env_float(
                "SEARCH_RATE_LIMIT_SECONDS", cls.search_rate_limit_seconds
            ),
            search_debounce_seconds=_env_float(
                "SEARCH_DEBOUNCE_SECONDS", cls.search_debounce_seconds
            ),
            search_result_limit=_env_int("SEARCH_RESULT_LIMIT", cls.search_result_limit),
            attraction_radius_meters=_env_int(
                "ATTRACTION_RADIUS_METERS", cls.attraction_radius_meters
            ),
            max_attractions=_env_int("MAX_ATTRACTIONS", cls.max_attractions),
            groq_api_key=os.getenv("GROQ_API_KEY", ""),
            groq_model=os.getenv("GROQ_MODEL", cls.groq_model),
            gemini_api_key=os.getenv("GEMINI_API_KEY", ""),
            gemini_model=os.getenv("GEMINI_MODEL", cls.gemini_model),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Process-wide settings, read once."""
    return Settings.from_env()
