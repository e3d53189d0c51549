from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


def _env_str(key: str, default: Optional[str] = None) -> Optional[str]:
    v = os.getenv(key)
    if v is None:
        return default
    v = v.strip()
    return v if v else default


def _env_int(key: str, default: int) -> int:
    v = _env_str(key)
    if v is None:
        return default
    try:
        return int(v)
    except ValueError:
        return default


def _env_bool(key: str, default: bool) -> bool:
    v = _env_str(key)
    if v is None:
        return default
    return v.lower() in {"1", "true", "yes", "y", "on"}


@dataclass(frozen=True)
class Settings:
    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    # Date-range filters are evaluated in this zone.
    timezone: str = "UTC"

    # Aggregation limits
    top_words_limit: int = 20
    text_sample_size: int = 5
    filterable_max_options: int = 20

    # Visualization preference store
    preferences_path: str = "data/visualization-preferences.json"

    @staticmethod
    def from_env(dotenv: bool = True) -> "Settings":
        # Read configuration from environment variables (optionally seeded from a .env file).
        if dotenv:
            load_dotenv()

        return Settings(
            log_level=_env_str("APP_LOG_LEVEL", "INFO") or "INFO",
            log_json=_env_bool("APP_LOG_JSON", True),

            timezone=_env_str("APP_TIMEZONE", "UTC") or "UTC",

            top_words_limit=max(_env_int("APP_TOP_WORDS_LIMIT", 20), 1),
            text_sample_size=max(_env_int("APP_TEXT_SAMPLE_SIZE", 5), 0),
            filterable_max_options=_env_int("APP_FILTERABLE_MAX_OPTIONS", 20),

            preferences_path=_env_str("APP_PREFERENCES_PATH", "data/visualization-preferences.json")
            or "data/visualization-preferences.json",
        )
