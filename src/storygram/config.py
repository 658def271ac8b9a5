"""Environment driven configuration for the pipeline."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

LOGGER = logging.getLogger(__name__)

DEFAULT_WORDS_PER_CHUNK = 1000
DEFAULT_REQUEST_DELAY_MS = 1000
DEFAULT_MAX_DOCUMENT_MB = 50
ACCEPTED_MIME_TYPE = "application/pdf"


def _int_from_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        LOGGER.warning("Invalid integer for %s: %s; using default %s", name, value, default)
        return default


def _float_from_env(name: str) -> Optional[float]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    try:
        return float(value)
    except ValueError:
        LOGGER.warning("Invalid float for %s: %s; ignoring", name, value)
        return None


def _str_from_env(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return None
    return value.strip() or None


@dataclass(frozen=True, slots=True)
class Settings:
    """Runtime configuration for extraction, chunking and dispatch."""

    generation_url: Optional[str] = None
    api_key: Optional[str] = None
    words_per_chunk: int = DEFAULT_WORDS_PER_CHUNK
    request_delay_ms: int = DEFAULT_REQUEST_DELAY_MS
    max_document_mb: int = DEFAULT_MAX_DOCUMENT_MB
    request_timeout_seconds: Optional[float] = None

    @property
    def request_delay_seconds(self) -> float:
        return self.request_delay_ms / 1000.0

    @property
    def max_document_bytes(self) -> int:
        return self.max_document_mb * 1024 * 1024

    @classmethod
    def from_env(cls) -> "Settings":
        words_per_chunk = _int_from_env("STORYGRAM_WORDS_PER_CHUNK", DEFAULT_WORDS_PER_CHUNK)
        if words_per_chunk <= 0:
            LOGGER.warning(
                "STORYGRAM_WORDS_PER_CHUNK must be positive; using default %s", DEFAULT_WORDS_PER_CHUNK
            )
            words_per_chunk = DEFAULT_WORDS_PER_CHUNK
        delay_ms = max(_int_from_env("STORYGRAM_REQUEST_DELAY_MS", DEFAULT_REQUEST_DELAY_MS), 0)
        return cls(
            generation_url=_str_from_env("STORYGRAM_GENERATION_URL"),
            api_key=_str_from_env("STORYGRAM_API_KEY"),
            words_per_chunk=words_per_chunk,
            request_delay_ms=delay_ms,
            max_document_mb=_int_from_env("STORYGRAM_MAX_DOCUMENT_MB", DEFAULT_MAX_DOCUMENT_MB),
            request_timeout_seconds=_float_from_env("STORYGRAM_REQUEST_TIMEOUT_SECONDS"),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings loaded from the environment."""

    return Settings.from_env()


__all__ = ["ACCEPTED_MIME_TYPE", "Settings", "get_settings"]
