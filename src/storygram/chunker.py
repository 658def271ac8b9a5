"""Word-bounded chunking of whole-document text."""
from __future__ import annotations

import logging
import re
from typing import List

from storygram.config import DEFAULT_WORDS_PER_CHUNK
from storygram.errors import InvalidInput

# U+FEFF counts as whitespace so BOM-only pages read as empty.
_WHITESPACE_RE = re.compile(r"[\s\ufeff]+")
LOGGER = logging.getLogger(__name__)


def normalize_whitespace(text: str) -> str:
    """Collapse every whitespace run to a single space and trim the ends."""

    return _WHITESPACE_RE.sub(" ", text).strip()


def chunk_text(full_text: str, words_per_chunk: int = DEFAULT_WORDS_PER_CHUNK) -> List[str]:
    """Split *full_text* into consecutive windows of at most ``words_per_chunk`` words.

    The text is normalised first, so joining the returned chunks with single
    spaces reproduces ``normalize_whitespace(full_text)`` exactly. Only the last
    chunk may hold fewer than ``words_per_chunk`` words.
    """

    if not isinstance(full_text, str):
        raise InvalidInput("Invalid input: text must be a string")
    if isinstance(words_per_chunk, bool) or not isinstance(words_per_chunk, int) or words_per_chunk <= 0:
        raise InvalidInput("words_per_chunk must be a positive integer")

    clean_text = normalize_whitespace(full_text)
    if not clean_text:
        raise InvalidInput("Text is empty after cleaning")

    words = clean_text.split(" ")
    chunks: List[str] = []
    for start in range(0, len(words), words_per_chunk):
        chunk = " ".join(words[start : start + words_per_chunk])
        if chunk.strip():
            chunks.append(chunk)

    LOGGER.debug("Split %s words into %s chunks of <= %s words", len(words), len(chunks), words_per_chunk)
    return chunks


__all__ = ["chunk_text", "normalize_whitespace"]
