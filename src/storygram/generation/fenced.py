"""Decoding of JSON documents wrapped in markdown code fences.

The generation service returns its structured output as text of the form::

    ```json
    {"caption": {...}, "hashtags": [...], "imagePrompt": {...}}
    ```

Only the fence convention lives here so it can change without touching the
dispatch loop.
"""
from __future__ import annotations

import json
import re
from typing import Any, Dict

from storygram.errors import DecodeError

_OPENING_FENCE_RE = re.compile(r"^\s*```(?:json)?[ \t]*\n?", re.IGNORECASE)
_CLOSING_FENCE_RE = re.compile(r"\n?[ \t]*```\s*$")


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-standard JSON constant: {name}")


def strip_fence(raw: str) -> str:
    """Remove a leading ```json marker and a trailing ``` marker when present."""

    inner = _OPENING_FENCE_RE.sub("", raw, count=1)
    return _CLOSING_FENCE_RE.sub("", inner, count=1)


def decode_fenced_json(raw: Any) -> Dict[str, Any]:
    """Parse the JSON object carried inside a fenced block.

    Raises :class:`DecodeError` when *raw* is not text, is not strict JSON
    after the fences are stripped, or does not hold a JSON object.
    """

    if not isinstance(raw, str):
        raise DecodeError("Failed to parse API response: result is not a string")
    try:
        payload = json.loads(strip_fence(raw), parse_constant=_reject_constant)
    except ValueError as error:
        raise DecodeError("Failed to parse API response", cause=error) from error
    if not isinstance(payload, dict):
        raise DecodeError("Failed to parse API response: expected a JSON object")
    return payload


__all__ = ["decode_fenced_json", "strip_fence"]
