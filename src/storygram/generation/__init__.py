"""Client, decoder and schema for the post generation service."""
from __future__ import annotations

from .client import GenerationClient, PostGenerator
from .fenced import decode_fenced_json
from .models import GeneratedPost, build_post, make_preview

__all__ = [
    "GeneratedPost",
    "GenerationClient",
    "PostGenerator",
    "build_post",
    "decode_fenced_json",
    "make_preview",
]
