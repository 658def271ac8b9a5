"""Data models used by the extraction layer."""
from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(slots=True)
class Document:
    """A parsed PDF with lazily cached per-page text.

    Pages are addressed with 1-based indices in ``[1, page_count]``. The
    reader is not thread-safe, so page access goes through ``lock``.
    """

    reader: Any
    file_name: str
    size_bytes: int
    page_count: int
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)
    _page_text: Dict[int, str] = field(default_factory=dict, repr=False)

    def has_page(self, page_number: int) -> bool:
        return 1 <= page_number <= self.page_count

    def cached_text(self, page_number: int) -> Optional[str]:
        return self._page_text.get(page_number)

    def cache_text(self, page_number: int, text: str) -> None:
        self._page_text[page_number] = text


@dataclass(slots=True)
class PageView:
    """Text and viewport geometry for a single displayed page."""

    page_number: int
    page_count: int
    text: str
    width: float
    height: float
