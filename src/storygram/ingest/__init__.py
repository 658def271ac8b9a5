"""Document loading and text extraction."""
from __future__ import annotations

from .extractor import PDFExtractor, PdfBackend
from .models import Document, PageView

__all__ = ["Document", "PDFExtractor", "PageView", "PdfBackend"]
