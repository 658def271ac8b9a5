"""PDF loading and per-page text extraction."""
from __future__ import annotations

import asyncio
import importlib
import io
import logging
import mimetypes
from pathlib import Path
from typing import Any, Optional

from storygram.config import ACCEPTED_MIME_TYPE, DEFAULT_MAX_DOCUMENT_MB
from storygram.errors import (
    DocumentValidationError,
    PageLoadError,
    PageRenderError,
    RendererUnavailable,
    TextExtractionError,
)
from storygram.pipeline.progress import EXTRACTING_STEP, ProgressReporter

from .models import Document, PageView

LOGGER = logging.getLogger(__name__)

VIEWPORT_SCALE = 1.5


class PdfBackend:
    """Explicitly initialised handle on the PDF parsing library.

    :meth:`initialize` must complete before documents can be opened; until then
    every use raises :class:`RendererUnavailable`.
    """

    def __init__(self, module_name: str = "PyPDF2") -> None:
        self.module_name = module_name
        self._reader_cls: Any = None
        self._error: Optional[str] = None

    @property
    def ready(self) -> bool:
        return self._reader_cls is not None

    @property
    def last_error(self) -> Optional[str]:
        return self._error

    async def initialize(self) -> None:
        if self.ready:
            return
        try:
            module = await asyncio.to_thread(importlib.import_module, self.module_name)
            reader_cls = getattr(module, "PdfReader")
        except Exception as error:
            self._error = f"{self.module_name} could not be loaded: {error}"
            LOGGER.error("PDF backend initialisation failed: %s", self._error)
            raise RendererUnavailable(self._error, cause=error) from error
        self._reader_cls = reader_cls
        self._error = None
        LOGGER.info("PDF backend %s ready", self.module_name)

    def open(self, data: bytes) -> Any:
        if not self.ready:
            raise RendererUnavailable(self._error or "PDF backend has not been initialised")
        return self._reader_cls(io.BytesIO(data), strict=False)


def _is_pdf(file_name: str, mime_type: Optional[str]) -> bool:
    if mime_type and mime_type != "application/octet-stream":
        return mime_type == ACCEPTED_MIME_TYPE
    guessed_type, _ = mimetypes.guess_type(file_name)
    if guessed_type:
        return guessed_type == ACCEPTED_MIME_TYPE
    return Path(file_name).suffix.lower() == ".pdf"


class PDFExtractor:
    """Open PDF documents and pull text out of them page by page."""

    def __init__(
        self,
        backend: PdfBackend,
        max_document_bytes: int = DEFAULT_MAX_DOCUMENT_MB * 1024 * 1024,
    ) -> None:
        self.backend = backend
        self.max_document_bytes = max_document_bytes

    def check_size(self, size_bytes: Optional[int]) -> None:
        """Reject a document larger than the configured limit; an unknown size passes."""

        if size_bytes is not None and size_bytes > self.max_document_bytes:
            limit_mb = self.max_document_bytes // (1024 * 1024)
            raise DocumentValidationError(f"File size exceeds {limit_mb}MB limit")

    def load(self, data: Optional[bytes], file_name: str, mime_type: Optional[str] = None) -> Document:
        """Validate and parse an uploaded document."""

        if not data:
            raise DocumentValidationError("No file selected")
        if not _is_pdf(file_name, mime_type):
            raise DocumentValidationError("Please upload a PDF file")
        self.check_size(len(data))

        try:
            reader = self.backend.open(data)
            page_count = len(reader.pages)
        except RendererUnavailable:
            raise
        except Exception as error:
            raise DocumentValidationError(f"Failed to load PDF: {error}", cause=error) from error

        if page_count == 0:
            raise DocumentValidationError("PDF contains no pages")

        LOGGER.info("Loaded %s with %s pages (%s bytes)", file_name, page_count, len(data))
        return Document(reader=reader, file_name=file_name, size_bytes=len(data), page_count=page_count)

    def _get_page(self, document: Document, page_number: int) -> Any:
        if not document.has_page(page_number):
            raise PageLoadError(f"Failed to load page {page_number}", page_number=page_number)
        try:
            return document.reader.pages[page_number - 1]
        except Exception as error:
            raise PageLoadError(
                f"Failed to load page {page_number}", page_number=page_number, cause=error
            ) from error

    def extract_page(self, document: Document, page_number: int) -> str:
        """Return the text of a single page, caching it on the document."""

        cached = document.cached_text(page_number)
        if cached is not None:
            return cached

        with document.lock:
            page = self._get_page(document, page_number)
            try:
                text = page.extract_text() or ""
            except Exception as error:
                raise TextExtractionError(
                    f"Failed to extract text from page {page_number}", page_number=page_number, cause=error
                ) from error

        document.cache_text(page_number, text)
        return text

    def view_page(self, document: Document, page_number: int, scale: float = VIEWPORT_SCALE) -> PageView:
        """Resolve the scaled viewport and text for the page viewer."""

        with document.lock:
            page = self._get_page(document, page_number)
            try:
                box = page.mediabox
                width = float(box.width) * scale
                height = float(box.height) * scale
            except Exception as error:
                raise PageRenderError(
                    f"Failed to render page {page_number}", page_number=page_number, cause=error
                ) from error

        text = self.extract_page(document, page_number)
        return PageView(
            page_number=page_number,
            page_count=document.page_count,
            text=text,
            width=width,
            height=height,
        )

    async def extract_document(self, document: Document, progress: ProgressReporter) -> str:
        """Sweep every page in order, concatenating page texts with newlines.

        Any page failure propagates and aborts the sweep.
        """

        parts: list[str] = []
        for page_number in range(1, document.page_count + 1):
            progress.report(page_number, document.page_count, EXTRACTING_STEP)
            text = await asyncio.to_thread(self.extract_page, document, page_number)
            parts.append(text + "\n")
        return "".join(parts)


__all__ = ["PDFExtractor", "PdfBackend", "VIEWPORT_SCALE"]
