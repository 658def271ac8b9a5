"""Session orchestration: the loaded document, the selection port and runs."""
from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import List, Optional

from storygram.chunker import chunk_text, normalize_whitespace
from storygram.config import Settings, get_settings
from storygram.errors import (
    DocumentValidationError,
    EmptyDocumentError,
    ExtractionError,
    GenerationError,
    InvalidInput,
    NoDocumentError,
    PageLoadError,
    RunInProgressError,
    RunLevelError,
)
from storygram.generation.client import GenerationClient, PostGenerator
from storygram.generation.fenced import decode_fenced_json
from storygram.generation.models import GeneratedPost, build_post, make_preview
from storygram.ingest.extractor import PDFExtractor, PdfBackend
from storygram.ingest.models import Document, PageView
from storygram.pipeline.aggregator import ResultAggregator
from storygram.pipeline.dispatch import DispatchEngine, Sleeper
from storygram.pipeline.progress import Progress, ProgressReporter
from storygram.telemetry import emit_document_event, emit_exception, emit_run_event, traced_duration

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class RunState:
    """Read-only snapshot of the pipeline for the host to display."""

    results: List[GeneratedPost] = field(default_factory=list)
    failed_chunks: List[int] = field(default_factory=list)
    progress: Progress = field(default_factory=Progress)
    error: Optional[str] = None
    is_processing: bool = False
    total_chunks: int = 0


class StorygramSession:
    """Single-user session mirroring the dashboard workflow.

    The host pushes the highlighted text through :meth:`update_selection`;
    the session never looks for it anywhere else.
    """

    def __init__(
        self,
        *,
        settings: Optional[Settings] = None,
        generator: Optional[PostGenerator] = None,
        backend: Optional[PdfBackend] = None,
        sleep: Optional[Sleeper] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.backend = backend or PdfBackend()
        self.extractor = PDFExtractor(self.backend, max_document_bytes=self.settings.max_document_bytes)
        self.generator = generator or GenerationClient.from_settings(self.settings)
        self.progress = ProgressReporter()
        self.aggregator = ResultAggregator()
        self.engine = DispatchEngine(
            self.generator,
            self.progress,
            delay_seconds=self.settings.request_delay_seconds,
            sleep=sleep,
        )
        self.document: Optional[Document] = None
        self.current_page = 1
        self.page_text = ""
        self.selected_text = ""
        self.error: Optional[str] = None
        self.is_processing = False
        self._total_chunks = 0
        self._run_id: Optional[str] = None

    async def initialize(self) -> None:
        await self.backend.initialize()

    # Host input ports -------------------------------------------------
    def update_selection(self, text: Optional[str]) -> None:
        self.selected_text = text or ""

    def state(self) -> RunState:
        return RunState(
            results=list(self.aggregator.results),
            failed_chunks=list(self.aggregator.failed_chunks),
            progress=self.progress.current,
            error=self.error,
            is_processing=self.is_processing,
            total_chunks=self._total_chunks,
        )

    def _begin(self) -> None:
        if self.is_processing:
            raise RunInProgressError("A document is already being processed")
        self.is_processing = True

    # Document handling --------------------------------------------------
    def check_upload_size(self, size_bytes: Optional[int], file_name: str) -> None:
        """Reject an upload by its declared size before its body is read."""

        if self.is_processing:
            raise RunInProgressError("A document is already being processed")
        try:
            self.extractor.check_size(size_bytes)
        except DocumentValidationError as error:
            self._reject_document(error, file_name, size_bytes)
            raise

    def _reject_document(self, error: DocumentValidationError, file_name: str, size_bytes: Optional[int]) -> None:
        self.error = str(error)
        self.document = None
        self.page_text = ""
        self.current_page = 1
        emit_document_event("document.rejected", file_name=file_name, size_bytes=size_bytes, error=str(error))

    async def load_document(self, data: Optional[bytes], file_name: str, mime_type: Optional[str] = None) -> Document:
        self._begin()
        self.error = None
        try:
            document = await asyncio.to_thread(self.extractor.load, data, file_name, mime_type)
            self.document = document
            try:
                await self.load_page(1)
            except ExtractionError as error:
                raise DocumentValidationError(f"Failed to load first page: {error}", cause=error) from error
        except DocumentValidationError as error:
            self._reject_document(error, file_name, len(data) if data else None)
            raise
        finally:
            self.is_processing = False

        emit_document_event(
            "document.loaded",
            file_name=file_name,
            size_bytes=document.size_bytes,
            pages=document.page_count,
        )
        return document

    async def load_page(self, page_number: int) -> PageView:
        self.error = None
        try:
            if self.document is None:
                raise NoDocumentError("No PDF document loaded")
            if not self.document.has_page(page_number):
                raise PageLoadError("Invalid page number", page_number=page_number)
            view = await asyncio.to_thread(self.extractor.view_page, self.document, page_number)
        except (NoDocumentError, ExtractionError) as error:
            LOGGER.error("Page loading error: %s", error)
            self.error = str(error)
            raise

        self.page_text = view.text
        self.current_page = page_number
        return view

    # Generation ---------------------------------------------------------
    def start_run(self) -> RunState:
        """Claim the session for a whole-book run and clear the previous results.

        Raises :class:`RunInProgressError` when another operation holds the
        session. Pair with :meth:`execute_run`.
        """

        self._begin()
        self._run_id = uuid.uuid4().hex
        self.aggregator.clear()
        self.progress.reset()
        self.error = None
        self._total_chunks = 0
        return self.state()

    async def execute_run(self) -> RunState:
        """Extract, chunk and dispatch the whole document claimed by :meth:`start_run`.

        Run-level failures are recorded on the session as
        ``"Processing failed: ..."`` with an empty result set; chunk-level
        failures leave successes in place plus a summary message.
        """

        run_id = self._run_id or uuid.uuid4().hex
        started = time.perf_counter()
        try:
            chunks = await self._prepare_chunks(run_id)
            self._total_chunks = len(chunks)
            summary = await self.engine.run(chunks, self.aggregator, run_id=run_id)
            self.error = summary.message
            emit_run_event(
                "run.complete",
                run_id=run_id,
                chunks=summary.attempted,
                succeeded=summary.succeeded,
                failed=list(summary.failed_chunks),
                duration_ms=(time.perf_counter() - started) * 1000.0,
            )
        except RunLevelError as error:
            self.error = f"Processing failed: {error}"
            self.aggregator.clear()
            self.progress.reset()
            self._total_chunks = 0
            emit_run_event(
                "run.aborted",
                run_id=run_id,
                error=str(error),
                duration_ms=(time.perf_counter() - started) * 1000.0,
            )
        finally:
            self.is_processing = False
            self._run_id = None

        return self.state()

    async def process_entire_book(self) -> RunState:
        self.start_run()
        return await self.execute_run()

    async def _prepare_chunks(self, run_id: str) -> List[str]:
        if self.document is None:
            raise NoDocumentError("No PDF document loaded")

        try:
            with traced_duration("extract.document", run_id=run_id, pages=self.document.page_count):
                full_text = await self.extractor.extract_document(self.document, self.progress)
        except ExtractionError as error:
            emit_exception(module=__name__, error=error, run_id=run_id)
            raise RunLevelError(f"Text extraction failed: {error}", cause=error) from error

        if not normalize_whitespace(full_text):
            raise EmptyDocumentError("No text content found in PDF")

        try:
            chunks = chunk_text(full_text, self.settings.words_per_chunk)
        except InvalidInput as error:
            raise RunLevelError(f"Failed to split text: {error}", cause=error) from error

        emit_run_event("run.chunked", run_id=run_id, pages=self.document.page_count, chunks=len(chunks))
        return chunks

    async def generate_from_selection(self) -> GeneratedPost:
        """Generate a single post from the current selection on the current page."""

        if not self.selected_text:
            self.error = "Please select some text first"
            raise InvalidInput(self.error)

        self._begin()
        self.error = None
        try:
            raw = await self.generator.generate(self.selected_text)
            post = build_post(
                decode_fenced_json(raw),
                pageNumber=self.current_page,
                selectedText=make_preview(self.selected_text),
            )
        except GenerationError as error:
            LOGGER.warning("Selection generation failed: %s", error)
            self.error = "Error generating post"
            raise
        finally:
            self.is_processing = False

        self.aggregator.accept(post)
        return post


__all__ = ["RunState", "StorygramSession"]
