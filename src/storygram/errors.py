"""Exception hierarchy shared across the Storygram pipeline."""
from __future__ import annotations


class StorygramError(RuntimeError):
    """Base exception for every error raised by the package."""

    def __init__(self, message: str, *, cause: Exception | None = None) -> None:
        super().__init__(message)
        if cause is not None:
            self.__cause__ = cause


class InvalidInput(StorygramError, ValueError):
    """Raised when text handed to the chunker cannot be processed."""


class DocumentValidationError(StorygramError):
    """Raised when an uploaded document is rejected before parsing."""


class RendererUnavailable(StorygramError):
    """Raised when the PDF backend has not been (or cannot be) initialised."""


class ExtractionError(StorygramError):
    """Base class for failures reported by the extraction collaborator."""

    def __init__(self, message: str, *, page_number: int | None = None, cause: Exception | None = None) -> None:
        super().__init__(message, cause=cause)
        self.page_number = page_number


class PageLoadError(ExtractionError):
    """The requested page could not be loaded from the document."""


class PageRenderError(ExtractionError):
    """The page was loaded but its geometry could not be resolved."""


class TextExtractionError(ExtractionError):
    """The page was loaded but its text content could not be read."""


class RunLevelError(StorygramError):
    """Failure that aborts a whole run before any chunk is dispatched."""


class NoDocumentError(RunLevelError):
    """Raised when an operation needs a loaded document and none is present."""


class EmptyDocumentError(RunLevelError):
    """Raised when the extracted document text is blank."""


class NoChunksError(RunLevelError):
    """Raised when chunking produced nothing to dispatch."""


class RunInProgressError(RunLevelError):
    """Raised when a run is requested while another one is still processing."""


class GenerationError(StorygramError):
    """Base class for chunk-level failures talking to the generation service."""


class GenerationTransportError(GenerationError):
    """The request never produced an HTTP response."""


class GenerationStatusError(GenerationError):
    """The service answered with a non-success status code."""

    def __init__(self, status_code: int) -> None:
        super().__init__(f"API request failed with status {status_code}")
        self.status_code = status_code


class MalformedResponseError(GenerationError):
    """The response body lacks ``outputEvents[0].result`` or is not JSON."""


class DecodeError(GenerationError):
    """The fenced JSON payload inside a result could not be decoded."""


__all__ = [
    "DecodeError",
    "DocumentValidationError",
    "EmptyDocumentError",
    "ExtractionError",
    "GenerationError",
    "GenerationStatusError",
    "GenerationTransportError",
    "InvalidInput",
    "MalformedResponseError",
    "NoChunksError",
    "NoDocumentError",
    "PageLoadError",
    "PageRenderError",
    "RendererUnavailable",
    "RunInProgressError",
    "RunLevelError",
    "StorygramError",
    "TextExtractionError",
]
