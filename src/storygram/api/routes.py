"""API router exposing the document, selection and generation endpoints."""
from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, HTTPException, UploadFile
from pydantic import BaseModel, Field

from storygram.errors import (
    DocumentValidationError,
    ExtractionError,
    GenerationError,
    InvalidInput,
    NoDocumentError,
    PageLoadError,
    RendererUnavailable,
    RunInProgressError,
)
from storygram.session import RunState, StorygramSession

router = APIRouter(prefix="/storygram", tags=["storygram"])

_session: Optional[StorygramSession] = None


def get_session() -> StorygramSession:
    """FastAPI dependency returning the shared :class:`StorygramSession`."""

    global _session
    if _session is None:
        _session = StorygramSession()
    return _session


class DocumentResponse(BaseModel):
    file_name: str
    page_count: int
    size_bytes: int


class PageResponse(BaseModel):
    page_number: int
    page_count: int
    text: str
    width: float
    height: float


class SelectionRequest(BaseModel):
    text: str = Field("", description="Currently highlighted text in the viewer.")


class SelectionResponse(BaseModel):
    selected_text: str
    page_number: int


class ProgressResponse(BaseModel):
    current: int
    total: int
    step: str


class RunStateResponse(BaseModel):
    posts: list[dict[str, Any]]
    failed_chunks: list[int]
    total_chunks: int
    progress: ProgressResponse
    error: Optional[str]
    is_processing: bool


def _serialise_state(state: RunState) -> RunStateResponse:
    return RunStateResponse(
        posts=[post.to_wire() for post in state.results],
        failed_chunks=state.failed_chunks,
        total_chunks=state.total_chunks,
        progress=ProgressResponse(
            current=state.progress.current,
            total=state.progress.total,
            step=state.progress.step,
        ),
        error=state.error,
        is_processing=state.is_processing,
    )


@router.post("/documents", response_model=DocumentResponse)
async def upload_document(
    file: Optional[UploadFile] = File(None),
    session: StorygramSession = Depends(get_session),
) -> DocumentResponse:
    """Validate and load a PDF, replacing any previously loaded document."""

    file_name = (file.filename if file is not None else None) or "upload.pdf"
    content_type = file.content_type if file is not None else None

    try:
        data = None
        if file is not None:
            session.check_upload_size(file.size, file_name)
            # One byte past the limit is enough for the loader to reject it.
            data = await file.read(session.settings.max_document_bytes + 1)
        document = await session.load_document(data, file_name, content_type)
    except RunInProgressError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except RendererUnavailable as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    except DocumentValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return DocumentResponse(
        file_name=document.file_name,
        page_count=document.page_count,
        size_bytes=document.size_bytes,
    )


@router.get("/documents/pages/{page_number}", response_model=PageResponse)
async def view_page(page_number: int, session: StorygramSession = Depends(get_session)) -> PageResponse:
    try:
        view = await session.load_page(page_number)
    except NoDocumentError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except PageLoadError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ExtractionError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return PageResponse(
        page_number=view.page_number,
        page_count=view.page_count,
        text=view.text,
        width=view.width,
        height=view.height,
    )


@router.put("/selection", response_model=SelectionResponse)
def update_selection(
    request: SelectionRequest,
    session: StorygramSession = Depends(get_session),
) -> SelectionResponse:
    session.update_selection(request.text)
    return SelectionResponse(selected_text=session.selected_text, page_number=session.current_page)


@router.post("/posts/selection")
async def generate_from_selection(session: StorygramSession = Depends(get_session)) -> dict[str, Any]:
    """Generate one post from the currently selected text."""

    try:
        post = await session.generate_from_selection()
    except InvalidInput as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except RunInProgressError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except GenerationError as exc:
        raise HTTPException(status_code=502, detail=session.error or str(exc)) from exc
    return post.to_wire()


@router.post("/runs", response_model=RunStateResponse, status_code=202)
async def start_run(
    background_tasks: BackgroundTasks,
    session: StorygramSession = Depends(get_session),
) -> RunStateResponse:
    """Start the whole-document pipeline in the background.

    Poll ``GET /progress`` and ``GET /posts`` for the outcome.
    """

    try:
        state = session.start_run()
    except RunInProgressError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    background_tasks.add_task(session.execute_run)
    return _serialise_state(state)


@router.get("/progress", response_model=ProgressResponse)
def read_progress(session: StorygramSession = Depends(get_session)) -> ProgressResponse:
    progress = session.progress.current
    return ProgressResponse(current=progress.current, total=progress.total, step=progress.step)


@router.get("/posts", response_model=RunStateResponse)
def read_posts(session: StorygramSession = Depends(get_session)) -> RunStateResponse:
    return _serialise_state(session.state())
