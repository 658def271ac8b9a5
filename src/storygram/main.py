import logging
from typing import Any, Callable, TypeVar

from fastapi import FastAPI, HTTPException
from fastapi.responses import PlainTextResponse

from storygram.api.routes import get_session, router as storygram_router
from storygram.errors import RendererUnavailable
from storygram.logging_config import configure_logging
from storygram.telemetry import emit_app_startup_event

configure_logging()

LOGGER = logging.getLogger(__name__)

app = FastAPI(title="Storygram API")
app.include_router(storygram_router)


T = TypeVar("T")


def _resolve_dependency(factory: Callable[[], T]) -> T:
    """Resolve a dependency while respecting FastAPI overrides."""

    override: Any | None = app.dependency_overrides.get(factory)
    resolved: Any = override if override is not None else factory
    return resolved() if callable(resolved) else resolved


@app.on_event("startup")
async def _startup_pdf_backend() -> None:
    """Initialise the PDF backend before any document can be uploaded."""

    emit_app_startup_event()
    session = _resolve_dependency(get_session)
    try:
        await session.initialize()
    except RendererUnavailable as exc:
        LOGGER.error("PDF backend unavailable at startup: %s", exc)


@app.get("/", response_class=PlainTextResponse)
def read_root() -> str:
    """Healthcheck endpoint for the service."""
    return "ok"


@app.get("/healthz", response_class=PlainTextResponse)
def healthcheck() -> str:
    """Ready once the PDF backend has been initialised."""
    session = _resolve_dependency(get_session)
    if not session.backend.ready:
        detail = session.backend.last_error or "PDF backend is not initialised"
        raise HTTPException(status_code=503, detail=detail)

    return "ok"
