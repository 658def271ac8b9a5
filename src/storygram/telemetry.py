"""Structured lifecycle logging for extraction and dispatch."""

from __future__ import annotations

import logging
import os
import platform
import sys
import time
import traceback
from contextlib import contextmanager
from typing import Any, Iterator, Optional

LOGGER = logging.getLogger("storygram.telemetry")

_ENV_KEYS_TO_LOG: tuple[str, ...] = (
    "STORYGRAM_GENERATION_URL",
    "STORYGRAM_WORDS_PER_CHUNK",
    "STORYGRAM_REQUEST_DELAY_MS",
    "STORYGRAM_MAX_DOCUMENT_MB",
    "STORYGRAM_REQUEST_TIMEOUT_SECONDS",
)


def _format_exception(error: BaseException) -> str:
    return "".join(traceback.format_exception(error.__class__, error, error.__traceback__))


def log_event(
    logger: Optional[logging.Logger],
    step: str,
    *,
    level: str = "info",
    run_id: str | None = None,
    duration_ms: float | None = None,
    exc: BaseException | str | None = None,
    details: dict[str, Any] | None = None,
    **payload: Any,
) -> None:
    """Emit a structured log event with the agreed-upon schema."""

    logger = logger or LOGGER
    event: dict[str, Any] = {"step": step, "module": logger.name}
    if run_id:
        event["run_id"] = run_id
    if duration_ms is not None:
        event["duration_ms"] = round(duration_ms, 3)
    if details is not None:
        event["details"] = details
    event.update(payload)

    exc_info = None
    if exc is not None:
        if isinstance(exc, BaseException):
            event["exc"] = _format_exception(exc)
            exc_info = (exc.__class__, exc, exc.__traceback__)
        else:
            event["exc"] = str(exc)

    log_method = getattr(logger, level.lower(), logger.info)
    log_method(event, exc_info=exc_info)


def emit_app_startup_event() -> None:
    # The API key is deliberately absent from the logged environment.
    env_values = {key: os.getenv(key) for key in _ENV_KEYS_TO_LOG if os.getenv(key) is not None}
    details = {
        "env": env_values,
        "api_key_configured": bool(os.getenv("STORYGRAM_API_KEY")),
        "python": sys.version.split()[0],
        "platform": platform.platform(),
    }
    log_event(LOGGER, "app.startup", details=details, pid=os.getpid())


def emit_document_event(
    step: str,
    *,
    file_name: str | None,
    size_bytes: int | None = None,
    pages: int | None = None,
    error: str | None = None,
) -> None:
    details = {"file": file_name, "size_bytes": size_bytes, "pages": pages}
    if error:
        details["error"] = error
    log_event(LOGGER, step, level="warning" if error else "info", details=details)


def emit_run_event(
    step: str,
    *,
    run_id: str,
    pages: int | None = None,
    chunks: int | None = None,
    succeeded: int | None = None,
    failed: list[int] | None = None,
    duration_ms: float | None = None,
    error: str | None = None,
) -> None:
    details: dict[str, Any] = {"pages": pages, "chunks": chunks}
    if succeeded is not None:
        details["succeeded"] = succeeded
    if failed is not None:
        details["failed_chunks"] = failed
    if error:
        details["error"] = error
    log_event(
        LOGGER,
        step,
        level="error" if error else "info",
        run_id=run_id,
        duration_ms=duration_ms,
        details=details,
    )


def emit_chunk_event(
    *,
    logger: Optional[logging.Logger],
    run_id: str | None,
    chunk_number: int,
    total: int,
    ok: bool,
    duration_ms: float,
    chars: int,
    error: BaseException | None = None,
) -> None:
    details = {"chunk": chunk_number, "total": total, "ok": ok, "chars": chars}
    log_event(
        logger,
        "dispatch.chunk",
        level="info" if ok else "warning",
        run_id=run_id,
        duration_ms=duration_ms,
        details=details,
        exc=str(error) if error is not None else None,
    )


def emit_exception(
    *,
    module: str,
    error: BaseException,
    run_id: str | None = None,
) -> None:
    log_event(
        LOGGER,
        "exception",
        level="error",
        run_id=run_id,
        details={"module": module},
        exc=error,
    )


@contextmanager
def traced_duration(step: str, *, run_id: str | None = None, **fields: Any) -> Iterator[None]:
    """Log ``<step>.start`` and then ``<step>.complete`` or ``<step>.error`` with the elapsed time."""

    start = time.perf_counter()
    log_event(LOGGER, f"{step}.start", run_id=run_id, details=fields)
    try:
        yield
    except Exception as error:
        log_event(
            LOGGER,
            f"{step}.error",
            level="error",
            run_id=run_id,
            duration_ms=(time.perf_counter() - start) * 1000.0,
            details=fields,
            exc=str(error),
        )
        raise
    log_event(
        LOGGER,
        f"{step}.complete",
        run_id=run_id,
        duration_ms=(time.perf_counter() - start) * 1000.0,
        details=fields,
    )


__all__ = [
    "emit_app_startup_event",
    "emit_chunk_event",
    "emit_document_event",
    "emit_exception",
    "emit_run_event",
    "log_event",
    "traced_duration",
]
