"""Sequential, rate-limited dispatch of chunks to the generation service."""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional, Sequence

from storygram.config import DEFAULT_REQUEST_DELAY_MS
from storygram.errors import GenerationError, NoChunksError
from storygram.generation.client import PostGenerator
from storygram.generation.fenced import decode_fenced_json
from storygram.generation.models import build_post, make_preview
from storygram.logging_config import AUDIT_LOGGER_NAME
from storygram.telemetry import emit_chunk_event

from .aggregator import ResultSink, RunSummary
from .progress import GENERATING_STEP, ProgressReporter

LOGGER = logging.getLogger(__name__)
AUDIT_LOGGER = logging.getLogger(AUDIT_LOGGER_NAME)

Sleeper = Callable[[float], Awaitable[None]]


class DispatchEngine:
    """Send chunks one at a time, isolating failures to the chunk that caused them.

    Every attempt, successful or not, is followed by a fixed delay before the
    next chunk starts. Nothing is retried.
    """

    def __init__(
        self,
        generator: PostGenerator,
        progress: ProgressReporter,
        *,
        delay_seconds: float = DEFAULT_REQUEST_DELAY_MS / 1000.0,
        sleep: Optional[Sleeper] = None,
    ) -> None:
        self.generator = generator
        self.progress = progress
        self.delay_seconds = delay_seconds
        self._sleep = sleep or asyncio.sleep

    async def run(
        self,
        chunks: Sequence[str],
        sink: ResultSink,
        *,
        run_id: str | None = None,
    ) -> RunSummary:
        total = len(chunks)
        if total == 0:
            raise NoChunksError("Failed to create text chunks")

        self.progress.report(0, total, GENERATING_STEP)
        succeeded = 0
        failed: list[int] = []

        for chunk_number, chunk in enumerate(chunks, start=1):
            self.progress.report(chunk_number, total, GENERATING_STEP)
            started = time.perf_counter()
            error: Exception | None = None
            try:
                await self._dispatch_one(chunk_number, chunk, sink)
            except GenerationError as exc:
                error = exc
                LOGGER.warning("Failed to process chunk %s: %s", chunk_number, exc)
            except Exception as exc:  # pragma: no cover - generator bugs stay chunk-level
                error = exc
                LOGGER.exception("Unexpected error while processing chunk %s", chunk_number)
            else:
                succeeded += 1

            if error is not None:
                failed.append(chunk_number)
                sink.fail(chunk_number)

            emit_chunk_event(
                logger=AUDIT_LOGGER,
                run_id=run_id,
                chunk_number=chunk_number,
                total=total,
                ok=error is None,
                duration_ms=(time.perf_counter() - started) * 1000.0,
                chars=len(chunk),
                error=error,
            )
            await self._sleep(self.delay_seconds)

        return RunSummary(attempted=total, succeeded=succeeded, failed_chunks=tuple(failed))

    async def _dispatch_one(self, chunk_number: int, chunk: str, sink: ResultSink) -> None:
        raw = await self.generator.generate(chunk)
        payload = decode_fenced_json(raw)
        post = build_post(payload, chunkNumber=chunk_number, chunkPreview=make_preview(chunk))
        sink.accept(post)


__all__ = ["DispatchEngine", "Sleeper"]
