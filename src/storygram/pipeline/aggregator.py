"""Accumulation of per-chunk outcomes for a run."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Protocol

from storygram.generation.models import GeneratedPost


class ResultSink(Protocol):
    """Append target used by the dispatch engine."""

    def accept(self, post: GeneratedPost) -> None:
        ...

    def fail(self, chunk_number: int) -> None:
        ...


def format_failed_chunks(failed_chunks: List[int]) -> Optional[str]:
    if not failed_chunks:
        return None
    return "Failed to process chunks: " + ", ".join(str(number) for number in failed_chunks)


@dataclass(frozen=True, slots=True)
class RunSummary:
    """End-of-run counts returned by the dispatch engine."""

    attempted: int
    succeeded: int
    failed_chunks: tuple[int, ...]

    @property
    def message(self) -> Optional[str]:
        return format_failed_chunks(list(self.failed_chunks))


@dataclass(slots=True)
class ResultAggregator:
    """Passive, append-only store of successes and failed chunk indices.

    Posts keep completion order and failures keep the order they were
    recorded in; nothing is deduplicated or reordered.
    """

    results: List[GeneratedPost] = field(default_factory=list)
    failed_chunks: List[int] = field(default_factory=list)

    def accept(self, post: GeneratedPost) -> None:
        self.results.append(post)

    def fail(self, chunk_number: int) -> None:
        self.failed_chunks.append(chunk_number)

    def summary_message(self) -> Optional[str]:
        return format_failed_chunks(self.failed_chunks)

    def clear(self) -> None:
        self.results.clear()
        self.failed_chunks.clear()


__all__ = ["ResultAggregator", "ResultSink", "RunSummary", "format_failed_chunks"]
