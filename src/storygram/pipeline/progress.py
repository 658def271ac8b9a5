"""Progress reporting shared by extraction and dispatch."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List

LOGGER = logging.getLogger(__name__)

EXTRACTING_STEP = "Extracting text from pages"
GENERATING_STEP = "Generating posts"


@dataclass(frozen=True, slots=True)
class Progress:
    current: int = 0
    total: int = 0
    step: str = ""


ProgressListener = Callable[[Progress], None]


class ProgressReporter:
    """Holds the latest ``(current, total, step)`` tuple; no history is kept."""

    def __init__(self) -> None:
        self._current = Progress()
        self._listeners: List[ProgressListener] = []

    @property
    def current(self) -> Progress:
        return self._current

    def subscribe(self, listener: ProgressListener) -> None:
        self._listeners.append(listener)

    def report(self, current: int, total: int, step: str) -> None:
        self._current = Progress(current=current, total=total, step=step)
        LOGGER.debug("Progress %s: %s/%s", step, current, total)
        for listener in self._listeners:
            listener(self._current)

    def reset(self) -> None:
        self._current = Progress()


__all__ = ["EXTRACTING_STEP", "GENERATING_STEP", "Progress", "ProgressListener", "ProgressReporter"]
