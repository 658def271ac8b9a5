"""Chunk dispatch, result accounting and progress reporting."""
from __future__ import annotations

from .aggregator import ResultAggregator, ResultSink, RunSummary
from .dispatch import DispatchEngine
from .progress import EXTRACTING_STEP, GENERATING_STEP, Progress, ProgressReporter

__all__ = [
    "DispatchEngine",
    "EXTRACTING_STEP",
    "GENERATING_STEP",
    "Progress",
    "ProgressReporter",
    "ResultAggregator",
    "ResultSink",
    "RunSummary",
]
