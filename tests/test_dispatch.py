"""Tests for the sequential dispatch engine."""
from __future__ import annotations

import asyncio

import httpx
import pytest

from storygram.chunker import chunk_text
from storygram.errors import DecodeError, GenerationTransportError, NoChunksError
from storygram.generation.client import GenerationClient
from storygram.pipeline import (
    GENERATING_STEP,
    DispatchEngine,
    Progress,
    ProgressReporter,
    ResultAggregator,
)

from conftest import FakeGenerator, fenced, post_payload, words


def _engine(generator, sleep, progress=None) -> DispatchEngine:
    return DispatchEngine(generator, progress or ProgressReporter(), delay_seconds=1.0, sleep=sleep)


def test_failed_chunk_does_not_stop_the_run(recording_sleep, failing_generator):
    chunks = chunk_text(words(2500), 1000)
    generator = failing_generator(2)
    aggregator = ResultAggregator()

    summary = asyncio.run(_engine(generator, recording_sleep).run(chunks, aggregator))

    assert len(generator.calls) == 3
    assert generator.calls == chunks
    assert [post.chunk_number for post in aggregator.results] == [1, 3]
    assert aggregator.failed_chunks == [2]
    assert aggregator.summary_message() == "Failed to process chunks: 2"
    assert summary.attempted == 3
    assert summary.succeeded == 2
    assert summary.failed_chunks == (2,)
    assert summary.message == "Failed to process chunks: 2"


def test_http_500_from_service_is_chunk_level(recording_sleep):
    chunks = chunk_text(words(2500), 1000)
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        if calls["count"] == 2:
            return httpx.Response(500)
        result = fenced(post_payload(str(calls["count"])))
        return httpx.Response(200, json={"outputEvents": [{"result": result}]})

    client = GenerationClient("https://generation.test", "key", transport=httpx.MockTransport(handler))
    aggregator = ResultAggregator()

    asyncio.run(_engine(client, recording_sleep).run(chunks, aggregator))

    assert [post.caption.hook for post in aggregator.results] == ["Hook 1", "Hook 3"]
    assert aggregator.failed_chunks == [2]


def test_missing_result_field_is_chunk_level(recording_sleep):
    client = GenerationClient(
        "https://generation.test",
        "key",
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"outputEvents": []})),
    )
    aggregator = ResultAggregator()

    summary = asyncio.run(_engine(client, recording_sleep).run(["only chunk"], aggregator))

    assert summary.succeeded == 0
    assert aggregator.results == []
    assert aggregator.failed_chunks == [1]


def test_every_failure_kind_is_isolated(recording_sleep):
    generator = FakeGenerator(
        {
            1: GenerationTransportError("offline"),
            2: "```json\nnot json\n```",
            3: fenced({"caption": {"hook": "only a hook"}}),
            5: DecodeError("bad fence"),
        }
    )
    aggregator = ResultAggregator()
    chunks = [f"chunk {index}" for index in range(1, 7)]

    summary = asyncio.run(_engine(generator, recording_sleep).run(chunks, aggregator))

    assert aggregator.failed_chunks == [1, 2, 3, 5]
    assert [post.chunk_number for post in aggregator.results] == [4, 6]
    assert len(aggregator.results) + len(aggregator.failed_chunks) == len(chunks)
    assert summary.attempted == len(chunks)


def test_delay_follows_every_attempt(recording_sleep, failing_generator):
    generator = failing_generator(1, 3)

    asyncio.run(_engine(generator, recording_sleep).run(["a", "b", "c", "d"], ResultAggregator()))

    assert recording_sleep.calls == [1.0, 1.0, 1.0, 1.0]


def test_chunks_are_dispatched_one_at_a_time(recording_sleep):
    in_flight = {"now": 0, "max": 0}

    class SlowGenerator(FakeGenerator):
        async def generate(self, content: str) -> str:
            in_flight["now"] += 1
            in_flight["max"] = max(in_flight["max"], in_flight["now"])
            await asyncio.sleep(0)
            in_flight["now"] -= 1
            return await super().generate(content)

    asyncio.run(_engine(SlowGenerator(), recording_sleep).run(["a", "b", "c"], ResultAggregator()))

    assert in_flight["max"] == 1


def test_progress_is_reported_before_each_chunk(recording_sleep):
    progress = ProgressReporter()
    seen: list[Progress] = []
    progress.subscribe(seen.append)
    generator = FakeGenerator()

    asyncio.run(_engine(generator, recording_sleep, progress).run(["a", "b", "c"], ResultAggregator()))

    assert [(item.current, item.total) for item in seen] == [(0, 3), (1, 3), (2, 3), (3, 3)]
    assert {item.step for item in seen} == {GENERATING_STEP}
    assert progress.current == Progress(3, 3, GENERATING_STEP)


def test_progress_precedes_the_service_call(recording_sleep):
    progress = ProgressReporter()
    observed: list[int] = []

    class ObservingGenerator(FakeGenerator):
        async def generate(self, content: str) -> str:
            observed.append(progress.current.current)
            return await super().generate(content)

    asyncio.run(_engine(ObservingGenerator(), recording_sleep, progress).run(["a", "b"], ResultAggregator()))

    assert observed == [1, 2]


def test_chunk_preview_uses_first_100_characters(recording_sleep):
    chunk = "x" * 150
    aggregator = ResultAggregator()

    asyncio.run(_engine(FakeGenerator(), recording_sleep).run([chunk], aggregator))

    assert aggregator.results[0].chunk_preview == "x" * 100 + "..."


def test_zero_chunks_is_a_run_level_error(recording_sleep):
    generator = FakeGenerator()

    with pytest.raises(NoChunksError):
        asyncio.run(_engine(generator, recording_sleep).run([], ResultAggregator()))

    assert generator.calls == []
    assert recording_sleep.calls == []
