"""Shared fixtures: hand-assembled PDFs and a scripted generation service."""
from __future__ import annotations

import asyncio
import json
from typing import Callable, Dict, Iterable, List, Optional

import pytest

from storygram.config import Settings
from storygram.errors import GenerationError, GenerationStatusError
from storygram.ingest.extractor import PdfBackend


def _escape_pdf_text(text: str) -> str:
    return text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def make_pdf(pages: Iterable[str]) -> bytes:
    """Build a minimal PDF with one Helvetica text line per page."""

    page_texts = list(pages)
    page_ids = [4 + 2 * index for index in range(len(page_texts))]
    kids = " ".join(f"{page_id} 0 R" for page_id in page_ids)

    objects: List[bytes] = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        f"<< /Type /Pages /Kids [{kids}] /Count {len(page_texts)} >>".encode("ascii"),
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    for page_id, text in zip(page_ids, page_texts):
        objects.append(
            (
                f"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 200 300] /Contents {page_id + 1} 0 R "
                "/Resources << /Font << /F1 3 0 R >> >> >>"
            ).encode("ascii")
        )
        stream = f"BT /F1 12 Tf 10 150 Td ({_escape_pdf_text(text)}) Tj ET".encode("latin-1")
        objects.append(b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream")

    out = bytearray(b"%PDF-1.4\n")
    offsets: List[int] = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += f"{number} 0 obj\n".encode("ascii") + body + b"\nendobj\n"

    xref_offset = len(out)
    out += f"xref\n0 {len(objects) + 1}\n".encode("ascii")
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += f"{offset:010d} 00000 n \n".encode("ascii")
    out += (
        f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\nstartxref\n{xref_offset}\n%%EOF\n"
    ).encode("ascii")
    return bytes(out)


def post_payload(label: str) -> Dict[str, object]:
    return {
        "caption": {
            "hook": f"Hook {label}",
            "mainText": f"Main text {label}",
            "callToAction": f"Follow for more {label}",
        },
        "hashtags": ["#books", f"#{label}"],
        "imagePrompt": {"description": f"Scene {label}", "style": "watercolor"},
    }


def fenced(payload: object) -> str:
    return "```json\n" + json.dumps(payload) + "\n```"


def words(count: int, prefix: str = "w") -> str:
    return " ".join(f"{prefix}{index}" for index in range(count))


class FakeGenerator:
    """Generation service double; ``outcomes`` maps call number to a result or an exception."""

    def __init__(self, outcomes: Optional[Dict[int, object]] = None) -> None:
        self.outcomes = outcomes or {}
        self.calls: List[str] = []

    async def generate(self, content: str) -> str:
        self.calls.append(content)
        call_number = len(self.calls)
        outcome = self.outcomes.get(call_number)
        if isinstance(outcome, BaseException):
            raise outcome
        if isinstance(outcome, str):
            return outcome
        return fenced(post_payload(f"c{call_number}"))


class RecordingSleep:
    def __init__(self) -> None:
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        generation_url="https://generation.test/events",
        api_key="test-key",
        words_per_chunk=5,
        request_delay_ms=1000,
    )


@pytest.fixture
def backend() -> PdfBackend:
    pdf_backend = PdfBackend()
    asyncio.run(pdf_backend.initialize())
    return pdf_backend


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def failing_generator() -> Callable[..., FakeGenerator]:
    def factory(*failing_calls: int, error: Optional[GenerationError] = None) -> FakeGenerator:
        return FakeGenerator({call: error or GenerationStatusError(500) for call in failing_calls})

    return factory
