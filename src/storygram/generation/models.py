"""Schema of the posts returned by the generation service."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from storygram.errors import MalformedResponseError

PREVIEW_CHARS = 100


def make_preview(text: str, limit: int = PREVIEW_CHARS) -> str:
    """First ``limit`` characters of *text* followed by an ellipsis."""

    return text[:limit] + "..."


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class Caption(_CamelModel):
    hook: str
    main_text: str = Field(..., alias="mainText")
    call_to_action: str = Field(..., alias="callToAction")


class ImagePrompt(_CamelModel):
    description: str
    style: str


class GeneratedPost(_CamelModel):
    """A generated post plus the provenance of the text it was made from."""

    caption: Caption
    hashtags: List[str]
    image_prompt: ImagePrompt = Field(..., alias="imagePrompt")
    chunk_number: Optional[int] = Field(None, alias="chunkNumber")
    chunk_preview: Optional[str] = Field(None, alias="chunkPreview")
    page_number: Optional[int] = Field(None, alias="pageNumber")
    selected_text: Optional[str] = Field(None, alias="selectedText")

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


def build_post(payload: Dict[str, Any], **provenance: Any) -> GeneratedPost:
    """Validate a decoded payload and attach provenance (wire-named keys).

    Provenance wins over keys of the same name inside *payload*.
    """

    try:
        return GeneratedPost.model_validate({**payload, **provenance})
    except ValidationError as error:
        raise MalformedResponseError(
            f"Generated post does not match the expected schema: {error.error_count()} error(s)",
            cause=error,
        ) from error


__all__ = ["Caption", "GeneratedPost", "ImagePrompt", "PREVIEW_CHARS", "build_post", "make_preview"]
