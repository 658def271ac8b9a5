"""HTTP client for the external post generation service."""
from __future__ import annotations

import logging
from typing import Any, Optional, Protocol, runtime_checkable

import httpx

from storygram.config import Settings, get_settings
from storygram.errors import (
    GenerationError,
    GenerationStatusError,
    GenerationTransportError,
    MalformedResponseError,
)

LOGGER = logging.getLogger(__name__)


@runtime_checkable
class PostGenerator(Protocol):
    """Anything that turns a text payload into the service's raw result string."""

    async def generate(self, content: str) -> str:
        ...


def extract_result(payload: Any) -> str:
    """Return ``outputEvents[0].result`` or raise :class:`MalformedResponseError`."""

    try:
        result = payload["outputEvents"][0]["result"]
    except (KeyError, IndexError, TypeError) as error:
        raise MalformedResponseError("Invalid API response format", cause=error) from error
    if not result:
        raise MalformedResponseError("Invalid API response format")
    return result


class GenerationClient:
    """Send one text payload per request to the generation endpoint.

    Authentication uses the ``api-key`` header; the request body is a
    single-element list ``[{"content": text}]``.
    """

    def __init__(
        self,
        url: Optional[str],
        api_key: Optional[str],
        *,
        timeout_seconds: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.url = url
        self._api_key = api_key
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "GenerationClient":
        settings = settings or get_settings()
        return cls(
            settings.generation_url,
            settings.api_key,
            timeout_seconds=settings.request_timeout_seconds,
        )

    @property
    def configured(self) -> bool:
        return bool(self.url and self._api_key)

    def _client_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {}
        if self._timeout_seconds is not None:
            kwargs["timeout"] = httpx.Timeout(self._timeout_seconds)
        if self._transport is not None:
            kwargs["transport"] = self._transport
        return kwargs

    async def generate(self, content: str) -> str:
        if not self.configured:
            raise GenerationError("Generation service endpoint or API key is not configured")

        headers = {"api-key": str(self._api_key), "Content-Type": "application/json"}
        body = [{"content": content}]

        try:
            async with httpx.AsyncClient(**self._client_kwargs()) as client:
                response = await client.post(str(self.url), headers=headers, json=body)
        except httpx.HTTPError as error:
            raise GenerationTransportError(f"Request to generation service failed: {error}", cause=error) from error

        if not response.is_success:
            LOGGER.debug("Generation service answered %s: %s", response.status_code, response.text[:200])
            raise GenerationStatusError(response.status_code)

        try:
            payload = response.json()
        except ValueError as error:
            raise MalformedResponseError("Invalid API response format", cause=error) from error
        return extract_result(payload)


__all__ = ["GenerationClient", "PostGenerator", "extract_result"]
