"""Generate book cover images with a remote generative image model."""

from __future__ import annotations

from typing import Protocol

import httpx
import structlog

from .errors import CoverGenerationError

log = structlog.get_logger()

DEFAULT_COVER_MODEL = "gemini-2.0-flash-preview-image-generation"
DEFAULT_API_BASE = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_TIMEOUT = 120.0  # seconds; image generation is slow

COVER_PROMPT = (
    "Generate a book cover image based on the following information:\n\n"
    "Title: {title}\n"
    "Author: {author}\n"
    "ISBN: {isbn}\n\n"
    "The image should be visually appealing and relevant to the book's content."
)


class CoverSource(Protocol):
    async def generate(self, title: str, author: str, isbn: str) -> str: ...


def build_cover_prompt(title: str, author: str, isbn: str) -> str:
    return COVER_PROMPT.format(title=title, author=author, isbn=isbn)


def extract_image_url(data: object) -> str:
    """Return the first image reference in a generateContent response.

    Inline image bytes become a data URL; hosted files are returned as-is.
    Returns an empty string when the response carries no image.
    """
    if not isinstance(data, dict):
        return ""
    candidates = data.get("candidates")
    if not isinstance(candidates, list):
        return ""
    for candidate in candidates:
        content = candidate.get("content") if isinstance(candidate, dict) else None
        parts = content.get("parts") if isinstance(content, dict) else None
        if not isinstance(parts, list):
            continue
        for part in parts:
            if not isinstance(part, dict):
                continue
            inline = part.get("inlineData") or part.get("inline_data")
            if isinstance(inline, dict) and inline.get("data"):
                mime = inline.get("mimeType") or inline.get("mime_type") or "image/png"
                return f"data:{mime};base64,{inline['data']}"
            file_data = part.get("fileData") or part.get("file_data")
            if not isinstance(file_data, dict):
                continue
            uri = file_data.get("fileUri") or file_data.get("file_uri")
            if isinstance(uri, str) and uri:
                return uri
    return ""


class CoverGenerator:
    """Single-shot client for the image model.

    Exactly one request per call: no retries, no caching.
    """

    def __init__(
        self,
        api_key: str = "",
        model: str = DEFAULT_COVER_MODEL,
        api_base: str = DEFAULT_API_BASE,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def generate(self, title: str, author: str, isbn: str) -> str:
        """Request a cover and return its image reference.

        Raises CoverGenerationError on transport errors, error statuses,
        malformed responses and responses without an image.
        """
        if not self.api_key:
            log.error("cover_api_key_missing", isbn=isbn)
            raise CoverGenerationError("No API key configured for cover generation")

        url = f"{self.api_base}/models/{self.model}:generateContent"
        payload = {
            "contents": [{"parts": [{"text": build_cover_prompt(title, author, isbn)}]}],
            "generationConfig": {"responseModalities": ["TEXT", "IMAGE"]},
        }
        headers = {"x-goog-api-key": self.api_key, "Content-Type": "application/json"}

        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                resp = await client.post(url, json=payload, headers=headers)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPError as e:
            log.warning("cover_request_failed", isbn=isbn, model=self.model, error=str(e))
            raise CoverGenerationError(f"Cover request failed: {e}") from e
        except ValueError as e:
            log.warning("cover_response_malformed", isbn=isbn, model=self.model)
            raise CoverGenerationError("Cover response was not valid JSON") from e

        image_url = extract_image_url(data)
        if not image_url:
            log.warning("cover_response_empty", isbn=isbn, model=self.model)
            raise CoverGenerationError("Cover response contained no image")

        log.info("cover_generated", isbn=isbn, model=self.model)
        return image_url
