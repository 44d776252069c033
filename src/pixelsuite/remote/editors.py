"""
AI image edit collaborators.

The core only sees the `ImageEditor` capability: ``edit(image_bytes | None, instruction) -> bytes``.
The returned bytes are treated as a brand-new source image.

GeminiImageEditor talks to Google's ``generateContent`` REST endpoint; RembgBackgroundRemover
does local background removal when the optional ``rembg`` package is installed.
"""

from __future__ import annotations

import base64
import io
import time
from typing import Any, Optional, Protocol

import requests

from pixelsuite.config import Settings
from pixelsuite.core.errors import RemoteEditError
from pixelsuite.utils.logging import logger


class ImageEditor(Protocol):
    def edit(self, image: Optional[bytes], instruction: str) -> bytes:
        ...


def _sniff_mime(data: bytes) -> str:
    if data.startswith(b"\x89PNG"):
        return "image/png"
    if data.startswith(b"\xff\xd8"):
        return "image/jpeg"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    return "image/png"


def _first_inline_image(payload: dict[str, Any]) -> Optional[bytes]:
    for candidate in payload.get("candidates") or []:
        parts = (candidate.get("content") or {}).get("parts") or []
        for part in parts:
            inline = part.get("inlineData") or part.get("inline_data")
            if inline and inline.get("data"):
                return base64.b64decode(inline["data"])
    return None


class GeminiImageEditor:
    """
    Image edits through the Gemini ``generateContent`` API.

    Environment-driven defaults come from `Settings.from_env()`; pass explicit settings in tests.
    """

    def __init__(self, settings: Optional[Settings] = None, session: Optional[requests.Session] = None):
        self.settings = settings or Settings.from_env()
        self._http = session or requests

    @property
    def endpoint(self) -> str:
        return f"{self.settings.api_base}/models/{self.settings.model}:generateContent"

    def _build_body(self, image: Optional[bytes], instruction: str) -> dict[str, Any]:
        parts: list[dict[str, Any]] = []
        if image:
            parts.append(
                {
                    "inlineData": {
                        "mimeType": _sniff_mime(image),
                        "data": base64.b64encode(image).decode("ascii"),
                    }
                }
            )
        parts.append({"text": instruction})
        return {
            "contents": [{"parts": parts}],
            "generationConfig": {"responseModalities": ["IMAGE"]},
        }

    def edit(self, image: Optional[bytes], instruction: str) -> bytes:
        """
        Send *instruction* (and *image*, if any) and return the edited image bytes.

        Raises:
            RemoteEditError: missing/invalid key, transport failure, HTTP error, or no image returned
        """
        api_key = self.settings.api_key
        if not api_key:
            raise RemoteEditError(
                "The Gemini API key is missing. Set PIXELSUITE_API_KEY (or GEMINI_API_KEY)."
            )

        timeout = self.settings.timeout
        logger.info("Gemini edit request to %s (image: %s bytes)", self.settings.model, len(image) if image else 0)
        start = time.time()

        try:
            response = self._http.post(
                self.endpoint,
                headers={"x-goog-api-key": api_key, "Content-Type": "application/json"},
                json=self._build_body(image, instruction),
                timeout=timeout,
            )
        except requests.exceptions.Timeout:
            raise RemoteEditError(f"Gemini request timed out after {timeout:g}s") from None
        except requests.exceptions.RequestException as e:
            raise RemoteEditError(f"Could not reach the Gemini API: {e}") from e

        if response.status_code != 200:
            detail = response.text[:500]
            if "API key not valid" in detail or response.status_code in (401, 403):
                raise RemoteEditError("The Gemini API key is invalid or missing.")
            raise RemoteEditError(f"Gemini API error: HTTP {response.status_code} - {detail}")

        try:
            payload = response.json()
        except ValueError as e:
            raise RemoteEditError("Gemini returned a response that is not JSON.") from e

        data = _first_inline_image(payload)
        if data is None:
            raise RemoteEditError("No image data found in the AI response.")

        logger.info("Gemini edit done: %d bytes in %.0f ms", len(data), (time.time() - start) * 1000)
        return data


class RembgBackgroundRemover:
    """
    Local background removal with ``rembg``; the instruction is ignored.

    Returns a transparent PNG, like the remote remover.
    """

    def edit(self, image: Optional[bytes], instruction: str = "") -> bytes:
        if not image:
            raise RemoteEditError("Background removal needs an image.")
        try:
            from rembg import remove  # type: ignore
        except ImportError as e:
            raise RemoteEditError("rembg is not installed; install pixelsuite[rembg].") from e

        try:
            out = remove(image)
        except Exception as e:
            raise RemoteEditError(f"rembg failed: {e}") from e

        if isinstance(out, bytes):
            return out
        # rembg hands back a PIL image when given one; normalize to PNG bytes.
        buf = io.BytesIO()
        out.save(buf, format="PNG")
        return buf.getvalue()
