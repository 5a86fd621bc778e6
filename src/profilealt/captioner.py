"""OpenAI vision captioner: turns one image URL or local file into a description."""

from __future__ import annotations

import base64
import logging
import mimetypes
from pathlib import Path
from typing import Any

import openai
import requests
from openai import OpenAI

from profilealt.errors import CaptionFailure

logger = logging.getLogger(__name__)

# ── Prompt used when the caller does not supply one ────────────────────────
DEFAULT_PROMPT = (
    "Generate a very detailed description for the image given accurately. "
    "Specially considering these points as separate headings like *SUMMARY*, "
    "*LOCATION OF ELEMENTS*, *ADDITIONAL DETAILS*, "
    "*SPECULATION ABOUT WHAT IS IN THE PICTURE*. "
    "Focus more on the objects both at forefront and as well as background."
)

_FALLBACK_MIME = "image/jpeg"


class ImageCaptioner:
    """Fetch an image, encode it, and ask a vision model to describe it."""

    def __init__(
        self,
        api_key: str = "",
        model: str = "gpt-4o-mini",
        timeout: float = 60.0,
        fetch_timeout: float = 30.0,
        max_tokens: int = 4096,
        client: Any = None,
        session: requests.Session | None = None,
    ) -> None:
        if client is None:
            if not api_key:
                raise ValueError("LLM_API_KEY is required but was empty.")
            # One attempt per image, no client-side retries.
            client = OpenAI(api_key=api_key, timeout=timeout, max_retries=0)
        self._client = client
        self._model = model
        self._fetch_timeout = fetch_timeout
        self._max_tokens = max_tokens
        self._session = session or requests.Session()

    # ── public ──────────────────────────────────────────────────────────

    def caption(self, source: str, prompt: str | None = None) -> str:
        """Describe the image at *source* (remote URL or local path)."""
        data, mime = self._load(source)
        encoded = base64.b64encode(data).decode("ascii")

        try:
            resp = self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": prompt or DEFAULT_PROMPT},
                            {
                                "type": "image_url",
                                "image_url": {"url": f"data:{mime};base64,{encoded}"},
                            },
                        ],
                    }
                ],
                max_tokens=self._max_tokens,
            )
        except openai.APITimeoutError as exc:
            raise CaptionFailure(f"captioning timed out: {exc}") from exc
        except openai.OpenAIError as exc:
            raise CaptionFailure(f"captioning failed: {exc}") from exc

        try:
            content = resp.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as exc:
            raise CaptionFailure(f"malformed captioning response: {exc}") from exc
        if not content or not content.strip():
            raise CaptionFailure("captioning returned an empty description")
        return content.strip()

    def __call__(self, source: str, prompt: str | None = None) -> str:
        return self.caption(source, prompt)

    # ── private ─────────────────────────────────────────────────────────

    def _load(self, source: str) -> tuple[bytes, str]:
        if source.startswith(("http://", "https://")):
            return self._fetch(source)
        path = Path(source)
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise CaptionFailure(f"cannot read image {source}: {exc}") from exc
        mime, _ = mimetypes.guess_type(path.name)
        return data, mime if mime and mime.startswith("image/") else _FALLBACK_MIME

    def _fetch(self, url: str) -> tuple[bytes, str]:
        try:
            resp = self._session.get(url, timeout=self._fetch_timeout)
        except requests.Timeout as exc:
            raise CaptionFailure(f"image fetch timed out: {url}") from exc
        except requests.RequestException as exc:
            raise CaptionFailure(f"image fetch failed: {exc}") from exc
        if resp.status_code != 200:
            raise CaptionFailure(f"image fetch returned {resp.status_code}: {url}")
        if not resp.content:
            raise CaptionFailure(f"image fetch returned no data: {url}")
        mime = resp.headers.get("Content-Type", "").split(";")[0].strip()
        logger.debug("Fetched %s (%d bytes, %s)", url, len(resp.content), mime or "?")
        return resp.content, mime if mime.startswith("image/") else _FALLBACK_MIME
