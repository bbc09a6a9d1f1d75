from __future__ import annotations

import logging
from typing import Optional

import requests

from ..core.constants import AI_UNAVAILABLE_MESSAGE, DEFAULT_GEMINI_MODEL

logger = logging.getLogger(__name__)

GEMINI_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"


class GenerativeTextClient:
    """Gemini ``generateContent`` over REST.

    ``generate_text`` never raises: a missing key returns the unavailable
    message and any request or parse failure returns ``fallback``.
    """

    def __init__(
        self,
        api_key: Optional[str],
        *,
        model: str = DEFAULT_GEMINI_MODEL,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self._api_key = api_key or ""
        self._model = model or DEFAULT_GEMINI_MODEL
        self._timeout = timeout
        self._session = session or requests.Session()

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    def generate_text(self, prompt: str, *, fallback: str = "Failed to generate content.") -> str:
        if not self._api_key:
            logger.warning("Gemini API key is missing")
            return AI_UNAVAILABLE_MESSAGE

        body = {"contents": [{"parts": [{"text": prompt}]}]}
        try:
            resp = self._session.post(
                GEMINI_ENDPOINT.format(model=self._model),
                headers={"x-goog-api-key": self._api_key, "Content-Type": "application/json"},
                json=body,
                timeout=self._timeout,
            )
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as e:
            logger.error("Gemini error: %s", e)
            return fallback

        try:
            parts = data["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError):
            # No candidates (e.g. blocked prompt) reads as an empty answer.
            return ""
        return "".join(p.get("text", "") for p in parts if isinstance(p, dict))
