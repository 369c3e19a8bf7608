"""
Gemini ``generateContent`` client.

Each call is stateless: one prompt, optionally one inline binary attachment,
one HTTP POST.  No conversation history is sent and nothing is retried; the
caller decides what to do with a failure.  Failures are classified so callers
can tell an overloaded model (worth trying again later) from any other
remote error.

Usage::

    client = InferenceClient(api_key, model="gemini-2.0-flash")
    text = client.generate("Transcribe this.", Attachment("audio/mpeg", data))
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from .config import DEFAULT_API_URL
from .errors import (
    InferenceEmptyResultError,
    InferenceOverloadedError,
    InferenceRemoteError,
    InferenceTransportError,
)

logger = logging.getLogger(__name__)

OVERLOADED_PHRASE = "model is overloaded"


@dataclass(frozen=True)
class Attachment:
    mime_type: str
    data: bytes


def build_payload(prompt: str, attachment: Optional[Attachment] = None) -> Dict[str, Any]:
    """Build the JSON body for a single-turn ``generateContent`` request."""
    parts: list = [{"text": prompt}]
    if attachment is not None:
        parts.append(
            {
                "inlineData": {
                    "mimeType": attachment.mime_type,
                    "data": base64.b64encode(attachment.data).decode("ascii"),
                }
            }
        )
    return {"contents": [{"role": "user", "parts": parts}]}


def extract_text(result: Any) -> Optional[str]:
    """Return the first part's text of the first candidate, or ``None``."""
    try:
        text = result["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    return text if isinstance(text, str) else None


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return response.text or f"HTTP {response.status_code}"


class InferenceClient:
    """Thin wrapper around the Gemini REST endpoint."""

    def __init__(
        self,
        api_key: str,
        *,
        model: str = "gemini-2.0-flash",
        api_url: str = DEFAULT_API_URL,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self._api_key = api_key
        self._url = api_url.format(model=model)
        self._timeout = timeout
        self._session = session or requests.Session()
        self.model = model

    def generate(self, prompt: str, attachment: Optional[Attachment] = None) -> str:
        """Send ``prompt`` (and ``attachment``) and return the generated text.

        Args:
            prompt: Instruction text.
            attachment: Optional inline binary part, e.g. the uploaded audio.

        Returns:
            The stripped text of the first candidate's first content part.

        Raises:
            InferenceTransportError: The request did not complete.
            InferenceOverloadedError: The endpoint reported model overload.
            InferenceRemoteError: Any other non-success status.
            InferenceEmptyResultError: Success status but no usable text.
        """
        payload = build_payload(prompt, attachment)
        logger.info(
            "Calling generative model %s (attachment=%s)",
            self.model,
            attachment.mime_type if attachment else None,
        )
        try:
            response = self._session.post(
                self._url,
                params={"key": self._api_key},
                headers={"Content-Type": "application/json"},
                json=payload,
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            logger.warning("Generative model request failed: %s", exc)
            raise InferenceTransportError(str(exc)) from exc

        if not response.ok:
            message = _error_message(response)
            logger.warning("Generative model returned %s: %s", response.status_code, message)
            if OVERLOADED_PHRASE in message.lower():
                raise InferenceOverloadedError(message)
            raise InferenceRemoteError(message, status_code=response.status_code)

        try:
            result = response.json()
        except ValueError:
            raise InferenceEmptyResultError(raw=response.text) from None

        text = extract_text(result)
        if text is None or not text.strip():
            raise InferenceEmptyResultError(raw=result)
        return text.strip()
