"""Exception types shared across the relay."""

from __future__ import annotations

from typing import Any, Optional


class ScribebotError(Exception):
    """Base class for every error the relay raises on purpose."""


class ConfigError(ScribebotError):
    """Raised at startup when required configuration is missing or invalid."""


class ValidationError(ScribebotError):
    """Raised for a bad upload or a malformed chat command."""


class AdmissionRejectedError(ScribebotError):
    """Raised when the concurrency ceiling for uploads has been reached."""

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"Too many requests in progress (limit {limit}). Please retry later.")


class InferenceError(ScribebotError):
    """Raised when a call to the generation endpoint does not yield text."""


class InferenceTransportError(InferenceError):
    """The endpoint could not be reached (connection error, timeout)."""


class InferenceRemoteError(InferenceError):
    """The endpoint answered with a non-success status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class InferenceOverloadedError(InferenceError):
    """The endpoint reported that the model is overloaded."""

    def __init__(self, message: str = "The model is overloaded. Please try again later."):
        super().__init__(message)


class InferenceEmptyResultError(InferenceError):
    """The endpoint answered successfully but without usable candidate text."""

    def __init__(self, raw: Any = None):
        self.raw = raw
        super().__init__("Gemini API response did not contain expected content.")


class TranscodingError(ScribebotError):
    """Raised when an oversized upload cannot be re-encoded."""


class DeliveryError(ScribebotError):
    """Raised when the chat transport rejects or fails to send a message."""
