"""
Runtime configuration for the relay.

All settings come from environment variables and are read once, at startup,
by :func:`load_settings`.  Credentials and the chat target are required; a
missing one raises :class:`~scribebot.errors.ConfigError` so the process
fails before it starts serving rather than on the first request.

Required:

* ``GEMINI_API_KEY`` – API key for the generative model.
* ``TELEGRAM_BOT_TOKEN`` – Bot token for the chat transport.
* ``TELEGRAM_CHAT_ID`` – The single chat the bot reads from and writes to.

Optional variables and their defaults are listed on :class:`Settings`.
Boolean flags follow the ``"true"``/``"false"`` convention.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .errors import ConfigError

DEFAULT_API_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

PIPELINE_MODES = ("full", "transcript", "summary", "combined")


@dataclass(frozen=True)
class Settings:
    gemini_api_key: str
    telegram_bot_token: str
    telegram_chat_id: str
    port: int = 8080
    gemini_model: str = "gemini-2.0-flash"
    gemini_api_url: str = DEFAULT_API_URL
    inference_timeout: Optional[float] = None
    max_concurrent: int = 5
    compression_threshold_bytes: int = 10 * 1024 * 1024
    compression_bitrate: str = "64k"
    pipeline_mode: str = "full"
    enable_summary_regeneration: bool = True
    telegram_api_url: str = "https://api.telegram.org"
    telegram_poll_timeout: int = 30
    message_max_length: int = 4096
    log_level: str = "INFO"


def _required(env: Mapping[str, str], name: str) -> str:
    value = env.get(name, "").strip()
    if not value:
        raise ConfigError(f"Missing required environment variable {name}")
    return value


def _int(env: Mapping[str, str], name: str, default: int, *, minimum: int = 1) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None
    if value < minimum:
        raise ConfigError(f"{name} must be at least {minimum}, got {value}")
    return value


def _flag(env: Mapping[str, str], name: str, default: bool) -> bool:
    return env.get(name, "true" if default else "false").lower() == "true"


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build :class:`Settings` from ``env`` (defaults to ``os.environ``).

    Raises:
        ConfigError: If a required variable is missing or a value is invalid.
    """
    if env is None:
        env = os.environ

    timeout_raw = env.get("INFERENCE_TIMEOUT_SECONDS", "").strip()
    timeout: Optional[float] = None
    if timeout_raw:
        try:
            timeout = float(timeout_raw)
        except ValueError:
            raise ConfigError(f"INFERENCE_TIMEOUT_SECONDS must be a number, got {timeout_raw!r}") from None

    log_level = env.get("LOG_LEVEL", "INFO").strip().upper()
    if not isinstance(logging.getLevelName(log_level), int):
        raise ConfigError(f"LOG_LEVEL must be a logging level name, got {log_level!r}")

    mode = env.get("PIPELINE_MODE", "full").strip().lower()
    if mode not in PIPELINE_MODES:
        raise ConfigError(f"PIPELINE_MODE must be one of {', '.join(PIPELINE_MODES)}, got {mode!r}")

    return Settings(
        gemini_api_key=_required(env, "GEMINI_API_KEY"),
        telegram_bot_token=_required(env, "TELEGRAM_BOT_TOKEN"),
        telegram_chat_id=_required(env, "TELEGRAM_CHAT_ID"),
        port=_int(env, "PORT", 8080),
        gemini_model=env.get("GEMINI_MODEL", "gemini-2.0-flash"),
        gemini_api_url=env.get("GEMINI_API_URL", DEFAULT_API_URL),
        inference_timeout=timeout,
        max_concurrent=_int(env, "MAX_CONCURRENT", 5),
        compression_threshold_bytes=_int(env, "COMPRESSION_THRESHOLD_BYTES", 10 * 1024 * 1024),
        compression_bitrate=env.get("COMPRESSION_BITRATE", "64k"),
        pipeline_mode=mode,
        enable_summary_regeneration=_flag(env, "ENABLE_SUMMARY_REGENERATION", True),
        telegram_api_url=env.get("TELEGRAM_API_URL", "https://api.telegram.org").rstrip("/"),
        telegram_poll_timeout=_int(env, "TELEGRAM_POLL_TIMEOUT", 30, minimum=0),
        message_max_length=_int(env, "MESSAGE_MAX_LENGTH", 4096),
        log_level=log_level,
    )
