"""
Telegram Bot API transport.

Outbound: :meth:`TelegramChat.send_message` posts one message and
:func:`deliver` sends a long text as ordered fragments that respect the
per-message size limit.

Inbound: :meth:`TelegramChat.poll` is a receive loop over ``getUpdates``.  It
hands text messages to a handler one at a time, in the order Telegram
returns them, so a single loop never dispatches two messages concurrently.
Failed polls are retried with exponential backoff; a failing handler is
logged and the loop moves on to the next update.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import requests
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from .chunker import MAX_MESSAGE_LENGTH, split_message
from .errors import DeliveryError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChatMessage:
    chat_id: str
    text: str


class TelegramChat:
    def __init__(
        self,
        token: str,
        *,
        api_url: str = "https://api.telegram.org",
        poll_timeout: int = 30,
        session: Optional[requests.Session] = None,
    ):
        self._base = f"{api_url.rstrip('/')}/bot{token}"
        self._poll_timeout = poll_timeout
        self._session = session or requests.Session()

    def send_message(self, chat_id: str, text: str) -> None:
        """Send ``text`` to ``chat_id``.

        Raises:
            DeliveryError: The request failed or Telegram rejected it.
        """
        try:
            response = self._session.post(
                f"{self._base}/sendMessage",
                json={"chat_id": chat_id, "text": text},
            )
        except requests.RequestException as exc:
            raise DeliveryError(f"Could not reach Telegram: {exc}") from exc
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not response.ok or not body.get("ok", False):
            description = body.get("description") or response.text
            raise DeliveryError(f"Telegram rejected message ({response.status_code}): {description}")

    @retry(
        wait=wait_exponential(multiplier=1, max=30),
        stop=stop_after_attempt(5),
        retry=retry_if_exception_type(requests.RequestException),
        reraise=True,
    )
    def get_updates(self, offset: Optional[int] = None) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"timeout": self._poll_timeout, "allowed_updates": '["message"]'}
        if offset is not None:
            params["offset"] = offset
        response = self._session.get(
            f"{self._base}/getUpdates",
            params=params,
            timeout=self._poll_timeout + 10,
        )
        response.raise_for_status()
        body = response.json()
        if not body.get("ok", False):
            raise requests.RequestException(f"getUpdates failed: {body.get('description')}")
        return body.get("result", [])

    def poll(
        self,
        handler: Callable[[ChatMessage], None],
        stop_event: Optional[threading.Event] = None,
    ) -> None:
        """Feed inbound text messages to ``handler`` until ``stop_event`` is set."""
        stop_event = stop_event or threading.Event()
        offset: Optional[int] = None
        logger.info("Chat receive loop started")
        while not stop_event.is_set():
            try:
                updates = self.get_updates(offset)
            except (requests.RequestException, ValueError):
                logger.exception("Polling Telegram failed; backing off")
                stop_event.wait(30)
                continue
            for update in updates:
                offset = update["update_id"] + 1
                message = _parse_update(update)
                if message is None:
                    continue
                try:
                    handler(message)
                except Exception:
                    logger.exception("Error handling chat message from %s", message.chat_id)
                if stop_event.is_set():
                    break
        logger.info("Chat receive loop stopped")


def _parse_update(update: Dict[str, Any]) -> Optional[ChatMessage]:
    message = update.get("message") or {}
    text = message.get("text")
    chat = message.get("chat") or {}
    if not text or "id" not in chat:
        return None
    return ChatMessage(chat_id=str(chat["id"]), text=text)


def deliver(chat, chat_id: str, text: str, max_length: int = MAX_MESSAGE_LENGTH) -> int:
    """Send ``text`` as ordered fragments and return how many were sent.

    Fragments already sent stay sent if a later one fails; the
    :class:`DeliveryError` propagates to the caller.
    """
    fragments = split_message(text, max_length)
    for i, fragment in enumerate(fragments, start=1):
        chat.send_message(chat_id, fragment)
        logger.debug("Delivered fragment %d/%d to %s", i, len(fragments), chat_id)
    return len(fragments)
