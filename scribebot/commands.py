"""
Chat command handling for the configured conversation.

Inbound messages are matched in this order:

1. ``/transcription`` – send the stored transcript, if any.
2. ``/amend`` – start an amendment (only once a transcript exists).
3. Any other message while an amendment is pending – the amendment
   instruction.  The summary is rewritten by the model and, when
   regeneration is enabled, condensed by a second call.
4. ``/ask <question>`` – answer a question from transcript and summary.
5. Plain text – replaces the summary as typed.

Other commands are ignored, as is every message from a chat other than the
configured one.  Each message is handled while holding the conversation lock,
so a transcription finishing mid-amendment cannot interleave with it.  Replies
are queued and sent once the lock is released.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from . import prompts
from .chat import ChatMessage, deliver
from .chunker import MAX_MESSAGE_LENGTH
from .errors import DeliveryError, InferenceError, InferenceOverloadedError
from .state import ConversationState

logger = logging.getLogger(__name__)

COMMAND_PREFIX = "/"

TRANSCRIPTION_UNAVAILABLE = "Transcription not available yet."
AMEND_INSTRUCTIONS = (
    "Tell me how the summary should change (for example \"make it shorter\" "
    "or \"add the budget figures\")."
)
ASK_GUIDANCE = (
    "Use /ask <question> once a recording has been transcribed and summarised, "
    "e.g. /ask What was decided?"
)
SUMMARY_UPDATED = "Summary updated."
OVERLOADED_NOTICE = "The AI model is overloaded right now. Please try again later."


def parse_command(text: str) -> Tuple[Optional[str], str]:
    """Split a message into ``(command, argument)``.

    ``command`` is ``None`` for plain text.  A ``@botname`` suffix, as
    Telegram adds in group chats, is dropped.
    """
    stripped = text.strip()
    if not stripped.startswith(COMMAND_PREFIX):
        return None, stripped
    parts = stripped.split(maxsplit=1)
    command = parts[0].split("@", 1)[0].lower()
    argument = parts[1].strip() if len(parts) > 1 else ""
    return command, argument


class CommandDispatcher:
    def __init__(
        self,
        state: ConversationState,
        inference,
        chat,
        chat_id: str,
        *,
        regenerate: bool = True,
        max_message_length: int = MAX_MESSAGE_LENGTH,
    ):
        self._state = state
        self._inference = inference
        self._chat = chat
        self._chat_id = str(chat_id)
        self._regenerate = regenerate
        self._max_message_length = max_message_length

    def handle(self, message: ChatMessage) -> None:
        if str(message.chat_id) != self._chat_id:
            logger.debug("Ignoring message from chat %s", message.chat_id)
            return
        command, argument = parse_command(message.text)
        replies: List[str] = []
        with self._state.lock:
            if command == "/transcription":
                self._send_transcription(replies)
            elif command == "/amend":
                self._begin_amendment(replies)
            elif self._state.awaiting_amendment:
                self._amend(message.text, replies)
            elif command == "/ask":
                self._ask(argument, replies)
            elif command is None:
                self._override_summary(message.text, replies)
            else:
                logger.info("Ignoring unknown command %s", command)
        # Replies go out after the lock is released so a slow chat send
        # never stalls pipeline writes.
        for reply in replies:
            self._send(reply)

    def _send(self, text: str) -> bool:
        try:
            deliver(self._chat, self._chat_id, text, self._max_message_length)
        except DeliveryError as exc:
            logger.error("Could not deliver chat reply: %s", exc)
            return False
        return True

    def _report_failure(self, action: str, exc: InferenceError, replies: List[str]) -> None:
        logger.warning("Failed to %s: %s", action, exc)
        if isinstance(exc, InferenceOverloadedError):
            replies.append(OVERLOADED_NOTICE)
        else:
            replies.append(f"Sorry, I couldn't {action}: {exc}")

    def _send_transcription(self, replies: List[str]) -> None:
        transcript = self._state.transcript
        replies.append(transcript if transcript is not None else TRANSCRIPTION_UNAVAILABLE)

    def _begin_amendment(self, replies: List[str]) -> None:
        if not self._state.begin_amendment():
            logger.info("Ignoring /amend: no transcript yet")
            return
        replies.append(AMEND_INSTRUCTIONS)

    def _amend(self, instruction: str, replies: List[str]) -> None:
        self._state.end_amendment()
        snapshot = self._state.snapshot()
        # Summarisation may have failed after transcription; amend the transcript then.
        current = snapshot.summary if snapshot.summary is not None else snapshot.transcript
        try:
            amended = self._inference.generate(
                prompts.AMEND_PROMPT.format(summary=current, instruction=instruction.strip())
            )
        except InferenceError as exc:
            self._report_failure("amend the summary", exc, replies)
            return
        self._state.set_summary(amended)
        replies.append(f"Summary amended:\n\n{amended}")

        if not self._regenerate:
            return
        try:
            regenerated = self._inference.generate(prompts.REGENERATE_PROMPT.format(summary=amended))
        except InferenceError as exc:
            self._report_failure("regenerate the summary", exc, replies)
            return
        self._state.set_summary(regenerated)
        replies.append(f"Summary regenerated:\n\n{regenerated}")

    def _ask(self, question: str, replies: List[str]) -> None:
        snapshot = self._state.snapshot()
        if not question or snapshot.transcript is None or snapshot.summary is None:
            replies.append(ASK_GUIDANCE)
            return
        try:
            answer = self._inference.generate(
                prompts.ASK_PROMPT.format(
                    transcript=snapshot.transcript,
                    summary=snapshot.summary,
                    question=question,
                )
            )
        except InferenceError as exc:
            self._report_failure("answer that question", exc, replies)
            return
        replies.append(answer)

    def _override_summary(self, text: str, replies: List[str]) -> None:
        self._state.set_summary(text)
        logger.info("Summary overwritten from chat (%d chars)", len(text))
        replies.append(SUMMARY_UPDATED)
