"""
The conversation record shared by the upload pipeline and the chat dispatcher.

There is exactly one conversation per process.  It remembers the latest
transcript, the current summary and whether the next chat message should be
read as an amendment instruction.  All access goes through one re-entrant
lock: short writes from the pipeline take it per call, while the dispatcher
holds it across a whole message (see :attr:`ConversationState.lock`).

The amendment mode can only be entered once a transcript exists.  Only
:meth:`ConversationState.record_result` can clear a transcript, and it
leaves amendment mode when it does, so "awaiting amendment without a
transcript" cannot happen.
"""

from __future__ import annotations

import enum
import threading
from dataclasses import dataclass
from typing import Optional


class Mode(enum.Enum):
    IDLE = "idle"
    AWAITING_AMENDMENT = "awaiting_amendment"


@dataclass(frozen=True)
class Snapshot:
    transcript: Optional[str]
    summary: Optional[str]
    mode: Mode

    @property
    def awaiting_amendment(self) -> bool:
        return self.mode is Mode.AWAITING_AMENDMENT


class ConversationState:
    def __init__(self) -> None:
        self.lock = threading.RLock()
        self._transcript: Optional[str] = None
        self._summary: Optional[str] = None
        self._mode = Mode.IDLE

    @property
    def transcript(self) -> Optional[str]:
        with self.lock:
            return self._transcript

    @property
    def summary(self) -> Optional[str]:
        with self.lock:
            return self._summary

    @property
    def mode(self) -> Mode:
        with self.lock:
            return self._mode

    @property
    def awaiting_amendment(self) -> bool:
        return self.mode is Mode.AWAITING_AMENDMENT

    def snapshot(self) -> Snapshot:
        with self.lock:
            return Snapshot(self._transcript, self._summary, self._mode)

    def set_transcript(self, transcript: str) -> None:
        if transcript is None:
            raise ValueError("transcript cannot be cleared")
        with self.lock:
            self._transcript = transcript

    def set_summary(self, summary: str) -> None:
        with self.lock:
            self._summary = summary

    def record_result(self, transcript: Optional[str], summary: str) -> None:
        """Replace transcript and summary together for a new recording.

        A result without a transcript drops the previous recording's
        transcript and any pending amendment, so the summary is never paired
        with another recording's text.
        """
        with self.lock:
            self._transcript = transcript
            self._summary = summary
            if transcript is None:
                self._mode = Mode.IDLE

    def begin_amendment(self) -> bool:
        """Enter amendment mode; returns ``False`` (no-op) without a transcript."""
        with self.lock:
            if self._transcript is None:
                return False
            self._mode = Mode.AWAITING_AMENDMENT
            return True

    def end_amendment(self) -> bool:
        """Leave amendment mode; returns whether it was active."""
        with self.lock:
            was_awaiting = self._mode is Mode.AWAITING_AMENDMENT
            self._mode = Mode.IDLE
            return was_awaiting
