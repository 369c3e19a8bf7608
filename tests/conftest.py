import threading

import pytest

from scribebot.config import Settings
from scribebot.errors import DeliveryError
from scribebot.state import ConversationState


class FakeInference:
    """Returns queued replies in order; an exception in the queue is raised."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def generate(self, prompt, attachment=None):
        self.calls.append((prompt, attachment))
        if not self.responses:
            raise AssertionError(f"unexpected inference call: {prompt[:40]!r}")
        reply = self.responses.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeChat:
    def __init__(self, fail_on=None):
        self.sent = []
        self.fail_on = fail_on
        self._lock = threading.Lock()

    def send_message(self, chat_id, text):
        with self._lock:
            if self.fail_on is not None and len(self.sent) == self.fail_on:
                raise DeliveryError("chat is down")
            self.sent.append((chat_id, text))

    @property
    def texts(self):
        return [text for _, text in self.sent]


@pytest.fixture
def state():
    return ConversationState()


@pytest.fixture
def chat():
    return FakeChat()


@pytest.fixture
def settings():
    return Settings(gemini_api_key="key", telegram_bot_token="token", telegram_chat_id="42")
