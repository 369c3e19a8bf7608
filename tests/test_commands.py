import threading

import pytest

from conftest import FakeChat, FakeInference
from scribebot.chat import ChatMessage
from scribebot.commands import (
    AMEND_INSTRUCTIONS,
    ASK_GUIDANCE,
    OVERLOADED_NOTICE,
    SUMMARY_UPDATED,
    TRANSCRIPTION_UNAVAILABLE,
    CommandDispatcher,
    parse_command,
)
from scribebot.errors import InferenceOverloadedError, InferenceRemoteError
from scribebot.state import Mode


def _dispatcher(state, inference, chat, **kwargs):
    return CommandDispatcher(state, inference, chat, "42", **kwargs)


def _say(dispatcher, text, chat_id="42"):
    dispatcher.handle(ChatMessage(chat_id, text))


@pytest.fixture
def transcribed(state):
    state.set_transcript("Person A: budget is 10k.\nPerson B: agreed.")
    state.set_summary("Budget agreed at 10k.")
    return state


def test_parse_command():
    assert parse_command("/ask  What was decided? ") == ("/ask", "What was decided?")
    assert parse_command("/amend@scribe_bot") == ("/amend", "")
    assert parse_command(" make it shorter ") == (None, "make it shorter")


def test_ignores_other_chats(transcribed, chat):
    inference = FakeInference()
    _say(_dispatcher(transcribed, inference, chat), "overwrite me", chat_id="99")
    assert chat.sent == []
    assert transcribed.summary == "Budget agreed at 10k."


def test_transcription_not_available(state, chat):
    _say(_dispatcher(state, FakeInference(), chat), "/transcription")
    assert chat.texts == [TRANSCRIPTION_UNAVAILABLE]


def test_transcription_is_chunked(state, chat):
    state.set_transcript("abcdefghij")
    _say(_dispatcher(state, FakeInference(), chat, max_message_length=4), "/transcription")
    assert chat.texts == ["abcd", "efgh", "ij"]


def test_amend_without_transcript_is_noop(state, chat):
    _say(_dispatcher(state, FakeInference(), chat), "/amend")
    assert chat.sent == []
    assert state.mode is Mode.IDLE


def test_amend_then_instruction_regenerates(transcribed, chat):
    inference = FakeInference("Budget: 10k.", "10k budget agreed.")
    dispatcher = _dispatcher(transcribed, inference, chat)

    _say(dispatcher, "/amend")
    assert transcribed.mode is Mode.AWAITING_AMENDMENT
    _say(dispatcher, "make it shorter")

    assert transcribed.mode is Mode.IDLE
    assert transcribed.summary == "10k budget agreed."
    assert "Budget agreed at 10k." in inference.calls[0][0]
    assert "make it shorter" in inference.calls[0][0]
    assert "Budget: 10k." in inference.calls[1][0]
    assert chat.texts == [
        AMEND_INSTRUCTIONS,
        "Summary amended:\n\nBudget: 10k.",
        "Summary regenerated:\n\n10k budget agreed.",
    ]


def test_amend_without_regeneration(transcribed, chat):
    inference = FakeInference("Budget: 10k.")
    dispatcher = _dispatcher(transcribed, inference, chat, regenerate=False)
    _say(dispatcher, "/amend")
    _say(dispatcher, "shorter")
    assert len(inference.calls) == 1
    assert transcribed.summary == "Budget: 10k."


def test_amend_failure_clears_flag(transcribed, chat):
    inference = FakeInference(InferenceOverloadedError())
    dispatcher = _dispatcher(transcribed, inference, chat)
    _say(dispatcher, "/amend")
    _say(dispatcher, "shorter")
    assert transcribed.mode is Mode.IDLE
    assert transcribed.summary == "Budget agreed at 10k."
    assert chat.texts[-1] == OVERLOADED_NOTICE

    # The next plain message is a manual override again.
    _say(dispatcher, "Manual summary")
    assert transcribed.summary == "Manual summary"


def test_regeneration_failure_keeps_amended_summary(transcribed, chat):
    inference = FakeInference("Budget: 10k.", InferenceRemoteError("quota exceeded", 429))
    dispatcher = _dispatcher(transcribed, inference, chat)
    _say(dispatcher, "/amend")
    _say(dispatcher, "shorter")
    assert transcribed.summary == "Budget: 10k."
    assert chat.texts[-1] == "Sorry, I couldn't regenerate the summary: quota exceeded"


def test_amend_falls_back_to_transcript_without_summary(state, chat):
    state.set_transcript("Person A: hello")
    inference = FakeInference("Greeting.")
    dispatcher = _dispatcher(state, inference, chat, regenerate=False)
    _say(dispatcher, "/amend")
    _say(dispatcher, "summarise it")
    assert "Person A: hello" in inference.calls[0][0]
    assert state.summary == "Greeting."


def test_commands_while_awaiting(transcribed, chat):
    inference = FakeInference("Amended.", "Regenerated.")
    dispatcher = _dispatcher(transcribed, inference, chat)
    _say(dispatcher, "/amend")
    _say(dispatcher, "/transcription")
    assert transcribed.mode is Mode.AWAITING_AMENDMENT
    _say(dispatcher, "/amend")
    assert transcribed.mode is Mode.AWAITING_AMENDMENT
    _say(dispatcher, "/ask add the date")
    assert transcribed.mode is Mode.IDLE
    assert "/ask add the date" in inference.calls[0][0]
    assert transcribed.summary == "Regenerated."


def test_ask_before_upload_gives_guidance(state, chat):
    inference = FakeInference()
    _say(_dispatcher(state, inference, chat), "/ask What was decided?")
    assert chat.texts == [ASK_GUIDANCE]
    assert inference.calls == []


def test_ask_without_question_gives_guidance(transcribed, chat):
    inference = FakeInference()
    _say(_dispatcher(transcribed, inference, chat), "/ask   ")
    assert chat.texts == [ASK_GUIDANCE]
    assert inference.calls == []


def test_ask_answers_without_mutation(transcribed, chat):
    inference = FakeInference("They agreed on 10k.")
    before = transcribed.snapshot()
    _say(_dispatcher(transcribed, inference, chat), "/ask What was decided?")
    prompt = inference.calls[0][0]
    assert "What was decided?" in prompt
    assert before.transcript in prompt
    assert before.summary in prompt
    assert chat.texts == ["They agreed on 10k."]
    assert transcribed.snapshot() == before


def test_ask_failure_notice(transcribed, chat):
    inference = FakeInference(InferenceOverloadedError())
    _say(_dispatcher(transcribed, inference, chat), "/ask anything?")
    assert chat.texts == [OVERLOADED_NOTICE]


def test_plain_text_overwrites_summary(state, chat):
    inference = FakeInference()
    _say(_dispatcher(state, inference, chat), "  Hand-written summary ")
    assert state.summary == "  Hand-written summary "
    assert chat.texts == [SUMMARY_UPDATED]
    assert inference.calls == []


def test_unknown_command_ignored(transcribed, chat):
    _say(_dispatcher(transcribed, FakeInference(), chat), "/start")
    assert chat.sent == []
    assert transcribed.summary == "Budget agreed at 10k."


def test_delivery_failure_does_not_undo_override(state):
    chat = FakeChat(fail_on=0)
    _say(_dispatcher(state, FakeInference(), chat), "new summary")
    assert state.summary == "new summary"


class LockCheckingChat(FakeChat):
    """Records whether another thread could take the state lock during each send."""

    def __init__(self, state):
        super().__init__()
        self.state = state
        self.lock_free = []

    def send_message(self, chat_id, text):
        result = []

        def try_lock():
            acquired = self.state.lock.acquire(blocking=False)
            if acquired:
                self.state.lock.release()
            result.append(acquired)

        t = threading.Thread(target=try_lock)
        t.start()
        t.join(5)
        self.lock_free.append(result == [True])
        super().send_message(chat_id, text)


def test_replies_are_sent_outside_the_lock(transcribed):
    chat = LockCheckingChat(transcribed)
    dispatcher = _dispatcher(transcribed, FakeInference("Amended.", "Regenerated."), chat)
    _say(dispatcher, "/amend")
    _say(dispatcher, "shorter")
    _say(dispatcher, "/transcription")
    assert len(chat.lock_free) == 4
    assert all(chat.lock_free)
