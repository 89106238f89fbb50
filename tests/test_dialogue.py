"""Tests for the dialogue client: request shape and reply post-processing."""

from __future__ import annotations

import pytest

from errors import UpstreamError
from pipeline.transcript import Speaker, Utterance
from services.dialogue import (
    BEHAVIOUR_PREAMBLE,
    FALLBACK_REPLY,
    MAX_HISTORY_TURNS,
    DialogueClient,
    strip_denylisted,
    truncate_sentences,
)


class RecordingChat:
    def __init__(self, reply="Sure thing."):
        self.reply = reply
        self.messages = None

    def __call__(self, messages, **kwargs):
        self.messages = messages
        if isinstance(self.reply, Exception):
            raise self.reply
        return self.reply


def turns(n):
    return [
        Utterance(Speaker.USER if i % 2 == 0 else Speaker.ASSISTANT, f"turn {i}")
        for i in range(n)
    ]


class TestTruncation:
    def test_five_sentences_keep_first_two(self):
        reply = "We open at nine. We close at six. Saturdays too. Sundays no. Call us!"
        assert truncate_sentences(reply) == "We open at nine. We close at six."

    def test_two_sentences_unchanged(self):
        assert truncate_sentences("Sure! What day works?") == "Sure! What day works?"

    def test_no_terminator_keeps_whole_reply(self):
        assert truncate_sentences("Happy to help with that") == "Happy to help with that"

    def test_two_terminators_keep_trailing_fragment(self):
        reply = "Great choice. See you Friday. and then"
        assert truncate_sentences(reply) == reply

    def test_repeated_punctuation_counts_once(self):
        assert truncate_sentences("Wow!!! Really?! Yes. No.") == "Wow!!! Really?!"


class TestDenylist:
    def test_as_an_ai_removed(self):
        out = strip_denylisted("As an AI, I can tell you we open at nine.")
        assert "as an ai" not in out.lower()
        assert out == "I can tell you we open at nine."

    @pytest.mark.parametrize(
        "phrase",
        ["I'm an AI", "i am an ai", "trained by", "Knowledge Base", "I don't have access"],
    )
    def test_denylisted_phrases_removed(self, phrase):
        out = strip_denylisted(f"Hello {phrase} there.")
        assert phrase.lower() not in out.lower()

    def test_source_mentions_removed(self):
        out = strip_denylisted("According to the website we open at nine.")
        assert out == "we open at nine."


class TestSend:
    def test_request_shape(self):
        chat = RecordingChat()
        client = DialogueClient(chat=chat)
        client.send("Do you do nails?", turns(2), "PROMPT")

        system = chat.messages[0]
        assert system["role"] == "system"
        assert system["content"].startswith("PROMPT")
        assert BEHAVIOUR_PREAMBLE in system["content"]
        assert chat.messages[1:3] == [
            {"role": "user", "content": "turn 0"},
            {"role": "assistant", "content": "turn 1"},
        ]
        assert chat.messages[-1] == {"role": "user", "content": "Do you do nails?"}

    def test_history_bounded_to_last_twelve(self):
        chat = RecordingChat()
        DialogueClient(chat=chat).send("next", turns(20), "PROMPT")

        history = chat.messages[1:-1]
        assert len(history) == MAX_HISTORY_TURNS
        assert history[0]["content"] == "turn 8"
        assert history[-1]["content"] == "turn 19"

    def test_reply_is_postprocessed(self):
        chat = RecordingChat("As an AI I love it. Sure! What day? Noon? Or later?")
        reply = DialogueClient(chat=chat).send("hi", [], "PROMPT")
        assert reply == "I love it. Sure!"

    def test_empty_reply_falls_back(self):
        reply = DialogueClient(chat=RecordingChat("")).send("hi", [], "PROMPT")
        assert reply == FALLBACK_REPLY

    def test_upstream_error_propagates(self):
        client = DialogueClient(chat=RecordingChat(UpstreamError("boom", status=503)))
        with pytest.raises(UpstreamError):
            client.send("hi", [], "PROMPT")
