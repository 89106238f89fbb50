"""Dialogue client: system prompt + recent turns in, one short reply out.

Replies are cut to two sentences and scrubbed of phrases that give away that
the representative is a model.
"""
import logging
import re
from typing import Callable, Dict, List, Optional, Sequence

from pipeline.transcript import Utterance
from services import llm_client

logger = logging.getLogger(__name__)

MAX_HISTORY_TURNS = 12
MAX_SENTENCES = 2

BEHAVIOUR_PREAMBLE = (
    "Remember: Keep responses brief (1-2 sentences max). Never mention you're an AI, "
    "never mention training, never mention knowledge bases. "
    "Speak naturally as the business representative."
)
FALLBACK_REPLY = "I'm sorry, I'm having trouble right now."

_SENTENCE_RE = re.compile(r"[^.!?]+[.!?]+")
_DENYLIST_RE = re.compile(
    r"as an ai|i'm an ai|i am an ai|trained by|knowledge base|i don't have access",
    re.IGNORECASE,
)
_SOURCE_RE = re.compile(
    r"according to (the|my) (website|knowledge|information)", re.IGNORECASE
)


def truncate_sentences(text: str, limit: int = MAX_SENTENCES) -> str:
    sentences = _SENTENCE_RE.findall(text)
    if len(sentences) <= limit:
        return text
    return " ".join(s.strip() for s in sentences[:limit])


def strip_denylisted(text: str) -> str:
    text = _DENYLIST_RE.sub("", text)
    text = _SOURCE_RE.sub("", text)
    text = re.sub(r"\s+([,.!?])", r"\1", text)
    text = re.sub(r"\s{2,}", " ", text)
    return text.strip().lstrip(",;: ")


def postprocess(raw: str) -> str:
    return strip_denylisted(truncate_sentences(raw))


class DialogueClient:
    def __init__(
        self,
        chat: Optional[Callable[[List[Dict[str, str]]], str]] = None,
        max_turns: int = MAX_HISTORY_TURNS,
    ):
        self._chat = chat or llm_client.chat
        self.max_turns = max_turns

    def build_messages(
        self,
        utterance: str,
        prior_turns: Sequence[Utterance],
        prompt_context: str,
    ) -> List[Dict[str, str]]:
        recent = list(prior_turns)[-self.max_turns :] if self.max_turns else []
        messages = [
            {"role": "system", "content": f"{prompt_context}\n\n{BEHAVIOUR_PREAMBLE}"}
        ]
        messages.extend(turn.as_message() for turn in recent)
        messages.append({"role": "user", "content": utterance})
        return messages

    def send(
        self,
        utterance: str,
        prior_turns: Sequence[Utterance],
        prompt_context: str,
    ) -> str:
        """Raises UpstreamError when the endpoint fails."""
        messages = self.build_messages(utterance, prior_turns, prompt_context)
        logger.info(
            f"[dialogue] sending {len(messages)} messages, prompt={len(prompt_context)} chars"
        )
        raw = self._chat(messages)
        reply = postprocess(raw or "")
        return reply or FALLBACK_REPLY
