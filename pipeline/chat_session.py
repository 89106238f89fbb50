import logging
from typing import Optional

from config import SessionConfig
from errors import UpstreamError
from pipeline.transcript import Speaker, TranscriptLog, Utterance
from services.dialogue import DialogueClient

logger = logging.getLogger(__name__)

APOLOGY = "I apologize, but I'm having trouble connecting right now. Please try again."


class ChatSession:
    """Typed conversation: greeting first, then one reply per message."""

    def __init__(self, session: SessionConfig, dialogue: Optional[DialogueClient] = None):
        self._dialogue = dialogue or DialogueClient()
        self.transcript = TranscriptLog()
        self.reset(session)

    def reset(self, session: Optional[SessionConfig] = None) -> None:
        if session is not None:
            self.session = session
        self.transcript.clear()
        self.transcript.append(Speaker.ASSISTANT, self.session.greeting)

    def send(self, text: str) -> Optional[Utterance]:
        if not text or not text.strip():
            return None
        prior = self.transcript.entries
        self.transcript.append(Speaker.USER, text)
        try:
            reply = self._dialogue.send(text, prior, self.session.system_prompt)
        except UpstreamError as e:
            logger.error(f"[chat] dialogue failed: {e}")
            reply = APOLOGY
        return self.transcript.append(Speaker.ASSISTANT, reply)
