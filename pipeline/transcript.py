from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Iterator, List, Mapping, Tuple


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


class Speaker(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"

    @classmethod
    def from_role(cls, role: str) -> "Speaker":
        # "assistant" 以外はすべてユーザー扱い
        return cls.ASSISTANT if role == cls.ASSISTANT.value else cls.USER


@dataclass(frozen=True)
class Utterance:
    speaker: Speaker
    text: str
    timestamp: datetime = field(default_factory=now_utc)

    def as_message(self) -> Dict[str, str]:
        return {"role": self.speaker.value, "content": self.text}

    @classmethod
    def from_message(cls, message: Mapping[str, str]) -> "Utterance":
        return cls(Speaker.from_role(message.get("role", "")), message.get("content", ""))


class TranscriptLog:
    """Append-only list of turns shown to the user. Only clear() removes entries."""

    def __init__(self):
        self._entries: List[Utterance] = []

    def append(self, speaker: Speaker, text: str) -> Utterance:
        utterance = Utterance(speaker, text)
        self._entries.append(utterance)
        return utterance

    @property
    def entries(self) -> Tuple[Utterance, ...]:
        return tuple(self._entries)

    def clear(self) -> None:
        self._entries = []

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Utterance]:
        return iter(self.entries)
