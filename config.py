from dataclasses import dataclass, field
from dotenv import load_dotenv
from typing import List, Optional
import os

LLM_BASE = "http://localhost:8080/v1"
LLM_MODEL = "local-model"
LLM_API_KEY = ""
ELEVENLABS_BASE = "https://api.elevenlabs.io"
ELEVENLABS_API_KEY = ""
ELEVENLABS_VOICE_ID = "21m00Tcm4TlvDq8ikWAM"
ELEVENLABS_MODEL_ID = "eleven_turbo_v2"
WHISPER_MODEL = "base"
WHISPER_DEVICE = "cpu"
WHISPER_LANGUAGE = "en"
HTTP_TIMEOUT = 15.0
TTS_TIMEOUT = 30.0
TIMEOUT = 2.0
LOG_PATH = "./app.log"

# 100文字以下のプロンプトはサイト解析が終わっていないとみなす
MIN_PROMPT_CHARS = 100

DEFAULT_BUSINESS_NAME = "Cosmetix AI"
DEFAULT_PRIMARY_COLOR = "#ec4899"
DEFAULT_GREETING = "Welcome! ✨ How can I help you today?"
DEFAULT_AVATAR_URL = "https://api.dicebear.com/7.x/bottts/svg?seed=assistant"
DEFAULT_PREVIEW_URL = "https://www.wikipedia.org"
DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful AI assistant. Answer questions professionally and courteously."
)
DEFAULT_SUGGESTED_QUESTIONS = [
    "What services do you offer?",
    "How can I contact you?",
    "What are your hours?",
    "Tell me about your products",
]


def load_config():
    global LLM_BASE, LLM_MODEL, LLM_API_KEY
    global ELEVENLABS_BASE, ELEVENLABS_API_KEY, ELEVENLABS_VOICE_ID, ELEVENLABS_MODEL_ID
    global WHISPER_MODEL, WHISPER_DEVICE, WHISPER_LANGUAGE
    global HTTP_TIMEOUT, TTS_TIMEOUT, LOG_PATH
    load_dotenv()

    LLM_BASE = os.getenv("LLM_BASE", "http://localhost:8080/v1").rstrip("/")
    LLM_MODEL = os.getenv("LLM_MODEL", "local-model")
    LLM_API_KEY = os.getenv("LLM_API_KEY", "")
    ELEVENLABS_BASE = os.getenv("ELEVENLABS_BASE", "https://api.elevenlabs.io").rstrip("/")
    ELEVENLABS_API_KEY = os.getenv("ELEVENLABS_API_KEY", "")
    ELEVENLABS_VOICE_ID = os.getenv("ELEVENLABS_VOICE_ID", ELEVENLABS_VOICE_ID)
    ELEVENLABS_MODEL_ID = os.getenv("ELEVENLABS_MODEL_ID", ELEVENLABS_MODEL_ID)
    WHISPER_MODEL = os.getenv("WHISPER_MODEL", WHISPER_MODEL)
    WHISPER_DEVICE = os.getenv("WHISPER_DEVICE", WHISPER_DEVICE)
    WHISPER_LANGUAGE = os.getenv("WHISPER_LANGUAGE", WHISPER_LANGUAGE)
    HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", str(HTTP_TIMEOUT)))
    TTS_TIMEOUT = float(os.getenv("TTS_TIMEOUT", str(TTS_TIMEOUT)))
    LOG_PATH = os.getenv("LOG_PATH", LOG_PATH)


@dataclass(frozen=True)
class SessionConfig:
    """Per-widget settings. The system prompt is treated as an opaque string."""

    business_name: str = DEFAULT_BUSINESS_NAME
    primary_color: str = DEFAULT_PRIMARY_COLOR
    greeting: str = DEFAULT_GREETING
    avatar_url: str = DEFAULT_AVATAR_URL
    preview_url: str = DEFAULT_PREVIEW_URL
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    suggested_questions: List[str] = field(
        default_factory=lambda: list(DEFAULT_SUGGESTED_QUESTIONS)
    )

    @property
    def prompt_ready(self) -> bool:
        return len(self.system_prompt or "") > MIN_PROMPT_CHARS

    @classmethod
    def from_prompt(cls, payload: dict, preview_url: Optional[str] = None):
        """Build a session from a /api/generate-prompt payload."""
        return cls(
            business_name=payload.get("businessName") or DEFAULT_BUSINESS_NAME,
            primary_color=payload.get("brandColor") or DEFAULT_PRIMARY_COLOR,
            greeting=payload.get("greeting") or DEFAULT_GREETING,
            preview_url=preview_url or DEFAULT_PREVIEW_URL,
            system_prompt=payload.get("systemPrompt") or "",
            suggested_questions=list(
                payload.get("suggestedQuestions") or DEFAULT_SUGGESTED_QUESTIONS
            ),
        )
