import logging

import requests

import config
from errors import SynthesisError

logger = logging.getLogger(__name__)

VOICE_SETTINGS = {
    "stability": 0.5,
    "similarity_boost": 0.75,
    "style": 0.5,
    "use_speaker_boost": True,
}


def synthesize(text: str) -> bytes:
    """Turn reply text into audio/mpeg bytes with ElevenLabs."""
    if not config.ELEVENLABS_API_KEY:
        raise SynthesisError(
            "ELEVENLABS_API_KEY is not set",
            status=500,
            details="missing ELEVENLABS_API_KEY",
        )

    logger.info(f"synthesize ready... ({len(text)} chars)")
    try:
        r = requests.post(
            f"{config.ELEVENLABS_BASE}/v1/text-to-speech/{config.ELEVENLABS_VOICE_ID}",
            headers={
                "Accept": "audio/mpeg",
                "Content-Type": "application/json",
                "xi-api-key": config.ELEVENLABS_API_KEY,
            },
            json={
                "text": text,
                "model_id": config.ELEVENLABS_MODEL_ID,
                "voice_settings": VOICE_SETTINGS,
            },
            timeout=config.TTS_TIMEOUT,
        )
    except requests.RequestException as e:
        logger.error(f"[tts] request failed: {e!r}")
        raise SynthesisError(f"synthesis request failed: {e}") from e

    if not r.ok:
        logger.error(f"[tts] ElevenLabs error: {r.status_code} {r.text[:300]}")
        raise SynthesisError("ElevenLabs failed", status=r.status_code, details=r.text)

    logger.info(f"audio size: {len(r.content)} bytes")
    return r.content
