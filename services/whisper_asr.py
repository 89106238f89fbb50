import logging

import numpy as np
import whisper

import config
from errors import TransientRecognitionError

logger = logging.getLogger(__name__)
_model = None


def _get_model():
    global _model
    if _model is None:
        logger.info("Loading WhisperModel...")
        try:
            _model = whisper.load_model(
                config.WHISPER_MODEL, device=getattr(config, "WHISPER_DEVICE", "cpu")
            )
        except Exception as e:
            logger.info(f"[whisper] load_model failed: {e!r}")
            raise
    return _model


def transcribe(audio: np.ndarray) -> str:
    """Transcribe one 16 kHz mono float32 speech segment."""
    if audio is None or audio.size == 0:
        raise TransientRecognitionError("empty segment")

    model = _get_model()
    result = model.transcribe(
        audio.astype(np.float32),
        language=config.WHISPER_LANGUAGE,
        task="transcribe",
        fp16=config.WHISPER_DEVICE != "cpu",
    )
    text = (result.get("text") or "").strip()
    if not text:
        raise TransientRecognitionError("no speech detected")
    logger.info(f"transcribe_result: {text}")
    return text
