import logging
import threading
from typing import Optional

import numpy as np
import sounddevice as sd
import torch
from silero_vad import load_silero_vad, get_speech_timestamps

from errors import CapabilityUnavailable

logger = logging.getLogger(__name__)

RATE = 16000  # サンプリングレート
CHANNELS = 1  # モノラル
CHUNK = RATE // 2  # 0.5秒ごとにVAD判定
TAIL_CHUNKS = 2  # 発話終了とみなす無音チャンク数

_model = None


def _get_vad():
    global _model
    if _model is None:
        logger.info("Loading Silero VAD model...")
        _model = load_silero_vad()
    return _model


def is_speech(chunk: np.ndarray) -> bool:
    return bool(get_speech_timestamps(torch.from_numpy(chunk), _get_vad(), sampling_rate=RATE))


class VadRecorder:
    """Cuts the microphone stream into speech segments with Silero VAD."""

    def __init__(self, device=None, tail_chunks: int = TAIL_CHUNKS):
        self.device = device
        self.tail_chunks = tail_chunks
        self._stream = None

    def open(self) -> None:
        try:
            device = self.device
            if device is None:
                device = sd.query_devices(None, "input")["index"]
            self._stream = sd.InputStream(
                samplerate=RATE,
                channels=CHANNELS,
                dtype="float32",
                blocksize=CHUNK,
                device=device,
            )
            self._stream.start()
        except (sd.PortAudioError, ValueError) as e:
            self._stream = None
            raise CapabilityUnavailable(f"microphone unavailable: {e}") from e
        _get_vad()
        logger.info(f"[vad] input device={device}")

    def close(self) -> None:
        if self._stream is None:
            return
        try:
            self._stream.stop()
            self._stream.close()
        except sd.PortAudioError as e:
            logger.warning(f"[vad] close failed: {e}")
        finally:
            self._stream = None

    def next_segment(self, stop: threading.Event) -> Optional[np.ndarray]:
        """Block until one utterance is recorded. Returns None once `stop` is set."""
        buffer = []
        recording = False
        silence_count = 0

        while not stop.is_set():
            data, overflowed = self._stream.read(CHUNK)
            if overflowed:
                logger.debug("[vad] input overflow")
            chunk = data.reshape(-1).astype(np.float32)

            if is_speech(chunk):
                if not recording:
                    logger.info("[vad] ▶ start speech")
                    recording = True
                    buffer = []
                silence_count = 0
                buffer.append(chunk)
            elif recording:
                silence_count += 1
                buffer.append(chunk)
                if silence_count > self.tail_chunks:
                    logger.info("[vad] ■ end speech")
                    return np.concatenate(buffer)
        return None
