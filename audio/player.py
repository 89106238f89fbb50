import io
import logging
import threading
from typing import Callable, Optional, Tuple

import numpy as np
import sounddevice as sd
import soundfile as sf

logger = logging.getLogger(__name__)

BLOCK_SIZE = 2048
# 会話音声のRMSは0.1〜0.3程度なので波形表示用に持ち上げる
AMPLITUDE_GAIN = 4.0


def decode(audio: bytes) -> Tuple[np.ndarray, int]:
    """Decode mp3/wav bytes into float32 samples."""
    signal, sampling_rate = sf.read(io.BytesIO(audio), dtype="float32")
    return signal, sampling_rate


def block_amplitude(block: np.ndarray) -> float:
    if block.size == 0:
        return 0.0
    rms = float(np.sqrt(np.mean(np.square(block, dtype=np.float64))))
    return min(1.0, rms * AMPLITUDE_GAIN)


def play_signal(
    signal: np.ndarray,
    sampling_rate: int,
    stop: threading.Event,
    on_amplitude: Optional[Callable[[float], None]] = None,
) -> bool:
    """Play until done or until `stop` is set. Returns False when interrupted."""
    output_device = sd.query_devices(None, "output")["index"]
    channels = 1 if signal.ndim == 1 else signal.shape[1]
    logger.info(f"Playing {len(signal) / sampling_rate:.1f}s of audio")

    with sd.OutputStream(
        samplerate=sampling_rate,
        channels=channels,
        dtype="float32",
        device=output_device,
    ) as stream:
        for start in range(0, len(signal), BLOCK_SIZE):
            if stop.is_set():
                logger.info("playback interrupted")
                return False
            block = signal[start : start + BLOCK_SIZE]
            if on_amplitude is not None:
                on_amplitude(block_amplitude(block))
            stream.write(np.ascontiguousarray(block.reshape(-1, channels)))
    return True
