import asyncio
import logging
import threading
from typing import Callable, Optional

from errors import SynthesisError
from services import tts_client

logger = logging.getLogger(__name__)


class SpeechPlayback:
    """Synthesize reply text and play it, one reply at a time.

    `amplitude` follows the audio while it plays (0..1) and is only meant for
    drawing a waveform.
    """

    def __init__(
        self,
        synthesize: Optional[Callable[[str], bytes]] = None,
        decode=None,
        play=None,
        on_amplitude: Optional[Callable[[float], None]] = None,
    ):
        if decode is None or play is None:
            from audio import player

            decode = decode or player.decode
            play = play or player.play_signal
        self._synthesize = synthesize or tts_client.synthesize
        self._decode = decode
        self._play = play
        self._on_amplitude = on_amplitude
        self._current: Optional[threading.Event] = None
        self.amplitude = 0.0

    @property
    def playing(self) -> bool:
        return self._current is not None

    def _set_amplitude(self, value: float) -> None:
        self.amplitude = value
        if self._on_amplitude is not None:
            self._on_amplitude(value)

    async def speak(self, text: str) -> None:
        """Resolves when playback ends or is stopped. Raises SynthesisError."""
        self.stop()
        stop = threading.Event()
        self._current = stop
        try:
            audio = await asyncio.to_thread(self._synthesize, text)
            if stop.is_set():
                return
            try:
                signal, sampling_rate = self._decode(audio)
            except RuntimeError as e:
                raise SynthesisError(f"could not decode synthesized audio: {e}") from e
            if stop.is_set():
                return

            def on_block(value: float) -> None:
                if not stop.is_set():
                    self._set_amplitude(value)

            await asyncio.to_thread(self._play, signal, sampling_rate, stop, on_block)
        finally:
            # キャンセル(タイムアウト)時も出力スレッドを必ず止める
            stop.set()
            if self._current is stop:
                self._current = None
                self._set_amplitude(0.0)

    def stop(self) -> None:
        if self._current is not None:
            self._current.set()
            self._current = None
        self._set_amplitude(0.0)
