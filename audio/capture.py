import asyncio
import logging
import threading
from typing import AsyncIterator, Callable, Optional

import numpy as np

from audio.recorder import VadRecorder
from errors import TransientRecognitionError
from services import whisper_asr

logger = logging.getLogger(__name__)


class MicrophoneCapture:
    """Continuous speech-to-text from the default microphone.

    await start() opens the device (CapabilityUnavailable if it can't), stop() ends
    the current run, results() yields finalized utterances of the current run.
    Each start() gets a fresh recorder, worker thread and queue, so a run that
    is still finishing a transcription never leaks into the next one.
    """

    def __init__(
        self,
        recorder_factory: Callable[[], VadRecorder] = VadRecorder,
        transcribe: Callable[[np.ndarray], str] = whisper_asr.transcribe,
    ):
        self._recorder_factory = recorder_factory
        self._transcribe = transcribe
        self._queue: Optional[asyncio.Queue] = None
        self._stop: Optional[threading.Event] = None
        self._worker: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._stop is not None and not self._stop.is_set()

    async def start(self) -> None:
        """Open the device off the event loop and start a new run."""
        if self.running:
            return
        loop = asyncio.get_running_loop()
        previous = self._worker
        if previous is not None and previous.is_alive():
            # 前回の文字起こしが終わるまで待つ (Whisperモデルは共有)
            logger.debug("[capture] waiting for previous run to finish")
            await asyncio.to_thread(previous.join)
        recorder = self._recorder_factory()
        await asyncio.to_thread(recorder.open)
        self._queue = asyncio.Queue()
        self._stop = threading.Event()
        self._worker = threading.Thread(
            target=self._run,
            args=(recorder, loop, self._queue, self._stop),
            daemon=True,
        )
        self._worker.start()
        logger.info("[capture] listening")

    def stop(self) -> None:
        if self._stop is not None:
            self._stop.set()

    def results(self) -> AsyncIterator[str]:
        return self._drain(self._queue)

    async def _drain(self, queue: Optional[asyncio.Queue]) -> AsyncIterator[str]:
        if queue is None:
            return
        while True:
            text = await queue.get()
            if text is None:
                return
            yield text

    def _run(self, recorder, loop, queue, stop) -> None:
        def put(item):
            try:
                loop.call_soon_threadsafe(queue.put_nowait, item)
            except RuntimeError:
                # イベントループがすでに閉じている
                logger.debug("[capture] loop closed, dropping result")

        try:
            while not stop.is_set():
                segment = recorder.next_segment(stop)
                if segment is None:
                    break
                try:
                    text = self._transcribe(segment)
                except TransientRecognitionError:
                    continue
                except Exception as e:
                    logger.error(f"[capture] recognition error: {e!r}")
                    continue
                if stop.is_set():
                    logger.debug(f"[capture] stopped, dropping: {text}")
                    break
                put(text)
        except Exception as e:
            logger.error(f"[capture] device error: {e!r}")
        finally:
            recorder.close()
            put(None)
