"""Turn-taking for a voice call.

Exactly one of listening / assistant speaking is active at a time, so the
assistant's own voice is never fed back as user input:

    IDLE --start_call--> LISTENING --utterance--> SPEAKING
      ^                      ^                        |
      |                      +--playback done/fail----+
      +-------------- end_call (any state) -----------+

Capture events, reply/playback completion and end_call all arrive as separate
asyncio tasks. Every transition runs under one lock and reads the state as it
is at that moment. Each call gets an epoch number; work started under an older
epoch (a call that has since ended) is dropped when it finishes.
"""
import asyncio
import logging
from enum import Enum
from typing import AsyncIterator, Optional, Protocol, Sequence

from config import SessionConfig
from errors import CapabilityUnavailable
from pipeline.transcript import Speaker, TranscriptLog, Utterance

logger = logging.getLogger(__name__)

RESTART_DELAY = 0.3  # 認識が自然に終わった後
RESUME_DELAY = 0.5  # 読み上げ完了後
ERROR_RESUME_DELAY = 0.8  # 失敗後
DIALOGUE_TIMEOUT = 30.0
PLAYBACK_TIMEOUT = 120.0


class CallState(Enum):
    IDLE = "idle"
    LISTENING = "listening"
    SPEAKING = "speaking"


class SpeechCapture(Protocol):
    async def start(self) -> None: ...

    def stop(self) -> None: ...

    def results(self) -> AsyncIterator[str]: ...


class Dialogue(Protocol):
    def send(
        self, utterance: str, prior_turns: Sequence[Utterance], prompt_context: str
    ) -> str: ...


class Playback(Protocol):
    amplitude: float

    async def speak(self, text: str) -> None: ...

    def stop(self) -> None: ...


class TurnCoordinator:
    def __init__(
        self,
        session: SessionConfig,
        capture: SpeechCapture,
        dialogue: Dialogue,
        playback: Playback,
        restart_delay: float = RESTART_DELAY,
        resume_delay: float = RESUME_DELAY,
        error_resume_delay: float = ERROR_RESUME_DELAY,
        dialogue_timeout: float = DIALOGUE_TIMEOUT,
        playback_timeout: float = PLAYBACK_TIMEOUT,
    ):
        self.session = session
        self.transcript = TranscriptLog()
        self._capture = capture
        self._dialogue = dialogue
        self._playback = playback
        self.restart_delay = restart_delay
        self.resume_delay = resume_delay
        self.error_resume_delay = error_resume_delay
        self.dialogue_timeout = dialogue_timeout
        self.playback_timeout = playback_timeout

        self._state = CallState.IDLE
        self._lock = asyncio.Lock()
        self._epoch = 0
        self._capture_task: Optional[asyncio.Task] = None
        self._turn_task: Optional[asyncio.Task] = None
        self._restart_task: Optional[asyncio.Task] = None

    @property
    def state(self) -> CallState:
        return self._state

    @property
    def active(self) -> bool:
        return self._state is not CallState.IDLE

    @property
    def speaking(self) -> bool:
        return self._state is CallState.SPEAKING

    @property
    def amplitude(self) -> float:
        return self._playback.amplitude if self.speaking else 0.0

    async def start_call(self) -> None:
        """IDLE -> LISTENING. Raises CapabilityUnavailable and stays IDLE."""
        async with self._lock:
            if self.active:
                return
            if not self.session.prompt_ready:
                raise CapabilityUnavailable("still analyzing the website, prompt not ready")
            await self._capture.start()
            self._epoch += 1
            self._state = CallState.LISTENING
            self._capture_task = asyncio.create_task(self._consume())
        logger.info(f"call started ({self.session.business_name})")

    async def end_call(self) -> None:
        async with self._lock:
            self._reset()
        logger.info("call ended")

    async def handle_utterance(self, text: str) -> bool:
        """Accept one finalized utterance. Returns False when it was dropped."""
        text = (text or "").strip()
        if not text:
            return False
        async with self._lock:
            if self._state is not CallState.LISTENING:
                logger.debug(f"ignored ({self._state.value}): {text}")
                return False
            prior = self.transcript.entries
            self.transcript.append(Speaker.USER, text)
            self._state = CallState.SPEAKING
            self._capture.stop()
            self._turn_task = asyncio.create_task(self._run_turn(text, prior, self._epoch))
        logger.info(f"user said: {text}")
        return True

    async def settle(self) -> None:
        """Wait for the in-flight turn and any pending capture restart."""
        while True:
            pending = [
                t
                for t in (self._turn_task, self._restart_task)
                if t is not None and not t.done()
            ]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def _consume(self) -> None:
        async for text in self._capture.results():
            await self.handle_utterance(text)
        await self._on_capture_end()

    async def _on_capture_end(self) -> None:
        async with self._lock:
            if asyncio.current_task() is not self._capture_task:
                return
            self._capture_task = None
            if self._state is not CallState.LISTENING:
                return
            epoch = self._epoch
        logger.debug("recognition ended, restarting")
        self._schedule_listen(self.restart_delay, epoch)

    def _schedule_listen(self, delay: float, epoch: int) -> None:
        if self._restart_task is not None and not self._restart_task.done():
            self._restart_task.cancel()
        self._restart_task = asyncio.create_task(self._listen_after(delay, epoch))

    async def _listen_after(self, delay: float, epoch: int) -> None:
        await asyncio.sleep(delay)
        async with self._lock:
            if (
                epoch != self._epoch
                or self._state is not CallState.LISTENING
                or self._capture_task is not None
            ):
                return
            try:
                await self._capture.start()
            except CapabilityUnavailable as e:
                logger.error(f"capture could not restart, ending call: {e}")
                self._reset()
                return
            self._capture_task = asyncio.create_task(self._consume())
        logger.info("resumed listening")

    async def _run_turn(self, text: str, prior: Sequence[Utterance], epoch: int) -> None:
        try:
            reply = await asyncio.wait_for(
                asyncio.to_thread(
                    self._dialogue.send, text, prior, self.session.system_prompt
                ),
                self.dialogue_timeout,
            )
        except Exception as e:
            logger.error(f"dialogue failed: {e!r}")
            await self._finish_turn(epoch, self.error_resume_delay)
            return

        async with self._lock:
            if epoch != self._epoch or self._state is not CallState.SPEAKING:
                logger.info("call ended before the reply arrived, discarding")
                return
            self.transcript.append(Speaker.ASSISTANT, reply)
        logger.info(f"assistant: {reply}")

        try:
            await asyncio.wait_for(self._playback.speak(reply), self.playback_timeout)
        except Exception as e:
            logger.error(f"playback failed: {e!r}")
            self._playback.stop()
            await self._finish_turn(epoch, self.error_resume_delay)
            return
        await self._finish_turn(epoch, self.resume_delay)

    async def _finish_turn(self, epoch: int, delay: float) -> None:
        async with self._lock:
            if epoch != self._epoch or self._state is not CallState.SPEAKING:
                return
            self._state = CallState.LISTENING
            self._turn_task = None
        self._schedule_listen(delay, epoch)

    def _reset(self) -> None:
        # ロック保持中に呼ぶこと
        self._epoch += 1
        self._state = CallState.IDLE
        self._capture.stop()
        self._playback.stop()
        current = asyncio.current_task()
        for task in (self._capture_task, self._turn_task, self._restart_task):
            if task is not None and task is not current and not task.done():
                task.cancel()
        self._capture_task = self._turn_task = self._restart_task = None
        self.transcript.clear()
