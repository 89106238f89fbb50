"""Shared fakes for the voice-call pipeline.

The real capture/playback need a microphone, speakers and remote APIs; these
stand-ins record what the coordinator asks of them.
"""

from __future__ import annotations

import asyncio
import threading
import time

import pytest

from config import SessionConfig
from errors import CapabilityUnavailable
from pipeline.turn_coordinator import TurnCoordinator

READY_PROMPT = "Glow Salon offers haircuts, colouring and styling. " * 4


class FakeCapture:
    def __init__(self):
        self.fail = False
        self.starts = 0
        self.stops = 0
        self.running = False
        self._queue = None

    async def start(self):
        if self.fail:
            raise CapabilityUnavailable("microphone permission denied")
        self.starts += 1
        self.running = True
        self._queue = asyncio.Queue()

    def stop(self):
        self.stops += 1
        if self.running:
            self.running = False
            self._queue.put_nowait(None)

    def emit(self, text):
        self._queue.put_nowait(text)

    def finish(self):
        """Recognition ends on its own (e.g. the browser/device timed out)."""
        self.running = False
        self._queue.put_nowait(None)

    def results(self):
        return self._drain(self._queue)

    async def _drain(self, queue):
        while True:
            item = await queue.get()
            if item is None:
                return
            yield item


class FakeDialogue:
    def __init__(self):
        self.replies = []
        self.error = None
        self.gate = None  # threading.Event; send() blocks until set
        self.calls = []

    def send(self, utterance, prior_turns, prompt_context):
        self.calls.append((utterance, list(prior_turns), prompt_context))
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.error is not None:
            raise self.error
        return self.replies.pop(0) if self.replies else "Sounds good."


class FakePlayback:
    def __init__(self):
        self.spoken = []
        self.stops = 0
        self.error = None
        self.release = None  # asyncio.Event; speak() holds until set
        self.amplitude = 0.0

    async def speak(self, text):
        self.spoken.append(text)
        self.amplitude = 0.8
        if self.error is not None:
            raise self.error
        if self.release is not None:
            await self.release.wait()
        self.amplitude = 0.0

    def stop(self):
        self.stops += 1
        self.amplitude = 0.0


@pytest.fixture()
def session():
    return SessionConfig(business_name="Glow Salon", system_prompt=READY_PROMPT)


@pytest.fixture()
def capture():
    return FakeCapture()


@pytest.fixture()
def dialogue():
    return FakeDialogue()


@pytest.fixture()
def playback():
    return FakePlayback()


@pytest.fixture()
def make_coordinator(session, capture, dialogue, playback):
    def make(session=session, **overrides):
        kwargs = dict(restart_delay=0, resume_delay=0, error_resume_delay=0)
        kwargs.update(overrides)
        return TurnCoordinator(session, capture, dialogue, playback, **kwargs)

    return make


async def _wait_until(predicate, timeout: float = 2.0):
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.01)


@pytest.fixture()
def released_gate():
    """threading.Event that is always set at teardown so worker threads exit."""
    gate = threading.Event()
    yield gate
    gate.set()


@pytest.fixture()
def wait_until():
    return _wait_until
