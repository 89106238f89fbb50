"""Tests for SpeechPlayback with synthesis, decoding and output swapped out."""

from __future__ import annotations

import asyncio
import threading

import numpy as np
import pytest

from errors import SynthesisError
from pipeline.playback import SpeechPlayback


class FakeOutput:
    def __init__(self, amplitudes=(0.2, 0.6), hold=False):
        self.amplitudes = amplitudes
        self.hold = hold
        self.calls = 0
        self.interrupted = 0
        self.started = threading.Event()

    def __call__(self, signal, sampling_rate, stop, on_amplitude):
        self.calls += 1
        self.started.set()
        for a in self.amplitudes:
            on_amplitude(a)
        if self.hold:
            if stop.wait(timeout=5):
                self.interrupted += 1
                return False
        return True


def decode(audio):
    return np.zeros(1600, dtype=np.float32), 16000


def test_speak_plays_and_reports_amplitude():
    seen = []
    output = FakeOutput()
    playback = SpeechPlayback(
        synthesize=lambda text: b"mp3",
        decode=decode,
        play=output,
        on_amplitude=seen.append,
    )

    asyncio.run(playback.speak("Hello there."))

    assert output.calls == 1
    assert 0.2 in seen and 0.6 in seen
    assert playback.amplitude == 0.0
    assert not playback.playing


def test_synthesis_error_propagates():
    def fail(text):
        raise SynthesisError("ElevenLabs failed", status=401)

    playback = SpeechPlayback(synthesize=fail, decode=decode, play=FakeOutput())
    with pytest.raises(SynthesisError):
        asyncio.run(playback.speak("Hello"))
    assert not playback.playing


def test_undecodable_audio_is_synthesis_error():
    def bad_decode(audio):
        raise RuntimeError("Format not recognised.")

    playback = SpeechPlayback(synthesize=lambda t: b"junk", decode=bad_decode, play=FakeOutput())
    with pytest.raises(SynthesisError):
        asyncio.run(playback.speak("Hello"))


def test_new_speak_stops_previous():
    first = FakeOutput(hold=True)
    second = FakeOutput()
    outputs = iter([first, second])

    async def scenario():
        playback = SpeechPlayback(
            synthesize=lambda t: b"mp3",
            decode=decode,
            play=lambda *args: next(outputs)(*args),
        )
        task = asyncio.create_task(playback.speak("one"))
        await asyncio.to_thread(first.started.wait, 5)
        await playback.speak("two")
        await task

    asyncio.run(scenario())
    assert first.interrupted == 1
    assert second.calls == 1


def test_stop_interrupts_and_resets_amplitude():
    output = FakeOutput(hold=True)

    async def scenario():
        playback = SpeechPlayback(synthesize=lambda t: b"mp3", decode=decode, play=output)
        task = asyncio.create_task(playback.speak("long reply"))
        await asyncio.to_thread(output.started.wait, 5)
        playback.stop()
        await task
        return playback

    playback = asyncio.run(scenario())
    assert output.interrupted == 1
    assert playback.amplitude == 0.0


def test_timed_out_speak_stops_output_thread():
    output = FakeOutput(hold=True)

    async def scenario():
        playback = SpeechPlayback(synthesize=lambda t: b"mp3", decode=decode, play=output)
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(playback.speak("a very long reply"), 0.1)
        assert not playback.playing
        return playback

    playback = asyncio.run(scenario())
    assert output.interrupted == 1
    assert playback.amplitude == 0.0
