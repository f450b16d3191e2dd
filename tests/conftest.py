"""
Shared fixtures: a recording voice that satisfies the Voice protocol,
and clocks/synths built on it.
"""

import logging

import numpy as np
import pytest

from polyvoice.audio.nodes import AudioNode
from polyvoice.instruments.polyphonic import PolySynth
from polyvoice.sequencing.clock import AudioClock

SR = 1000


class RecordingVoice(AudioNode):
    """Voice double: remembers every call, renders a constant when sounding."""

    instances = []

    def __init__(self, clock=None, **options):
        super().__init__()
        self.clock = clock
        self.options = dict(options)
        self.params = {}
        self.preset = None
        self.calls = []
        self.note = None
        self.disposed = False
        RecordingVoice.instances.append(self)

    def attack(self, note, time=None, velocity=1.0):
        self.calls.append(("attack", note, time, velocity))
        self.note = note

    def release(self, time=None):
        self.calls.append(("release", time))
        self.note = None

    def set(self, params):
        self.params.update(params)

    def set_preset(self, name):
        self.preset = name

    def dispose(self):
        self.disposed = True
        super().dispose()

    def render(self, frames, sr):
        return np.full(frames, 1.0 if self.note is not None else 0.0, dtype=np.float32)


class FailingVoice(RecordingVoice):
    def attack(self, note, time=None, velocity=1.0):
        if note == "bad":
            raise ValueError("bad note")
        super().attack(note, time, velocity)

    def set(self, params):
        raise ValueError("rejected")


@pytest.fixture(scope="session", autouse=True)
def setup_test_logging():
    logging.basicConfig(level=logging.DEBUG)
    yield


@pytest.fixture(autouse=True)
def _reset_instances():
    RecordingVoice.instances.clear()
    yield


@pytest.fixture
def clock():
    return AudioClock(sr=SR, bpm=120.0)


@pytest.fixture
def make_synth(clock):
    def make(polyphony=4, voice=RecordingVoice, **kwargs):
        return PolySynth(polyphony, voice, kwargs.pop("voice_options", {}), clock=clock, **kwargs)
    return make


def assert_pool_invariants(synth):
    free = synth.free_voices
    bound = list(synth.active_voices.values())
    assert len(free) + len(set(map(id, bound))) == synth.polyphony
    assert not set(map(id, free)) & set(map(id, bound))
    owned = set(map(id, synth.voices))
    assert set(map(id, bound)) <= owned


@pytest.fixture
def check_pool():
    return assert_pool_invariants
