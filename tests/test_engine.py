"""
AudioEngine with the sounddevice stream replaced by a fake: no device needed.
"""

import numpy as np
import pytest

try:
    import sounddevice  # noqa: F401
except (ImportError, OSError):
    pytest.skip("sounddevice / PortAudio not available", allow_module_level=True)

from polyvoice.audio import engine as engine_mod
from polyvoice.audio.engine import AudioEngine
from polyvoice.audio.mixer import Mixer
from polyvoice.instruments.polyphonic import PolySynth
from polyvoice.sequencing.clock import AudioClock

SR = 1000


class FakeStream:
    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.calls = []

    def start(self):
        self.calls.append("start")

    def abort(self):
        self.calls.append("abort")

    def stop(self):
        self.calls.append("stop")

    def close(self):
        self.calls.append("close")


@pytest.fixture
def fake_stream(monkeypatch):
    monkeypatch.setattr(engine_mod.sd, "OutputStream", FakeStream)


@pytest.fixture
def setup(fake_stream):
    clock = AudioClock(sr=SR)
    synth = PolySynth(2, clock=clock, voice_options={"oscillator": "square",
                                                     "envelope": {"attack": 0, "decay": 0,
                                                                  "sustain": 1, "release": 0.01}})
    mixer = Mixer()
    mixer.add_track(0, synth)
    eng = AudioEngine(mixer, clock, blocksize=100, channels=2, pre_gain=1.0, limiter_drive=1.5)
    return clock, synth, eng


def test_stream_configuration(setup):
    clock, _, eng = setup
    assert eng.stream.kwargs["samplerate"] == SR
    assert eng.stream.kwargs["blocksize"] == 100
    assert eng.stream.kwargs["channels"] == 2


def test_lifecycle(setup):
    _, _, eng = setup
    with eng:
        assert eng.stream.calls == ["start"]
    assert eng.stream.calls == ["start", "abort", "stop", "close"]


def test_callback_advances_clock_and_plays_scheduled_notes(setup):
    clock, synth, eng = setup
    synth.attack_release(["A4", "E5"], 0.05, 0.1)

    outdata = np.zeros((100, 2), dtype=np.float32)
    eng._cb(outdata, 100, None, None)
    assert clock.now() == pytest.approx(0.1)
    assert np.all(outdata == 0)

    eng._cb(outdata, 100, None, None)
    assert clock.now() == pytest.approx(0.2)
    assert np.any(outdata[:50] != 0)
    assert np.all(outdata[60:] == 0)
    assert np.all(np.abs(outdata) <= 1.0)


def test_callback_is_silent_after_stop(setup):
    _, synth, eng = setup
    synth.attack("A4")
    eng.stop()
    outdata = np.ones((100, 2), dtype=np.float32)
    eng._cb(outdata, 100, None, None)
    assert np.all(outdata == 0)


def test_rejects_surround(fake_stream):
    with pytest.raises(ValueError):
        AudioEngine(Mixer(), channels=6)
