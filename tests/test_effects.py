import numpy as np
import pytest

from polyvoice.audio.nodes import AudioNode
from polyvoice.effects.delay import FeedbackDelay
from polyvoice.effects.feedback import FeedbackEffect
from polyvoice.sequencing.clock import AudioClock

SR = 1000
BLOCK = 10


class Impulse(AudioNode):
    """1.0 on the very first sample, silence afterwards."""

    def __init__(self):
        super().__init__()
        self.fired = False

    def render(self, frames, sr):
        out = np.zeros(frames, dtype=np.float32)
        if not self.fired and frames:
            out[0] = 1.0
            self.fired = True
        return out


class Passthrough(FeedbackEffect):
    def process(self, block, sr):
        return block.copy()


def run(effect, blocks=4):
    return [effect.render(BLOCK, SR) for _ in range(blocks)]


class TestFeedbackDelay:

    def test_delays_the_input(self):
        fx = FeedbackDelay(delay_time=0.005, feedback=0.0, wet=1.0)
        Impulse().connect(fx)
        out = np.concatenate(run(fx))
        assert out[5] == pytest.approx(1.0)
        assert np.count_nonzero(out) == 1

    def test_repeats_land_every_delay_time(self):
        fx = FeedbackDelay(delay_time=0.005, feedback=0.5, wet=1.0)
        Impulse().connect(fx)
        out = np.concatenate(run(fx))
        echoes = np.flatnonzero(out)
        np.testing.assert_array_equal(echoes, [5, 10, 15, 20, 25, 30, 35])
        np.testing.assert_allclose(out[echoes], 0.5 ** np.arange(7))

    def test_repeats_longer_than_a_block(self):
        fx = FeedbackDelay(delay_time=0.012, feedback=0.5, wet=1.0)
        Impulse().connect(fx)
        out = np.concatenate(run(fx))
        np.testing.assert_array_equal(np.flatnonzero(out), [12, 24, 36])
        np.testing.assert_allclose(out[[12, 24, 36]], [1.0, 0.5, 0.25])

    def test_feedback_ramp_applies_per_sample(self):
        fx = FeedbackDelay(delay_time=0.005, feedback=0.0, wet=1.0)
        Impulse().connect(fx)
        fx.set_feedback(1.0, ramp_time=0.01)
        out = np.concatenate(run(fx, 2))
        # the first echo re-enters at sample 5, where the ramp is at 0.6
        assert out[5] == pytest.approx(1.0)
        assert out[10] == pytest.approx(0.6)

    def test_zero_delay_passes_through(self):
        fx = FeedbackDelay(delay_time=0.0, feedback=0.9, wet=1.0)
        Impulse().connect(fx)
        out = np.concatenate(run(fx, 2))
        assert out[0] == 1.0
        assert np.count_nonzero(out) == 1

    def test_no_feedback_no_repeats(self):
        fx = FeedbackDelay(delay_time=0.005, feedback=0.0, wet=1.0)
        Impulse().connect(fx)
        _, *later = run(fx)
        assert all(np.all(b == 0) for b in later)

    def test_dry_only(self):
        fx = FeedbackDelay(delay_time=0.005, feedback=0.5, wet=0.0)
        Impulse().connect(fx)
        out = np.concatenate(run(fx))
        assert out[0] == 1.0
        assert np.count_nonzero(out) == 1

    def test_delay_time_notation(self):
        fx = FeedbackDelay(delay_time="8n", clock=AudioClock(bpm=120.0))
        assert fx.delay_time == pytest.approx(0.25)

    @pytest.mark.parametrize("delay_time", [-0.1, 2.0])
    def test_delay_time_out_of_range(self, delay_time):
        with pytest.raises(ValueError):
            FeedbackDelay(delay_time=delay_time, max_delay=1.0)

    def test_set(self):
        fx = FeedbackDelay()
        fx.set({"delay_time": 0.1, "feedback": 0.4, "wet": 0.2})
        assert fx.delay_time == 0.1
        assert fx.feedback.value == 0.4
        assert fx.wet.value == 0.2
        with pytest.raises(ValueError):
            fx.set({"room": 0.9})


class TestFeedbackEffect:

    def test_default_feedback(self):
        assert Passthrough().feedback.value == 0.125

    def test_loop_adds_scaled_return(self):
        fx = Passthrough(feedback=0.5, wet=1.0)
        Impulse().connect(fx)
        b1, b2, b3 = run(fx, 3)
        assert b1[0] == 1.0
        assert b2[0] == pytest.approx(0.5)
        assert b3[0] == pytest.approx(0.25)

    def test_set_feedback_jump(self):
        fx = Passthrough()
        fx.set_feedback(0.7)
        assert fx.feedback.value == 0.7
        assert not fx.feedback.is_ramping()

    def test_set_feedback_ramp(self):
        fx = Passthrough(feedback=0.0)
        fx.set_feedback(1.0, ramp_time=0.02)
        assert fx.feedback.is_ramping()
        run(fx, 1)
        assert fx.feedback.value == pytest.approx(0.5)
        run(fx, 1)
        assert fx.feedback.value == pytest.approx(1.0)

    def test_set_handles_feedback_and_wet(self):
        fx = Passthrough()
        fx.set({"feedback": 0.3, "wet": 0.6})
        assert fx.feedback.value == 0.3
        assert fx.wet.value == 0.6

    def test_sources_connect_to_the_input(self):
        fx = Passthrough()
        src = Impulse()
        src.connect(fx)
        assert fx.input.inputs == [src]
        src.disconnect(fx)
        assert fx.input.inputs == []

    def test_feedback_param_drives_the_gain_stage(self):
        fx = Passthrough(feedback=0.3)
        assert fx._feedback_gain.gain is fx.feedback

    def test_dispose(self, monkeypatch):
        fx = Passthrough()
        src = Impulse()
        src.connect(fx)
        calls = []
        monkeypatch.setattr(fx.feedback, "dispose", lambda: calls.append(1))
        fx.dispose()
        assert fx.input.inputs == []
        assert fx._feedback_gain is None
        assert calls == [1]

    def test_base_effect_needs_process(self):
        with pytest.raises(NotImplementedError):
            FeedbackEffect().render(BLOCK, SR)
