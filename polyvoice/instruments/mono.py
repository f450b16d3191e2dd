import copy
import heapq
import itertools
import logging
import threading
from collections.abc import Mapping
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from polyvoice.audio.dsp import db_to_lin
from polyvoice.audio.param import Param
from polyvoice.sequencing.clock import AudioClock, Time
from .base import Instrument
from .envelopes.adsr import ADSR, ADSRState
from .pitch import to_frequency
from .signals.osc import Oscillator

logger = logging.getLogger(__name__)

# (time, sequence, kind, payload)
_Event = Tuple[float, int, str, Any]


class MonoSynth(Instrument):
    """
    Single voice: oscillator -> ADSR -> volume.
    Timed attack/release calls are queued and applied at their sample
    offset inside the block being rendered.
    """

    defaults: Dict[str, Any] = {
        "oscillator": "square",
        "envelope": {"attack": 0.005, "decay": 0.1, "sustain": 0.9, "release": 1.0},
        "portamento": 0.0,
        "volume": 0.0,          # dB
    }

    presets: Dict[str, Dict[str, Any]] = {
        "Pianoetta": {
            "oscillator": "square",
            "envelope": {"attack": 0.005, "decay": 3.0, "sustain": 0.0, "release": 0.45},
        },
        "Barky": {
            "oscillator": "triangle",
            "envelope": {"attack": 0.01, "decay": 0.1, "sustain": 0.2, "release": 0.1},
        },
        "Bassy": {
            "oscillator": "sawtooth",
            "envelope": {"attack": 0.005, "decay": 0.25, "sustain": 0.4, "release": 0.3},
            "portamento": 0.04,
        },
        "BrassCircuit": {
            "oscillator": "sawtooth",
            "envelope": {"attack": 0.1, "decay": 0.1, "sustain": 0.6, "release": 0.5},
            "portamento": 0.05,
        },
    }

    def __init__(self, clock: Optional[AudioClock] = None, **options: Any):
        super().__init__(clock)
        self.oscillator = Oscillator()
        self.envelope = ADSR()
        self.frequency = Param(440.0)
        self.portamento = 0.0
        self.volume = 0.0
        self._velocity = 1.0

        self._events: List[_Event] = []
        self._seq = itertools.count()
        self._lock = threading.Lock()

        params = copy.deepcopy(self.defaults)
        params.update(options)
        self.set(params)

    ###########################################################################
    ##                              CONTROL                                  ##
    ###########################################################################

    def attack(self, note: Any, time: Time = None, velocity: float = 1.0) -> "MonoSynth":
        freq = to_frequency(note)
        self._schedule(self.clock.to_seconds(time), "attack", (freq, float(velocity)))
        return self

    def release(self, time: Time = None) -> "MonoSynth":
        self._schedule(self.clock.to_seconds(time), "release", None)
        return self

    @property
    def active(self) -> bool:
        """True from the attack until the release tail has faded out."""
        return self.envelope.state is not ADSRState.IDLE

    def pending_events(self) -> int:
        with self._lock:
            return len(self._events)

    def _schedule(self, when: float, kind: str, payload: Any) -> None:
        with self._lock:
            if when <= self.clock.now():
                self._apply(kind, payload)
            else:
                heapq.heappush(self._events, (when, next(self._seq), kind, payload))

    def _apply(self, kind: str, payload: Any) -> None:
        if kind == "attack":
            freq, velocity = payload
            if self.portamento > 0 and self.active:
                self.frequency.linear_ramp_to_value_now(freq, self.portamento)
            else:
                self.frequency.set_value(freq)
            self._velocity = velocity
            self.envelope.gate_on()
        else:
            self.envelope.gate_off()

    ###########################################################################
    ##                             PARAMETERS                                ##
    ###########################################################################

    def set(self, params: Mapping) -> "MonoSynth":
        with self._lock:
            for name, value in params.items():
                if name == "oscillator":
                    kind = value.get("type") if isinstance(value, Mapping) else value
                    self.oscillator.set_type(kind)
                elif name == "envelope":
                    if not isinstance(value, Mapping):
                        raise ValueError(f"envelope must be a mapping, got {value!r}")
                    self.envelope.set(**value)
                elif name == "portamento":
                    if float(value) < 0:
                        raise ValueError(f"portamento must be >= 0, got {value}")
                    self.portamento = float(value)
                elif name == "volume":
                    self.volume = float(value)
                else:
                    raise ValueError(f"Unknown MonoSynth parameter: {name!r}")
        return self

    def get(self) -> Dict[str, Any]:
        return {
            "oscillator": self.oscillator.type,
            "envelope": self.envelope.get(),
            "portamento": self.portamento,
            "volume": self.volume,
        }

    def set_preset(self, name: str) -> "MonoSynth":
        if name not in self.presets:
            raise ValueError(f"Unknown MonoSynth preset: {name!r}")
        logger.debug("MonoSynth preset -> %s", name)
        return self.set(self.presets[name])

    ###########################################################################
    ##                               RENDER                                  ##
    ###########################################################################

    def _synth(self, n: int, sr: int) -> np.ndarray:
        if n <= 0 or self.envelope.finished():
            return np.zeros(max(0, n), dtype=np.float32)
        env = self.envelope.render(n, sr)
        freq = self.frequency.render(n, sr)
        raw = self.oscillator.render(freq, n, sr)
        return (raw * env * (self._velocity * db_to_lin(self.volume))).astype(np.float32)

    def render(self, frames: int, sr: int) -> np.ndarray:
        with self._lock:
            t0 = self.clock.now()
            t1 = t0 + frames / sr
            out = np.zeros(frames, dtype=np.float32)

            idx = 0
            while self._events and self._events[0][0] < t1:
                when, _, kind, payload = heapq.heappop(self._events)
                offset = min(frames, max(idx, int(round((when - t0) * sr))))
                out[idx:offset] = self._synth(offset - idx, sr)
                idx = offset
                self._apply(kind, payload)

            out[idx:] = self._synth(frames - idx, sr)
            return out

    def dispose(self) -> None:
        with self._lock:
            self._events.clear()
            self.envelope.gate_off()
            self.frequency.dispose()
        super().dispose()
