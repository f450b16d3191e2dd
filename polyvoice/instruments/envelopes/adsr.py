import numpy as np
from enum import Enum, auto
from typing import Dict
from .base import Envelope

class ADSRState(Enum):
    IDLE = auto()      # No sound
    ATTACK = auto()    # Attack phase
    DECAY = auto()     # Decay phase
    SUSTAIN = auto()   # Sustain phase
    RELEASE = auto()   # Release phase


class ADSR(Envelope):
    """
    Attack/Decay/Sustain/Release envelope (block-by-block).
    Times are in seconds; sustain is a linear level in [0,1].
    A retrigger ramps up from the current level instead of restarting at 0.
    """

    def __init__(self, attack=0.005, decay=0.1, sustain=0.9, release=1.0):
        self.a = self.d = self.s = self.r = 0.0
        self.set(attack=attack, decay=decay, sustain=sustain, release=release)

        # state
        self._state = ADSRState.IDLE
        self._pos = 0                 # samples elapsed within current state

        # current output level (last sample written), stage start levels
        self._y = 0.0
        self._att_start = 0.0
        self._rel_start = 0.0

    # ---- params ----
    def set(self, **params: float) -> None:
        for name, value in params.items():
            if name not in ("attack", "decay", "sustain", "release"):
                raise ValueError(f"Unknown envelope parameter: {name!r}")
            value = float(value)
            if value < 0:
                raise ValueError(f"Envelope {name} must be >= 0, got {value}")
            if name == "sustain" and value > 1:
                raise ValueError(f"Envelope sustain must be <= 1, got {value}")
            setattr(self, name[0], value)

    def get(self) -> Dict[str, float]:
        return {"attack": self.a, "decay": self.d, "sustain": self.s, "release": self.r}

    @property
    def state(self) -> ADSRState:
        return self._state

    # ---- control ----
    def gate_on(self) -> None:
        self._att_start = float(self._y)
        if self.a > 0:
            self._state = ADSRState.ATTACK
        elif self.d > 0:
            self._state = ADSRState.DECAY
        else:
            self._state = ADSRState.SUSTAIN
        self._pos = 0

    def gate_off(self) -> None:
        if self._state == ADSRState.IDLE:
            return
        self._rel_start = float(self._y)
        self._pos = 0
        if self.r > 0:
            self._state = ADSRState.RELEASE
        else:
            self._state = ADSRState.IDLE
            self._y = 0.0

    def finished(self) -> bool:
        return self._state == ADSRState.IDLE

    # ---- internals ----
    def _stage(self, length: int, remain: int):
        """Next chunk of the current linear stage as fractions in (0, 1]."""
        n = min(remain, max(0, length - self._pos))
        frac = np.arange(self._pos + 1, self._pos + n + 1, dtype=np.float32) / length
        self._pos += n
        return frac, self._pos >= length

    def _enter(self, state: ADSRState) -> None:
        self._state = state
        self._pos = 0

    # ---- render ----
    def render(self, frames: int, sr: int) -> np.ndarray:
        out = np.zeros(frames, dtype=np.float32)

        idx = 0
        while idx < frames and self._state != ADSRState.IDLE:
            remain = frames - idx

            if self._state == ADSRState.ATTACK:
                frac, done = self._stage(max(1, int(self.a * sr)), remain)
                seg = self._att_start + (1.0 - self._att_start) * frac
                if done:
                    self._enter(ADSRState.DECAY if self.d > 0 else ADSRState.SUSTAIN)

            elif self._state == ADSRState.DECAY:
                frac, done = self._stage(max(1, int(self.d * sr)), remain)
                # linear 1 -> sustain
                seg = 1.0 + (self.s - 1.0) * frac
                if done:
                    self._enter(ADSRState.SUSTAIN)

            elif self._state == ADSRState.SUSTAIN:
                seg = np.full(remain, self.s, dtype=np.float32)

            else:
                frac, done = self._stage(max(1, int(self.r * sr)), remain)
                # linear release start -> 0
                seg = self._rel_start * (1.0 - frac)
                if done:
                    self._enter(ADSRState.IDLE)

            n = seg.shape[0]
            if n:
                out[idx:idx+n] = seg
                self._y = float(seg[-1])
            idx += n

        if self._state == ADSRState.IDLE:
            self._y = 0.0
        return out
