import threading
import numpy as np


class Param:
    """
    Control value rendered per sample.
    Jumps on set_value(), moves linearly on linear_ramp_to_value_now().
    The ramp starts at the next rendered sample.
    """

    def __init__(self, value: float = 0.0):
        self._value = float(value)
        self._lock = threading.Lock()

        # pending linear ramp
        self._ramp_target = None
        self._ramp_time = 0.0
        self._ramp_start = self._value
        self._ramp_pos = 0

    @property
    def value(self) -> float:
        return self._value

    @value.setter
    def value(self, v: float) -> None:
        self.set_value(v)

    def set_value(self, value: float) -> None:
        with self._lock:
            self._value = float(value)
            self._ramp_target = None

    def linear_ramp_to_value_now(self, value: float, ramp_time: float) -> None:
        ramp_time = float(ramp_time)
        if ramp_time <= 0:
            self.set_value(value)
            return
        with self._lock:
            self._ramp_start = self._value
            self._ramp_target = float(value)
            self._ramp_time = ramp_time
            self._ramp_pos = 0

    def is_ramping(self) -> bool:
        return self._ramp_target is not None

    def render(self, frames: int, sr: int) -> np.ndarray:
        with self._lock:
            if self._ramp_target is None:
                return np.full(frames, self._value, dtype=np.float32)

            total = max(1, int(round(self._ramp_time * sr)))
            pos = np.arange(self._ramp_pos + 1, self._ramp_pos + frames + 1, dtype=np.float64)
            frac = np.minimum(pos / total, 1.0)
            out = self._ramp_start + (self._ramp_target - self._ramp_start) * frac
            self._ramp_pos += frames

            if self._ramp_pos >= total:
                self._value = self._ramp_target
                self._ramp_target = None
            else:
                self._value = float(out[-1])
            return out.astype(np.float32)

    def dispose(self) -> None:
        with self._lock:
            self._ramp_target = None
