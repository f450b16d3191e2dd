from typing import Any, Mapping, Optional

import numpy as np

from polyvoice.sequencing.clock import AudioClock, Time
from .feedback import FeedbackEffect


class FeedbackDelay(FeedbackEffect):
    """
    Delay line with its output fed back into its input.

    The feedback is mixed inside the ring buffer (``in + feedback * delayed``),
    so repeats land exactly every `delay_time` regardless of block size.
    A zero delay passes the input straight through with no repeats.
    """

    def __init__(self, delay_time: Time = 0.25, feedback: float = 0.125,
                 max_delay: float = 1.0, wet: float = 0.5,
                 clock: Optional[AudioClock] = None):
        super().__init__(feedback=feedback, wet=wet)
        self.clock = clock if clock is not None else AudioClock()
        self.max_delay = float(max_delay)
        self.delay_time = 0.0
        self.set_delay_time(delay_time)

        # ring buffer, (re)allocated on first block / sr change
        self._buf: Optional[np.ndarray] = None
        self._buf_sr = None
        self._w = 0

    def set_delay_time(self, delay_time: Time) -> None:
        seconds = self.clock.to_seconds(delay_time)
        if not 0.0 <= seconds <= self.max_delay:
            raise ValueError(f"delay_time must be within [0, {self.max_delay}] s, got {seconds}")
        self.delay_time = seconds

    def set(self, params: Mapping[str, Any]) -> "FeedbackDelay":
        params = dict(params)
        if "delay_time" in params:
            self.set_delay_time(params.pop("delay_time"))
        super().set(params)
        return self

    def _ensure_buffer(self, n: int, sr: int) -> None:
        size = int(self.max_delay * sr) + n + 1
        if self._buf is None or self._buf_sr != sr or self._buf.shape[0] < size:
            self._buf = np.zeros(size, dtype=np.float32)
            self._buf_sr = sr
            self._w = 0

    def _effect_path(self, send: np.ndarray, sr: int) -> np.ndarray:
        return self.process(send, sr)

    def process(self, block: np.ndarray, sr: int) -> np.ndarray:
        n = block.shape[0]
        self._ensure_buffer(n, sr)
        size = self._buf.shape[0]
        d = int(round(self.delay_time * sr))
        fb = self.feedback.render(n, sr)

        if d == 0:
            widx = (self._w + np.arange(n)) % size
            self._buf[widx] = block
            self._w = (self._w + n) % size
            return block.astype(np.float32)

        out = np.empty(n, dtype=np.float32)
        # chunks of at most d samples only read what earlier chunks wrote
        pos = 0
        while pos < n:
            m = min(d, n - pos)
            widx = (self._w + np.arange(m)) % size
            delayed = self._buf[(widx - d) % size]
            self._buf[widx] = block[pos:pos + m] + fb[pos:pos + m] * delayed
            out[pos:pos + m] = delayed
            self._w = (self._w + m) % size
            pos += m
        return out

    def dispose(self) -> None:
        super().dispose()
        self._buf = None
