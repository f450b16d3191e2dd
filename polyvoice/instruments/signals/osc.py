import numpy as np
from .base import Signal, Frequency

WAVEFORMS = ("sine", "square", "sawtooth", "triangle")


class Oscillator(Signal):
    """
    Naive (aliased) oscillator with a selectable waveform.
    Phase is kept in cycles [0, 1) so waveform switches are click-free in phase.
    """
    #TODO: band-limit square/sawtooth (polyBLEP) before using them above ~2 kHz.

    def __init__(self, type: str = "sine", phase: float = 0.0, gain: float = 1.0):
        self.type = "sine"
        self.set_type(type)
        self.phase = float(phase) % 1.0
        self.gain = float(gain)

    def set_type(self, type: str) -> None:
        if type not in WAVEFORMS:
            raise ValueError(f"Unknown oscillator type {type!r}, expected one of {WAVEFORMS}")
        self.type = type

    def _phases(self, freq: Frequency, frames: int, sr: int) -> np.ndarray:
        inc = np.broadcast_to(np.asarray(freq, dtype=np.float64) / sr, (frames,))
        phases = (self.phase + np.cumsum(inc)) % 1.0
        if frames:
            self.phase = float(phases[-1])
        return phases

    def render(self, freq: Frequency, frames: int, sr: int = 44100) -> np.ndarray:
        p = self._phases(freq, frames, sr)
        if self.type == "sine":
            out = np.sin(2 * np.pi * p)
        elif self.type == "square":
            out = np.where(p < 0.5, 1.0, -1.0)
        elif self.type == "sawtooth":
            out = 2.0 * p - 1.0
        else:
            out = 1.0 - 4.0 * np.abs(p - 0.5)
        return (out * self.gain).astype(np.float32)

    def reset(self) -> None:
        self.phase = 0.0
