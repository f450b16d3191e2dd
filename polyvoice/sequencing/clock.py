import threading
from typing import Optional, Union

from .durations import beats_to_seconds, is_notation, notation_to_beats

Time = Union[None, int, float, str]


class AudioClock:
    """
    Timeline shared by the engine and the instruments.
    Time advances only when rendered frames are reported via advance(),
    so now() is the start time of the block about to be rendered.
    """

    def __init__(self, sr: int = 44100, bpm: float = 120.0):
        self.sr = int(sr)
        self.bpm = float(bpm)
        self._frames = 0
        self._lock = threading.Lock()

    def now(self) -> float:
        with self._lock:
            return self._frames / self.sr

    def advance(self, frames: int) -> None:
        with self._lock:
            self._frames += int(frames)

    def reset(self) -> None:
        with self._lock:
            self._frames = 0

    def to_seconds(self, time: Time = None, now: Optional[float] = None) -> float:
        """
        None -> now; numbers pass through; "+x" -> now + x;
        note values ("4n", "8t", "1m") convert with the current bpm.
        """
        if time is None:
            return self.now() if now is None else now
        if isinstance(time, bool):
            raise ValueError(f"Invalid time value: {time!r}")
        if isinstance(time, (int, float)):
            return float(time)
        if isinstance(time, str):
            text = time.strip()
            if text.startswith("+"):
                base = self.now() if now is None else now
                return base + self.to_seconds(text[1:])
            if is_notation(text):
                return beats_to_seconds(notation_to_beats(text), self.bpm)
            try:
                return float(text)
            except ValueError:
                raise ValueError(f"Invalid time value: {time!r}") from None
        raise ValueError(f"Invalid time value: {time!r}")
