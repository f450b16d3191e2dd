from typing import Any, Mapping, Optional, Protocol

from polyvoice.audio.nodes import AudioNode, AudioSink
from polyvoice.sequencing.clock import AudioClock, Time


class Voice(Protocol):
    """
    What a pool member must provide.
    The pool only routes calls; it never looks inside a voice.
    """
    def attack(self, note: Any, time: Time = None, velocity: float = 1.0) -> None: ...
    def release(self, time: Time = None) -> None: ...
    def set(self, params: Mapping[str, Any]) -> None: ...
    def set_preset(self, name: str) -> None: ...
    def dispose(self) -> None: ...
    def connect(self, destination: AudioSink) -> Any: ...


class Instrument(AudioNode):
    """Common base of everything that plays notes on a shared clock."""

    def __init__(self, clock: Optional[AudioClock] = None):
        super().__init__()
        self.clock = clock if clock is not None else AudioClock()

    def attack(self, note: Any, time: Time = None, velocity: float = 1.0) -> "Instrument":
        raise NotImplementedError

    def release(self, *args, **kwargs) -> "Instrument":
        raise NotImplementedError

    def attack_release(self, note: Any, duration: Time, time: Time = None,
                       velocity: float = 1.0) -> "Instrument":
        """
        Attack now (or at `time`) and schedule the release `duration` later.
        Never blocks: both events are handed over with their timestamps.
        """
        start = self.clock.to_seconds(time)
        self.attack(note, start, velocity)
        self._release_at(note, start + self.clock.to_seconds(duration))
        return self

    def _release_at(self, note: Any, time: float) -> None:
        self.release(time)
