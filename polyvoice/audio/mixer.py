from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
import numpy as np
import threading

from .nodes import AudioNode
from .param import Param


def _clamp_pan(pan: float) -> float:
    return float(max(-1.0, min(1.0, pan)))


@dataclass
class Track:
    source: AudioNode
    gain: Param = field(default_factory=lambda: Param(1.0))
    pan: float = 0.0         # -1 = left, 0 = center, +1 = right
    mute: bool = False
    solo: bool = False


class Mixer:
    """
    Final summing stage in front of the engine.

    Each track holds one mono source under an integer channel, with a smoothed
    gain, an equal-power pan and mute/solo switches. The mixer is also a sink:
    ``node.connect(mixer)`` drops the node on the lowest free channel.
    """
    def __init__(self):
        self._tracks: Dict[int, Track] = {}
        self._lock = threading.Lock()


    ###########################################################################
    ##                        TRACK MANAGEMENT                              ##
    ###########################################################################

    def add_track(self, channel: int, source: AudioNode, *, gain: float = 1.0, pan: float = 0.0) -> Track:
        tr = Track(source=source, gain=Param(gain), pan=_clamp_pan(pan))
        with self._lock:
            old = self._tracks.get(int(channel))
            self._tracks[int(channel)] = tr
        if old is not None:
            old.gain.dispose()
        return tr

    def remove_track(self, channel: int) -> None:
        with self._lock:
            tr = self._tracks.pop(int(channel), None)
        if tr is not None:
            tr.gain.dispose()

    def track(self, channel: int) -> Optional[Track]:
        with self._lock:
            return self._tracks.get(int(channel))

    def _with_track(self, channel: int, fn) -> None:
        with self._lock:
            tr = self._tracks.get(int(channel))
            if tr is not None:
                fn(tr)

    def set_gain(self, channel: int, gain: float, ramp_time: Optional[float] = None) -> None:
        if ramp_time:
            self._with_track(channel, lambda tr: tr.gain.linear_ramp_to_value_now(gain, ramp_time))
        else:
            self._with_track(channel, lambda tr: tr.gain.set_value(gain))

    def set_pan(self, channel: int, pan: float) -> None:
        self._with_track(channel, lambda tr: setattr(tr, "pan", _clamp_pan(pan)))

    def set_mute(self, channel: int, mute: bool) -> None:
        self._with_track(channel, lambda tr: setattr(tr, "mute", bool(mute)))

    def set_solo(self, channel: int, solo: bool) -> None:
        self._with_track(channel, lambda tr: setattr(tr, "solo", bool(solo)))

    # AudioSink
    def add_input(self, node: AudioNode) -> None:
        with self._lock:
            if any(tr.source is node for tr in self._tracks.values()):
                return
            channel = 0
            while channel in self._tracks:
                channel += 1
            self._tracks[channel] = Track(source=node)

    def remove_input(self, node: AudioNode) -> None:
        with self._lock:
            channels = [ch for ch, tr in self._tracks.items() if tr.source is node]
            dropped = [self._tracks.pop(ch) for ch in channels]
        for tr in dropped:
            tr.gain.dispose()


    ###########################################################################
    ##                             RENDERING                                 ##
    ###########################################################################

    @staticmethod
    def _pan_gains(pan: float) -> Tuple[float, float]:
        """Equal-power law: -1 is hard left, +1 hard right, centre is -3 dB each."""
        angle = (_clamp_pan(pan) + 1.0) * 0.25 * np.pi
        return float(np.cos(angle)), float(np.sin(angle))

    def _audible(self) -> List[Track]:
        with self._lock:
            tracks = list(self._tracks.values())
        soloed = [t for t in tracks if t.solo and not t.mute]
        if soloed:
            return soloed
        return [t for t in tracks if not t.mute]

    def render(self, frames: int, sr: int, channels: int = 1) -> np.ndarray:
        """
        Returns shape ``(frames,)`` for mono, ``(frames, 2)`` for stereo.
        Gain ramps advance on every track that is rendered.
        """
        if channels not in (1, 2):
            raise ValueError(f"Mixer renders mono or stereo, not {channels} channels")

        shape = (frames,) if channels == 1 else (frames, 2)
        mix = np.zeros(shape, dtype=np.float32)
        for tr in self._audible():
            buf = tr.source.render(frames, sr).astype(np.float32) * tr.gain.render(frames, sr)
            if channels == 1:
                mix += buf
            else:
                mix += np.outer(buf, self._pan_gains(tr.pan)).astype(np.float32)
        return mix
