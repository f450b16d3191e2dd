import threading
from typing import List, Optional, Protocol, Union

import numpy as np

from .param import Param


class AudioSink(Protocol):
    """Anything a node can connect into."""
    def add_input(self, node: "AudioNode") -> None: ...
    def remove_input(self, node: "AudioNode") -> None: ...


class AudioNode:
    """
    Pull-model node: render(frames, sr) returns `frames` mono float32 samples.
    Keeps track of the sinks it is connected to so dispose() can unhook it.
    """

    def __init__(self):
        self._destinations: List[AudioSink] = []

    def connect(self, destination: AudioSink) -> "AudioNode":
        destination.add_input(self)
        self._destinations.append(destination)
        return self

    def disconnect(self, destination: Optional[AudioSink] = None) -> None:
        targets = list(self._destinations) if destination is None else [destination]
        for dest in targets:
            dest.remove_input(self)
            if dest in self._destinations:
                self._destinations.remove(dest)

    def render(self, frames: int, sr: int) -> np.ndarray:
        raise NotImplementedError

    def dispose(self) -> None:
        self.disconnect()


class Bus(AudioNode):
    """Summing junction. Thread-safe: inputs may change while rendering."""

    def __init__(self):
        super().__init__()
        self._inputs: List[AudioNode] = []
        self._lock = threading.Lock()

    @property
    def inputs(self) -> List[AudioNode]:
        with self._lock:
            return list(self._inputs)

    def add_input(self, node: AudioNode) -> None:
        with self._lock:
            if node not in self._inputs:
                self._inputs.append(node)

    def remove_input(self, node: AudioNode) -> None:
        with self._lock:
            if node in self._inputs:
                self._inputs.remove(node)

    def render(self, frames: int, sr: int) -> np.ndarray:
        # snapshot inputs outside of audio work
        with self._lock:
            inputs = list(self._inputs)

        mix = np.zeros(frames, dtype=np.float32)
        for node in inputs:
            mix += node.render(frames, sr)
        return mix

    def dispose(self) -> None:
        super().dispose()
        with self._lock:
            self._inputs.clear()


class Gain(Bus):
    """
    Bus scaled by a `gain` param (linear). Pass a Param to drive the stage
    from a control owned elsewhere; the Gain then owns and disposes it.
    """

    def __init__(self, gain: Union[float, Param] = 1.0):
        super().__init__()
        self.gain = gain if isinstance(gain, Param) else Param(gain)

    def process(self, block: np.ndarray, sr: int) -> np.ndarray:
        return (block * self.gain.render(block.shape[0], sr)).astype(np.float32)

    def render(self, frames: int, sr: int) -> np.ndarray:
        return self.process(super().render(frames, sr), sr)

    def dispose(self) -> None:
        super().dispose()
        self.gain.dispose()
