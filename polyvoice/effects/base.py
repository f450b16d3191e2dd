from typing import Any, Mapping

import numpy as np

from polyvoice.audio.nodes import AudioNode, Bus
from polyvoice.audio.param import Param


class Effect(AudioNode):
    """
    input -> dry ---------------------------> output
    input -> send -> process() -> return -> wet -> output

    Sources connect to the effect itself (it forwards to its input bus).
    """

    def __init__(self, wet: float = 1.0):
        super().__init__()
        self.input = Bus()
        self.wet = Param(wet)

    def add_input(self, node: AudioNode) -> None:
        self.input.add_input(node)

    def remove_input(self, node: AudioNode) -> None:
        self.input.remove_input(node)

    def process(self, block: np.ndarray, sr: int) -> np.ndarray:
        """The effect itself: send block in, return block out."""
        raise NotImplementedError

    def _effect_path(self, send: np.ndarray, sr: int) -> np.ndarray:
        return self.process(send, sr)

    def render(self, frames: int, sr: int) -> np.ndarray:
        dry = self.input.render(frames, sr)
        ret = self._effect_path(dry, sr)
        wet = self.wet.render(frames, sr)
        return (dry * (1.0 - wet) + ret * wet).astype(np.float32)

    def set(self, params: Mapping[str, Any]) -> "Effect":
        for name, value in params.items():
            if name == "wet":
                self.wet.set_value(value)
            else:
                raise ValueError(f"Unknown {type(self).__name__} parameter: {name!r}")
        return self

    def dispose(self) -> None:
        super().dispose()
        self.input.dispose()
        self.wet.dispose()
