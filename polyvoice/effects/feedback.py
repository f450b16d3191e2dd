import logging
from typing import Any, Mapping, Optional

import numpy as np

from polyvoice.audio.nodes import Gain
from polyvoice.audio.param import Param
from .base import Effect

logger = logging.getLogger(__name__)


class FeedbackEffect(Effect):
    """
    Effect whose return is fed back into its own send through a gain stage.
    `feedback` drives that gain. The generic loop closes one block later,
    since a block's return only exists once the block has been processed.
    Effects that keep their own history (delay lines) override
    `_effect_path` and close the loop sample-accurately instead.
    """

    def __init__(self, feedback: float = 0.125, wet: float = 1.0):
        super().__init__(wet=wet)
        self.feedback = Param(feedback)

        # return -> feedback gain -> send
        self._feedback_gain = Gain(self.feedback)
        self._loop: Optional[np.ndarray] = None

    def set_feedback(self, value: float, ramp_time: Optional[float] = None) -> None:
        """Jump to `value`, or ramp linearly to it over `ramp_time` seconds."""
        if ramp_time:
            self.feedback.linear_ramp_to_value_now(value, ramp_time)
        else:
            self.feedback.set_value(value)

    def set(self, params: Mapping[str, Any]) -> "FeedbackEffect":
        params = dict(params)
        if "feedback" in params:
            self.set_feedback(params.pop("feedback"))
        super().set(params)
        return self

    def _effect_path(self, send: np.ndarray, sr: int) -> np.ndarray:
        if self._loop is not None and self._loop.shape == send.shape:
            send = send + self._loop
        ret = self.process(send, sr)
        self._loop = self._feedback_gain.process(ret, sr)
        return ret

    def dispose(self) -> None:
        super().dispose()
        # the gain stage owns the feedback param
        self._feedback_gain.dispose()
        self._feedback_gain = None
        self._loop = None
        logger.debug("%s disposed", type(self).__name__)
