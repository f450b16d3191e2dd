# polyvoice/audio/engine.py
import logging
import threading
from typing import Optional

import numpy as np
import sounddevice as sd

from polyvoice.audio.dsp import soft_clip
from polyvoice.audio.mixer import Mixer
from polyvoice.sequencing.clock import AudioClock

logger = logging.getLogger(__name__)


class AudioEngine:
    """
    Pulls the mixer from the sounddevice callback and moves the clock forward
    by every rendered block. Instruments scheduled on the same clock see their
    timed events land inside the right block.
    """

    def __init__(self, mixer: Mixer, clock: Optional[AudioClock] = None, blocksize=256,
                 channels=1, pre_gain=0.3, limiter_drive=1.3):
        self.mixer = mixer
        self.clock = clock if clock is not None else AudioClock()
        self.sr = self.clock.sr
        self.blocksize = int(blocksize)
        self.channels = int(channels)
        if self.channels not in (1, 2):
            raise ValueError("Only mono or stereo output supported currently.")

        # processing
        self.pre_gain = float(pre_gain)
        self.limiter_drive = float(limiter_drive)

        # coordinated shutdown
        self._stop_evt = threading.Event()

        # audio stream
        self.stream = sd.OutputStream(
            channels=self.channels,
            samplerate=self.sr,
            blocksize=self.blocksize,
            callback=self._cb,
            latency='low'
        )

    ###########################################################################
    ##                              LIFECYCLE                                ##
    ###########################################################################
    def start(self):
        self._stop_evt.clear()
        self.stream.start()
        logger.info("Engine started: %d Hz, block %d, %d ch", self.sr, self.blocksize, self.channels)

    def stop(self):
        self._stop_evt.set()

        # abort() is immediate; stop() drains
        for action in (self.stream.abort, self.stream.stop, self.stream.close):
            try:
                action()
            except sd.PortAudioError as e:
                logger.warning("Engine %s() failed: %s", action.__name__, e)
        logger.info("Engine stopped at t=%.3fs", self.clock.now())

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, *exc):
        self.stop()


    ###########################################################################
    ##                           AUDIO CALL BACK                             ##
    ###########################################################################

    def render_block(self, frames: int) -> np.ndarray:
        mix = self.mixer.render(frames, self.sr, channels=self.channels).astype(np.float32)
        self.clock.advance(frames)

        if self.pre_gain != 1.0:
            mix *= self.pre_gain

        out = soft_clip(mix, drive=self.limiter_drive)
        peak = float(np.max(np.abs(out))) if out.size else 0.0
        if peak > 1.0:
            out /= peak
        return out

    def _cb(self, outdata, frames, time_info, status):
        if status:
            logger.warning("Audio callback status: %s", status)

        # if we are stopping, output silence and skip rendering
        if self._stop_evt.is_set():
            outdata.fill(0)
            return

        out = self.render_block(frames)
        if self.channels == 1:
            outdata[:, 0] = out
        else:
            outdata[:, :2] = out
