"""
polyvoice: polyphonic voice allocation and feedback routing on a small numpy audio graph.

The sounddevice engine lives in polyvoice.audio.engine and is not imported here,
so the rest of the package works without an audio device.
"""

from polyvoice.audio.mixer import Mixer
from polyvoice.audio.nodes import AudioNode, AudioSink, Bus, Gain
from polyvoice.audio.param import Param
from polyvoice.effects.delay import FeedbackDelay
from polyvoice.effects.feedback import FeedbackEffect
from polyvoice.instruments.base import Instrument, Voice
from polyvoice.instruments.mono import MonoSynth
from polyvoice.instruments.polyphonic import PolySynth, PolySynthOptions, note_key
from polyvoice.sequencing.clock import AudioClock

__version__ = "0.1.0"

__all__ = [
    "AudioClock",
    "AudioNode",
    "AudioSink",
    "Bus",
    "FeedbackDelay",
    "FeedbackEffect",
    "Gain",
    "Instrument",
    "Mixer",
    "MonoSynth",
    "Param",
    "PolySynth",
    "PolySynthOptions",
    "Voice",
    "note_key",
]
