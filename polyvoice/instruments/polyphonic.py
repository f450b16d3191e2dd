import dataclasses
import json
import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, Iterable, List, Mapping, Optional, Tuple

import numpy as np

from polyvoice.audio.nodes import AudioSink, Bus
from polyvoice.sequencing.clock import AudioClock, Time
from .base import Instrument, Voice
from .mono import MonoSynth

logger = logging.getLogger(__name__)

VoiceFactory = Callable[..., Voice]


def _structure(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, np.generic):
        return value.item()
    raise TypeError(f"Note identity of type {type(value).__name__} is not serializable")


def note_key(note: Any) -> str:
    """
    Canonical key of a note identity: its structural JSON form.
    Two identities with the same structure give the same key.
    """
    return json.dumps(note, sort_keys=True, separators=(",", ":"), default=_structure)


def _as_batch(notes: Any) -> Iterable[Any]:
    return notes if isinstance(notes, (list, tuple)) else (notes,)


@dataclass
class PolySynthOptions:
    polyphony: int = 4
    voice: VoiceFactory = MonoSynth
    voice_options: Dict[str, Any] = field(default_factory=lambda: {"portamento": 0})


class PolySynth(Instrument):
    """
    Plays several notes at once on a fixed pool of monophonic voices.

    A note takes the voice at the front of the free list and gives it back
    (at the end of the list) on release. Attacking a note that is already
    sounding retriggers its voice. When every voice is busy, new notes are
    dropped: there is no voice stealing.

    Parameters
    ----------
    polyphony : int
        Number of voices, fixed for the lifetime of the synth.
    voice : callable
        Voice factory, called as ``voice(clock=clock, **voice_options)``.
    voice_options : mapping
        Options handed to every voice.
    output : AudioSink
        Where every voice is connected. A new Bus by default.
    clock : AudioClock
        Timeline for "now" and time conversions.
    key : callable
        Note identity -> hashable key. Structural JSON by default.
    """

    def __init__(self,
                 polyphony: int = 4,
                 voice: VoiceFactory = MonoSynth,
                 voice_options: Optional[Mapping[str, Any]] = None,
                 *,
                 output: Optional[AudioSink] = None,
                 clock: Optional[AudioClock] = None,
                 key: Callable[[Any], Any] = note_key):
        super().__init__(clock)
        if isinstance(polyphony, bool) or not isinstance(polyphony, int) or polyphony <= 0:
            raise ValueError(f"polyphony must be a positive integer, got {polyphony!r}")
        if voice_options is None:
            voice_options = PolySynthOptions().voice_options

        self._owns_output = output is None
        self.output = output if output is not None else Bus()
        self._key = key
        self._lock = threading.Lock()

        self._voices: List[Voice] = []
        for _ in range(polyphony):
            v = voice(clock=self.clock, **dict(voice_options))
            v.connect(self.output)
            self._voices.append(v)

        # idle voices, next allocation at the front
        self._free_voices: Deque[Voice] = deque(self._voices)
        # key -> voice, None once released
        self._active_voices: Dict[Any, Optional[Voice]] = {}

        logger.debug("PolySynth created with %d voices of %s",
                     polyphony, getattr(voice, "__name__", voice))

    @classmethod
    def from_options(cls, options: PolySynthOptions, **kwargs: Any) -> "PolySynth":
        return cls(options.polyphony, options.voice, options.voice_options, **kwargs)

    ###########################################################################
    ##                             ALLOCATION                                ##
    ###########################################################################

    def attack(self, notes: Any, time: Time = None, velocity: float = 1.0) -> "PolySynth":
        """
        Start one note or a list of notes.
        Notes that find no free voice are skipped without error.
        """
        with self._lock:
            for note in _as_batch(notes):
                k = self._key(note)
                voice = self._active_voices.get(k)
                if voice is not None:
                    voice.attack(note, time, velocity)
                elif self._free_voices:
                    # a voice that fails to attack stays free
                    voice = self._free_voices[0]
                    voice.attack(note, time, velocity)
                    self._active_voices[k] = self._free_voices.popleft()
                else:
                    logger.debug("No free voice, dropping note %s", k)
        return self

    def release(self, notes: Any, time: Time = None) -> "PolySynth":
        """Release one note or a list of notes. Unknown notes are ignored."""
        with self._lock:
            for note in _as_batch(notes):
                k = self._key(note)
                voice = self._active_voices.get(k)
                if voice is not None:
                    voice.release(time)
                    self._free_voices.append(voice)
                    self._active_voices[k] = None
        return self

    def _release_at(self, note: Any, time: float) -> None:
        self.release(note, time)

    ###########################################################################
    ##                           CONFIGURATION                               ##
    ###########################################################################

    def set(self, params: Mapping[str, Any]) -> "PolySynth":
        """Apply `params` to every voice, sounding or not."""
        with self._lock:
            for v in self._voices:
                v.set(params)
        return self

    def set_preset(self, name: str) -> "PolySynth":
        with self._lock:
            for v in self._voices:
                v.set_preset(name)
        return self

    ###########################################################################
    ##                            INSPECTION                                 ##
    ###########################################################################

    @property
    def polyphony(self) -> int:
        return len(self._voices)

    @property
    def voices(self) -> Tuple[Voice, ...]:
        return tuple(self._voices)

    @property
    def free_voices(self) -> Tuple[Voice, ...]:
        with self._lock:
            return tuple(self._free_voices)

    @property
    def active_voices(self) -> Dict[Any, Voice]:
        with self._lock:
            return {k: v for k, v in self._active_voices.items() if v is not None}

    def voice_for(self, note: Any) -> Optional[Voice]:
        with self._lock:
            return self._active_voices.get(self._key(note))

    ###########################################################################
    ##                              RENDER                                   ##
    ###########################################################################

    def render(self, frames: int, sr: int) -> np.ndarray:
        return self.output.render(frames, sr)

    def dispose(self) -> None:
        """
        Dispose every voice, and the output bus when the synth created it.
        The synth must not be used afterwards.
        """
        with self._lock:
            for v in self._voices:
                v.dispose()
            n = len(self._voices)
            self._voices = None
            self._active_voices = None
            self._free_voices = None
        if self._owns_output:
            self.output.dispose()
        super().dispose()
        logger.debug("PolySynth disposed (%d voices)", n)
