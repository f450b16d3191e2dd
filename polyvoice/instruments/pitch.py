import re
from collections.abc import Mapping

_NOTE_NAME = re.compile(r"^([A-Ga-g])([#b]{0,2})(-?\d+)$")
_SEMITONES = {"c": 0, "d": 2, "e": 4, "f": 5, "g": 7, "a": 9, "b": 11}


def midi_to_freq_equal_tempered(note: float,
                                base_note: int = 69, base_freq: float = 440.0,
                                n_tones: int = 12
                                ) -> float:
    """
    Equal-tempered tuning
    """
    return base_freq * (2 ** ((float(note) - int(base_note)) / n_tones))


def note_name_to_midi(name: str) -> int:
    """
    Scientific pitch notation to MIDI number: "A4" -> 69, "C#5" -> 73, "Bb3" -> 58.
    """
    m = _NOTE_NAME.match(name.strip())
    if m is None:
        raise ValueError(f"Not a note name: {name!r}")
    letter, accidentals, octave = m.groups()
    offset = accidentals.count("#") - accidentals.count("b")
    return (int(octave) + 1) * 12 + _SEMITONES[letter.lower()] + offset


def to_frequency(note) -> float:
    """
    Resolve a note identity to Hz.
    Numbers are already frequencies, strings are note names,
    mappings carry one of "frequency", "midi" or "note".
    """
    if isinstance(note, bool):
        raise ValueError(f"Cannot resolve a frequency from {note!r}")
    if isinstance(note, (int, float)):
        return float(note)
    if isinstance(note, str):
        return midi_to_freq_equal_tempered(note_name_to_midi(note))
    if isinstance(note, Mapping):
        if "frequency" in note:
            return float(note["frequency"])
        if "midi" in note:
            return midi_to_freq_equal_tempered(note["midi"])
        if "note" in note:
            return to_frequency(note["note"])
    raise ValueError(f"Cannot resolve a frequency from {note!r}")
