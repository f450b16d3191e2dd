import re

BEATS_PER_MEASURE = 4

# "4n", "8t", "4n.", "1m", "2m"
_NOTATION = re.compile(r"^(\d+)([ntm])(\.?)$")


def beats_to_seconds(beats: float, bpm: float) -> float:
    return float(beats) * 60.0 / float(bpm)

def whole_fraction(division: int) -> float:
    # "4n" -> 1 beat, "8n" -> 0.5 beat
    return BEATS_PER_MEASURE / float(division)

def dotted(beats: float) -> float:
    return beats * 1.5

def triplet(beats: float) -> float:
    return beats / 3.0 * 2.0  # e.g., quarter-triplet = 2/3 beat

def is_notation(value: str) -> bool:
    return _NOTATION.match(value.strip()) is not None

def notation_to_beats(value: str) -> float:
    """
    Note-value notation to beats (4/4):
    "4n" quarter, "8t" eighth triplet, "4n." dotted quarter, "2m" two measures.
    """
    m = _NOTATION.match(value.strip())
    if m is None:
        raise ValueError(f"Not a note-value notation: {value!r}")
    count, kind, dot = int(m.group(1)), m.group(2), m.group(3)
    if kind == "m":
        beats = float(count * BEATS_PER_MEASURE)
    else:
        if count == 0:
            raise ValueError(f"Not a note-value notation: {value!r}")
        beats = whole_fraction(count)
        if kind == "t":
            beats = triplet(beats)
    if dot:
        beats = dotted(beats)
    return beats
