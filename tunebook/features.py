"""Musical feature extraction from ABC melody notation.

This is a fingerprinting step, not an ABC parser:
1. Drop K:/M:/L: header lines and blank lines, join the rest
2. Every letter A–G (with optional octave marks and duration) is one note;
   chords, ties, grace notes and decorations are not modeled
3. Map each note's letter to a pitch (uppercase one octave, lowercase +12)
4. Intervals and contour between consecutive notes
5. Key and meter come from the *unfiltered* text
6. Rhythmic pattern: letters replaced by X, first 32 characters
"""

import re

from tunebook.config import (
    DEFAULT_KEY_SIGNATURE,
    DEFAULT_TIME_SIGNATURE,
    RHYTHM_PATTERN_LENGTH,
)
from tunebook.models import MusicalFeatures

_HEADER_PREFIXES = ("K:", "M:", "L:")

_NOTE_RE = re.compile(r"[A-Ga-g][',]*[0-9/]*")
_KEY_RE = re.compile(r"K:\s*([A-G][#b]?(?:maj|min|dor|mix|lyd|phr|loc)?)")
_METER_RE = re.compile(r"M:\s*(\d+/\d+)")
_LETTER_RE = re.compile(r"[A-Ga-g]")

# Major-scale spacing; lowercase letters are the octave above.
NOTE_VALUES = {
    "C": 0, "D": 2, "E": 4, "F": 5, "G": 7, "A": 9, "B": 11,
    "c": 12, "d": 14, "e": 16, "f": 17, "g": 19, "a": 21, "b": 23,
}


def extract_notes(abc):
    """Return the note tokens of the music body, e.g. ["A", "B2", "c'/2"]."""
    lines = [
        line for line in (abc or "").split("\n")
        if not line.startswith(_HEADER_PREFIXES) and line.strip()
    ]
    return _NOTE_RE.findall("".join(lines))


def note_pitch(note):
    """Pitch number of a note token; unknown letters count as 0."""
    if not note:
        return 0
    return NOTE_VALUES.get(note[0], 0)


def calculate_intervals(notes):
    pitches = [note_pitch(n) for n in notes]
    return [curr - prev for prev, curr in zip(pitches, pitches[1:])]


def _sign(n):
    return (n > 0) - (n < 0)


def calculate_contour(notes):
    return [_sign(step) for step in calculate_intervals(notes)]


def extract_key_signature(abc):
    m = _KEY_RE.search(abc or "")
    return m.group(1) if m else None


def extract_time_signature(abc):
    m = _METER_RE.search(abc or "")
    return m.group(1) if m else None


def extract_rhythmic_pattern(abc):
    return _LETTER_RE.sub("X", abc or "")[:RHYTHM_PATTERN_LENGTH]


def extract_features(abc):
    """Compute the MusicalFeatures of one setting's ABC notation."""
    abc = abc or ""
    notes = extract_notes(abc)
    intervals = calculate_intervals(notes)
    return MusicalFeatures(
        key_signature=extract_key_signature(abc) or DEFAULT_KEY_SIGNATURE,
        time_signature=extract_time_signature(abc) or DEFAULT_TIME_SIGNATURE,
        note_count=len(notes),
        melodic_contour=tuple(_sign(step) for step in intervals),
        intervals=tuple(intervals),
        rhythmic_pattern=extract_rhythmic_pattern(abc),
    )
