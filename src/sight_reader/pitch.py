from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Tuple

NOTE_STEPS: Tuple[str, ...] = ("C", "D", "E", "F", "G", "A", "B")

_STEP_TO_SEMI = {
    "C": 0,
    "D": 2,
    "E": 4,
    "F": 5,
    "G": 7,
    "A": 9,
    "B": 11,
}

_CHROMATIC_NAMES = ("C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B")

_NOTE_NAME_RE = re.compile(r"^([A-G])([0-8])$")

MIN_OCTAVE = 0
MAX_OCTAVE = 8

# Every natural note name the generator accepts, C0..B8 in pitch order.
NOTE_NAMES: Tuple[str, ...] = tuple(
    f"{step}{octave}" for octave in range(MIN_OCTAVE, MAX_OCTAVE + 1) for step in NOTE_STEPS
)


@dataclass(frozen=True)
class Pitch:
    step: str
    octave: int

    @property
    def midi(self) -> int:
        return pitch_to_midi(self)

    @property
    def name(self) -> str:
        return f"{self.step}{self.octave}"


def parse_note_name(note: str) -> Pitch:
    """Parse a natural note name such as ``C4`` into a :class:`Pitch`.

    Raises ``ValueError`` for anything that is not a letter A-G followed by
    a single octave digit 0-8 (accidentals are not accepted).
    """
    match = _NOTE_NAME_RE.match(note or "")
    if not match:
        raise ValueError(f"Invalid note name '{note}'. Expected natural note like C4.")
    return Pitch(step=match.group(1), octave=int(match.group(2)))


def pitch_to_midi(pitch: Pitch) -> int:
    """Return the MIDI note number of a natural pitch (C4 = 60)."""
    return (pitch.octave + 1) * 12 + _STEP_TO_SEMI[pitch.step]


def note_name_to_midi(note: str) -> int:
    return pitch_to_midi(parse_note_name(note))


def natural_pitches_in_range(min_midi: int, max_midi: int) -> List[Pitch]:
    """All natural pitches with MIDI value in ``[min_midi, max_midi]``, ascending."""
    pitches: List[Pitch] = []
    for octave in range(MIN_OCTAVE, MAX_OCTAVE + 1):
        for step in NOTE_STEPS:
            pitch = Pitch(step=step, octave=octave)
            if min_midi <= pitch_to_midi(pitch) <= max_midi:
                pitches.append(pitch)
    return pitches


def midi_to_note_label(midi: int) -> str:
    """Human-readable label for any MIDI number, sharps for black keys.

    Out-of-range input is clamped to 0..127, e.g. 66 -> ``F#4``.
    """
    safe = max(0, min(127, int(round(midi))))
    octave = safe // 12 - 1
    return f"{_CHROMATIC_NAMES[safe % 12]}{octave}"
