from __future__ import annotations

"""
Seeded score generator.

``generate_score(min_note, max_note, note_count, seed)`` draws natural
pitches uniformly (with replacement) from the requested range and returns
both the MusicXML passage and the expected MIDI sequence in draw order.
The same arguments always produce the same passage.
"""

import os
import time
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .musicxml import group_measures, serialize_score
from .pitch import Pitch, natural_pitches_in_range, parse_note_name, pitch_to_midi
from .rng import Mulberry32

MIDDLE_C = 60


class GeneratorError(ValueError):
    """Base class for parameters the generator refuses."""


class InvalidParameter(GeneratorError):
    """Bad note name, non-positive note count, or inverted range."""


class EmptyRange(GeneratorError):
    """No natural pitch between the requested bounds."""


@dataclass(frozen=True)
class GeneratedScore:
    xml: str
    expected_notes: Tuple[int, ...]
    clef: str
    seed: int

    @property
    def note_count(self) -> int:
        return len(self.expected_notes)


def infer_clef(min_midi: int, max_midi: int) -> str:
    midpoint = (min_midi + max_midi) / 2
    return "bass" if midpoint < MIDDLE_C else "treble"


def _parse_bound(note: str) -> int:
    try:
        return pitch_to_midi(parse_note_name(note))
    except ValueError as e:
        raise InvalidParameter(str(e)) from e


def _check_note_count(note_count: object) -> int:
    # bool is an int subclass; True is not a note count
    if isinstance(note_count, bool) or not isinstance(note_count, int) or note_count <= 0:
        raise InvalidParameter(f"note_count must be a positive integer. Received: {note_count!r}")
    return note_count


def draw_pitches(pool: List[Pitch], count: int, rng: Mulberry32) -> List[Pitch]:
    return [rng.choice(pool) for _ in range(count)]


def generate_score(
    min_note: str,
    max_note: str,
    note_count: int,
    seed: Optional[int] = None,
) -> GeneratedScore:
    """Generate a passage of ``note_count`` quarter notes within ``[min_note, max_note]``.

    When ``seed`` is omitted the current time in milliseconds is used.
    Raises :class:`InvalidParameter` or :class:`EmptyRange`; there is no
    partial result.
    """
    count = _check_note_count(note_count)
    min_midi = _parse_bound(min_note)
    max_midi = _parse_bound(max_note)
    if min_midi > max_midi:
        raise InvalidParameter(f"min_note must be <= max_note. Received: {min_note} > {max_note}.")

    pool = natural_pitches_in_range(min_midi, max_midi)
    if not pool:
        raise EmptyRange(f"No natural pitches available between {min_note} and {max_note}.")

    if seed is None:
        seed = int(time.time() * 1000)
    rng = Mulberry32(seed)

    pitches = draw_pitches(pool, count, rng)
    clef = infer_clef(min_midi, max_midi)
    xml = serialize_score(group_measures(pitches), clef)
    score = GeneratedScore(
        xml=xml,
        expected_notes=tuple(pitch_to_midi(p) for p in pitches),
        clef=clef,
        seed=int(seed),
    )

    if os.environ.get("SIGHT_READER_DEBUG"):
        print(f"[sight-debug] range={min_note}-{max_note} pool={len(pool)} notes={count} seed={seed} clef={clef}")
    return score
