from __future__ import annotations

"""
MusicXML serialization for generated passages.

Layout: one part, two staves (treble on staff 1, bass on staff 2). Notes
sit in voice 1 on the clef's staff; voice 2 carries an alignment rest on
the other staff so both staves fill the same duration per measure.
"""

from dataclasses import dataclass
from typing import List, Sequence

from .pitch import Pitch

DIVISIONS = 4  # per quarter note
NOTES_PER_MEASURE = 4

TREBLE_STAFF = 1
BASS_STAFF = 2

# duration in divisions -> (type, dotted)
_DURATION_TO_TYPE = {
    2: ("eighth", False),
    4: ("quarter", False),
    8: ("half", False),
    12: ("half", True),
    16: ("whole", False),
}


@dataclass(frozen=True)
class Measure:
    number: int
    pitches: Sequence[Pitch]


def group_measures(pitches: Sequence[Pitch], per_measure: int = NOTES_PER_MEASURE) -> List[Measure]:
    """Split drawn pitches into measures of ``per_measure``; the last may be shorter."""
    return [
        Measure(number=idx // per_measure + 1, pitches=tuple(pitches[idx : idx + per_measure]))
        for idx in range(0, len(pitches), per_measure)
    ]


def _attributes() -> List[str]:
    return [
        "        <attributes>",
        f"          <divisions>{DIVISIONS}</divisions>",
        "          <key><fifths>0</fifths></key>",
        "          <time><beats>4</beats><beat-type>4</beat-type></time>",
        "          <staves>2</staves>",
        '          <clef number="1"><sign>G</sign><line>2</line></clef>',
        '          <clef number="2"><sign>F</sign><line>4</line></clef>',
        "        </attributes>",
    ]


def _note(pitch: Pitch, staff: int) -> List[str]:
    return [
        "        <note>",
        "          <pitch>",
        f"            <step>{pitch.step}</step>",
        f"            <octave>{pitch.octave}</octave>",
        "          </pitch>",
        "          <voice>1</voice>",
        f"          <duration>{DIVISIONS}</duration>",
        "          <type>quarter</type>",
        f"          <staff>{staff}</staff>",
        "        </note>",
    ]


def _rest(duration: int, staff: int) -> List[str]:
    note_type, dotted = _DURATION_TO_TYPE.get(duration, ("quarter", False))
    lines = [
        "        <note>",
        "          <rest/>",
        "          <voice>2</voice>",
        f"          <duration>{duration}</duration>",
        f"          <type>{note_type}</type>",
    ]
    if dotted:
        lines.append("          <dot/>")
    lines += [
        f"          <staff>{staff}</staff>",
        "        </note>",
    ]
    return lines


def serialize_measure(measure: Measure, note_staff: int, rest_staff: int) -> str:
    duration = len(measure.pitches) * DIVISIONS
    lines = [f'      <measure number="{measure.number}">']
    if measure.number == 1:
        lines += _attributes()
    for pitch in measure.pitches:
        lines += _note(pitch, note_staff)
    lines += [
        "        <backup>",
        f"          <duration>{duration}</duration>",
        "        </backup>",
    ]
    lines += _rest(duration, rest_staff)
    lines.append("      </measure>")
    return "\n".join(lines)


def serialize_score(measures: Sequence[Measure], clef: str) -> str:
    """Render a complete MusicXML 3.1 partwise document.

    ``clef`` is ``"treble"`` or ``"bass"`` and selects the staff the notes
    are written on for the whole passage.
    """
    if clef not in ("treble", "bass"):
        raise ValueError(f"unknown clef '{clef}'")
    note_staff = TREBLE_STAFF if clef == "treble" else BASS_STAFF
    rest_staff = BASS_STAFF if clef == "treble" else TREBLE_STAFF

    return "\n".join(
        [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<!DOCTYPE score-partwise PUBLIC "-//Recordare//DTD MusicXML 3.1 Partwise//EN"',
            '  "http://www.musicxml.org/dtds/partwise.dtd">',
            '<score-partwise version="3.1">',
            "  <part-list>",
            '    <score-part id="P1"><part-name>Music</part-name></score-part>',
            "  </part-list>",
            '  <part id="P1">',
            *(serialize_measure(m, note_staff, rest_staff) for m in measures),
            "  </part>",
            "</score-partwise>",
        ]
    )
