from __future__ import annotations

import xml.etree.ElementTree as ET
from types import SimpleNamespace

import pytest

from sight_reader.generator import (
    EmptyRange,
    GeneratorError,
    InvalidParameter,
    generate_score,
    infer_clef,
)
from sight_reader.pitch import natural_pitches_in_range, note_name_to_midi


def _parse(xml: str) -> ET.Element:
    # ElementTree ignores the DOCTYPE; the declaration needs bytes input
    return ET.fromstring(xml.encode("utf-8"))


def test_same_arguments_same_score():
    a = generate_score("C3", "C5", 37, seed=42)
    b = generate_score("C3", "C5", 37, seed=42)
    assert a.expected_notes == b.expected_notes
    assert a.xml == b.xml


def test_different_seeds_give_different_passages():
    a = generate_score("C2", "C6", 64, seed=1)
    b = generate_score("C2", "C6", 64, seed=2)
    assert a.expected_notes != b.expected_notes


@pytest.mark.parametrize("lo,hi,count", [("C4", "C5", 10), ("E2", "G5", 200), ("A0", "A0", 3), ("B3", "C4", 9)])
def test_length_and_range_containment(lo, hi, count):
    score = generate_score(lo, hi, count, seed=5)
    assert len(score.expected_notes) == count
    naturals = {p.midi for p in natural_pitches_in_range(note_name_to_midi(lo), note_name_to_midi(hi))}
    assert set(score.expected_notes) <= naturals


def test_single_note_range_repeats_that_note():
    score = generate_score("G4", "G4", 6, seed=3)
    assert score.expected_notes == (67,) * 6


def test_repeats_are_allowed():
    score = generate_score("C4", "D4", 20, seed=11)
    assert len(set(score.expected_notes)) < len(score.expected_notes)


@pytest.mark.parametrize(
    "args",
    [
        ("C4", "B3", 10, 1),
        ("C4", "C5", 0, 1),
        ("C4", "C5", -3, 1),
        ("C4", "C5", 2.5, 1),
        ("C4", "C5", True, 1),
        ("C#4", "C5", 10, 1),
        ("C4", "X5", 10, 1),
        ("C4", "C9", 10, 1),
    ],
)
def test_invalid_parameters(args):
    with pytest.raises(InvalidParameter):
        generate_score(*args)


def test_errors_are_value_errors():
    assert issubclass(InvalidParameter, GeneratorError)
    assert issubclass(EmptyRange, GeneratorError)
    assert issubclass(GeneratorError, ValueError)


def test_empty_pool_raises_empty_range(monkeypatch):
    import sight_reader.generator as gen

    monkeypatch.setattr(gen, "natural_pitches_in_range", lambda lo, hi: [])
    with pytest.raises(EmptyRange):
        gen.generate_score("C4", "C5", 4, seed=1)


def test_clef_from_midpoint():
    assert infer_clef(60, 72) == "treble"
    assert infer_clef(48, 60) == "bass"
    # midpoint exactly 60 is treble
    assert infer_clef(48, 72) == "treble"
    assert generate_score("C2", "C4", 4, seed=1).clef == "bass"
    assert generate_score("C4", "C6", 4, seed=1).clef == "treble"


def test_seed_defaults_to_clock(monkeypatch):
    import sight_reader.generator as gen

    monkeypatch.setattr(gen, "time", SimpleNamespace(time=lambda: 1234.5))
    score = gen.generate_score("C4", "C5", 4)
    assert score.seed == 1234500
    assert score.expected_notes == gen.generate_score("C4", "C5", 4, seed=1234500).expected_notes


def test_notation_matches_expected_sequence():
    score = generate_score("C4", "C5", 10, seed=8)
    root = _parse(score.xml)
    measures = root.findall("./part/measure")
    assert [m.get("number") for m in measures] == ["1", "2", "3"]

    pitched = []
    for m in measures:
        for note in m.findall("note"):
            if note.find("pitch") is not None:
                step = note.findtext("pitch/step")
                octave = note.findtext("pitch/octave")
                pitched.append(note_name_to_midi(f"{step}{octave}"))
    assert tuple(pitched) == score.expected_notes


def test_measures_hold_four_notes_and_last_is_shorter():
    score = generate_score("C4", "C5", 10, seed=8)
    root = _parse(score.xml)
    counts = [
        len([n for n in m.findall("note") if n.find("pitch") is not None])
        for m in root.findall("./part/measure")
    ]
    assert counts == [4, 4, 2]


def test_attributes_only_on_first_measure():
    root = _parse(generate_score("C4", "C5", 9, seed=2).xml)
    measures = root.findall("./part/measure")
    assert measures[0].find("attributes") is not None
    assert all(m.find("attributes") is None for m in measures[1:])
    attrs = measures[0].find("attributes")
    assert attrs.findtext("divisions") == "4"
    assert attrs.findtext("key/fifths") == "0"
    assert attrs.findtext("time/beats") == "4"
    assert attrs.findtext("staves") == "2"


def test_treble_passage_rests_on_bass_staff():
    root = _parse(generate_score("C4", "C5", 6, seed=4).xml)
    for m in root.findall("./part/measure"):
        notes = m.findall("note")
        pitched = [n for n in notes if n.find("pitch") is not None]
        rests = [n for n in notes if n.find("rest") is not None]
        assert all(n.findtext("staff") == "1" for n in pitched)
        assert len(rests) == 1
        assert rests[0].findtext("staff") == "2"
        assert int(rests[0].findtext("duration")) == 4 * len(pitched)
        assert int(m.findtext("backup/duration")) == 4 * len(pitched)


def test_bass_passage_notes_on_staff_two():
    root = _parse(generate_score("C2", "B3", 4, seed=4).xml)
    notes = root.findall("./part/measure/note")
    assert {n.findtext("staff") for n in notes if n.find("pitch") is not None} == {"2"}
    assert {n.findtext("staff") for n in notes if n.find("rest") is not None} == {"1"}
