from __future__ import annotations

import csv

import pytest

from sight_reader.generator import InvalidParameter
from sight_reader.matching import Outcome
from sight_reader.midi_input import NoteEvent
from sight_reader.session import (
    PracticeSession,
    SessionStats,
    SessionTimer,
    accuracy_percent,
    format_time,
    speed_npm,
    weakest_notes,
)


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class RecordingCursor:
    def __init__(self) -> None:
        self.advances = 0
        self.resets = 0

    def advance(self) -> None:
        self.advances += 1

    def reset(self) -> None:
        self.resets += 1


def test_accuracy_formula():
    assert accuracy_percent(0, 0) == 100
    assert accuracy_percent(2, 3) == 67
    assert accuracy_percent(1, 2) == 50
    assert accuracy_percent(5, 8) == 63  # 62.5 rounds up
    assert accuracy_percent(0, 4) == 0


def test_stats_record_outcomes():
    stats = SessionStats()
    stats.record(Outcome.CORRECT, 60)
    stats.record(Outcome.WRONG, 66)
    stats.record(Outcome.WRONG, 66)
    stats.record(Outcome.COMPLETE, 60)
    assert stats.attempts == 3
    assert stats.correct_attempts == 1
    assert stats.missed_note_counts == {"F#4": 2}
    assert stats.accuracy == 33
    stats.reset()
    assert stats.attempts == 0
    assert stats.missed_note_counts == {}
    assert stats.accuracy == 100


def test_speed_npm():
    assert speed_npm(10, 0) == 0
    assert speed_npm(30, 60) == 30
    assert speed_npm(10, 20.9) == 30
    assert speed_npm(3, 0.5) == 0


def test_weakest_notes_descending_top_two():
    misses = {"C4": 1, "F#4": 5, "A4": 3}
    assert weakest_notes(misses) == [{"note": "F#4", "misses": 5}, {"note": "A4", "misses": 3}]
    assert weakest_notes({}) == []


def test_format_time():
    assert format_time(0) == "00:00"
    assert format_time(65.9) == "01:05"
    assert format_time(-3) == "00:00"
    assert format_time(3600) == "60:00"


def test_timer_accumulates_only_while_running():
    clock = FakeClock()
    t = SessionTimer(clock)
    t.start()
    clock.now = 5
    t.stop()
    clock.now = 100
    assert t.elapsed_seconds == 5
    t.toggle()
    clock.now = 102
    assert t.running
    assert t.elapsed_seconds == 7
    t.toggle()
    t.reset()
    assert t.elapsed_seconds == 0
    assert not t.running


def _play(session: PracticeSession, clock: FakeClock, step: float = 1.0) -> None:
    for note in session.score.expected_notes:
        session.note_on(note)
        clock.now += step
        session.note_off(note)


def test_practice_session_full_run_completes_once():
    clock = FakeClock()
    cursor = RecordingCursor()
    results = []
    session = PracticeSession(
        "C4", "C5", 10, seed=3, cursor=cursor, on_complete=results.append, clock=clock
    )
    assert cursor.resets == 1

    session.note_on(61)  # C#4 is never a natural pitch
    session.note_off(61)
    _play(session, clock, step=6.0)

    assert len(results) == 1
    result = results[0]
    assert session.finished
    assert cursor.advances == 10
    assert result.completed_notes == 10
    assert result.attempts == 11
    assert result.correct_attempts == 10
    assert result.accuracy == 91
    assert result.duration_seconds == 60
    assert result.speed_npm == 10
    assert result.speed_delta == 10 - 36
    assert result.improvements == [{"note": "C#4", "misses": 1}]
    assert result.session_id == "#88K-0003"

    # further input after completion changes nothing
    assert session.note_on(60) is Outcome.COMPLETE
    assert session.note_off(60) is Outcome.IGNORED
    assert session.finish() is result
    assert len(results) == 1


def test_timer_starts_on_first_note_on():
    clock = FakeClock()
    session = PracticeSession("C4", "C5", 10, seed=1, clock=clock)
    clock.now = 50
    assert not session.timer.running
    session.note_on(61)
    assert session.timer.running
    clock.now = 53
    assert session.timer.elapsed_seconds == 3


def test_explicit_finish_stops_session():
    clock = FakeClock()
    session = PracticeSession("C4", "C5", 10, seed=1, clock=clock)
    first = session.score.expected_notes[0]
    session.note_on(first)
    clock.now = 4
    session.note_off(first)
    result = session.finish()
    assert result.completed_notes == 1
    assert result.duration_seconds == 4
    assert session.note_on(first) is Outcome.COMPLETE
    assert session.engine.cursor == 1


def test_new_score_resets_everything_and_bumps_seed():
    clock = FakeClock()
    cursor = RecordingCursor()
    session = PracticeSession("C4", "C5", 10, seed=7, cursor=cursor, clock=clock)
    session.note_on(61)
    session.finish()
    score = session.new_score()
    assert score.seed == 8
    assert session.seed == 8
    assert session.session_id == "#88K-0008"
    assert session.engine.cursor == 0
    assert session.stats.attempts == 0
    assert session.timer.elapsed_seconds == 0
    assert not session.finished
    assert cursor.resets == 2


def test_same_seed_reproduces_the_passage():
    a = PracticeSession("E2", "G5", 40, seed=12)
    b = PracticeSession("E2", "G5", 40, seed=12)
    assert a.score.expected_notes == b.score.expected_notes


def test_handle_dispatches_device_events():
    session = PracticeSession("C4", "C5", 10, seed=2)
    first = session.score.expected_notes[0]
    assert session.handle(NoteEvent("on", first, 90)) is Outcome.CORRECT
    assert session.handle(NoteEvent("all_off")) is None
    assert session.engine.held_notes == frozenset()
    assert session.handle(NoteEvent("off", first)) is Outcome.ADVANCED


def test_bad_parameters_surface_before_session_starts():
    with pytest.raises(InvalidParameter):
        PracticeSession("C5", "C4", 10)


def test_csv_log_written_on_finish(tmp_path):
    log_path = tmp_path / "logs" / "session.csv"
    clock = FakeClock()
    session = PracticeSession("C4", "C5", 10, seed=5, log_path=str(log_path), clock=clock)
    session.note_on(61)
    session.note_off(61)
    _play(session, clock)
    assert log_path.exists()

    with log_path.open() as f:
        rows = list(csv.DictReader(f))
    assert len(rows) == 22
    assert set(rows[0].keys()) == {"index", "kind", "midi", "label", "outcome", "cursor", "elapsed_s"}
    assert rows[0]["outcome"] == "wrong"
    assert rows[0]["label"] == "C#4"
    assert rows[-1]["outcome"] == "complete"
