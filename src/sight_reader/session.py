from __future__ import annotations

"""
Session accounting on top of the matching engine.

``SessionStats`` counts attempts and misses from engine outcomes,
``SessionTimer`` measures active practice time, and ``PracticeSession``
wires a generated score, the engine, the stats, the timer and a notation
cursor together the way a UI layer would.
"""

import csv
import math
import os
import time
from dataclasses import asdict, dataclass, field
from typing import Callable, Dict, List, Optional, Protocol

from .generator import GeneratedScore, generate_score
from .matching import Outcome, SightReadingSession
from .midi_input import NoteEvent
from .pitch import midi_to_note_label

BASELINE_SPEED_NPM = 36
WEAK_NOTE_LIMIT = 2

LOG_FIELDS = ["index", "kind", "midi", "label", "outcome", "cursor", "elapsed_s"]


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def accuracy_percent(correct: int, attempts: int) -> int:
    """Rounded percentage of correct attempts; 100 before the first attempt."""
    if attempts == 0:
        return 100
    return round_half_up(correct / attempts * 100)


def speed_npm(completed_notes: int, elapsed_seconds: float) -> int:
    """Notes per minute over the session; 0 when no time has elapsed."""
    seconds = int(elapsed_seconds)
    if seconds == 0:
        return 0
    return round_half_up(completed_notes / max(seconds, 1) * 60)


def weakest_notes(missed: Dict[str, int], limit: int = WEAK_NOTE_LIMIT) -> List[Dict[str, object]]:
    ranked = sorted(missed.items(), key=lambda kv: kv[1], reverse=True)
    return [{"note": note, "misses": misses} for note, misses in ranked[:limit]]


def format_time(seconds: float) -> str:
    safe = max(0, int(math.floor(seconds)))
    return f"{safe // 60:02d}:{safe % 60:02d}"


def session_label(seed: int) -> str:
    return f"#88K-{seed:04d}"


@dataclass
class SessionStats:
    attempts: int = 0
    correct_attempts: int = 0
    completed_notes: int = 0
    missed_note_counts: Dict[str, int] = field(default_factory=dict)

    @property
    def accuracy(self) -> int:
        return accuracy_percent(self.correct_attempts, self.attempts)

    def record(self, outcome: Outcome, midi: int) -> None:
        """Fold one ``on_note_on`` outcome into the counters."""
        if outcome is Outcome.COMPLETE:
            return
        self.attempts += 1
        if outcome is Outcome.CORRECT:
            self.correct_attempts += 1
        elif outcome is Outcome.WRONG:
            label = midi_to_note_label(midi)
            self.missed_note_counts[label] = self.missed_note_counts.get(label, 0) + 1

    def reset(self) -> None:
        self.attempts = 0
        self.correct_attempts = 0
        self.completed_notes = 0
        self.missed_note_counts = {}


class SessionTimer:
    """Start/stop stopwatch accumulating elapsed active time."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._accumulated = 0.0
        self._started_at: Optional[float] = None

    @property
    def running(self) -> bool:
        return self._started_at is not None

    @property
    def elapsed_seconds(self) -> float:
        if self._started_at is None:
            return self._accumulated
        return self._accumulated + (self._clock() - self._started_at)

    def start(self) -> None:
        if self._started_at is None:
            self._started_at = self._clock()

    def stop(self) -> None:
        if self._started_at is not None:
            self._accumulated += self._clock() - self._started_at
            self._started_at = None

    def toggle(self) -> None:
        if self.running:
            self.stop()
        else:
            self.start()

    def reset(self) -> None:
        self._accumulated = 0.0
        self._started_at = None


class Cursor(Protocol):
    """Notation cursor owned by the rendering side."""

    def advance(self) -> None: ...

    def reset(self) -> None: ...


@dataclass
class SessionResult:
    session_id: str
    accuracy: int
    speed_npm: int
    speed_delta: int
    improvements: List[Dict[str, object]]
    duration_seconds: int
    completed_notes: int
    attempts: int
    correct_attempts: int
    min_note: str
    max_note: str
    total_notes: int

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


def build_session_result(
    session_id: str,
    stats: SessionStats,
    elapsed_seconds: float,
    min_note: str,
    max_note: str,
    total_notes: int,
) -> SessionResult:
    duration = int(elapsed_seconds)
    speed = speed_npm(stats.completed_notes, duration)
    return SessionResult(
        session_id=session_id,
        accuracy=stats.accuracy,
        speed_npm=speed,
        speed_delta=speed - BASELINE_SPEED_NPM,
        improvements=weakest_notes(stats.missed_note_counts),
        duration_seconds=duration,
        completed_notes=stats.completed_notes,
        attempts=stats.attempts,
        correct_attempts=stats.correct_attempts,
        min_note=min_note,
        max_note=max_note,
        total_notes=total_notes,
    )


class PracticeSession:
    """One practice run over a generated score.

    ``note_on``/``note_off``/``all_notes_off`` must be called from a single
    thread; feed them from :class:`sight_reader.midi_input.EventQueue` when
    events arrive on a device callback thread.
    """

    def __init__(
        self,
        min_note: str,
        max_note: str,
        note_count: int,
        seed: int = 1,
        cursor: Optional[Cursor] = None,
        strict: bool = False,
        on_complete: Optional[Callable[[SessionResult], None]] = None,
        log_path: Optional[str] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.min_note = min_note
        self.max_note = max_note
        self.note_count = note_count
        self.cursor = cursor
        self.on_complete = on_complete
        self.log_path = log_path
        self.engine = SightReadingSession(strict=strict)
        self.stats = SessionStats()
        self.timer = SessionTimer(clock)
        self.result: Optional[SessionResult] = None
        self._log_rows: List[Dict[str, object]] = []
        self.score: GeneratedScore = self.new_score(seed)

    @property
    def seed(self) -> int:
        return self.score.seed

    @property
    def session_id(self) -> str:
        return session_label(self.seed)

    @property
    def finished(self) -> bool:
        return self.result is not None

    def new_score(self, seed: Optional[int] = None) -> GeneratedScore:
        """Generate a fresh passage and reset every piece of session state.

        Without ``seed`` the next seed after the current one is used.
        """
        if seed is None:
            seed = self.score.seed + 1
        self.score = generate_score(self.min_note, self.max_note, self.note_count, seed)
        self.engine.reset(self.score.expected_notes)
        self.stats.reset()
        self.timer.reset()
        self.result = None
        self._log_rows = []
        if self.cursor is not None:
            self.cursor.reset()
        return self.score

    def note_on(self, midi: int) -> Outcome:
        if self.finished:
            return Outcome.COMPLETE
        self.timer.start()
        outcome = self.engine.on_note_on(midi)
        self.stats.record(outcome, midi)
        self._log("on", midi, outcome)
        return outcome

    def note_off(self, midi: int) -> Outcome:
        if self.finished:
            return Outcome.IGNORED
        outcome = self.engine.on_note_off(midi)
        self._log("off", midi, outcome)
        if outcome in (Outcome.ADVANCED, Outcome.COMPLETE):
            if self.cursor is not None:
                self.cursor.advance()
            self.stats.completed_notes = min(self.score.note_count, self.stats.completed_notes + 1)
        if outcome is Outcome.COMPLETE and not self.finished:
            result = self.finish()
            if self.on_complete is not None:
                self.on_complete(result)
        return outcome

    def all_notes_off(self) -> None:
        self.engine.all_notes_off()

    def handle(self, event: NoteEvent) -> Optional[Outcome]:
        """Dispatch a filtered device event; ``None`` for all-notes-off."""
        if event.kind == "on":
            return self.note_on(event.note)
        if event.kind == "off":
            return self.note_off(event.note)
        self.all_notes_off()
        return None

    def finish(self) -> SessionResult:
        """Stop the clock and build the session record (once per score)."""
        if self.result is not None:
            return self.result
        self.timer.stop()
        self.result = build_session_result(
            self.session_id,
            self.stats,
            self.timer.elapsed_seconds,
            min_note=self.min_note,
            max_note=self.max_note,
            total_notes=self.note_count,
        )
        if self.log_path:
            self._write_log(self.log_path)
        return self.result

    def _log(self, kind: str, midi: int, outcome: Outcome) -> None:
        self._log_rows.append({
            "index": len(self._log_rows),
            "kind": kind,
            "midi": midi,
            "label": midi_to_note_label(midi),
            "outcome": outcome.value,
            "cursor": self.engine.cursor,
            "elapsed_s": round(self.timer.elapsed_seconds, 3),
        })

    def _write_log(self, log_path: str) -> None:
        directory = os.path.dirname(log_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(log_path, "w", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=LOG_FIELDS)
            writer.writeheader()
            writer.writerows(self._log_rows)
