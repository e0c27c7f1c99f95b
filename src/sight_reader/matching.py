"""Note matching engine for a sight-reading session.

Tracks the cursor into the expected MIDI sequence and classifies each
note-on/note-off against it. Pure Python, no device or UI dependency.

Usage::

    session = SightReadingSession()
    session.reset(score.expected_notes)

    # On each input event:
    outcome = session.on_note_on(60)   # Outcome.CORRECT / Outcome.WRONG
    outcome = session.on_note_off(60)  # Outcome.ADVANCED / Outcome.COMPLETE

The cursor only moves when the current expected note is released, so a
fleeting wrong keydown never counts as progress.
"""

from __future__ import annotations

from enum import Enum
from typing import FrozenSet, Iterable, Set, Tuple


class Outcome(str, Enum):
    CORRECT = "correct"
    WRONG = "wrong"
    ADVANCED = "advanced"
    COMPLETE = "complete"
    IGNORED = "ignored"


class SightReadingSession:
    """Cursor, held keys and the per-note state machine.

    With ``strict=True`` a release only advances if that key went down
    while it was the current expected note. The default follows the
    release-gated model: any release of the current expected note advances.
    """

    def __init__(self, expected: Iterable[int] = (), strict: bool = False) -> None:
        self._strict = strict
        self._expected: Tuple[int, ...] = ()
        self._cursor = 0
        self._held: Set[int] = set()
        # keys pressed while they were the current expected note
        self._armed: Set[int] = set()
        self._busy = False
        self.reset(expected)

    @property
    def expected(self) -> Tuple[int, ...]:
        return self._expected

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def held_notes(self) -> FrozenSet[int]:
        return frozenset(self._held)

    @property
    def remaining(self) -> int:
        return len(self._expected) - self._cursor

    @property
    def is_complete(self) -> bool:
        return self._cursor >= len(self._expected)

    @property
    def current_note(self) -> int | None:
        if self.is_complete:
            return None
        return self._expected[self._cursor]

    def reset(self, expected: Iterable[int]) -> None:
        self._expected = tuple(int(n) for n in expected)
        self._cursor = 0
        self._held.clear()
        self._armed.clear()

    def on_note_on(self, midi: int) -> Outcome:
        with self._guard():
            if self.is_complete:
                return Outcome.COMPLETE
            self._held.add(midi)
            if midi == self._expected[self._cursor]:
                self._armed.add(midi)
                return Outcome.CORRECT
            return Outcome.WRONG

    def on_note_off(self, midi: int) -> Outcome:
        with self._guard():
            self._held.discard(midi)
            was_armed = midi in self._armed
            self._armed.discard(midi)
            # past the end: the completing release already fired
            if self.is_complete:
                return Outcome.IGNORED
            if midi != self._expected[self._cursor]:
                return Outcome.IGNORED
            if self._strict and not was_armed:
                return Outcome.IGNORED
            self._cursor += 1
            return Outcome.COMPLETE if self.is_complete else Outcome.ADVANCED

    def all_notes_off(self) -> None:
        with self._guard():
            self._held.clear()
            self._armed.clear()

    def _guard(self) -> "_NoReentry":
        return _NoReentry(self)


class _NoReentry:
    __slots__ = ("_session",)

    def __init__(self, session: SightReadingSession) -> None:
        self._session = session

    def __enter__(self) -> None:
        if self._session._busy:
            raise RuntimeError("SightReadingSession handlers must not be re-entered")
        self._session._busy = True

    def __exit__(self, *exc: object) -> None:
        self._session._busy = False
