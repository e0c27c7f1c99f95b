from __future__ import annotations

"""
Input-device side of a practice session.

Raw MIDI from a keyboard is decoded with mido, filtered down to note-on /
note-off for keys that actually changed state, and handed to the session
one event at a time. mido delivers port callbacks on its own thread, so
``EventQueue`` sits between the port and the session.
"""

import queue
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence, Set

import mido

NOTE_ON = "on"
NOTE_OFF = "off"
ALL_NOTES_OFF = "all_off"


@dataclass(frozen=True)
class NoteEvent:
    kind: str  # on, off, all_off
    note: int = 0
    velocity: int = 0


def parse_midi_bytes(data: Sequence[int]) -> Optional[mido.Message]:
    """Decode a raw 3-byte channel message; ``None`` for anything else.

    Short packets, running-status fragments and bytes out of range are
    dropped here so nothing malformed reaches the matching engine.
    """
    if data is None or len(data) < 3:
        return None
    try:
        msg = mido.Message.from_bytes(list(data[:3]))
    except (ValueError, TypeError):
        return None
    if msg.type not in ("note_on", "note_off"):
        return None
    return msg


class MidiInputFilter:
    """Held-key bookkeeping between the device and the session.

    Repeated note-on for a key already down is suppressed; a note-on with
    velocity 0 counts as note-off; ``all_off`` follows any release that
    leaves no key held.
    """

    def __init__(self) -> None:
        self._held: Set[int] = set()

    @property
    def held_notes(self) -> Set[int]:
        return set(self._held)

    def feed_bytes(self, data: Sequence[int]) -> List[NoteEvent]:
        msg = parse_midi_bytes(data)
        if msg is None:
            return []
        return self.feed_message(msg)

    def feed_message(self, msg: mido.Message) -> List[NoteEvent]:
        if msg.type == "note_off" or (msg.type == "note_on" and msg.velocity == 0):
            self._held.discard(msg.note)
            events = [NoteEvent(NOTE_OFF, msg.note)]
            if not self._held:
                events.append(NoteEvent(ALL_NOTES_OFF))
            return events
        if msg.type == "note_on" and msg.note not in self._held:
            self._held.add(msg.note)
            return [NoteEvent(NOTE_ON, msg.note, msg.velocity)]
        return []

    def release_all(self) -> List[NoteEvent]:
        """Forget held keys (device unbound); emits ``all_off`` if any were down."""
        if not self._held:
            return []
        self._held.clear()
        return [NoteEvent(ALL_NOTES_OFF)]


class EventQueue:
    """Serialize device events onto the consumer thread."""

    def __init__(self, input_filter: Optional[MidiInputFilter] = None) -> None:
        self.filter = input_filter or MidiInputFilter()
        self._queue: "queue.Queue[NoteEvent]" = queue.Queue()

    def __call__(self, msg: mido.Message) -> None:
        # mido port callback signature
        self.put_all(self.filter.feed_message(msg))

    def put_all(self, events: Iterable[NoteEvent]) -> None:
        for ev in events:
            self._queue.put(ev)

    def empty(self) -> bool:
        return self._queue.empty()

    def drain(self, handler: Callable[[NoteEvent], object], timeout: Optional[float] = None) -> int:
        """Deliver queued events to ``handler`` in order; returns how many.

        With ``timeout`` the first event is waited for up to that many
        seconds; later ones are taken only if already queued.
        """
        count = 0
        block = timeout is not None
        while True:
            try:
                ev = self._queue.get(block=block, timeout=timeout)
            except queue.Empty:
                return count
            block = False
            handler(ev)
            count += 1


def list_inputs() -> List[str]:
    return list(mido.get_input_names())


def open_input(name: Optional[str], events: EventQueue):
    """Open an input port (first available when ``name`` is None) feeding ``events``."""
    names = list_inputs()
    if not names:
        raise RuntimeError("No MIDI input device found.")
    if name is not None and name not in names:
        raise RuntimeError(f"MIDI input '{name}' not found. Available: {', '.join(names)}")
    return mido.open_input(name or names[0], callback=events)
