from __future__ import annotations

"""Export a generated passage as a standard MIDI file for listening back."""

from dataclasses import dataclass
from typing import List, Sequence

from mido import Message, MetaMessage, MidiFile, MidiTrack, bpm2tempo

DEFAULT_PPQ = 480
DEFAULT_BPM = 60.0
DEFAULT_VELOCITY = 80


@dataclass
class MidiEvent:
    note: int
    vel: int
    start_abs_tick: int
    dur_tick: int
    channel: int = 0  # acoustic piano


def expected_to_events(
    expected_notes: Sequence[int],
    ppq: int = DEFAULT_PPQ,
    velocity: int = DEFAULT_VELOCITY,
) -> List[MidiEvent]:
    """One quarter note per expected pitch, back to back, in draw order."""
    return [
        MidiEvent(note=int(note), vel=velocity, start_abs_tick=idx * ppq, dur_tick=ppq)
        for idx, note in enumerate(expected_notes)
    ]


def write_midi(events: List[MidiEvent], ppq: int, bpm: float, out_path: str, name: str = "Sight reading") -> None:
    """
    Write a single-track MIDI file using absolute tick scheduling.
    Steps:
      - create track, set name, tempo and 4/4 meta
      - sort by (start_abs_tick, note_off before note_on)
      - delta-encode times
    """
    mid = MidiFile(type=1)
    mid.ticks_per_beat = int(ppq)

    track = MidiTrack()
    mid.tracks.append(track)
    track.append(MetaMessage("track_name", name=name, time=0))
    track.append(MetaMessage("set_tempo", tempo=bpm2tempo(bpm), time=0))
    track.append(MetaMessage("time_signature", numerator=4, denominator=4, time=0))

    msgs = []
    for ev in events:
        start = ev.start_abs_tick
        end = ev.start_abs_tick + max(1, ev.dur_tick)
        msgs.append((start, 1, Message("note_on", note=ev.note, velocity=ev.vel, channel=ev.channel, time=0)))
        msgs.append((end, 0, Message("note_off", note=ev.note, velocity=0, channel=ev.channel, time=0)))

    # Same tick: release (0) before the next press (1) so repeated pitches retrigger
    msgs.sort(key=lambda t: (t[0], t[1]))

    last_t = 0
    for abs_t, _prio, msg in msgs:
        msg.time = max(0, abs_t - last_t)
        track.append(msg)
        last_t = abs_t

    mid.save(out_path)


def write_score_midi(expected_notes: Sequence[int], out_path: str, bpm: float = DEFAULT_BPM, ppq: int = DEFAULT_PPQ) -> None:
    write_midi(expected_to_events(expected_notes, ppq=ppq), ppq=ppq, bpm=bpm, out_path=out_path)
