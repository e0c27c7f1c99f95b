from __future__ import annotations

import argparse
import json
import os
from typing import Any, Dict, List, Optional

from .config import TRAININGS, PracticeConfig, practice_config_from_dict
from .generator import GeneratorError, generate_score
from .matching import Outcome
from .midi_input import EventQueue, NoteEvent, list_inputs, open_input
from .midi_writer import write_score_midi
from .pitch import midi_to_note_label
from .session import PracticeSession, SessionResult, format_time


def _resolve_config(args: argparse.Namespace) -> PracticeConfig:
    raw: Dict[str, Any] = {}
    if getattr(args, "config", None):
        with open(args.config, "r") as f:
            raw = json.load(f)
    overrides = {
        "training": args.training,
        "min_note": args.min_note,
        "max_note": args.max_note,
        "total_notes": args.notes,
        "seed": args.seed,
        "out": getattr(args, "out", None),
    }
    raw.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return practice_config_from_dict(raw)
    except KeyError as e:
        raise SystemExit(str(e))


def _add_score_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--config", default=None, help="Path to JSON practice config")
    p.add_argument("--training", default=None, help="Preset training id (see `trainings`)")
    p.add_argument("--min-note", default=None, help="Lowest natural note, e.g. C4")
    p.add_argument("--max-note", default=None, help="Highest natural note, e.g. C5")
    p.add_argument("--notes", type=int, default=None, help="Number of notes (clamped to 10..5000)")
    p.add_argument("--seed", type=int, default=None, help="Generator seed (same seed, same passage)")


def _cmd_generate(args: argparse.Namespace) -> int:
    cfg = _resolve_config(args)
    try:
        score = generate_score(cfg.min_note, cfg.max_note, cfg.total_notes, cfg.seed)
    except GeneratorError as e:
        raise SystemExit(f"Cannot generate score: {e}")

    out_path = cfg.out or "out/score.musicxml"
    os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
    with open(out_path, "w", encoding="utf-8") as f:
        f.write(score.xml)
    print(f"Wrote {out_path} ({cfg.min_note}-{cfg.max_note}, notes={score.note_count}, seed={score.seed}, clef={score.clef})")

    if args.midi_out:
        os.makedirs(os.path.dirname(args.midi_out) or ".", exist_ok=True)
        write_score_midi(score.expected_notes, args.midi_out, bpm=args.bpm)
        print(f"Wrote {args.midi_out} (bpm={args.bpm})")

    if args.json:
        print(json.dumps({"seed": score.seed, "clef": score.clef, "expected_notes": list(score.expected_notes)}))
    return 0


def run_practice(session: PracticeSession, events: EventQueue, poll: float = 0.1, max_idle_polls: Optional[int] = None) -> SessionResult:
    """Drain device events into ``session`` until it completes.

    Ctrl-C finishes the session early. ``max_idle_polls`` stops after that
    many empty polls in a row (None waits forever).
    """
    idle = 0

    def handle(ev: NoteEvent) -> None:
        outcome = session.handle(ev)
        if outcome is Outcome.WRONG:
            print(f"Missed {midi_to_note_label(ev.note)}")
        elif outcome is Outcome.ADVANCED:
            print(
                f"{session.stats.completed_notes}/{session.score.note_count} "
                f"accuracy={session.stats.accuracy}% time={format_time(session.timer.elapsed_seconds)}"
            )

    try:
        while not session.finished:
            if events.drain(handle, timeout=poll) == 0:
                idle += 1
                if max_idle_polls is not None and idle >= max_idle_polls:
                    break
            else:
                idle = 0
    except KeyboardInterrupt:
        print("Finishing session early")
    return session.finish()


def _print_result(result: SessionResult) -> None:
    print(f"Session {result.session_id}")
    print(f"  accuracy : {result.accuracy}%")
    print(f"  speed    : {result.speed_npm} NPM ({result.speed_delta:+d} vs avg)")
    print(f"  duration : {format_time(result.duration_seconds)}")
    print(f"  notes    : {result.completed_notes}/{result.total_notes}")
    if result.improvements:
        weak = ", ".join(f"{i['note']} ({i['misses']})" for i in result.improvements)
        print(f"  weak     : {weak}")
    else:
        print("  weak     : no major weak spots detected")


def _cmd_practice(args: argparse.Namespace) -> int:
    cfg = _resolve_config(args)
    try:
        session = PracticeSession(
            cfg.min_note,
            cfg.max_note,
            cfg.total_notes,
            seed=cfg.seed,
            strict=args.strict or cfg.strict,
            log_path=args.log_path or cfg.log_path,
        )
    except GeneratorError as e:
        raise SystemExit(f"Cannot start session: {e}")

    events = EventQueue()
    try:
        port = open_input(args.device or cfg.device, events)
    except RuntimeError as e:
        raise SystemExit(str(e))

    print(f"Session {session.session_id}: {cfg.min_note}-{cfg.max_note}, {session.score.note_count} notes on {port.name}")
    with port:
        result = run_practice(session, events)

    _print_result(result)
    result_path = args.result_out or cfg.result_path
    if result_path:
        os.makedirs(os.path.dirname(result_path) or ".", exist_ok=True)
        with open(result_path, "w") as f:
            json.dump(result.to_dict(), f, indent=2)
        print(f"Wrote {result_path}")
    return 0


def _cmd_trainings(args: argparse.Namespace) -> int:
    if args.json:
        print(json.dumps([t.__dict__ for t in TRAININGS], indent=2))
        return 0
    for t in TRAININGS:
        print(f"{t.id:<20} {t.title:<22} {t.min_note}-{t.max_note}  {t.total_notes} notes")
    return 0


def _cmd_devices(args: argparse.Namespace) -> int:
    names = list_inputs()
    if not names:
        print("MIDI: no device found")
        return 1
    for name in names:
        print(name)
    return 0


def main(argv: List[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Sight-reading trainer: generate passages and practice them on a MIDI keyboard")
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_gen = subparsers.add_parser("generate", help="Write a generated passage as MusicXML")
    _add_score_args(p_gen)
    p_gen.add_argument("--out", default=None, help="MusicXML output path (default out/score.musicxml)")
    p_gen.add_argument("--midi-out", default=None, help="Also write the passage as a MIDI file")
    p_gen.add_argument("--bpm", type=float, default=60.0, help="Tempo for --midi-out")
    p_gen.add_argument("--json", action="store_true", help="Print the expected note sequence as JSON")
    p_gen.set_defaults(func=_cmd_generate)

    p_practice = subparsers.add_parser("practice", help="Practice a generated passage on a MIDI keyboard")
    _add_score_args(p_practice)
    p_practice.add_argument("--device", default=None, help="MIDI input name (default: first available)")
    p_practice.add_argument("--strict", action="store_true", help="Only count releases of keys pressed while current")
    p_practice.add_argument("--log-path", default=None, help="Write a CSV log of every note event")
    p_practice.add_argument("--result-out", default=None, help="Write the session result as JSON")
    p_practice.set_defaults(func=_cmd_practice)

    p_train = subparsers.add_parser("trainings", help="List preset trainings")
    p_train.add_argument("--json", action="store_true", help="Emit JSON instead of table output")
    p_train.set_defaults(func=_cmd_trainings)

    p_dev = subparsers.add_parser("devices", help="List MIDI input devices")
    p_dev.set_defaults(func=_cmd_devices)

    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
