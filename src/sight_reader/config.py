from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

MIN_TOTAL_NOTES = 10
MAX_TOTAL_NOTES = 5000
DEFAULT_TOTAL_NOTES = 100
DEFAULT_MIN_NOTE = "C4"
DEFAULT_MAX_NOTE = "C5"


def clamp(value: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, value))


def clamp_note_count(value: int) -> int:
    return clamp(int(value), MIN_TOTAL_NOTES, MAX_TOTAL_NOTES)


@dataclass(frozen=True)
class Training:
    id: str
    title: str
    min_note: str
    max_note: str
    total_notes: int


TRAININGS: Tuple[Training, ...] = (
    Training("treble-low", "Treble low", "C4", "C5", 100),
    Training("bass-middle", "Bass middle", "C3", "C4", 100),
    Training("treble-middle", "Treble middle", "C5", "C6", 100),
    Training("grand-staff-narrow", "Grand staff narrow", "C3", "C5", 150),
    Training("bass-low-middle", "Bass low-middle", "E2", "E4", 100),
    Training("grand-staff-mod", "Grand staff moderate", "E2", "G5", 200),
    Training("grand-staff-wide", "Grand staff wide", "C2", "C6", 260),
)


def find_training(training_id: str) -> Training:
    for t in TRAININGS:
        if t.id == training_id:
            return t
    raise KeyError(f"Unknown training '{training_id}'")


@dataclass
class PracticeConfig:
    min_note: str = DEFAULT_MIN_NOTE
    max_note: str = DEFAULT_MAX_NOTE
    total_notes: int = DEFAULT_TOTAL_NOTES
    seed: int = 1
    strict: bool = False
    device: Optional[str] = None
    out: Optional[str] = None
    log_path: Optional[str] = None
    result_path: Optional[str] = None


def _practice_config_from_dict(raw: Dict[str, Any]) -> PracticeConfig:
    # A named training supplies the range and count; explicit keys win
    base: Dict[str, Any] = {}
    if raw.get("training"):
        t = find_training(str(raw["training"]))
        base = {"min_note": t.min_note, "max_note": t.max_note, "total_notes": t.total_notes}
    merged = {**base, **{k: v for k, v in raw.items() if k != "training"}}

    return PracticeConfig(
        min_note=str(merged.get("min_note", DEFAULT_MIN_NOTE)),
        max_note=str(merged.get("max_note", DEFAULT_MAX_NOTE)),
        total_notes=clamp_note_count(merged.get("total_notes", DEFAULT_TOTAL_NOTES)),
        seed=int(merged.get("seed", 1)),
        strict=bool(merged.get("strict", False)),
        device=merged.get("device"),
        out=merged.get("out"),
        log_path=merged.get("log_path"),
        result_path=merged.get("result_path"),
    )


def practice_config_from_dict(raw: Dict[str, Any]) -> PracticeConfig:
    return _practice_config_from_dict(raw)


def load_practice_config(path: str) -> PracticeConfig:
    with open(path, "r") as f:
        raw = json.load(f)
    return _practice_config_from_dict(raw)
