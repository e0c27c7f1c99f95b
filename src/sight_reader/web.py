"""Flask API serving generated passages to the browser trainer.

Provides HTTP endpoints for:
- Listing preset trainings
- Generating a passage (MusicXML + expected notes) for a range and seed
- Summarizing a finished session into a result record
"""

from __future__ import annotations

from typing import Any, Dict

from flask import Flask, jsonify, request
from flask_cors import CORS

from .config import TRAININGS, clamp_note_count, practice_config_from_dict
from .generator import GeneratorError, generate_score
from .pitch import NOTE_NAMES, midi_to_note_label
from .session import SessionStats, build_session_result, session_label

app = Flask(__name__)
CORS(app)  # Enable CORS for local development


def _body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


@app.route("/api/trainings", methods=["GET"])
def list_trainings():
    """List preset trainings and the selectable note names."""
    return jsonify({
        "trainings": [t.__dict__ for t in TRAININGS],
        "note_names": list(NOTE_NAMES),
    }), 200


@app.route("/api/generate", methods=["POST"])
def generate():
    """Generate a passage.

    Request body:
    {
        "training": "treble-low",          (optional)
        "min_note": "C4", "max_note": "C5",
        "total_notes": 100, "seed": 7
    }
    """
    try:
        cfg = practice_config_from_dict(_body())
        score = generate_score(cfg.min_note, cfg.max_note, cfg.total_notes, cfg.seed)
    except (GeneratorError, KeyError) as e:
        return jsonify({"success": False, "error": str(e)}), 400
    except (TypeError, ValueError) as e:
        return jsonify({"success": False, "error": f"bad request: {e}"}), 400

    return jsonify({
        "success": True,
        "session_id": session_label(score.seed),
        "seed": score.seed,
        "clef": score.clef,
        "min_note": cfg.min_note,
        "max_note": cfg.max_note,
        "total_notes": score.note_count,
        "expected_notes": list(score.expected_notes),
        "labels": [midi_to_note_label(n) for n in score.expected_notes],
        "xml": score.xml,
    }), 200


@app.route("/api/results", methods=["POST"])
def summarize():
    """Turn raw counters from a finished session into a result record.

    Request body:
    {
        "seed": 7, "min_note": "C4", "max_note": "C5", "total_notes": 100,
        "attempts": 12, "correct_attempts": 10, "completed_notes": 10,
        "missed_note_counts": {"F#4": 2}, "duration_seconds": 20
    }
    """
    data = _body()
    try:
        stats = SessionStats(
            attempts=int(data.get("attempts", 0)),
            correct_attempts=int(data.get("correct_attempts", 0)),
            completed_notes=int(data.get("completed_notes", 0)),
            missed_note_counts={str(k): int(v) for k, v in dict(data.get("missed_note_counts") or {}).items()},
        )
        result = build_session_result(
            session_label(int(data.get("seed", 1))),
            stats,
            float(data.get("duration_seconds", 0)),
            min_note=str(data.get("min_note", "")),
            max_note=str(data.get("max_note", "")),
            total_notes=clamp_note_count(data.get("total_notes", stats.completed_notes)),
        )
    except (TypeError, ValueError) as e:
        return jsonify({"success": False, "error": f"bad request: {e}"}), 400
    return jsonify({"success": True, "result": result.to_dict()}), 200


@app.route("/health", methods=["GET"])
def health():
    """Health check endpoint."""
    return jsonify({"status": "ok", "service": "sight_reader_api"}), 200


def main() -> None:
    print("Sight-reading API server on http://localhost:5001")
    app.run(host="0.0.0.0", port=5001, debug=False)


if __name__ == "__main__":
    main()
