"""BAC Tracker Flask app: JSON API over the session engine.

Run from project root:
    python app.py
"""

import io
import logging
import os
from datetime import timedelta
from pathlib import Path
from typing import Any

from flask import Flask, jsonify, request, send_file, session as flask_session

from bac_engine.calculations import to_grams_per_liter
from bac_engine.config import EngineConfig
from bac_engine.drinks import list_drink_presets, list_food_presets
from bac_engine.drive import get_drive_advice
from bac_engine.errors import (
    BacError,
    InvalidEvent,
    InvalidProfile,
    NotFound,
    PersistenceError,
    SessionClosed,
)
from bac_engine.events import parse_drink, parse_food, utcnow
from bac_engine.graph import save_bac_graph
from bac_engine.profile import Profile, StaticProfileProvider, profile_from_dict
from bac_engine.session import Session
from bac_engine.session_store import SqliteSessionStore
from bac_engine.tracker import SessionTracker

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config["SECRET_KEY"] = os.environ.get("APP_SECRET_KEY", "dev-only-change-me")
app.config["SESSION_COOKIE_SAMESITE"] = "Lax"
app.config["SESSION_COOKIE_HTTPONLY"] = True
app.config["SESSION_COOKIE_SECURE"] = os.environ.get("SESSION_COOKIE_SECURE", "0") == "1"
app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(days=30)

MIN_WEIGHT_KG = 35.0
MAX_WEIGHT_KG = 250.0
MAX_MINUTES_AGO = 24 * 60
PROFILE_KEY = "bac_profile"

DEFAULT_DB_PATH = str(Path("instance") / "sessions.db")

ERROR_STATUS = {
    InvalidEvent: 400,
    InvalidProfile: 400,
    NotFound: 404,
    SessionClosed: 409,
    PersistenceError: 503,
}


def _db_path() -> str:
    return os.environ.get("APP_DB_PATH", DEFAULT_DB_PATH)


def _tracker() -> SessionTracker:
    db_path = Path(_db_path())
    db_path.parent.mkdir(parents=True, exist_ok=True)
    config = EngineConfig.from_env()
    return SessionTracker(SqliteSessionStore(str(db_path), config), config)


def _clamp_float(value: Any, default: float, min_value: float, max_value: float) -> float:
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        parsed = default
    return max(min_value, min(max_value, parsed))


def _profile() -> Profile | None:
    raw = flask_session.get(PROFILE_KEY)
    if raw is None:
        return None
    try:
        return profile_from_dict(raw)
    except InvalidProfile:
        flask_session.pop(PROFILE_KEY, None)
        return None


def _profile_required_error():
    return jsonify({"error": "Set up a profile first"}), 400


def _event_time(data: dict):
    """Explicit `timestamp` wins; otherwise `minutes_ago` relative to now."""
    if data.get("timestamp"):
        return None
    minutes_ago = _clamp_float(data.get("minutes_ago"), 0.0, 0.0, MAX_MINUTES_AGO)
    return utcnow() - timedelta(minutes=minutes_ago)


def _empty_state() -> dict[str, Any]:
    return {
        "active": False,
        "session": None,
        "bac_g_per_l": 0.0,
        "drive_advice": None,
    }


def _state_payload(session: Session) -> dict[str, Any]:
    return {
        "active": session.is_active,
        "session": session.to_dict(),
        "bac_g_per_l": round(to_grams_per_liter(session.current_bac), 3),
        "drive_advice": get_drive_advice(session),
    }


def _active_session(tracker: SessionTracker, profile: Profile) -> Session:
    session = tracker.current(StaticProfileProvider(profile))
    if session is None:
        raise NotFound("No active session; start one first")
    return session


@app.errorhandler(BacError)
def handle_engine_error(exc: BacError):
    status = next((code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)), 400)
    body = {"error": str(exc), "kind": type(exc).__name__}
    if isinstance(exc, PersistenceError):
        # Nothing was stored; re-sending the request is safe.
        body["retry"] = True
    return jsonify(body), status


@app.route("/healthz")
def healthz():
    return jsonify({"ok": True})


@app.route("/api/presets")
def api_presets():
    return jsonify({"drinks": list_drink_presets(), "foods": list_food_presets()})


@app.route("/api/profile", methods=["POST"])
def api_profile():
    data = request.get_json() or {}
    current = _profile()
    raw = {
        "weight_kg": _clamp_float(data.get("weight_kg"), 75.0, MIN_WEIGHT_KG, MAX_WEIGHT_KG),
        "sex": data.get("sex", "male"),
        "age": data.get("age"),
    }
    if current is not None:
        raw["id"] = current.id
    profile = profile_from_dict(raw)
    flask_session.permanent = True
    flask_session[PROFILE_KEY] = profile.to_dict()
    return jsonify({"ok": True, "profile": profile.to_dict()})


@app.route("/api/state")
def api_state():
    profile = _profile()
    if profile is None:
        return jsonify({"configured": False, **_empty_state()})

    try:
        # Resuming already ticked the session; persist that.
        session = _tracker().transition(profile.id, lambda s: s)
    except NotFound:
        return jsonify({"configured": True, "profile": profile.to_dict(), **_empty_state()})
    return jsonify({"configured": True, "profile": profile.to_dict(), **_state_payload(session)})


@app.route("/api/session/start", methods=["POST"])
def api_session_start():
    profile = _profile()
    if profile is None:
        return _profile_required_error()
    session = _tracker().start(profile)
    return jsonify({"ok": True, **_state_payload(session)})


@app.route("/api/drink", methods=["POST"])
def api_drink():
    profile = _profile()
    if profile is None:
        return _profile_required_error()
    data = request.get_json() or {}
    event = parse_drink(data, default_time=_event_time(data))
    now = utcnow()
    session = _tracker().transition(profile.id, lambda s: s.add_drink(event, now), now)
    return jsonify({"ok": True, "event_id": event.id, **_state_payload(session)})


@app.route("/api/food", methods=["POST"])
def api_food():
    profile = _profile()
    if profile is None:
        return _profile_required_error()
    data = request.get_json() or {}
    event = parse_food(data, default_time=_event_time(data))
    now = utcnow()
    session = _tracker().transition(profile.id, lambda s: s.add_food(event, now), now)
    return jsonify({"ok": True, "event_id": event.id, **_state_payload(session)})


@app.route("/api/event/remove", methods=["POST"])
def api_event_remove():
    profile = _profile()
    if profile is None:
        return _profile_required_error()
    data = request.get_json() or {}
    event_id = str(data.get("id", "")).strip()
    if not event_id:
        return jsonify({"error": "Event id is required"}), 400

    now = utcnow()
    session = _tracker().transition(profile.id, lambda s: s.remove_event(event_id, now), now)
    return jsonify({"ok": True, **_state_payload(session)})


@app.route("/api/session/end", methods=["POST"])
def api_session_end():
    profile = _profile()
    if profile is None:
        return _profile_required_error()
    now = utcnow()
    session = _tracker().transition(profile.id, lambda s: s.end(now), now)
    return jsonify({"ok": True, **_state_payload(session)})


@app.route("/api/history")
def api_history():
    profile = _profile()
    if profile is None:
        return _profile_required_error()
    limit = request.args.get("limit", type=int) or 50
    items = _tracker().history(profile.id, limit=limit)
    return jsonify({"items": [s.to_dict() for s in items]})


@app.route("/api/history/<session_id>", methods=["DELETE"])
def api_history_delete(session_id: str):
    profile = _profile()
    if profile is None:
        return _profile_required_error()
    if not _tracker().delete(profile.id, session_id):
        return jsonify({"error": "Session not found"}), 404
    return jsonify({"ok": True})


@app.route("/api/graph.png")
def api_graph():
    profile = _profile()
    if profile is None:
        return _profile_required_error()
    session = _active_session(_tracker(), profile)
    buf = io.BytesIO()
    save_bac_graph(session, output=buf)
    buf.seek(0)
    return send_file(buf, mimetype="image/png")


if __name__ == "__main__":
    logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO"))
    port = int(os.environ.get("PORT", 5000))
    app.run(host="0.0.0.0", port=port, debug=os.environ.get("FLASK_DEBUG", "0") == "1")
