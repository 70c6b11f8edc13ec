"""
Idea Intake - Moderation API

A small Flask JSON API for reviewing submitted ideas: list and filter,
inspect, change status, add notes, delete.

Run with: python -m web.app
Or: python main.py web
"""

import hmac
import logging
import sys
import threading
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from flask import Flask, jsonify, request

from idea_intake.config import SQLITE_PATH, WEB_HOST, WEB_PASSWORD, WEB_PORT, WEB_USERNAME
from idea_intake.models import IdeaCategory, IdeaFilter, IdeaPriority, IdeaStatus
from idea_intake.storage import RecordNotFound, SQLiteStorage, Storage, StorageError

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100

app = Flask(__name__)
app.config["WEB_USERNAME"] = WEB_USERNAME
app.config["WEB_PASSWORD"] = WEB_PASSWORD

_storage = None
_storage_lock = threading.Lock()


def get_storage() -> Storage:
    """Get the configured SQLite storage (created on first use)."""
    global _storage
    with _storage_lock:
        if _storage is None:
            _storage = SQLiteStorage(SQLITE_PATH)
        return _storage


class BadRequest(Exception):
    """Invalid query parameter or request body."""


# =============================================================================
# Authentication and Error Handling
# =============================================================================

@app.before_request
def require_basic_auth():
    """Basic auth on everything but /health, when credentials are configured."""
    username = app.config.get("WEB_USERNAME")
    password = app.config.get("WEB_PASSWORD")
    if not (username and password) or request.path == "/health":
        return None

    auth = request.authorization
    if auth is not None:
        user_match = hmac.compare_digest((auth.username or "").encode(), username.encode())
        pass_match = hmac.compare_digest((auth.password or "").encode(), password.encode())
        if user_match and pass_match:
            return None

    response = jsonify({"error": "Unauthorized"})
    response.status_code = 401
    response.headers["WWW-Authenticate"] = 'Basic realm="Idea Intake"'
    return response


@app.errorhandler(BadRequest)
def handle_bad_request(error):
    return jsonify({"error": str(error)}), 400


@app.errorhandler(RecordNotFound)
def handle_not_found(error):
    return jsonify({"error": f"Idea {error.idea_id} not found"}), 404


@app.errorhandler(StorageError)
def handle_storage_error(error):
    logger.error("Storage error: %s", error)
    return jsonify({"error": "Storage unavailable"}), 500


def _parse_enum_list(name: str, enum_cls):
    raw = request.args.get(name, "")
    values = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            values.append(enum_cls.parse(part))
        except ValueError as e:
            raise BadRequest(str(e)) from e
    return values


def _parse_int(name: str, default: int, minimum: int = 0) -> int:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise BadRequest(f"{name} must be an integer") from e
    if value < minimum:
        raise BadRequest(f"{name} must be at least {minimum}")
    return value


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise BadRequest("JSON object body required")
    return data


# =============================================================================
# Routes
# =============================================================================

@app.route("/health")
def health():
    """Liveness check, no auth."""
    return jsonify({"status": "ok"})


@app.route("/api/ideas")
def api_list_ideas():
    """List ideas, newest first, with optional status/category/priority filters."""
    idea_filter = IdeaFilter(
        statuses=_parse_enum_list("status", IdeaStatus),
        categories=_parse_enum_list("category", IdeaCategory),
        priorities=_parse_enum_list("priority", IdeaPriority),
        limit=min(_parse_int("limit", MAX_PAGE_SIZE, minimum=1), MAX_PAGE_SIZE),
        offset=_parse_int("offset", 0),
    )

    storage = get_storage()
    records = storage.list_records(idea_filter)
    total = storage.count_records(
        IdeaFilter(
            statuses=idea_filter.statuses,
            categories=idea_filter.categories,
            priorities=idea_filter.priorities,
        )
    )
    new_count = storage.count_records(IdeaFilter(statuses=[IdeaStatus.NEW]))

    return jsonify({
        "ideas": [record.to_dict() for record in records],
        "total": total,
        "new_count": new_count,
        "limit": idea_filter.limit,
        "offset": idea_filter.offset,
    })


@app.route("/api/ideas/<int:idea_id>")
def api_get_idea(idea_id):
    """Full record including the enrichment payload."""
    record = get_storage().get_record(idea_id)
    return jsonify(record.to_dict())


@app.route("/api/ideas/<int:idea_id>/status", methods=["POST"])
def api_update_status(idea_id):
    """Move an idea to another moderation status."""
    data = _json_body()
    try:
        status = IdeaStatus.parse(data.get("status"))
    except ValueError as e:
        raise BadRequest(str(e)) from e

    storage = get_storage()
    storage.update_status(idea_id, status)
    logger.info("Idea %s status -> %s", idea_id, status.value)
    return jsonify(storage.get_record(idea_id).to_dict())


@app.route("/api/ideas/<int:idea_id>/notes", methods=["POST"])
def api_update_notes(idea_id):
    """Replace the moderator notes of an idea."""
    notes = _json_body().get("notes", "")
    if not isinstance(notes, str):
        raise BadRequest("notes must be a string")

    storage = get_storage()
    storage.update_admin_notes(idea_id, notes.strip())
    return jsonify(storage.get_record(idea_id).to_dict())


@app.route("/api/ideas/<int:idea_id>", methods=["DELETE"])
def api_delete_idea(idea_id):
    get_storage().delete_record(idea_id)
    logger.info("Idea %s deleted", idea_id)
    return jsonify({"deleted": idea_id})


@app.route("/api/stats")
def api_stats():
    """Idea counts per status."""
    storage = get_storage()
    by_status = {
        status.value: storage.count_records(IdeaFilter(statuses=[status]))
        for status in IdeaStatus
    }
    return jsonify({
        "total": storage.count_records(),
        "by_status": by_status,
    })


@app.route("/api/meta")
def api_meta():
    """Allowed filter values with display labels."""
    def options(enum_cls):
        return [{"value": member.value, "label": member.label} for member in enum_cls]

    return jsonify({
        "statuses": options(IdeaStatus),
        "categories": options(IdeaCategory),
        "priorities": options(IdeaPriority),
    })


def run(host: str = WEB_HOST, port: int = WEB_PORT, debug: bool = False) -> None:
    """Serve the moderation API."""
    print("=" * 50)
    print("Idea Intake Moderation API")
    print("=" * 50)
    print(f"Listening on http://{host}:{port}")
    print(f"Health: http://{host}:{port}/health")
    print("Press Ctrl+C to stop")
    print("=" * 50)
    app.run(host=host, port=port, debug=debug)


if __name__ == "__main__":
    run()
