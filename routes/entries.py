"""Mood entries blueprint. Every query is scoped to the authenticated user."""

from __future__ import annotations

from datetime import datetime, timezone

from flask import Blueprint, jsonify, request
from werkzeug.exceptions import BadRequest, NotFound

from models import db
from models.entry import ALLOWED_MOODS, NOTE_MAX_LENGTH, Entry
from utils.auth_gate import AuthContext, login_required
from utils.request_validation import parse_json_request

entries_bp = Blueprint("entries", __name__)

INVALID_RECORDED_AT = "recordedAt must be a valid date."


def _parse_recorded_at(value: object) -> datetime:
    if not isinstance(value, str) or not value.strip():
        raise BadRequest(INVALID_RECORDED_AT)
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        raise BadRequest(INVALID_RECORDED_AT)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _parse_note(value: object) -> str | None:
    if value is None:
        return None
    note = str(value).strip()
    if len(note) > NOTE_MAX_LENGTH:
        raise BadRequest(f"note must be at most {NOTE_MAX_LENGTH} characters.")
    return note


def _parse_entry_id(raw_id: str) -> int:
    try:
        return int(raw_id)
    except (TypeError, ValueError):
        raise BadRequest("Invalid entry id.")


def _get_entry_or_404(entry_id: int, user_id: int) -> Entry:
    entry = Entry.query.filter_by(id=entry_id, user_id=user_id).first()
    if entry is None:
        raise NotFound("Entry not found.")
    return entry


@entries_bp.route("/moods", methods=["GET"])
@login_required
def list_moods(auth: AuthContext):
    return jsonify({"moods": list(ALLOWED_MOODS)})


@entries_bp.route("", methods=["GET"])
@login_required
def list_entries(auth: AuthContext):
    """Return the caller's entries, newest first."""

    entries = (
        Entry.query.filter_by(user_id=auth.user_id)
        .order_by(Entry.recorded_at.desc(), Entry.created_at.desc(), Entry.id.desc())
        .all()
    )
    return jsonify([entry.to_dict() for entry in entries])


@entries_bp.route("", methods=["POST"])
@login_required
def create_entry(auth: AuthContext):
    """Record a mood for the caller."""

    payload = parse_json_request(request, allow_empty=True)
    mood = Entry.match_mood(payload.get("mood"))
    if mood is None:
        raise BadRequest(
            "Mood is required and must be one of: {}.".format(", ".join(ALLOWED_MOODS))
        )

    entry = Entry(user_id=auth.user_id, mood=mood, note=_parse_note(payload.get("note")))
    if payload.get("recordedAt") is not None:
        entry.recorded_at = _parse_recorded_at(payload.get("recordedAt"))

    db.session.add(entry)
    db.session.commit()
    return jsonify(entry.to_dict()), 201


@entries_bp.route("/<entry_id>", methods=["GET"])
@login_required
def get_entry(entry_id: str, auth: AuthContext):
    return jsonify(_get_entry_or_404(_parse_entry_id(entry_id), auth.user_id).to_dict())


@entries_bp.route("/<entry_id>", methods=["PATCH"])
@login_required
def update_entry(entry_id: str, auth: AuthContext):
    """Change mood, note or timestamp of one of the caller's entries."""

    entry_pk = _parse_entry_id(entry_id)
    payload = parse_json_request(request, allow_empty=True)
    changes = {}

    if "mood" in payload:
        mood = Entry.match_mood(payload.get("mood"))
        if mood is None:
            raise BadRequest("Mood must be one of: {}.".format(", ".join(ALLOWED_MOODS)))
        changes["mood"] = mood

    if "note" in payload:
        changes["note"] = _parse_note(payload.get("note"))

    if "recordedAt" in payload:
        changes["recorded_at"] = _parse_recorded_at(payload.get("recordedAt"))

    if not changes:
        raise BadRequest("No fields provided to update.")

    entry = _get_entry_or_404(entry_pk, auth.user_id)
    for column, value in changes.items():
        setattr(entry, column, value)
    db.session.commit()
    return jsonify(entry.to_dict())


@entries_bp.route("/<entry_id>", methods=["DELETE"])
@login_required
def delete_entry(entry_id: str, auth: AuthContext):
    entry_pk = _parse_entry_id(entry_id)
    entry = _get_entry_or_404(entry_pk, auth.user_id)
    db.session.delete(entry)
    db.session.commit()
    return jsonify({"message": f"Deletion for entry id {entry_pk} success"})
