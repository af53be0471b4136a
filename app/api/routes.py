from __future__ import annotations

from flask import current_app, g, jsonify, request

from app.api import api_bp
from app.extensions import db
from app.models import ApiToken, User, utcnow
from app.services.bookmarks import create_bookmark, delete_bookmark, list_bookmarks
from app.services.changes import head_cursor, list_changes
from app.services.common import clean_text, validate_bookmark_input
from app.services.security import api_auth_required


def _credentials_from_payload(payload: dict) -> tuple[str, str]:
    email = clean_text(payload.get("email")).lower()
    password = payload.get("password") or ""
    return email, password


@api_bp.route("/health")
def health():
    return jsonify({"status": "ok", "service": "Smart Bookmarks"})


@api_bp.route("/auth/register", methods=["POST"])
def register_api():
    payload = request.get_json(silent=True) or {}
    email, password = _credentials_from_payload(payload)
    if not email or not password:
        return jsonify({"error": "email and password are required"}), 400
    if User.query.filter_by(email=email).first():
        return jsonify({"error": "email already registered"}), 409

    user = User(email=email, is_active=True)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    return jsonify({"status": "created", "user_id": user.id}), 201


@api_bp.route("/auth/token", methods=["POST"])
def create_token_with_credentials():
    payload = request.get_json(silent=True) or {}
    email, password = _credentials_from_payload(payload)
    token_name = clean_text(payload.get("token_name")) or "Smart Bookmarks client"

    user = User.query.filter_by(email=email).first()
    if not user or not user.is_active or not user.check_password(password):
        return jsonify({"error": "invalid credentials"}), 401

    token, token_hash = ApiToken.issue_token()
    row = ApiToken(user_id=user.id, name=token_name, token_hash=token_hash)
    db.session.add(row)
    db.session.commit()
    return jsonify({"token": token, "token_name": token_name, "user_id": user.id})


@api_bp.route("/auth/token", methods=["DELETE"])
@api_auth_required(token_only=True)
def revoke_current_token():
    token_row = g.api_token
    token_row.revoked_at = utcnow()
    db.session.commit()
    return jsonify({"status": "revoked"})


@api_bp.route("/me")
@api_auth_required()
def me():
    return jsonify(g.api_user.as_identity())


@api_bp.route("/bookmarks", methods=["GET"])
@api_auth_required()
def bookmarks_list_api():
    items = list_bookmarks(g.api_user.id)
    return jsonify({"items": [item.as_dict() for item in items]})


@api_bp.route("/bookmarks", methods=["POST"])
@api_auth_required()
def bookmarks_create_api():
    payload = request.get_json(silent=True) or {}
    url = clean_text(payload.get("url"))
    title = clean_text(payload.get("title"))
    error = validate_bookmark_input(url, title)
    if error:
        return jsonify({"error": error}), 400

    bookmark = create_bookmark(g.api_user.id, url, title)
    return jsonify(bookmark.as_dict()), 201


@api_bp.route("/bookmarks/<int:bookmark_id>", methods=["DELETE"])
@api_auth_required()
def bookmarks_delete_api(bookmark_id: int):
    if not delete_bookmark(g.api_user.id, bookmark_id):
        return jsonify({"error": "bookmark not found"}), 404
    return jsonify({"status": "deleted", "id": bookmark_id})


@api_bp.route("/changes/head")
@api_auth_required()
def changes_head():
    return jsonify({"cursor": head_cursor(g.api_user.id)})


@api_bp.route("/changes")
@api_auth_required()
def changes_pull():
    since = request.args.get("since", default=0, type=int)
    max_limit = current_app.config["CHANGE_FEED_PAGE_LIMIT"]
    limit = request.args.get("limit", default=max_limit, type=int)
    limit = max(1, min(limit, max_limit))

    events = list_changes(g.api_user.id, since, limit)
    latest_cursor = events[-1].id if events else since
    return jsonify(
        {
            "events": [event.as_dict() for event in events],
            "cursor": latest_cursor,
            "has_more": len(events) == limit,
        }
    )
