from functools import wraps

from flask import g, jsonify, request
from flask_login import current_user

from app.extensions import db
from app.models import ApiToken, utcnow


def bearer_token_from_request() -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None
    return auth_header.removeprefix("Bearer ").strip() or None


def _token_row_from_bearer():
    token = bearer_token_from_request()
    if not token:
        return None
    token_row = ApiToken.query.filter_by(token_hash=ApiToken.hash_token(token)).first()
    if not token_row or token_row.revoked_at is not None:
        return None
    if not token_row.user.is_active:
        return None
    token_row.last_used_at = utcnow()
    db.session.commit()
    return token_row


def api_auth_required(token_only=False):
    def decorator(func):
        @wraps(func)
        def wrapped(*args, **kwargs):
            g.api_token = None
            if not token_only and current_user.is_authenticated:
                g.api_user = current_user
                return func(*args, **kwargs)
            token_row = _token_row_from_bearer()
            if not token_row:
                return jsonify({"error": "authentication required"}), 401
            g.api_user = token_row.user
            g.api_token = token_row
            return func(*args, **kwargs)

        return wrapped

    return decorator
