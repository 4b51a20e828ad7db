"""Bearer-token identity helpers shared by the route modules."""
from __future__ import annotations

from functools import wraps

from flask import current_app, jsonify, request
from itsdangerous import BadData, URLSafeTimedSerializer

from .extensions import db
from .models import User

TOKEN_SALT = "auth-token"


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=TOKEN_SALT)


def build_token(payload: dict[str, object]) -> str:
    return _serializer().dumps(payload)


def current_identity() -> dict[str, object] | None:
    """Resolve ``{user_id, role}`` from the Authorization header.

    Returns None when the token is missing, invalid, expired, or belongs to
    a user that no longer exists. The role is read from the database so a
    demoted admin loses access immediately.
    """
    identity = None
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[7:]
        try:
            payload = _serializer().loads(token, max_age=current_app.config["TOKEN_MAX_AGE"])
        except BadData:
            payload = None

        user_id = payload.get("user_id") if isinstance(payload, dict) else None
        user = db.session.get(User, user_id) if user_id else None
        if user is not None:
            identity = {"user_id": user.user_id, "role": user.role}

    return identity


def login_required(view):
    @wraps(view)
    def wrapped(*args, **kwargs):
        if current_identity() is None:
            return jsonify({"error": "unauthorized", "message": "Invalid or missing token"}), 401
        return view(*args, **kwargs)

    return wrapped


def admin_required(view):
    @wraps(view)
    def wrapped(*args, **kwargs):
        identity = current_identity()
        if identity is None:
            return jsonify({"error": "unauthorized", "message": "Invalid or missing token"}), 401
        if identity["role"] != "admin":
            return jsonify({"error": "forbidden", "message": "Admin access required"}), 403
        return view(*args, **kwargs)

    return wrapped
