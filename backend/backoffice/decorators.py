# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .extensions import db
from .models import User


def require_user(f):
    """
    Resolve the acting user for a write.

    Sets g.current_user from the X-User-Id header. Route handlers pass
    g.current_user.id explicitly to the services; services never read g.

    Returns 401 if:
    - No X-User-Id header (or not an integer)
    - Unknown user
    - User account deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        raw = request.headers.get("X-User-Id", "").strip()
        if not raw.isdigit():
            return jsonify({"error": "Acting user required"}), 401

        user = db.session.get(User, int(raw))
        if user is None or not user.is_active:
            return jsonify({"error": "Unknown or inactive user"}), 401

        g.current_user = user
        return f(*args, **kwargs)

    return decorated_function
