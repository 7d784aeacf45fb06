# Overview: Request and role decorators for API routes.

import hmac
from functools import wraps

from flask import request, jsonify, g, current_app

from .services import session_service


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def _is_authenticated() -> bool:
    return getattr(g, "current_user", None) is not None


def _establish_session(token: str) -> bool:
    context = session_service.validate_session(token)
    if not context:
        return False
    g.current_user = context.user
    g.session_context = context
    return True


def require_auth(f):
    """
    Require a user session.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.session_context: The full SessionContext object

    SECURITY: Returns 401 if:
    - No Authorization header
    - Invalid, expired or revoked token
    - User account banned
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        if not _establish_session(token):
            return jsonify({"error": "Invalid or expired token"}), 401

        return f(*args, **kwargs)

    return decorated_function


def require_public_or_auth(f):
    """
    Accept either the configured public key or a user session.

    Used by the endpoints a fresh installation calls before any user exists
    (/seed, /health). g.current_user is None for the public key.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        public_key = current_app.config.get("PUBLIC_API_KEY") or ""
        if public_key and hmac.compare_digest(token, public_key):
            g.current_user = None
            g.session_context = None
            return f(*args, **kwargs)

        if not _establish_session(token):
            return jsonify({"error": "Invalid or expired token"}), 401

        return f(*args, **kwargs)

    return decorated_function


def require_manager(f):
    """
    Require the manager role. Must be stacked under @require_auth.

    Returns 403 with a JSON body for staff users.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_authenticated():
            return jsonify({"error": "Authentication required"}), 401

        user = g.current_user
        if not user.is_manager:
            current_app.logger.warning(
                "Manager role required: user %s (%s) denied %s %s",
                user.id, user.role, request.method, request.path,
            )
            return jsonify({
                "error": "Permission denied",
                "code": "MANAGER_REQUIRED",
                "message": "This action requires the manager role",
            }), 403

        return f(*args, **kwargs)

    return decorated_function
