# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

Login issues a bearer token; every other endpoint expects it in
"Authorization: Bearer <token>". The token identifies the user, and the
user's role decides which views and actions are available.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth
from ..services import auth_service, session_service, visibility_service
from ..services.auth_service import PasswordValidationError
from ..time_utils import to_utc_z


auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


def _profile(user) -> dict:
    return {
        "user": user.to_dict(),
        "views": visibility_service.visible_views(user.role),
        "defaultView": visibility_service.resolve_view(user.role, None),
        "capabilities": visibility_service.capabilities(user.role),
    }


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Request body: {"email": "...", "password": "..."}

    Returns:
        {token, user, views, defaultView, capabilities}
    """
    try:
        data = request.get_json(silent=True) or {}
        if not isinstance(data, dict):
            return jsonify({"error": "Invalid JSON payload"}), 400
        email = data.get("email")
        password = data.get("password")

        if not all([email, password]):
            return jsonify({"error": "email and password required"}), 400
        if not isinstance(email, str) or not isinstance(password, str):
            return jsonify({"error": "email and password must be strings"}), 400

        user = auth_service.authenticate(email, password)
        if not user:
            return jsonify({"error": "Invalid credentials"}), 401

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )

        return jsonify({
            "token": token,
            "expiresAt": to_utc_z(session.expires_at),
            **_profile(user),
        }), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
def logout_route():
    """
    Revoke session token (logout).

    Expects Authorization header: Bearer <token>
    """
    try:
        auth_header = request.headers.get("Authorization")
        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authorization header required"}), 401

        token = auth_header.split(" ", 1)[1]

        if not session_service.revoke_session(token, reason="User logout"):
            return jsonify({"error": "Invalid or expired token"}), 401

        return jsonify({"message": "Logout successful"}), 200

    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    """Current user with visible views and capabilities."""
    return jsonify(_profile(g.current_user))


@auth_bp.post("/password")
@require_auth
def change_password_route():
    """
    Change own password.

    Request body: {"currentPassword": "...", "newPassword": "..."}
    Other sessions of the user stay valid.
    """
    data = request.get_json(silent=True) or {}
    current_password = data.get("currentPassword")
    new_password = data.get("newPassword")
    if not current_password or not new_password:
        return jsonify({"error": "currentPassword and newPassword required"}), 400

    try:
        auth_service.change_password(g.current_user.id, current_password, new_password)
        return jsonify({"success": True})
    except PasswordValidationError as e:
        return jsonify({"error": str(e), "code": "PASSWORD_INVALID"}), 400
    except Exception:
        current_app.logger.exception("Failed to change password")
        return jsonify({"error": "Internal server error"}), 500
