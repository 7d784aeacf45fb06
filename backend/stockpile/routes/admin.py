# Overview: Flask API routes for admin operations; user management reserved to managers.

"""
Admin routes for user management.

Provides endpoints for listing, creating, updating, banning and deleting
users. All endpoints require a session with the manager role.

A manager cannot delete, ban or demote their own account.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_manager
from ..models import ROLE_MANAGER, STATUS_INACTIVE
from ..services import auth_service
from ..services.auth_service import PasswordValidationError, UserValidationError, UserNotFoundError

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


# =============================================================================
# USER MANAGEMENT
# =============================================================================

@admin_bp.get("")
@require_auth
@require_manager
def list_users_route():
    """List every user (the Manager[] shape used by the dashboard)."""
    try:
        return jsonify([u.to_dict() for u in auth_service.list_users()])
    except Exception:
        current_app.logger.exception("Failed to list users")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.get("/user/<user_id>")
@require_auth
@require_manager
def get_user_route(user_id: str):
    try:
        return jsonify(auth_service.get_user(user_id).to_dict())
    except UserNotFoundError as e:
        return jsonify({"error": str(e)}), 404


@admin_bp.post("/user")
@require_auth
@require_manager
def create_user_route():
    """
    Create a user.

    Request body:
    {
        "name": "Jane",               // required
        "email": "jane@example.com",  // required, unique
        "role": "staff",              // manager | staff (default staff)
        "password": "..."             // optional, generated when omitted
    }

    Returns:
        201 {user, temporaryPassword?}; the generated password is only
        returned here.
    """
    data = request.get_json(silent=True) or {}

    password = data.get("password")
    generated = None
    if not password:
        generated = auth_service.generate_password()
        password = generated

    try:
        user = auth_service.create_user(
            name=data.get("name"),
            email=data.get("email"),
            password=password,
            role=data.get("role") or "staff",
        )
    except (UserValidationError, PasswordValidationError) as e:
        return jsonify({"error": str(e), "code": "VALIDATION_ERROR"}), 400
    except Exception:
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500

    current_app.logger.info("User %s created by %s", user.email, g.current_user.email)

    body = {"user": user.to_dict()}
    if generated:
        body["temporaryPassword"] = generated
    return jsonify(body), 201


@admin_bp.put("/user/<user_id>")
@require_auth
@require_manager
def update_user_route(user_id: str):
    """
    Update a user.

    Request body (all optional): {name, email, role, status, password}
    status "inactive" bans the user and revokes their sessions.
    """
    data = request.get_json(silent=True) or {}

    if user_id == g.current_user.id:
        if data.get("role") not in (None, ROLE_MANAGER):
            return jsonify({"error": "Cannot change your own role", "code": "SELF_MODIFICATION"}), 400
        if data.get("status") == STATUS_INACTIVE:
            return jsonify({"error": "Cannot ban your own account", "code": "SELF_MODIFICATION"}), 400

    try:
        user = auth_service.update_user(
            user_id,
            name=data.get("name"),
            email=data.get("email"),
            role=data.get("role"),
            status=data.get("status"),
            password=data.get("password"),
        )
        return jsonify(user.to_dict())
    except UserNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except (UserValidationError, PasswordValidationError) as e:
        return jsonify({"error": str(e), "code": "VALIDATION_ERROR"}), 400
    except Exception:
        current_app.logger.exception("Failed to update user %s", user_id)
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.delete("/user/<user_id>")
@require_auth
@require_manager
def delete_user_route(user_id: str):
    if user_id == g.current_user.id:
        return jsonify({"error": "Cannot delete your own account", "code": "SELF_MODIFICATION"}), 400

    try:
        auth_service.delete_user(user_id)
        current_app.logger.info("User %s deleted by %s", user_id, g.current_user.email)
        return jsonify({"success": True})
    except UserNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to delete user %s", user_id)
        return jsonify({"error": "Internal server error"}), 500
