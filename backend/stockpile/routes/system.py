# Overview: Flask API routes for system operations; health check and sample data seeding.

"""
System endpoints.

Both accept the public key as bearer token so a fresh installation can be
checked and seeded before any user exists.
"""

import time

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_public_or_auth
from ..extensions import db
from ..models import KVEntry, User
from ..services import seed_service

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity by counting stored documents and users.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        entry_count = db.session.query(KVEntry).count()
        user_count = db.session.query(User).count()
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "entries": entry_count,
                "users": user_count,
                "seeded": seed_service.is_seeded(),
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


@system_bp.get("/health")
@require_public_or_auth
def health():
    """
    Health check.

    Returns 200 {"status": "ok"} while the database answers, 503 otherwise.
    """
    database = check_database_health()
    if database["status"] != "healthy":
        return jsonify({"status": "unhealthy", "database": database}), 503
    return jsonify({"status": "ok", "database": database})


@system_bp.post("/seed")
@require_public_or_auth
def seed_route():
    """
    Reset the store to the sample dataset.

    Query parameters:
    - force: "true" to reseed an already seeded store

    Returns:
        {success, count} or {success, message: "Already seeded"}
    """
    force = request.args.get("force", "false").lower() == "true"
    try:
        result = seed_service.seed_database(force=force)
        return jsonify(result)
    except Exception:
        current_app.logger.exception("Failed to seed database")
        return jsonify({"error": "Internal server error"}), 500
