# Overview: Flask API routes for partner operations; providers and customers.

"""
Partner Routes

SECURITY: All routes require a user session. Deleting a partner requires
the manager role.
"""

from flask import Blueprint, jsonify, current_app

from ..decorators import require_auth
from ..services import reporting_service
from .common import create_record_response, replace_record_response, delete_record_response


partners_bp = Blueprint("partners", __name__, url_prefix="/partners")


@partners_bp.get("")
@require_auth
def list_partners_route():
    """
    Returns:
        {providers: [], customers: []}
    """
    try:
        return jsonify(reporting_service.partners_aggregate())
    except Exception:
        current_app.logger.exception("Failed to load partners")
        return jsonify({"error": "Internal server error"}), 500


@partners_bp.post("/provider")
@require_auth
def create_provider_route():
    return create_record_response("provider")


@partners_bp.put("/provider/<record_id>")
@require_auth
def replace_provider_route(record_id: str):
    return replace_record_response("provider", record_id)


@partners_bp.delete("/provider/<record_id>")
@require_auth
def delete_provider_route(record_id: str):
    return delete_record_response("provider", record_id)


@partners_bp.post("/customer")
@require_auth
def create_customer_route():
    return create_record_response("customer")


@partners_bp.put("/customer/<record_id>")
@require_auth
def replace_customer_route(record_id: str):
    return replace_record_response("customer", record_id)


@partners_bp.delete("/customer/<record_id>")
@require_auth
def delete_customer_route(record_id: str):
    return delete_record_response("customer", record_id)
