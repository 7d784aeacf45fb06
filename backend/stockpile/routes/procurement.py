# Overview: Flask API routes for purchase order operations; parses input and returns JSON responses.

"""
Procurement Routes

SECURITY: All routes require a user session. Staff can neither see nor save
purchase orders (403 on save); deleting one requires the manager role.

Completing an order receives its goods: the response lists the stock
batches the save created ("createdBatches").
"""

from flask import Blueprint, jsonify, g, current_app

from ..decorators import require_auth
from ..services import fulfillment_service, invoice_service, record_service, visibility_service
from ..services.record_service import RecordNotFoundError
from .common import (
    KNOWN_ERRORS,
    body_record_id,
    current_user_id,
    delete_record_response,
    error_response,
    expected_version,
    read_json,
    server_error,
    translate_error,
    write_denied_response,
)


procurement_bp = Blueprint("procurement", __name__, url_prefix="/procurement")


def _visible_order(order_id: str) -> dict:
    if not visibility_service.is_manager(g.current_user):
        raise RecordNotFoundError(f"po {order_id} not found")
    return record_service.get_record("po", order_id)


def _save(data: dict, order_id: str | None):
    order, created = fulfillment_service.save_purchase_order(
        data,
        order_id=order_id,
        expected_version=expected_version(data),
        user_id=current_user_id(),
    )
    if created:
        current_app.logger.info(
            "Purchase order %s completed: %d stock batches created", order["id"], len(created)
        )
    return {**order, "createdBatches": created}


@procurement_bp.get("")
@require_auth
def list_orders_route():
    try:
        if not visibility_service.is_manager(g.current_user):
            return jsonify([])
        return jsonify(record_service.list_records("po"))
    except Exception:
        return server_error("list purchase orders")


@procurement_bp.get("/<order_id>")
@require_auth
def get_order_route(order_id: str):
    try:
        return jsonify(_visible_order(order_id))
    except RecordNotFoundError as e:
        return translate_error(e)
    except Exception:
        return server_error(f"load purchase order {order_id}")


@procurement_bp.post("")
@require_auth
def create_order_route():
    """
    Create a purchase order, or replace one when the body carries an existing id.

    Request body:
    {
        "providerId": "pr1",          // required, existing provider
        "items": [{"productId": "p1", "quantity": 10, "unitPrice": 900}],
        "amountPaid": 0,
        "status": "pending",          // draft | pending | completed | cancelled
        "initiationDate": "2024-01-15"
    }

    Errors:
        400 MISSING_PARTNER / UNKNOWN_PARTNER / ORDER_LOCKED / VALIDATION_ERROR
        403 FORBIDDEN (staff)
        409 VERSION_CONFLICT
    """
    data = read_json()
    if data is None:
        return error_response("Invalid JSON payload", 400, "VALIDATION_ERROR")

    order_id = body_record_id(data)
    denied = write_denied_response("po", order_id)
    if denied is not None:
        return denied

    replacing = bool(order_id) and record_service.record_exists("po", order_id)

    try:
        body = _save(data, order_id)
        return jsonify(body), 200 if replacing else 201
    except KNOWN_ERRORS as e:
        return translate_error(e)
    except Exception:
        return server_error("create purchase order")


@procurement_bp.put("/<order_id>")
@require_auth
def replace_order_route(order_id: str):
    data = read_json()
    if data is None:
        return error_response("Invalid JSON payload", 400, "VALIDATION_ERROR")

    denied = write_denied_response("po", order_id)
    if denied is not None:
        return denied

    try:
        return jsonify(_save(data, order_id))
    except KNOWN_ERRORS as e:
        return translate_error(e)
    except Exception:
        return server_error(f"replace purchase order {order_id}")


@procurement_bp.delete("/<order_id>")
@require_auth
def delete_order_route(order_id: str):
    return delete_record_response("po", order_id)


@procurement_bp.get("/<order_id>/invoice")
@require_auth
def order_invoice_route(order_id: str):
    """Invoice document data for a purchase order."""
    try:
        order = _visible_order(order_id)
        return jsonify(invoice_service.build_invoice("po", order))
    except RecordNotFoundError as e:
        return translate_error(e)
    except Exception:
        current_app.logger.exception("Failed to build invoice for purchase order %s", order_id)
        return jsonify({"error": "Internal server error"}), 500
