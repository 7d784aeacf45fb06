# Overview: Flask API routes for sale operations; parses input and returns JSON responses.

"""
Sales Routes

SECURITY: All routes require a user session.
- Staff only see, and only replace, the sales they are responsible for.
- Deleting a sale requires the manager role.

Every save is checked against available stock before anything is written
(400 INSUFFICIENT_STOCK with per-product details).
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


sales_bp = Blueprint("sales", __name__, url_prefix="/sales")


def _visible_sale(sale_id: str) -> dict:
    sale = record_service.get_record("sale", sale_id)
    if not visibility_service.project_sales(g.current_user, [sale]):
        raise RecordNotFoundError(f"sale {sale_id} not found")
    return sale


@sales_bp.get("")
@require_auth
def list_sales_route():
    try:
        sales = record_service.list_records("sale")
        return jsonify(visibility_service.project_sales(g.current_user, sales))
    except Exception:
        return server_error("list sales")


@sales_bp.get("/<sale_id>")
@require_auth
def get_sale_route(sale_id: str):
    try:
        return jsonify(_visible_sale(sale_id))
    except RecordNotFoundError as e:
        return translate_error(e)
    except Exception:
        return server_error(f"load sale {sale_id}")


@sales_bp.post("")
@require_auth
def create_sale_route():
    """
    Create a sale.

    Request body:
    {
        "customerId": "cust1",        // required, existing customer
        "items": [{"productId": "p1", "quantity": 2, "unitPrice": 1200}],
        "amountPaid": 0,
        "status": "draft",            // draft | pending | completed | cancelled
        "initiationDate": "2024-02-10"
    }

    totalAmount and paymentComplete are derived from the items.
    """
    data = read_json()
    if data is None:
        return error_response("Invalid JSON payload", 400, "VALIDATION_ERROR")

    denied = write_denied_response("sale", body_record_id(data))
    if denied is not None:
        return denied

    try:
        sale = fulfillment_service.save_sale(
            data,
            expected_version=expected_version(data),
            user_id=current_user_id(),
        )
        return jsonify(sale), 201
    except KNOWN_ERRORS as e:
        return translate_error(e)
    except Exception:
        return server_error("create sale")


@sales_bp.put("/<sale_id>")
@require_auth
def replace_sale_route(sale_id: str):
    """Replace a sale. Send "version" (or If-Match) to reject concurrent edits."""
    data = read_json()
    if data is None:
        return error_response("Invalid JSON payload", 400, "VALIDATION_ERROR")

    denied = write_denied_response("sale", sale_id)
    if denied is not None:
        return denied

    try:
        sale = fulfillment_service.save_sale(
            data,
            sale_id=sale_id,
            expected_version=expected_version(data),
            user_id=current_user_id(),
        )
        return jsonify(sale)
    except KNOWN_ERRORS as e:
        return translate_error(e)
    except Exception:
        return server_error(f"replace sale {sale_id}")


@sales_bp.delete("/<sale_id>")
@require_auth
def delete_sale_route(sale_id: str):
    return delete_record_response("sale", sale_id)


@sales_bp.get("/<sale_id>/invoice")
@require_auth
def sale_invoice_route(sale_id: str):
    """
    Invoice document data for a sale.

    Returns:
        {filename, nature, reference, date, party, lines, total, amountPaid, remaining, ...}
    """
    try:
        sale = _visible_sale(sale_id)
        return jsonify(invoice_service.build_invoice("sale", sale))
    except RecordNotFoundError as e:
        return translate_error(e)
    except Exception:
        current_app.logger.exception("Failed to build invoice for sale %s", sale_id)
        return jsonify({"error": "Internal server error"}), 500
