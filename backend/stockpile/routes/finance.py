# Overview: Flask API routes for payment operations; payments in (sales) and out (purchase orders).

"""
Finance Routes

SECURITY: All routes require a user session. Staff only see the payments
they recorded, and no totals.
"""

from flask import Blueprint, jsonify, g

from ..decorators import require_auth
from ..services import record_service, reporting_service, visibility_service
from .common import create_record_response, replace_record_response, delete_record_response, server_error


finance_bp = Blueprint("finance", __name__, url_prefix="/finance")


@finance_bp.get("")
@require_auth
def list_payments_route():
    try:
        payments = record_service.list_records("payment")
        return jsonify(visibility_service.project_payments(g.current_user, payments))
    except Exception:
        return server_error("list payments")


@finance_bp.get("/summary")
@require_auth
def finance_summary_route():
    """
    Returns:
        {totalInflow, totalOutflow, net, count}; totals are null for staff
    """
    try:
        return jsonify(reporting_service.finance_summary(g.current_user))
    except Exception:
        return server_error("compute finance summary")


@finance_bp.post("")
@require_auth
def create_payment_route():
    """
    Record a payment.

    Request body:
    {
        "referenceId": "s1",          // required
        "referenceType": "sale",      // required, sale | purchase_order
        "amount": 2400,               // required, >= 0
        "date": "2024-02-10",         // defaults to today
        "status": "completed"         // completed | pending
    }
    """
    return create_record_response("payment")


@finance_bp.put("/<payment_id>")
@require_auth
def replace_payment_route(payment_id: str):
    return replace_record_response("payment", payment_id)


@finance_bp.delete("/<payment_id>")
@require_auth
def delete_payment_route(payment_id: str):
    return delete_record_response("payment", payment_id)
