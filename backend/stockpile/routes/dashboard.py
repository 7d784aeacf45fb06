# Overview: Flask API routes for dashboard and activity; read-only aggregates projected per role.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth
from ..services import reporting_service
from ..services.reporting_service import ReportError


dashboard_bp = Blueprint("dashboard", __name__)


@dashboard_bp.get("/dashboard")
@require_auth
def dashboard_route():
    """
    Dashboard aggregate.

    Returns:
        {products, batches, sales, pos, payments, managers, metrics}

    Staff receive their own sales and payments, and empty batches and
    purchase orders.
    """
    try:
        data = reporting_service.dashboard_aggregate(
            g.current_user,
            low_stock_threshold=current_app.config["LOW_STOCK_THRESHOLD"],
        )
        return jsonify(data)
    except Exception:
        current_app.logger.exception("Failed to load dashboard")
        return jsonify({"error": "Internal server error"}), 500


@dashboard_bp.get("/activity")
@require_auth
def activity_route():
    """
    Activity feed, newest first, 20 per page.

    Query parameters:
    - type: all | sale | saleUpdated | purchaseOrder | stockReceived | batch | paymentIn | paymentOut
    - range: all | last7Days | last30Days | lastTrimester | lastYear
    - responsible: user id, or "__none__" for events without one
    - q: text search over title and description
    - page: 1-based page number
    """
    page = request.args.get("page", 1, type=int)
    try:
        feed = reporting_service.activity_feed(
            g.current_user,
            event_type=request.args.get("type"),
            date_range=request.args.get("range"),
            responsible=request.args.get("responsible"),
            query=request.args.get("q"),
            page=page,
        )
        return jsonify(feed)
    except ReportError as e:
        return jsonify({"error": str(e), "code": "VALIDATION_ERROR"}), 400
    except Exception:
        current_app.logger.exception("Failed to load activity")
        return jsonify({"error": "Internal server error"}), 500
