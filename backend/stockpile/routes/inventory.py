# Overview: Flask API routes for inventory operations; categories, products and stock batches.

"""
Inventory Routes

SECURITY: All routes require a user session.
- Staff read the catalog and the available stock per product, but not the
  batch list.
"""

from flask import Blueprint, jsonify, g, current_app

from ..decorators import require_auth
from ..services import reporting_service
from .common import create_record_response, replace_record_response, delete_record_response


inventory_bp = Blueprint("inventory", __name__, url_prefix="/inventory")


@inventory_bp.get("")
@require_auth
def get_inventory_route():
    """
    Catalog and stock.

    Returns:
        {categories: [], products: [], batches: [], stock: {productId: quantity}}
    """
    try:
        return jsonify(reporting_service.inventory_aggregate(g.current_user))
    except Exception:
        current_app.logger.exception("Failed to load inventory")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# Products
# =============================================================================

@inventory_bp.post("/product")
@require_auth
def create_product_route():
    """Create a product. Body: {name, categoryId, baseUnitPrice, ...}."""
    return create_record_response("product")


@inventory_bp.put("/product/<record_id>")
@require_auth
def replace_product_route(record_id: str):
    return replace_record_response("product", record_id)


@inventory_bp.delete("/product/<record_id>")
@require_auth
def delete_product_route(record_id: str):
    return delete_record_response("product", record_id)


# =============================================================================
# Stock batches
# =============================================================================

@inventory_bp.post("/batch")
@require_auth
def create_batch_route():
    """Create a stock batch. Body: {productId, batchLabel, unitPriceCost, quantity, entryDate}."""
    return create_record_response("batch")


@inventory_bp.put("/batch/<record_id>")
@require_auth
def replace_batch_route(record_id: str):
    return replace_record_response("batch", record_id)


@inventory_bp.delete("/batch/<record_id>")
@require_auth
def delete_batch_route(record_id: str):
    return delete_record_response("batch", record_id)


# =============================================================================
# Categories
# =============================================================================

@inventory_bp.post("/category")
@require_auth
def create_category_route():
    return create_record_response("category")


@inventory_bp.put("/category/<record_id>")
@require_auth
def replace_category_route(record_id: str):
    return replace_record_response("category", record_id)


@inventory_bp.delete("/category/<record_id>")
@require_auth
def delete_category_route(record_id: str):
    return delete_record_response("category", record_id)
