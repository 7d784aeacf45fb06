# Overview: Service-layer operations for order fulfillment; purchase order completion and sale stock checks.

"""
Order Fulfillment Service

PURCHASE ORDERS:
- An order whose stored status is "completed" stays completed. A save that
  carries another status is rejected before anything is written.
- The save that moves an order into "completed" receives the goods: one
  StockBatch per item with quantity > 0, costed at the item's unit price.
- Batch ids are derived from the order id and the item index, so a batch
  is never created twice for the same order line.
- The order and its batches are written in one transaction: if any batch
  fails, nothing is kept.

SALES:
- Every requested product quantity must be covered by the sum of that
  product's StockBatch quantities. The check reads the batches inside the
  write transaction, so it is validated server-side and not only against
  whatever a client had cached.

TOTALS: when an item list is supplied, totalAmount = Σ(quantity × unitPrice).
The payment flag (po.paymentStatus / sale.paymentComplete) is
amountPaid >= totalAmount.
"""

from __future__ import annotations

from typing import Any

from . import kv_store, record_service
from .record_service import RecordConflictError
from ..extensions import db
from ..time_utils import today_iso
from ..validation import ValidationError, get_policy, normalize_record


STATUS_COMPLETED = "completed"

# Error codes returned to clients alongside the message
MISSING_PARTNER = "MISSING_PARTNER"
UNKNOWN_PARTNER = "UNKNOWN_PARTNER"
ORDER_LOCKED = "ORDER_LOCKED"
INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
BATCH_CREATION_FAILED = "BATCH_CREATION_FAILED"


class FulfillmentError(Exception):
    """Raised when an order or sale violates a fulfillment rule."""

    def __init__(self, message: str, *, code: str, details: Any = None):
        super().__init__(message)
        self.code = code
        self.details = details


def order_total(items: list[dict]) -> int | float:
    total = sum(item["quantity"] * item["unitPrice"] for item in items)
    if isinstance(total, float) and total.is_integer():
        return int(total)
    return total


def apply_totals(record: dict, *, paid_flag: str) -> dict:
    """Recompute totalAmount from the items (if any) and the payment flag."""
    items = record.get("items") or []
    if items:
        record["totalAmount"] = order_total(items)
    record.setdefault("totalAmount", 0)
    record.setdefault("amountPaid", 0)
    record[paid_flag] = record["amountPaid"] >= record["totalAmount"]
    return record


def available_stock(batches: list[dict] | None = None) -> dict[str, int]:
    """Sum of batch quantities per productId."""
    if batches is None:
        batches = record_service.list_records("batch")
    stock: dict[str, int] = {}
    for batch in batches:
        product_id = batch.get("productId")
        if not product_id:
            continue
        stock[product_id] = stock.get(product_id, 0) + (batch.get("quantity") or 0)
    return stock


def find_shortages(items: list[dict], stock: dict[str, int]) -> list[dict]:
    """
    Products whose requested quantity exceeds what the batches hold.

    Quantities for the same product on several lines are added up.
    """
    requested: dict[str, int] = {}
    for item in items:
        requested[item["productId"]] = requested.get(item["productId"], 0) + item["quantity"]

    return [
        {"productId": product_id, "requested": quantity, "available": stock.get(product_id, 0)}
        for product_id, quantity in requested.items()
        if quantity > stock.get(product_id, 0)
    ]


def batch_id_for(order_id: str, index: int) -> str:
    return f"{order_id}-{index}"


def batch_label_for(order_id: str, index: int) -> str:
    return f"PO-{order_id[:8].upper()}-{index + 1}"


def planned_batches(order: dict) -> list[dict]:
    """StockBatch records a completed order materializes, one per item with quantity > 0."""
    entry_date = today_iso()
    batches = []
    for index, item in enumerate(order.get("items") or []):
        if item["quantity"] <= 0:
            continue
        batches.append({
            "id": batch_id_for(order["id"], index),
            "productId": item["productId"],
            "batchLabel": batch_label_for(order["id"], index),
            "unitPriceCost": item["unitPrice"],
            "quantity": item["quantity"],
            "entryDate": entry_date,
            "purchaseOrderId": order["id"],
        })
    return batches


def _require_partner(payload: Any, field: str, kind: str) -> None:
    partner_id = payload.get(field) if isinstance(payload, dict) else None
    if partner_id is None or str(partner_id).strip() == "":
        raise FulfillmentError(f"{field} is required", code=MISSING_PARTNER, details={"field": field})
    if not record_service.record_exists(kind, str(partner_id).strip()):
        raise FulfillmentError(
            f"{kind} {partner_id} does not exist",
            code=UNKNOWN_PARTNER,
            details={"field": field, "id": partner_id},
        )


def _resolve_id(payload: Any, record_id: str | None) -> str:
    if record_id:
        return str(record_id).strip()
    raw_id = payload.get("id") if isinstance(payload, dict) else None
    if raw_id not in (None, ""):
        return str(raw_id).strip()
    return record_service.new_record_id()


def _keep_stored_status(payload: Any, record: dict, existing: dict | None) -> None:
    """A replace that omits status keeps the stored one instead of the default."""
    if existing is None:
        return
    if isinstance(payload, dict) and payload.get("status"):
        return
    if existing.get("status"):
        record["status"] = existing["status"]


def save_purchase_order(
    payload: Any,
    *,
    order_id: str | None = None,
    expected_version: int | None = None,
    user_id: str | None = None,
) -> tuple[dict, list[dict]]:
    """
    Create or replace a purchase order, receiving stock when it completes.

    Returns:
        (stored order, stock batches created by this save)

    Raises:
        FulfillmentError: missing/unknown provider, locked completed order,
            batch creation failure
        ValidationError: invalid body
        RecordConflictError: stale expected_version
    """
    _require_partner(payload, "providerId", "provider")
    record = normalize_record("po", payload)

    order_id = _resolve_id(payload, order_id)
    existing = record_service.find_record("po", order_id)
    _keep_stored_status(payload, record, existing)
    previous_status = existing.get("status") if existing else None

    if previous_status == STATUS_COMPLETED and record["status"] != STATUS_COMPLETED:
        raise FulfillmentError(
            "A completed purchase order cannot change status",
            code=ORDER_LOCKED,
            details={"orderId": order_id, "status": previous_status, "requested": record["status"]},
        )

    apply_totals(record, paid_flag="paymentStatus")

    completing = record["status"] == STATUS_COMPLETED and previous_status != STATUS_COMPLETED
    if completing and not record.get("finalizationDate"):
        record["finalizationDate"] = today_iso()

    created: list[dict] = []
    try:
        order = record_service.save_record(
            "po",
            record,
            record_id=order_id,
            expected_version=expected_version,
            user_id=user_id,
            normalized=True,
            commit=False,
        )

        if completing:
            failures = []
            for batch in planned_batches(order):
                if record_service.record_exists("batch", batch["id"]):
                    continue
                try:
                    created.append(record_service.save_record(
                        "batch", batch, record_id=batch["id"], commit=False,
                    ))
                except (ValidationError, RecordConflictError) as e:
                    failures.append({"batchId": batch["id"], "productId": batch["productId"], "error": str(e)})
            if failures:
                raise FulfillmentError(
                    "Stock batch creation failed",
                    code=BATCH_CREATION_FAILED,
                    details=failures,
                )

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    return order, created


def save_sale(
    payload: Any,
    *,
    sale_id: str | None = None,
    expected_version: int | None = None,
    user_id: str | None = None,
) -> dict:
    """
    Create or replace a sale after checking stock for every item.

    Raises:
        FulfillmentError: missing/unknown customer, insufficient stock
        ValidationError: invalid body
        RecordConflictError: stale expected_version
    """
    _require_partner(payload, "customerId", "customer")
    record = normalize_record("sale", payload)

    sale_id = _resolve_id(payload, sale_id)
    existing = record_service.find_record("sale", sale_id)
    _keep_stored_status(payload, record, existing)

    apply_totals(record, paid_flag="paymentComplete")

    try:
        if record["items"]:
            batches = kv_store.get_by_prefix(get_policy("batch").prefix, for_update=True)
            shortages = find_shortages(record["items"], available_stock(batches))
            if shortages:
                raise FulfillmentError(
                    "Insufficient stock",
                    code=INSUFFICIENT_STOCK,
                    details=shortages,
                )

        sale = record_service.save_record(
            "sale",
            record,
            record_id=sale_id,
            expected_version=expected_version,
            user_id=user_id,
            normalized=True,
            commit=False,
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    return sale
