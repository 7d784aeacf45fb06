# Overview: Service-layer operations for reporting; aggregates, dashboard metrics and the activity feed.

from __future__ import annotations

import calendar
from datetime import datetime

from . import record_service, auth_service, visibility_service
from .fulfillment_service import available_stock, STATUS_COMPLETED
from ..formatters import format_currency
from ..time_utils import parse_iso_datetime, utcnow, days_ago


ACTIVITY_PAGE_SIZE = 20

ACTIVITY_TYPES = ("sale", "saleUpdated", "purchaseOrder", "stockReceived", "batch", "paymentIn", "paymentOut")
DATE_RANGES = ("last7Days", "last30Days", "lastTrimester", "lastYear")
NO_RESPONSIBLE = "__none__"
UNKNOWN = "Inconnu"


class ReportError(Exception):
    """Raised when report parameters are invalid."""
    pass


def _months_back(now: datetime, months: int) -> datetime:
    month_index = now.month - 1 - months
    year = now.year + month_index // 12
    month = month_index % 12 + 1
    day = min(now.day, calendar.monthrange(year, month)[1])
    return now.replace(year=year, month=month, day=day)


def range_start(date_range: str | None) -> datetime | None:
    """Earliest date kept by a date range filter; None for "all"."""
    if not date_range or date_range == "all":
        return None
    if date_range == "last7Days":
        return days_ago(7)
    if date_range == "last30Days":
        return days_ago(30)
    if date_range == "lastTrimester":
        return _months_back(utcnow(), 3)
    if date_range == "lastYear":
        return _months_back(utcnow(), 12)
    raise ReportError(f"range must be one of: all, {', '.join(DATE_RANGES)}")


def _sum(records: list[dict], field: str):
    return sum((r.get(field) or 0) for r in records)


# =============================================================================
# Aggregates
# =============================================================================

def inventory_aggregate(user) -> dict:
    """Categories, products and batches, plus available quantity per product."""
    batches = record_service.list_records("batch")
    data = {
        "categories": record_service.list_records("category"),
        "products": record_service.list_records("product"),
        "batches": batches,
        "stock": available_stock(batches),
    }
    return visibility_service.project_inventory(user, data)


def partners_aggregate() -> dict:
    return {
        "providers": record_service.list_records("provider"),
        "customers": record_service.list_records("customer"),
    }


def managers_list() -> list[dict]:
    return [u.to_dict() for u in auth_service.list_users()]


def dashboard_metrics(data: dict, *, low_stock_threshold: int, show_financials: bool) -> dict:
    """
    Headline figures computed over the (already projected) dashboard data.

    Financial figures are None when the viewer is not allowed to see them.
    """
    batches = data.get("batches") or []
    sales = data.get("sales") or []
    pos = data.get("pos") or []
    return {
        "totalStockCount": _sum(batches, "quantity"),
        "totalSalesRevenue": _sum(sales, "totalAmount") if show_financials else None,
        "lowStockItems": sum(1 for b in batches if (b.get("quantity") or 0) < low_stock_threshold),
        "pendingOrders": sum(1 for po in pos if po.get("status") == "pending"),
    }


def dashboard_aggregate(user, *, low_stock_threshold: int) -> dict:
    """
    Dashboard data joined across kinds, projected for user.

    Returns:
        {products, batches, sales, pos, payments, managers, metrics}
    """
    raw = {
        "products": record_service.list_records("product"),
        "batches": record_service.list_records("batch"),
        "sales": record_service.list_records("sale"),
        "pos": record_service.list_records("po"),
        "payments": record_service.list_records("payment"),
        "managers": managers_list(),
    }
    data = visibility_service.project_dashboard(user, raw)
    data["metrics"] = dashboard_metrics(
        data,
        low_stock_threshold=low_stock_threshold,
        show_financials=visibility_service.is_manager(user),
    )
    return data


def finance_summary(user) -> dict:
    """
    Payment inflow (sales) and outflow (purchase orders).

    Staff see their own payments listed but no totals.
    """
    payments = visibility_service.project_payments(user, record_service.list_records("payment"))
    if not visibility_service.is_manager(user):
        return {"totalInflow": None, "totalOutflow": None, "net": None, "count": len(payments)}

    inflow = _sum([p for p in payments if p.get("referenceType") == "sale"], "amount")
    outflow = _sum([p for p in payments if p.get("referenceType") == "purchase_order"], "amount")
    return {
        "totalInflow": inflow,
        "totalOutflow": outflow,
        "net": inflow - outflow,
        "count": len(payments),
    }


# =============================================================================
# Activity feed
# =============================================================================

def _names(kind: str) -> dict:
    return {r.get("id"): r.get("name") for r in record_service.list_records(kind)}


def _ref(record_id: str | None) -> str:
    return (record_id or "")[:8].upper()


def _products_detail(items: list[dict], product_names: dict) -> str:
    if not items:
        return "-"
    return ", ".join(
        f"{product_names.get(i.get('productId')) or UNKNOWN} x {i.get('quantity', 0)}" for i in items
    )


def _item_refs(items: list[dict]) -> list[dict]:
    return [{"productId": i.get("productId"), "quantity": i.get("quantity", 0)} for i in items]


def build_activity(*, sales, pos, batches, payments, customers, providers, products) -> list[dict]:
    """
    Derive activity events from stored records, newest first.

    One event per sale, purchase order, batch and payment, plus a
    "saleUpdated" event when a sale was rewritten after its initiation date and
    a "stockReceived" event for completed orders with a finalization date.
    """
    events = []

    for s in sales:
        items = s.get("items") or []
        base = {
            "nav": "sales",
            "managerId": s.get("managerId"),
            "productsDetail": _products_detail(items, products),
            "items": _item_refs(items),
        }
        events.append({
            **base,
            "key": f"sale-{s['id']}",
            "date": s.get("initiationDate") or "",
            "type": "sale",
            "title": "New sale",
            "description": f"Sale #{_ref(s['id'])} for {customers.get(s.get('customerId')) or UNKNOWN}",
        })
        updated_at = s.get("updatedAt")
        if updated_at and updated_at != s.get("initiationDate"):
            events.append({
                **base,
                "key": f"sale-updated-{s['id']}",
                "date": updated_at,
                "type": "saleUpdated",
                "title": "Sale updated",
                "description": f"Sale #{_ref(s['id'])} was updated",
            })

    for po in pos:
        items = po.get("items") or []
        base = {
            "nav": "procurement",
            "managerId": po.get("managerId"),
            "productsDetail": _products_detail(items, products),
            "items": _item_refs(items),
        }
        events.append({
            **base,
            "key": f"po-{po['id']}",
            "date": po.get("initiationDate") or "",
            "type": "purchaseOrder",
            "title": "Purchase order",
            "description": f"Order #{_ref(po['id'])} from {providers.get(po.get('providerId')) or UNKNOWN}",
        })
        if po.get("status") == STATUS_COMPLETED and po.get("finalizationDate"):
            events.append({
                **base,
                "key": f"po-received-{po['id']}",
                "date": po["finalizationDate"],
                "type": "stockReceived",
                "title": "Stock received",
                "description": f"Order #{_ref(po['id'])} received",
            })

    for b in batches:
        product_id = b.get("productId")
        events.append({
            "key": f"batch-{b['id']}",
            "date": b.get("entryDate") or "",
            "type": "batch",
            "title": "Stock batch",
            "description": f"Batch #{_ref(b['id'])}: {b.get('quantity', 0)} units",
            "nav": "inventory",
            "managerId": b.get("managerId"),
            "productsDetail": f"{products.get(product_id) or UNKNOWN} x {b.get('quantity', 0)}" if product_id else "-",
            "items": [{"productId": product_id, "quantity": b.get("quantity", 0)}] if product_id else [],
        })

    for p in payments:
        incoming = p.get("referenceType") == "sale"
        amount = format_currency(p.get("amount"))
        events.append({
            "key": f"pay-{p['id']}",
            "date": p.get("date") or "",
            "type": "paymentIn" if incoming else "paymentOut",
            "title": "Payment received" if incoming else "Payment sent",
            "description": (
                f"{amount} received for #{_ref(p.get('referenceId'))}" if incoming
                else f"{amount} paid for #{_ref(p.get('referenceId'))}"
            ),
            "nav": "finance",
            "managerId": p.get("managerId"),
            "productsDetail": None,
            "items": [],
        })

    events.sort(key=lambda e: e["date"] or "", reverse=True)
    return events


def filter_activity(
    events: list[dict],
    *,
    event_type: str | None = None,
    date_range: str | None = None,
    responsible: str | None = None,
    query: str | None = None,
) -> list[dict]:
    if event_type and event_type != "all":
        if event_type not in ACTIVITY_TYPES:
            raise ReportError(f"type must be one of: all, {', '.join(ACTIVITY_TYPES)}")
        events = [e for e in events if e["type"] == event_type]

    start = range_start(date_range)
    if start is not None:
        kept = []
        for e in events:
            when = parse_iso_datetime(e["date"])
            if when is not None and when >= start:
                kept.append(e)
        events = kept

    if responsible and responsible != "all":
        if responsible == NO_RESPONSIBLE:
            events = [e for e in events if not e.get("managerId")]
        else:
            events = [e for e in events if e.get("managerId") == responsible]

    q = (query or "").strip().lower()
    if q:
        events = [e for e in events if q in f"{e['title']} {e['description']}".lower()]

    return events


def activity_feed(
    user,
    *,
    event_type: str | None = None,
    date_range: str | None = None,
    responsible: str | None = None,
    query: str | None = None,
    page: int = 1,
) -> dict:
    """
    Filtered, paginated activity for user.

    Staff only see events they are responsible for. The page is clamped to
    the last page.

    Returns:
        {items, page, pageSize, total, totalPages}
    """
    raw = {
        "sales": record_service.list_records("sale"),
        "pos": record_service.list_records("po"),
        "batches": record_service.list_records("batch"),
        "payments": record_service.list_records("payment"),
    }
    data = visibility_service.project_dashboard(user, raw)

    events = build_activity(
        sales=data["sales"],
        pos=data["pos"],
        batches=data["batches"],
        payments=data["payments"],
        customers=_names("customer"),
        providers=_names("provider"),
        products=_names("product"),
    )
    events = visibility_service.project_activity(user, events)
    events = filter_activity(
        events,
        event_type=event_type,
        date_range=date_range,
        responsible=responsible,
        query=query,
    )

    manager_names = {u["id"]: u["name"] for u in managers_list()}
    for e in events:
        e["responsible"] = manager_names.get(e.get("managerId")) or (UNKNOWN if e.get("managerId") else None)

    total = len(events)
    total_pages = max(1, -(-total // ACTIVITY_PAGE_SIZE))
    page = min(max(page or 1, 1), total_pages)
    start = (page - 1) * ACTIVITY_PAGE_SIZE

    return {
        "items": events[start:start + ACTIVITY_PAGE_SIZE],
        "page": page,
        "pageSize": ACTIVITY_PAGE_SIZE,
        "total": total,
        "totalPages": total_pages,
    }
