# Overview: Role-based view filter; one place that decides what a manager or staff user may see and do.

"""
Visibility Service

Every endpoint that returns aggregates, and every write or delete that is reserved
to managers, asks this module instead of re-implementing role checks.

ROLES:
- manager: every view, every record, every action.
- staff: sales and inventory views only. Sees only the sales, payments and
  activity they are responsible for (managerId == their id). Stock batches,
  purchase orders and financial totals are not applicable to them.
"""

from __future__ import annotations

from ..models import ROLE_MANAGER


VIEWS = ("dashboard", "inventory", "partners", "procurement", "sales", "finance", "activity", "admin")
STAFF_VIEWS = ("sales", "inventory")

MANAGER_DEFAULT_VIEW = "dashboard"
STAFF_DEFAULT_VIEW = "sales"

# Record kinds whose delete action is reserved to managers
MANAGER_DELETE_KINDS = {"provider", "customer", "po", "sale"}

# Record kinds only managers may create or replace
MANAGER_WRITE_KINDS = {"po"}


def is_manager(user) -> bool:
    return user is not None and getattr(user, "role", None) == ROLE_MANAGER


def visible_views(role: str | None) -> list[str]:
    if role == ROLE_MANAGER:
        return list(VIEWS)
    return list(STAFF_VIEWS)


def resolve_view(role: str | None, requested: str | None) -> str:
    """The view a user actually lands on when asking for requested."""
    allowed = visible_views(role)
    if requested in allowed:
        return requested
    if role == ROLE_MANAGER:
        return MANAGER_DEFAULT_VIEW
    return STAFF_DEFAULT_VIEW


def capabilities(role: str | None) -> dict:
    manager = role == ROLE_MANAGER
    return {
        "canDeletePartners": manager,
        "canDeleteOrders": manager,
        "canDeleteSales": manager,
        "canManageUsers": manager,
        "showStockBatches": manager,
        "showFinancialTotals": manager,
    }


def can_delete(user, kind: str) -> bool:
    if kind not in MANAGER_DELETE_KINDS:
        return True
    return is_manager(user)


def can_write(user, kind: str) -> bool:
    if kind not in MANAGER_WRITE_KINDS:
        return True
    return is_manager(user)


def can_see_record(user, kind: str, record: dict) -> bool:
    """Whether user may read (and so replace) one stored record of kind."""
    if is_manager(user):
        return True
    if kind in MANAGER_WRITE_KINDS:
        return False
    if kind in ("sale", "payment"):
        return bool(_own([record], user))
    return True


def _own(records: list[dict], user) -> list[dict]:
    user_id = getattr(user, "id", None)
    return [r for r in records if r.get("managerId") == user_id]


def project_sales(user, sales: list[dict]) -> list[dict]:
    if is_manager(user):
        return sales
    return _own(sales, user)


def project_payments(user, payments: list[dict]) -> list[dict]:
    if is_manager(user):
        return payments
    return _own(payments, user)


def project_dashboard(user, data: dict) -> dict:
    """
    Filter the dashboard aggregate for user.

    data keys: products, batches, sales, pos, payments, managers.
    Staff get their own sales and payments; batches and purchase orders are
    always empty for them regardless of what is stored.
    """
    if is_manager(user):
        return dict(data)
    projected = dict(data)
    projected["sales"] = _own(data.get("sales") or [], user)
    projected["payments"] = _own(data.get("payments") or [], user)
    projected["pos"] = []
    projected["batches"] = []
    return projected


def project_activity(user, events: list[dict]) -> list[dict]:
    if is_manager(user):
        return events
    return _own(events, user)


def project_inventory(user, data: dict) -> dict:
    """Staff do not see the stock batch list; availability per product stays visible."""
    if is_manager(user):
        return dict(data)
    projected = dict(data)
    projected["batches"] = []
    return projected
