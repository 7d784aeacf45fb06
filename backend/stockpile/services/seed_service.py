# Overview: Service-layer operations for seeding; resets the Entity Store to the sample dataset.

"""
Seed Service

Fills an empty installation with a small, coherent sample business: three
categories, four products with stock, partners on both sides, orders,
sales and payments, plus two sign-in identities (a manager and a staff
member).

IDEMPOTENCY: the "system:seeded" flag is written with the data. A second
seed without force is a no-op.

RESET: a forced seed clears every record prefix before writing, so it also
wipes whatever users created since. Identities are kept and updated.
"""

from __future__ import annotations

import copy

from flask import current_app

from . import kv_store, auth_service
from ..extensions import db
from ..models import ROLE_MANAGER, ROLE_STAFF
from ..time_utils import to_utc_z, utcnow
from ..validation import get_policy


SEEDED_FLAG_KEY = "system:seeded"

# Cleared before reseeding. "manager:" holds user documents of older installations.
CLEARED_PREFIXES = (
    "category:", "product:", "batch:", "provider:", "customer:",
    "po:", "sale:", "payment:", "manager:",
)

SEED_USERS = [
    {"seedId": "m1", "name": "Manager", "email": "manager@example.com", "role": ROLE_MANAGER},
    {"seedId": "m2", "name": "Staff", "email": "staff@example.com", "role": ROLE_STAFF},
]

CATEGORIES = [
    {"id": "c1", "name": "Electronics", "description": "Gadgets and devices", "status": "active"},
    {"id": "c2", "name": "Furniture", "description": "Office and home furniture", "status": "active"},
    {"id": "c3", "name": "Stationery", "description": "Office supplies", "status": "active"},
]

PRODUCTS = [
    {"id": "p1", "categoryId": "c1", "name": "Laptop Pro X", "description": "High performance laptop", "baseUnitPrice": 1200, "status": "active"},
    {"id": "p2", "categoryId": "c1", "name": "Wireless Mouse", "description": "Ergonomic mouse", "baseUnitPrice": 25, "status": "active"},
    {"id": "p3", "categoryId": "c2", "name": "Office Chair", "description": "Mesh back support", "baseUnitPrice": 150, "status": "active"},
    {"id": "p4", "categoryId": "c3", "name": "Premium Notebook", "description": "Hardcover 200 pages", "baseUnitPrice": 12, "status": "active"},
]

STOCK_BATCHES = [
    {"id": "sb1", "productId": "p1", "batchLabel": "BATCH-2023-001", "unitPriceCost": 900, "quantity": 15, "entryDate": "2023-10-15"},
    {"id": "sb2", "productId": "p1", "batchLabel": "BATCH-2024-001", "unitPriceCost": 950, "quantity": 20, "entryDate": "2024-01-10"},
    {"id": "sb3", "productId": "p2", "batchLabel": "BATCH-ACC-001", "unitPriceCost": 10, "quantity": 100, "entryDate": "2023-11-20"},
    {"id": "sb4", "productId": "p3", "batchLabel": "BATCH-FURN-002", "unitPriceCost": 80, "quantity": 5, "entryDate": "2023-12-05"},
]

PROVIDERS = [
    {"id": "pr1", "name": "TechGlobal Supply", "status": "active"},
    {"id": "pr2", "name": "Office Depot Inc", "status": "active"},
    {"id": "pr3", "name": "Stationery World", "status": "active"},
]

CUSTOMERS = [
    {"id": "cust1", "name": "Acme Corp", "email": "contact@acme.com", "status": "active"},
    {"id": "cust2", "name": "Globex Industries", "email": "procurement@globex.com", "status": "active"},
    {"id": "cust3", "name": "John Doe", "email": "john@example.com", "status": "active"},
]

PURCHASE_ORDERS = [
    {"id": "po1", "providerId": "pr1", "managerId": "m1", "initiationDate": "2024-01-15", "finalizationDate": "2024-01-20", "totalAmount": 19000, "paymentStatus": True, "status": "completed"},
    {"id": "po2", "providerId": "pr2", "managerId": "m1", "initiationDate": "2024-02-01", "totalAmount": 4000, "paymentStatus": False, "status": "pending"},
]

SALES = [
    {"id": "s1", "customerId": "cust1", "managerId": "m1", "initiationDate": "2024-02-10", "totalAmount": 2400, "amountPaid": 2400, "status": "completed"},
    {"id": "s2", "customerId": "cust2", "managerId": "m1", "initiationDate": "2024-02-12", "totalAmount": 6000, "amountPaid": 3000, "status": "pending"},
    {"id": "s3", "customerId": "cust3", "managerId": "m2", "initiationDate": "2024-02-14", "totalAmount": 50, "amountPaid": 0, "status": "draft"},
]

PAYMENTS = [
    {"id": "pay1", "referenceId": "po1", "referenceType": "purchase_order", "date": "2024-01-20", "amount": 19000, "managerId": "m1", "status": "completed"},
    {"id": "pay2", "referenceId": "s1", "referenceType": "sale", "date": "2024-02-10", "amount": 2400, "managerId": "m1", "status": "completed"},
    {"id": "pay3", "referenceId": "s2", "referenceType": "sale", "date": "2024-02-12", "amount": 3000, "managerId": "m1", "status": "completed"},
]

SAMPLE_DATA = {
    "category": CATEGORIES,
    "product": PRODUCTS,
    "batch": STOCK_BATCHES,
    "provider": PROVIDERS,
    "customer": CUSTOMERS,
    "po": PURCHASE_ORDERS,
    "sale": SALES,
    "payment": PAYMENTS,
}

# Date that stands in for updatedAt on sample records
_RECORD_DATE_FIELD = {"batch": "entryDate", "po": "initiationDate", "sale": "initiationDate", "payment": "date"}


def is_seeded() -> bool:
    return bool(kv_store.get_value(SEEDED_FLAG_KEY))


def provision_users(password: str) -> dict[str, str]:
    """
    Make sure the sample identities exist.

    Existing accounts (matched by email) get their name and role refreshed and
    keep their password. Returns {seedId: real user id}.
    """
    id_map = {}
    for seed_user in SEED_USERS:
        existing = auth_service.find_user_by_email(seed_user["email"])
        if existing:
            auth_service.update_user(existing.id, name=seed_user["name"], role=seed_user["role"])
            id_map[seed_user["seedId"]] = existing.id
            current_app.logger.info("Seed: updated user %s", seed_user["email"])
            continue

        user = auth_service.create_user(
            name=seed_user["name"],
            email=seed_user["email"],
            password=password,
            role=seed_user["role"],
        )
        id_map[seed_user["seedId"]] = user.id
        current_app.logger.info("Seed: created user %s", seed_user["email"])
    return id_map


def build_sample_entries(id_map: dict[str, str]) -> dict[str, dict]:
    """Key -> record for the whole sample dataset, with seed manager ids remapped."""
    now = to_utc_z(utcnow())
    entries = {}
    for kind, records in SAMPLE_DATA.items():
        prefix = get_policy(kind).prefix
        date_field = _RECORD_DATE_FIELD.get(kind)
        for record in records:
            value = copy.deepcopy(record)
            if "managerId" in value:
                value["managerId"] = id_map.get(value["managerId"], value["managerId"])
            value["version"] = 1
            value["updatedAt"] = value.get(date_field) if date_field and value.get(date_field) else now
            entries[f"{prefix}{value['id']}"] = value
    return entries


def seed_database(*, force: bool = False) -> dict:
    """
    Reset the Entity Store to the sample dataset.

    Args:
        force: Reseed even when the seeded flag is set

    Returns:
        {success, count} with the number of keys written, or
        {success, message} when the store was already seeded
    """
    if is_seeded() and not force:
        return {"success": True, "message": "Already seeded", "count": 0}

    id_map = provision_users(current_app.config["SEED_DEFAULT_PASSWORD"])
    entries = build_sample_entries(id_map)
    entries[SEEDED_FLAG_KEY] = True

    try:
        for prefix in CLEARED_PREFIXES:
            kv_store.delete_by_prefix(prefix, commit=False)
        kv_store.mset(entries, commit=False)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info("Seed: wrote %d keys", len(entries))
    return {"success": True, "count": len(entries)}
