from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any

from .time_utils import today_iso


class ValidationError(ValueError):
    """400-level input problem."""


# Fields the server owns; client values are discarded.
SERVER_FIELDS = ("id", "version", "updatedAt")

ORDER_STATUSES = ("draft", "pending", "completed", "cancelled")
PARTY_STATUSES = ("active", "inactive")
PAYMENT_STATUSES = ("completed", "pending")
PAYMENT_REFERENCE_TYPES = ("sale", "purchase_order")


@dataclass(frozen=True)
class RecordPolicy:
    """
    Central policy layer for one record kind:
    - prefix: Entity Store key prefix ("<kind>:")
    - required: fields that must be present and non-blank on every write
    - amounts: numeric fields that must be >= 0
    - counts: integer fields that must be >= 0
    - choices: enumerated fields -> (allowed values, default)
    - dates: YYYY-MM-DD fields that default to today when absent
    - has_items: record carries an order item list
    """
    kind: str
    prefix: str
    required: tuple[str, ...] = ()
    amounts: tuple[str, ...] = ()
    counts: tuple[str, ...] = ()
    choices: dict[str, tuple[tuple[str, ...], str | None]] = field(default_factory=dict)
    dates: tuple[str, ...] = ()
    has_items: bool = False


POLICIES: dict[str, RecordPolicy] = {
    "category": RecordPolicy(
        kind="category",
        prefix="category:",
        required=("name",),
        choices={"status": (PARTY_STATUSES, "active")},
    ),
    "product": RecordPolicy(
        kind="product",
        prefix="product:",
        required=("name", "categoryId"),
        amounts=("baseUnitPrice",),
        choices={"status": (PARTY_STATUSES, "active")},
    ),
    "batch": RecordPolicy(
        kind="batch",
        prefix="batch:",
        required=("productId",),
        amounts=("unitPriceCost",),
        counts=("quantity",),
        dates=("entryDate",),
    ),
    "provider": RecordPolicy(
        kind="provider",
        prefix="provider:",
        required=("name",),
        choices={"status": (PARTY_STATUSES, "active")},
    ),
    "customer": RecordPolicy(
        kind="customer",
        prefix="customer:",
        required=("name",),
        choices={"status": (PARTY_STATUSES, "active")},
    ),
    "po": RecordPolicy(
        kind="po",
        prefix="po:",
        required=("providerId",),
        amounts=("totalAmount", "amountPaid"),
        choices={"status": (ORDER_STATUSES, "draft")},
        dates=("initiationDate",),
        has_items=True,
    ),
    "sale": RecordPolicy(
        kind="sale",
        prefix="sale:",
        required=("customerId",),
        amounts=("totalAmount", "amountPaid"),
        choices={"status": (ORDER_STATUSES, "draft")},
        dates=("initiationDate",),
        has_items=True,
    ),
    "payment": RecordPolicy(
        kind="payment",
        prefix="payment:",
        required=("referenceId", "referenceType", "amount"),
        amounts=("amount",),
        choices={
            "referenceType": (PAYMENT_REFERENCE_TYPES, None),
            "status": (PAYMENT_STATUSES, "completed"),
        },
        dates=("date",),
    ),
}


def get_policy(kind: str) -> RecordPolicy:
    try:
        return POLICIES[kind]
    except KeyError:
        raise ValueError(f"Unknown record kind: {kind}") from None


def coerce_amount(name: str, value: Any) -> int | float:
    """Non-negative number; numeric strings accepted, booleans rejected."""
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a number")
    if isinstance(value, str):
        stripped = value.strip().replace(" ", "").replace("\u00a0", "").replace("\u202f", "")
        if not stripped:
            raise ValidationError(f"{name} must be a number")
        try:
            value = float(stripped)
        except ValueError:
            raise ValidationError(f"{name} must be a number") from None
    if not isinstance(value, (int, float)):
        raise ValidationError(f"{name} must be a number")
    if value != value or value in (float("inf"), float("-inf")):
        raise ValidationError(f"{name} must be a finite number")
    if value < 0:
        raise ValidationError(f"{name} must be >= 0")
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def coerce_count(name: str, value: Any) -> int:
    """Non-negative integer (stock quantities)."""
    number = coerce_amount(name, value)
    if not isinstance(number, int):
        raise ValidationError(f"{name} must be an integer")
    return number


def coerce_date(name: str, value: Any) -> str:
    if isinstance(value, date):
        return value.isoformat()
    s = str(value).strip()
    try:
        date.fromisoformat(s[:10])
    except ValueError:
        raise ValidationError(f"{name} must be a date (YYYY-MM-DD)") from None
    return s


def normalize_items(raw: Any) -> list[dict]:
    """
    Validate an order item list.

    Each item needs a productId, an integer quantity >= 0 and a unitPrice >= 0.
    Extra keys on an item are kept.
    """
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValidationError("items must be a list")

    items = []
    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{index}] must be an object")
        product_id = item.get("productId")
        if product_id is None or str(product_id).strip() == "":
            raise ValidationError(f"items[{index}].productId is required")
        cleaned = dict(item)
        cleaned["productId"] = str(product_id).strip()
        cleaned["quantity"] = coerce_count(f"items[{index}].quantity", item.get("quantity", 0))
        cleaned["unitPrice"] = coerce_amount(f"items[{index}].unitPrice", item.get("unitPrice", 0))
        items.append(cleaned)
    return items


def normalize_record(kind: str, payload: Any) -> dict:
    """
    Validates + normalizes an incoming record body for kind.

    Records are schemaless documents: unknown fields are stored as sent.
    Known fields are type-checked, enumerations defaulted, dates defaulted
    to today. Server-owned fields are dropped; the caller assigns them.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    policy = get_policy(kind)
    record = {k: v for k, v in payload.items() if k not in SERVER_FIELDS}

    missing = [
        f for f in policy.required
        if record.get(f) is None or (isinstance(record.get(f), str) and not record[f].strip())
    ]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    for name in policy.required:
        if isinstance(record[name], str):
            record[name] = record[name].strip()

    for name in policy.amounts:
        if record.get(name) is not None:
            record[name] = coerce_amount(name, record[name])

    for name in policy.counts:
        if record.get(name) is not None:
            record[name] = coerce_count(name, record[name])

    for name, (allowed, default) in policy.choices.items():
        value = record.get(name)
        if value is None or value == "":
            if default is not None:
                record[name] = default
            continue
        if value not in allowed:
            raise ValidationError(f"{name} must be one of: {', '.join(allowed)}")

    for name in policy.dates:
        value = record.get(name)
        if value is None or value == "":
            record[name] = today_iso()
        else:
            record[name] = coerce_date(name, value)

    if policy.has_items:
        record["items"] = normalize_items(record.get("items"))

    return record
