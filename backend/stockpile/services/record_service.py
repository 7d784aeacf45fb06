# Overview: Service-layer operations for domain records; encapsulates validation and Entity Store writes.

"""
Record Service

One CRUD surface for every record kind (category, product, batch, provider,
customer, po, sale, payment). Records are validated by the kind's policy,
stamped with server-owned fields and written to the Entity Store under
"<kind>:<id>".

SERVER-OWNED FIELDS:
- id: kept when the client sends one, otherwise a UUID4
- version: 1 on create, +1 on every replace
- updatedAt: ISO-8601 UTC of the last write

CONCURRENCY: replace is a full-record overwrite. When the caller supplies
the version it last read, the write is conditional and a mismatch raises
RecordConflictError instead of silently overwriting someone else's edit.
"""

from __future__ import annotations

import uuid
from typing import Any

from . import kv_store
from .kv_store import StaleEntryError
from ..validation import ValidationError, get_policy, normalize_record
from ..time_utils import to_utc_z, utcnow


# Kinds attributed to the user who created them
ATTRIBUTED_KINDS = {"po", "sale", "payment"}


class RecordNotFoundError(Exception):
    """Raised when a record is not found."""
    pass


class RecordConflictError(Exception):
    """Raised when a conditional replace targets an outdated version."""

    def __init__(self, message: str, *, expected: int | None = None, actual: int | None = None):
        super().__init__(message)
        self.details = {"expectedVersion": expected, "currentVersion": actual}


def new_record_id() -> str:
    return str(uuid.uuid4())


def record_key(kind: str, record_id: str) -> str:
    return f"{get_policy(kind).prefix}{record_id}"


def parse_version(value: Any) -> int | None:
    """
    Parse a client-supplied version from a body field or an If-Match header.

    Accepts 3, "3", '"3"' and 'W/"3"'. None / "" / "*" mean unconditional.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    s = str(value).strip()
    if s.startswith("W/"):
        s = s[2:]
    s = s.strip('"')
    if s in ("", "*"):
        return None
    try:
        return int(s)
    except ValueError:
        raise ValidationError("version must be an integer") from None


def list_records(kind: str) -> list[dict]:
    return kv_store.get_by_prefix(get_policy(kind).prefix)


def find_record(kind: str, record_id: str) -> dict | None:
    if not record_id:
        return None
    return kv_store.get_value(record_key(kind, record_id))


def get_record(kind: str, record_id: str) -> dict:
    record = find_record(kind, record_id)
    if record is None:
        raise RecordNotFoundError(f"{kind} {record_id} not found")
    return record


def record_exists(kind: str, record_id: str) -> bool:
    if not record_id:
        return False
    return kv_store.get_entry(record_key(kind, record_id)) is not None


def save_record(
    kind: str,
    payload: Any,
    *,
    record_id: str | None = None,
    expected_version: int | None = None,
    user_id: str | None = None,
    normalized: bool = False,
    commit: bool = True,
) -> dict:
    """
    Create or fully replace a record.

    Args:
        kind: Record kind (see validation.POLICIES)
        payload: Client body
        record_id: Id from the URL; falls back to payload["id"], then a new UUID
        expected_version: Version the client last read (None = unconditional)
        user_id: Authenticated user, default managerId for attributed kinds
        normalized: payload already went through normalize_record
        commit: False to leave the write in the caller's transaction

    Returns:
        The stored record

    Raises:
        ValidationError: invalid body
        RecordConflictError: expected_version does not match the stored one
    """
    record = dict(payload) if normalized else normalize_record(kind, payload)

    if not record_id:
        raw_id = payload.get("id") if isinstance(payload, dict) else None
        record_id = str(raw_id).strip() if raw_id not in (None, "") else ""
    record_id = str(record_id).strip() or new_record_id()

    key = record_key(kind, record_id)
    entry = kv_store.get_entry(key, for_update=True)
    stored_version = entry.version if entry is not None else None

    if expected_version is not None and expected_version != stored_version:
        raise RecordConflictError(
            f"{kind} {record_id} was modified by someone else",
            expected=expected_version,
            actual=stored_version,
        )

    if kind in ATTRIBUTED_KINDS and not record.get("managerId"):
        stored_manager = entry.value.get("managerId") if entry is not None else None
        if stored_manager or user_id:
            record["managerId"] = stored_manager or user_id

    record["id"] = record_id
    record["version"] = (stored_version or 0) + 1
    record["updatedAt"] = to_utc_z(utcnow())

    try:
        kv_store.compare_and_set(key, record, stored_version, commit=commit)
    except StaleEntryError as e:
        raise RecordConflictError(
            f"{kind} {record_id} was modified by someone else",
            expected=e.expected,
            actual=e.actual,
        ) from e
    return record


def delete_record(kind: str, record_id: str, *, commit: bool = True) -> bool:
    """Remove a record. Returns False when there was nothing to delete."""
    return kv_store.delete_value(record_key(kind, record_id), commit=commit)
