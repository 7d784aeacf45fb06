# Overview: Service-layer operations for the Entity Store; encapsulates the key-value table.

"""
Entity Store

Prefix-keyed key-value persistence for every domain record. Keys follow
"<type>:<id>"; values are JSON documents. The store knows nothing about the
record kinds it holds: validation and id assignment live in record_service.

TRANSACTIONS: every write helper takes commit=True. Callers that group
several writes (order completion and its stock batches, seeding) pass
commit=False and commit once, so the group is atomic.

CONCURRENCY: each entry carries a version that increments on every write.
compare_and_set() only writes when the caller saw the current version.
Rows read for a conditional write are locked FOR UPDATE where the database
supports it (SQLite ignores the clause).
"""

from __future__ import annotations

import copy
from typing import Any, Iterable

from ..extensions import db
from ..models import KVEntry
from ..time_utils import utcnow


class StaleEntryError(Exception):
    """Raised when a conditional write targets an outdated version."""

    def __init__(self, key: str, expected: int | None, actual: int | None):
        self.key = key
        self.expected = expected
        self.actual = actual
        super().__init__(f"{key}: expected version {expected}, stored version {actual}")


def _prefix_query(prefix: str):
    return db.session.query(KVEntry).filter(KVEntry.key.startswith(prefix, autoescape=True))


def get_entry(key: str, *, for_update: bool = False) -> KVEntry | None:
    query = db.session.query(KVEntry).filter(KVEntry.key == key)
    if for_update:
        query = query.with_for_update()
    return query.first()


def get_value(key: str) -> Any | None:
    """Return a copy of the stored value, or None when the key is absent."""
    entry = get_entry(key)
    if entry is None:
        return None
    return copy.deepcopy(entry.value)


def mget(keys: Iterable[str]) -> list[Any | None]:
    """Values for keys, in order; None for absent keys."""
    keys = list(keys)
    if not keys:
        return []
    entries = db.session.query(KVEntry).filter(KVEntry.key.in_(keys)).all()
    by_key = {e.key: e.value for e in entries}
    return [copy.deepcopy(by_key.get(k)) for k in keys]


def _write(entry: KVEntry | None, key: str, value: Any) -> KVEntry:
    now = utcnow()
    if entry is None:
        entry = KVEntry(key=key, value=copy.deepcopy(value), version=1, updated_at=now)
        db.session.add(entry)
    else:
        # Reassign (not mutate) so the JSON column is flagged dirty
        entry.value = copy.deepcopy(value)
        entry.version = (entry.version or 0) + 1
        entry.updated_at = now
    return entry


def set_value(key: str, value: Any, *, commit: bool = True) -> KVEntry:
    """Insert or overwrite key unconditionally."""
    entry = _write(get_entry(key, for_update=True), key, value)
    db.session.flush()
    if commit:
        db.session.commit()
    return entry


def compare_and_set(key: str, value: Any, expected_version: int | None, *, commit: bool = True) -> KVEntry:
    """
    Write key only if its stored version equals expected_version.

    expected_version=None means "the key must not exist yet".

    Raises:
        StaleEntryError: if the stored version differs
    """
    entry = get_entry(key, for_update=True)
    actual = entry.version if entry is not None else None
    if actual != expected_version:
        raise StaleEntryError(key, expected_version, actual)
    entry = _write(entry, key, value)
    db.session.flush()
    if commit:
        db.session.commit()
    return entry


def mset(items: dict[str, Any], *, commit: bool = True) -> int:
    """Write several keys at once. Returns the number of keys written."""
    if not items:
        return 0
    existing = {
        e.key: e
        for e in db.session.query(KVEntry).filter(KVEntry.key.in_(list(items))).with_for_update().all()
    }
    for key, value in items.items():
        _write(existing.get(key), key, value)
    db.session.flush()
    if commit:
        db.session.commit()
    return len(items)


def delete_value(key: str, *, commit: bool = True) -> bool:
    """Remove key. Returns False if it did not exist."""
    deleted = db.session.query(KVEntry).filter(KVEntry.key == key).delete(synchronize_session="fetch")
    if commit:
        db.session.commit()
    return bool(deleted)


def mdel(keys: Iterable[str], *, commit: bool = True) -> int:
    keys = list(keys)
    if not keys:
        return 0
    deleted = db.session.query(KVEntry).filter(KVEntry.key.in_(keys)).delete(synchronize_session="fetch")
    if commit:
        db.session.commit()
    return deleted


def get_by_prefix(prefix: str, *, for_update: bool = False) -> list[Any]:
    """All values whose key starts with prefix, ordered by key."""
    query = _prefix_query(prefix).order_by(KVEntry.key)
    if for_update:
        query = query.with_for_update()
    entries = query.all()
    return [copy.deepcopy(e.value) for e in entries]


def count_by_prefix(prefix: str) -> int:
    return _prefix_query(prefix).count()


def delete_by_prefix(prefix: str, *, commit: bool = True) -> int:
    """Remove every key starting with prefix. Returns the number removed."""
    deleted = _prefix_query(prefix).delete(synchronize_session="fetch")
    if commit:
        db.session.commit()
    return deleted
