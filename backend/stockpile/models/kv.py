from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class KVEntry(db.Model):
    """
    One document of the Entity Store.

    Keys are "<type>:<id>" (e.g. "product:p1", "po:8b4b40bb-..."); values are
    flat JSON documents. Scans are prefix scans over the key, so the primary
    key index is the only index the store needs.

    version increments on every write and backs conditional updates.
    """
    __tablename__ = "kv_store"

    key = db.Column(db.String(255), primary_key=True)
    value = db.Column(db.JSON, nullable=False)
    version = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "value": self.value,
            "version": self.version,
            "updated_at": to_utc_z(self.updated_at),
        }
