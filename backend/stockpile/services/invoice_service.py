# Overview: Service-layer operations for invoices; file naming and invoice document data.

"""
Invoice Service

Builds what an invoice shows (lines, totals, balance) and what the file is
called. Rendering the PDF itself is left to the client.

FILE NAMES:
    odicam_facture_vente_[CLIENT]_[REF8]_[DATE].pdf
    odicam_facture_achat_[FOURNISSEUR]_[REF8]_[DATE].pdf

REF8 is the first 8 characters of the record id, uppercased. DATE is the
initiation date as YYYY-MM-DD ("sans-date" when missing).
"""

from __future__ import annotations

import re
import unicodedata
from typing import Callable

from . import record_service
from ..formatters import format_currency, format_date_for_display


SALE_PREFIX = "odicam_facture_vente"
PURCHASE_PREFIX = "odicam_facture_achat"
FALLBACK_NAME = "Facture"
UNKNOWN = "Inconnu"

_SEPARATORS = re.compile(r"""[\s.,;:'"()\[\]]+""")
_DISALLOWED = re.compile(r"[^A-Za-z0-9_-]")
_UNDERSCORES = re.compile(r"_+")


def sanitize_for_filename(value: str | None, max_len: int = 40) -> str:
    """Keep ASCII letters, digits, '-' and '_'; separators become '_'."""
    decomposed = unicodedata.normalize("NFD", str(value or ""))
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    cleaned = _SEPARATORS.sub("_", stripped)
    cleaned = _DISALLOWED.sub("", cleaned)
    cleaned = _UNDERSCORES.sub("_", cleaned).strip("_")
    cleaned = cleaned[:max_len]
    return cleaned or FALLBACK_NAME


def reference(record_id: str) -> str:
    return str(record_id or "")[:8].upper()


def _filename(prefix: str, party: str, record: dict) -> str:
    date = format_date_for_display(record.get("initiationDate")) or "sans-date"
    return f"{prefix}_{sanitize_for_filename(party)}_{reference(record.get('id'))}_{date}.pdf"


def sale_invoice_filename(sale: dict, customer_name: Callable[[str], str]) -> str:
    return _filename(SALE_PREFIX, customer_name(sale.get("customerId")), sale)


def purchase_invoice_filename(order: dict, provider_name: Callable[[str], str]) -> str:
    return _filename(PURCHASE_PREFIX, provider_name(order.get("providerId")), order)


def name_resolver(kind: str) -> Callable[[str], str]:
    """Look up display names for kind from the Entity Store, "Inconnu" when absent."""
    names = {r.get("id"): r.get("name") for r in record_service.list_records(kind)}

    def resolve(record_id: str) -> str:
        return names.get(record_id) or UNKNOWN

    return resolve


def build_invoice(kind: str, record: dict) -> dict:
    """
    Invoice document data for a sale or a purchase order.

    Args:
        kind: "sale" or "po"
        record: The stored record

    Returns:
        dict with filename, party, lines, totals and formatted amounts
    """
    product_name = name_resolver("product")
    if kind == "sale":
        party_name = name_resolver("customer")(record.get("customerId"))
        filename = sale_invoice_filename(record, lambda _id: party_name)
        nature = "vente"
    else:
        party_name = name_resolver("provider")(record.get("providerId"))
        filename = purchase_invoice_filename(record, lambda _id: party_name)
        nature = "achat"

    lines = []
    for item in record.get("items") or []:
        line_total = item.get("quantity", 0) * item.get("unitPrice", 0)
        lines.append({
            "productId": item.get("productId"),
            "product": product_name(item.get("productId")),
            "quantity": item.get("quantity", 0),
            "unitPrice": item.get("unitPrice", 0),
            "lineTotal": line_total,
            "unitPriceFormatted": format_currency(item.get("unitPrice", 0)),
            "lineTotalFormatted": format_currency(line_total),
        })

    total = record.get("totalAmount") or 0
    paid = record.get("amountPaid") or 0
    remaining = max(total - paid, 0)

    return {
        "filename": filename,
        "nature": nature,
        "reference": reference(record.get("id")),
        "date": format_date_for_display(record.get("initiationDate")),
        "party": party_name,
        "lines": lines,
        "total": total,
        "amountPaid": paid,
        "remaining": remaining,
        "totalFormatted": format_currency(total),
        "amountPaidFormatted": format_currency(paid),
        "remainingFormatted": format_currency(remaining),
    }
