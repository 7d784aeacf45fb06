"""
Display formatting for amounts and dates.

Amounts are whole FCFA: no decimals, French-style grouping with a
non-breaking space as thousand separator.
"""

from __future__ import annotations

import math
import re
from typing import Any

# Thousand separator (non-breaking space) for French-style amounts
THOUSAND_SEP = "\u00a0"
# fr-FR locale grouping (narrow no-break space), used in amount inputs
INPUT_THOUSAND_SEP = "\u202f"
CURRENCY = "FCFA"

_DATE_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}")
_NON_DIGITS = re.compile(r"\D")


def _to_number(amount: Any) -> float:
    if isinstance(amount, bool):
        return float(amount)
    if isinstance(amount, (int, float)):
        return float(amount)
    try:
        value = float(str(amount).strip() or 0)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(value) or math.isinf(value):
        return 0.0
    return value


def group_thousands(integer: int, sep: str = THOUSAND_SEP) -> str:
    return f"{integer:,}".replace(",", sep)


def format_currency(amount: Any) -> str:
    """
    format_currency(1234567) -> "1 234 567 FCFA" (non-breaking spaces).

    Uses the integer part of the absolute value; unparseable input is 0.
    """
    value = _to_number(amount)
    if math.isnan(value) or math.isinf(value):
        value = 0.0
    integer = int(math.floor(abs(value)))
    return f"{group_thousands(integer)} {CURRENCY}"


def format_date_for_display(value: str | None) -> str:
    """Stored date (ISO or YYYY-MM-DD) -> YYYY-MM-DD. Non-date strings are returned as-is."""
    if not value:
        return ""
    s = str(value).strip()
    if len(s) >= 10 and _DATE_PREFIX.match(s):
        return s[:10]
    return s


def parse_amount_to_integer(input_value: Any) -> str:
    """User input -> integer string of digits only ("0" when empty)."""
    digits = _NON_DIGITS.sub("", str(input_value or ""))
    if digits == "":
        return "0"
    return digits.lstrip("0") or "0"


def format_amount_for_input(value: Any) -> str:
    """Integer amount for an input field: digits only, fr-FR grouping, no decimals."""
    return group_thousands(int(parse_amount_to_integer(value)), INPUT_THOUSAND_SEP)
