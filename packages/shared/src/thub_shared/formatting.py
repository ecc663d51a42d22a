"""Formatter utilities used across the portal.

Currency amounts are handled with Decimal internally so that cent-level
invariants (like installment splits summing to the total) hold regardless of
binary floating-point representation. Public functions accept and return plain
floats because that is what the API serves.
"""

from __future__ import annotations

import random
import re
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")

CERTIFICATE_PREFIX = "THB"
CERTIFICATE_ID_PATTERN = re.compile(rf"^{CERTIFICATE_PREFIX}-\d{{4}}-\d{{5}}$")

_COURSE_TYPE_LABELS = {
    "multimedia": "Multimedia",
    "accounting": "Accounting",
    "marketing": "Digital Marketing",
    "development": "Web Development",
    "diploma": "Diploma Program",
}


def _to_decimal(amount: float | int | Decimal) -> Decimal:
    if isinstance(amount, Decimal):
        return amount
    # str() keeps the shortest repr, so 0.1 becomes Decimal("0.1"), not its binary expansion
    return Decimal(str(amount))


def format_currency(amount: float | int | Decimal) -> str:
    """Format an amount as US dollars, e.g. 1800 -> "$1,800.00"."""
    value = _to_decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"


def format_date(value: date | datetime | str) -> str:
    """Format a date the en-US medium way, e.g. "Jan 5, 2024".

    Strings are parsed as ISO 8601 (the format the API emits).
    """
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    return f"{value:%b} {value.day}, {value.year}"


def format_duration(weeks: int) -> str:
    return f"{weeks} {'week' if weeks == 1 else 'weeks'}"


def calculate_installments(total_amount: float | int, months: int) -> list[float]:
    """Split a total into monthly installments.

    Every installment but the last is the per-month amount rounded to cents.
    The last one absorbs the cumulative rounding residue, so the installments
    always add up to the total exactly.

    Raises:
        ValueError: months is less than 1.
    """
    if months < 1:
        raise ValueError(f"months must be at least 1, got {months}")

    total = _to_decimal(total_amount)
    installment = _to_decimal(round(total_amount / months, 2))
    amounts = [installment] * (months - 1)
    amounts.append(total - installment * (months - 1))
    return [float(a) for a in amounts]


def course_type_label(course_type: str) -> str:
    """Human label for a course type; unknown types are returned unchanged."""
    return _COURSE_TYPE_LABELS.get(course_type, course_type)


def truncate_text(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


def generate_certificate_id(year: int | None = None) -> str:
    """Generate a certificate id like THB-2024-48213."""
    year = year or datetime.now().year
    return f"{CERTIFICATE_PREFIX}-{year}-{random.randint(10000, 99999)}"


def is_valid_certificate_id(value: str) -> bool:
    return bool(CERTIFICATE_ID_PATTERN.match(value.strip()))
