"""Amount normalization utilities."""

import re
from decimal import Decimal, InvalidOperation
from typing import Optional

_CURRENCY_AND_SPACE = re.compile(r"[£$€¥₹\s]")
_EUROPEAN_DECIMAL = re.compile(r",\d{2}$")


def normalize_amount(raw: Optional[str]) -> Optional[Decimal]:
    """Normalize an amount string into a signed Decimal.

    Handles various formats:
    - "123.45", "-123.45"
    - "£123.45", "-$123.45", "€ 1 234.56"
    - "1,234.56" (comma thousands separator)
    - "1.234,56", "100,50" (European: trailing comma and two digits)
    - "(123.45)", "($123.45)" (negative in parentheses)

    A leading minus and parentheses both mean negative; having both is
    still negative.

    Args:
        raw: Raw amount string

    Returns:
        Decimal amount, or None if the value is empty or not numeric
    """
    if raw is None:
        return None
    cleaned = raw.strip()
    if not cleaned:
        return None

    is_parenthesized = cleaned.startswith("(") and cleaned.endswith(")")
    if is_parenthesized:
        cleaned = cleaned[1:-1]

    cleaned = _CURRENCY_AND_SPACE.sub("", cleaned)

    is_negative = is_parenthesized or cleaned.startswith("-")
    if cleaned.startswith("-"):
        cleaned = cleaned[1:]

    if _EUROPEAN_DECIMAL.search(cleaned):
        whole, _, cents = cleaned.replace(".", "").rpartition(",")
        cleaned = whole.replace(",", "") + "." + cents
    else:
        cleaned = cleaned.replace(",", "")

    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None

    return -amount if is_negative else amount
