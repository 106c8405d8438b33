"""Date normalization utilities."""

import re
from datetime import date, datetime
from typing import Iterable, Optional

from dateutil import parser as date_parser

AUTO = "auto"
ISO = "YYYY-MM-DD"
DAY_FIRST = "DD/MM/YYYY"
MONTH_FIRST = "MM/DD/YYYY"
DATE_FORMATS = (AUTO, ISO, DAY_FIRST, MONTH_FIRST)

_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_SLASHED_ISO_DATE = re.compile(r"^(\d{4})/(\d{2})/(\d{2})$")
_NUMERIC_DATE = re.compile(r"^(\d{1,2})[/.-](\d{1,2})[/.-](\d{4})$")

MIN_YEAR = 1900
MAX_YEAR = 2100

# Year-less strings parse into year 1, which falls outside MIN_YEAR.
_FALLBACK_DEFAULT = datetime(1, 1, 1)


def _format_ymd(year: int, month: int, day: int) -> Optional[str]:
    if not MIN_YEAR <= year <= MAX_YEAR:
        return None
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def _resolve_numeric(first: int, second: int, year: int, date_format: str) -> Optional[str]:
    if date_format == MONTH_FIRST:
        return _format_ymd(year, first, second)
    if date_format == DAY_FIRST:
        return _format_ymd(year, second, first)
    if first > 12:
        return _format_ymd(year, second, first)
    if second > 12:
        return _format_ymd(year, first, second)
    # Ambiguous, day first
    return _format_ymd(year, second, first)


def normalize_date(raw: Optional[str], date_format: str = AUTO) -> Optional[str]:
    """Normalize a raw date string to YYYY-MM-DD.

    Supports:
    - "2024-01-15" (returned unchanged)
    - "2024/01/15"
    - "15/01/2024", "15-01-2024", "15.01.2024" (day first)
    - "01/13/2024" (month first when the second number exceeds 12)
    - anything python-dateutil understands, e.g. "5 Feb 2024"

    When both leading numbers are 12 or less the date is read day first,
    unless date_format says otherwise.

    Args:
        raw: Raw date string
        date_format: One of "auto", "YYYY-MM-DD", "DD/MM/YYYY", "MM/DD/YYYY"

    Returns:
        Canonical date string, or None if the value is empty or not a date
    """
    if raw is None:
        return None
    cleaned = raw.strip()
    if not cleaned:
        return None

    match = _ISO_DATE.match(cleaned)
    if match:
        year, month, day = (int(part) for part in match.groups())
        return cleaned if _format_ymd(year, month, day) else None

    match = _SLASHED_ISO_DATE.match(cleaned)
    if match:
        year, month, day = (int(part) for part in match.groups())
        return _format_ymd(year, month, day)

    match = _NUMERIC_DATE.match(cleaned)
    if match:
        first, second, year = (int(part) for part in match.groups())
        resolved = _resolve_numeric(first, second, year, date_format)
        if resolved is not None or date_format == AUTO:
            return resolved
        # The hint did not fit this value
        return _resolve_numeric(first, second, year, AUTO)

    try:
        parsed = date_parser.parse(
            cleaned,
            default=_FALLBACK_DEFAULT,
            dayfirst=date_format != MONTH_FIRST,
        )
    except (ValueError, OverflowError):
        return None
    return _format_ymd(parsed.year, parsed.month, parsed.day)


def parse_canonical_date(value: str) -> date:
    """Convert a canonical YYYY-MM-DD string into a date."""
    return date.fromisoformat(value)


def detect_date_format(samples: Iterable[str], limit: int = 20) -> str:
    """Detect the component order used by a column of dates.

    Args:
        samples: Raw date strings from one column
        limit: Maximum number of non-empty samples to inspect

    Returns:
        "YYYY-MM-DD", "DD/MM/YYYY", "MM/DD/YYYY", or "auto" when the samples
        are mixed or not numeric. All-ambiguous numeric columns are reported
        as "DD/MM/YYYY".
    """
    cleaned = []
    for sample in samples:
        value = sample.strip()
        if value:
            cleaned.append(value)
        if len(cleaned) >= limit:
            break
    if not cleaned:
        return AUTO

    if all(re.match(r"^\d{4}-\d{1,2}-\d{1,2}$", value) for value in cleaned):
        return ISO

    matches = [_NUMERIC_DATE.match(value) for value in cleaned]
    if not all(matches):
        return AUTO

    if any(int(m.group(1)) > 12 for m in matches):
        return DAY_FIRST
    if any(int(m.group(2)) > 12 for m in matches):
        return MONTH_FIRST
    return DAY_FIRST
