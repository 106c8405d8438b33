"""Guess column meanings for CSV files that match no known preset."""

import re
from typing import Iterable, Sequence

from csvintake.domain.entities import ColumnMapping, SemanticField
from csvintake.logging_setup import get_logger

logger = get_logger(__name__)

# Checked in order; a header takes the field of the first family it matches.
HEADER_PATTERNS: tuple[tuple[SemanticField, re.Pattern], ...] = (
    (
        SemanticField.DATE,
        re.compile(r"^(date|transaction.?date|posting.?date|value.?date|trans.?date)$"),
    ),
    (
        SemanticField.VENDOR,
        re.compile(
            r"^(payee|vendor|merchant|description|narrative|details|"
            r"transaction.?description|name|reference|particulars)$"
        ),
    ),
    (
        SemanticField.AMOUNT,
        re.compile(r"^(amount|value|sum|total|transaction.?amount)$"),
    ),
    (
        SemanticField.OUTFLOW,
        re.compile(
            r"^(outflow|debit|withdrawal|debit.?amount|money.?out|paid.?out|expenditure)$"
        ),
    ),
    (
        SemanticField.INFLOW,
        re.compile(r"^(inflow|credit|deposit|credit.?amount|money.?in|paid.?in)$"),
    ),
    (
        SemanticField.DESCRIPTION,
        re.compile(r"^(memo|notes?|comment|additional.?info)$"),
    ),
    (
        SemanticField.CATEGORY,
        re.compile(r"^(category|type|transaction.?type)$"),
    ),
    (
        SemanticField.CATEGORY_GROUP,
        re.compile(r"^(category.?group|group)$"),
    ),
    (
        SemanticField.ACCOUNT,
        re.compile(r"^(account|account.?name|account.?number)$"),
    ),
)


def guess_field(header: str) -> SemanticField:
    """Return the semantic field a header name suggests, or IGNORE."""
    lower = header.strip().lower()
    for field, pattern in HEADER_PATTERNS:
        if pattern.match(lower):
            return field
    return SemanticField.IGNORE


def auto_map_headers(headers: Sequence[str]) -> list[ColumnMapping]:
    """Build one column mapping per header from header-name patterns.

    Args:
        headers: Header row of the CSV file

    Returns:
        Mappings in header order; unrecognized headers map to IGNORE
    """
    mappings = [ColumnMapping(source_header=h, field=guess_field(h)) for h in headers]
    logger.debug(
        "Auto-mapped headers: %s",
        ", ".join(f"{m.source_header}={m.field.value}" for m in mappings),
    )
    return mappings


def missing_required_fields(mappings: Iterable[ColumnMapping]) -> list[str]:
    """Report what a mapping set lacks to produce transactions.

    A usable mapping needs a date column, an amount source (a single amount
    column or an outflow/inflow column), and a text source (vendor or
    description).

    Args:
        mappings: Column mappings to check

    Returns:
        Names of the missing requirements, empty when the mapping is usable
    """
    mapped = {m.field for m in mappings}
    missing = []
    if SemanticField.DATE not in mapped:
        missing.append("date")
    if not mapped & {SemanticField.AMOUNT, SemanticField.OUTFLOW, SemanticField.INFLOW}:
        missing.append("amount")
    if not mapped & {SemanticField.VENDOR, SemanticField.DESCRIPTION}:
        missing.append("vendor")
    return missing
