"""Turn raw CSV rows into normalized transaction candidates."""

import re
from decimal import Decimal
from typing import Optional, Sequence

from csvintake.domain import errors
from csvintake.domain.entities import (
    ColumnMapping,
    MappedTransaction,
    MappingResult,
    RawTable,
    RowError,
    SemanticField,
)
from csvintake.domain.presets import clean_vendor
from csvintake.logging_setup import get_logger
from csvintake.utils.amount_parser import normalize_amount
from csvintake.utils.date_parser import AUTO, normalize_date, parse_canonical_date

logger = get_logger(__name__)

# Rows are reported with 1-based line numbers counting the header row.
FIRST_DATA_ROW = 2


class FieldIndex:
    """Column index for each semantic field, built once per mapping set.

    When several headers map to the same field the first one wins. Headers are
    compared trimmed and case-insensitively. IGNORE is never indexed.
    """

    def __init__(self, headers: Sequence[str], mappings: Sequence[ColumnMapping]):
        positions: dict[str, int] = {}
        for idx, header in enumerate(headers):
            positions.setdefault(header.strip().lower(), idx)

        self._index: dict[SemanticField, Optional[int]] = dict.fromkeys(SemanticField)
        for mapping in mappings:
            field = SemanticField.coerce(mapping.field)
            if field is SemanticField.IGNORE or self._index[field] is not None:
                continue
            position = positions.get(mapping.source_header.strip().lower())
            if position is not None:
                self._index[field] = position

    def column(self, field: SemanticField) -> Optional[int]:
        """Return the column bound to field, or None."""
        return self._index[field]

    def has(self, field: SemanticField) -> bool:
        return self._index[field] is not None

    def read(self, row: Sequence[str], field: SemanticField) -> str:
        """Return the trimmed cell for field, or an empty string."""
        idx = self._index[field]
        if idx is None:
            return ""
        return RawTable.cell(tuple(row), idx).strip()


def _parse_split_amount(outflow_str: str, inflow_str: str) -> tuple[Optional[Decimal], Optional[str]]:
    outflow = Decimal(0)
    inflow = Decimal(0)
    if outflow_str:
        parsed = normalize_amount(outflow_str)
        if parsed is None:
            return None, errors.invalid_amount(outflow_str)
        outflow = parsed
    if inflow_str:
        parsed = normalize_amount(inflow_str)
        if parsed is None:
            return None, errors.invalid_amount(inflow_str)
        inflow = parsed
    return inflow - outflow, None


def map_row(
    row: Sequence[str],
    row_index: int,
    index: FieldIndex,
    starting_balance_marker: Optional[str] = None,
    date_format: str = AUTO,
    vendor_patterns: Sequence[re.Pattern] = (),
) -> MappedTransaction | RowError:
    """Map a single raw row.

    Args:
        row: Raw cells
        row_index: Line number reported for this row
        index: Field index for the mapping set
        starting_balance_marker: Vendor value that marks an opening balance
        date_format: Date component order hint
        vendor_patterns: Patterns that extract the payee from the vendor text

    Returns:
        The mapped transaction, or a RowError describing why it was skipped
    """
    date_str = index.read(row, SemanticField.DATE)
    vendor = index.read(row, SemanticField.VENDOR)
    amount_str = index.read(row, SemanticField.AMOUNT)
    outflow_str = index.read(row, SemanticField.OUTFLOW)
    inflow_str = index.read(row, SemanticField.INFLOW)
    description = index.read(row, SemanticField.DESCRIPTION)

    canonical_date = normalize_date(date_str, date_format)
    if canonical_date is None:
        return RowError(row_index, errors.invalid_date(date_str))

    if amount_str:
        amount = normalize_amount(amount_str)
        if amount is None:
            return RowError(row_index, errors.invalid_amount(amount_str))
    elif outflow_str or inflow_str:
        amount, message = _parse_split_amount(outflow_str, inflow_str)
        if message is not None:
            return RowError(row_index, message)
    else:
        return RowError(row_index, errors.NO_AMOUNT_FOUND)

    if not vendor and not description:
        return RowError(row_index, errors.NO_VENDOR_OR_DESCRIPTION)

    is_starting_balance = bool(starting_balance_marker) and (
        vendor.lower() == starting_balance_marker.strip().lower()
    )
    if vendor and vendor_patterns:
        cleaned = clean_vendor(vendor, vendor_patterns)
        if cleaned != vendor:
            # Keep the bank narrative when no description column is mapped.
            description = description or vendor
            vendor = cleaned

    return MappedTransaction(
        source_row_index=row_index,
        date=parse_canonical_date(canonical_date),
        vendor=vendor or description,
        amount=amount,
        description=description,
        category_name=index.read(row, SemanticField.CATEGORY),
        category_group_name=index.read(row, SemanticField.CATEGORY_GROUP),
        account_name=index.read(row, SemanticField.ACCOUNT),
        is_starting_balance=is_starting_balance,
        raw_row=tuple(row),
    )


def apply_mappings(
    headers: Sequence[str],
    rows: Sequence[Sequence[str]],
    mappings: Sequence[ColumnMapping],
    *,
    starting_balance_marker: Optional[str] = None,
    date_format: str = AUTO,
    vendor_patterns: Sequence[re.Pattern] = (),
) -> MappingResult:
    """Apply column mappings to raw rows.

    Rows that fail to map are reported in ``errors`` and left out of
    ``transactions``; the rest of the batch is still mapped. Entirely empty
    rows are skipped silently.

    Args:
        headers: Header row
        rows: Data rows
        mappings: Column mappings, one per header
        starting_balance_marker: Vendor value (case-insensitive) that flags a
            row as an opening balance
        date_format: Date component order hint passed to normalize_date
        vendor_patterns: Per-format payee extraction patterns, see clean_vendor

    Returns:
        MappingResult with transactions and row errors in input order
    """
    index = FieldIndex(headers, mappings)
    transactions: list[MappedTransaction] = []
    row_errors: list[RowError] = []

    for offset, row in enumerate(rows):
        if all(not cell.strip() for cell in row):
            continue
        row_index = offset + FIRST_DATA_ROW
        mapped = map_row(
            row, row_index, index, starting_balance_marker, date_format, vendor_patterns
        )
        if isinstance(mapped, RowError):
            logger.debug("Skipping row %d: %s", row_index, mapped.message)
            row_errors.append(mapped)
        else:
            transactions.append(mapped)

    return MappingResult(transactions=transactions, errors=row_errors)
