"""Domain model entities for csvintake.

These are pure data classes describing an import: the raw table read from a
file, the column mappings applied to it, the normalized transactions it
produces, and the duplicate verdicts computed against stored records. None
of them depend on the database schema.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional


class SemanticField(str, Enum):
    """Meaning a CSV column can be mapped to."""

    DATE = "date"
    VENDOR = "vendor"
    AMOUNT = "amount"
    OUTFLOW = "outflow"
    INFLOW = "inflow"
    DESCRIPTION = "description"
    CATEGORY = "category"
    CATEGORY_GROUP = "category_group"
    ACCOUNT = "account"
    IGNORE = "ignore"

    @classmethod
    def coerce(cls, value: "str | SemanticField") -> "SemanticField":
        """Return the member for value, or IGNORE for unknown vocabulary."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.IGNORE


@dataclass(frozen=True)
class RawTable:
    """Header row and data rows of a tokenized CSV file."""

    headers: tuple[str, ...] = ()
    rows: tuple[tuple[str, ...], ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.headers and not self.rows

    @staticmethod
    def cell(row: tuple[str, ...], index: int) -> str:
        """Return a cell, treating cells missing from short rows as empty."""
        if index < 0 or index >= len(row):
            return ""
        return row[index]


@dataclass(frozen=True)
class ColumnMapping:
    """Binding of one CSV header to a semantic field."""

    source_header: str
    field: SemanticField


@dataclass(frozen=True)
class FormatPreset:
    """Known export format with a ready-made column mapping.

    ``vendor_patterns`` pull the payee out of bank-specific narrative text;
    each pattern captures it in a group named ``vendor``.
    """

    id: str
    display_name: str
    description: str
    detect_headers: tuple[str, ...]
    column_mappings: tuple[ColumnMapping, ...]
    supports_multiple_accounts: bool = False
    starting_balance_marker: Optional[str] = None
    date_format: Optional[str] = None
    vendor_patterns: tuple[re.Pattern, ...] = ()


@dataclass(frozen=True)
class MappedTransaction:
    """Normalized transaction candidate produced from one CSV row.

    Amount sign convention: negative means money leaving the account.
    """

    source_row_index: int
    date: date
    vendor: str
    amount: Decimal
    description: str = ""
    category_name: str = ""
    category_group_name: str = ""
    account_name: str = ""
    is_starting_balance: bool = False
    raw_row: tuple[str, ...] = ()


@dataclass(frozen=True)
class RowError:
    """A row that could not be mapped, keyed by its CSV line number."""

    row_index: int
    message: str

    def __str__(self) -> str:
        return f"Row {self.row_index}: {self.message}"


@dataclass(frozen=True)
class MappingResult:
    """Output of the row mapper."""

    transactions: list[MappedTransaction] = field(default_factory=list)
    errors: list[RowError] = field(default_factory=list)


@dataclass(frozen=True)
class ExistingRecord:
    """Read-only snapshot of a stored transaction used for duplicate checks."""

    id: int | str
    date: date
    amount: Decimal
    vendor: str
    description: Optional[str] = None
    account_id: Optional[int | str] = None


@dataclass(frozen=True)
class DuplicateVerdict:
    """Duplicate detection outcome for one candidate."""

    candidate: MappedTransaction
    is_duplicate: bool
    confidence: float
    matched_record: Optional[ExistingRecord] = None
    reason: Optional[str] = None


@dataclass(frozen=True)
class Account:
    """Budget account domain entity."""

    id: int
    name: str
    created_at: datetime


@dataclass(frozen=True)
class Transaction:
    """Stored transaction domain entity."""

    id: int
    account_id: int
    date: date
    vendor: str
    amount: Decimal
    description: Optional[str]
    category_name: Optional[str]
    category_group_name: Optional[str]
    source_account: Optional[str]
    is_starting_balance: bool
    imported_at: datetime
