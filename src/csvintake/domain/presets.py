"""Registry of known CSV export formats.

To support a new bank or budgeting app, append a FormatPreset to
FORMAT_PRESETS. Order matters: the first preset whose detect headers are all
present wins.
"""

import re
from typing import Optional, Sequence

from csvintake.domain.entities import ColumnMapping, FormatPreset, SemanticField as F
from csvintake.logging_setup import get_logger

logger = get_logger(__name__)


def _mappings(*pairs: tuple[str, F]) -> tuple[ColumnMapping, ...]:
    return tuple(ColumnMapping(source_header=header, field=field) for header, field in pairs)


YNAB = FormatPreset(
    id="ynab",
    display_name="YNAB (You Need A Budget)",
    description="Export from YNAB. Supports multiple accounts, categories, and groups.",
    detect_headers=(
        "Account",
        "Flag",
        "Date",
        "Payee",
        "Category Group/Category",
        "Category Group",
        "Category",
        "Memo",
        "Outflow",
        "Inflow",
        "Cleared",
    ),
    column_mappings=_mappings(
        ("Account", F.ACCOUNT),
        ("Flag", F.IGNORE),
        ("Date", F.DATE),
        ("Payee", F.VENDOR),
        ("Category Group/Category", F.IGNORE),
        ("Category Group", F.CATEGORY_GROUP),
        ("Category", F.CATEGORY),
        ("Memo", F.DESCRIPTION),
        ("Outflow", F.OUTFLOW),
        ("Inflow", F.INFLOW),
        ("Cleared", F.IGNORE),
    ),
    supports_multiple_accounts=True,
    starting_balance_marker="Starting Balance",
)

GENERIC_BANK = FormatPreset(
    id="generic-bank",
    display_name="Generic Bank Export",
    description="Common bank CSV with Date, Description, Amount columns.",
    detect_headers=("Date", "Description", "Amount"),
    column_mappings=_mappings(
        ("Date", F.DATE),
        ("Description", F.VENDOR),
        ("Amount", F.AMOUNT),
    ),
)

GENERIC_BANK_DEBIT_CREDIT = FormatPreset(
    id="generic-bank-debit-credit",
    display_name="Generic Bank (Debit/Credit)",
    description="Bank CSV with separate Debit and Credit columns.",
    detect_headers=("Date", "Description", "Debit", "Credit"),
    column_mappings=_mappings(
        ("Date", F.DATE),
        ("Description", F.VENDOR),
        ("Debit", F.OUTFLOW),
        ("Credit", F.INFLOW),
    ),
)

STARLING = FormatPreset(
    id="starling-bank",
    display_name="Starling Bank",
    description="Starling Bank export with counter party and spending category.",
    detect_headers=(
        "Date",
        "Counter Party",
        "Reference",
        "Type",
        "Amount (GBP)",
        "Balance (GBP)",
        "Spending Category",
        "Notes",
    ),
    column_mappings=_mappings(
        ("Date", F.DATE),
        ("Counter Party", F.VENDOR),
        ("Reference", F.IGNORE),
        ("Type", F.IGNORE),
        ("Amount (GBP)", F.AMOUNT),
        ("Balance (GBP)", F.IGNORE),
        ("Spending Category", F.CATEGORY),
        ("Notes", F.DESCRIPTION),
    ),
    date_format="DD/MM/YYYY",
)

NATIONWIDE = FormatPreset(
    id="nationwide",
    display_name="Nationwide Building Society",
    description="Nationwide current account statement with Paid out / Paid in columns.",
    detect_headers=("Date", "Transaction type", "Description", "Paid out", "Paid in", "Balance"),
    column_mappings=_mappings(
        ("Date", F.DATE),
        ("Transaction type", F.IGNORE),
        ("Description", F.VENDOR),
        ("Paid out", F.OUTFLOW),
        ("Paid in", F.INFLOW),
        ("Balance", F.IGNORE),
    ),
    vendor_patterns=(
        re.compile(r"Contactless Payment\s+(?P<vendor>.+?)\s+(?:GB|UK|[A-Z]{2})\s"),
        re.compile(r"Payment to\s*(?P<vendor>.*)"),
        re.compile(r"Direct Debit.*?(?P<vendor>[A-Z\s]+)$"),
        re.compile(r"Bank credit\s*(?P<vendor>.*)"),
        re.compile(r"Transfer from\s*(?P<vendor>.*)"),
    ),
)

NATWEST = FormatPreset(
    id="natwest",
    display_name="NatWest",
    description="NatWest statement download with a signed Value column.",
    detect_headers=("Date", "Type", "Description", "Value", "Balance", "Account Name"),
    column_mappings=_mappings(
        ("Date", F.DATE),
        ("Type", F.IGNORE),
        ("Description", F.VENDOR),
        ("Value", F.AMOUNT),
        ("Balance", F.IGNORE),
        ("Account Name", F.ACCOUNT),
    ),
    date_format="DD/MM/YYYY",
)

CHASE_UK = FormatPreset(
    id="chase-uk",
    display_name="Chase UK",
    description="Chase UK export with Transaction date and signed Amount.",
    detect_headers=("Transaction date", "Description", "Amount"),
    column_mappings=_mappings(
        ("Transaction date", F.DATE),
        ("Description", F.VENDOR),
        ("Amount", F.AMOUNT),
    ),
)

FORMAT_PRESETS: tuple[FormatPreset, ...] = (
    YNAB,
    GENERIC_BANK,
    GENERIC_BANK_DEBIT_CREDIT,
    STARLING,
    NATIONWIDE,
    NATWEST,
    CHASE_UK,
)


def _normalize_header(header: str) -> str:
    return header.strip().lower()


def detect_format(
    headers: Sequence[str], presets: Sequence[FormatPreset] = FORMAT_PRESETS
) -> Optional[FormatPreset]:
    """Find the first preset whose detect headers are all present.

    Matching is case-insensitive and ignores header order. Extra headers in
    the file do not prevent a match.

    Args:
        headers: Header row of the CSV file
        presets: Registry to search, in priority order

    Returns:
        Matching preset, or None if no preset matches
    """
    available = {_normalize_header(h) for h in headers}
    if not available:
        return None

    for preset in presets:
        required = {_normalize_header(h) for h in preset.detect_headers}
        if required <= available:
            logger.debug("Headers match preset %s", preset.id)
            return preset

    logger.debug("No preset matches headers %s", list(headers))
    return None


def get_preset(preset_id: str) -> Optional[FormatPreset]:
    """Get a preset by ID.

    Args:
        preset_id: Preset identifier, e.g. "ynab"

    Returns:
        Preset or None if not found
    """
    wanted = preset_id.strip().lower()
    for preset in FORMAT_PRESETS:
        if preset.id == wanted:
            return preset
    return None


def clean_vendor(vendor: str, patterns: Sequence[re.Pattern]) -> str:
    """Extract the payee from a narrative vendor string.

    The first pattern that matches decides. An empty capture, or no match at
    all, leaves the vendor unchanged.

    Example:
        "Contactless Payment COSTA COFFEE GB APPLEPAY" -> "COSTA COFFEE"
    """
    for pattern in patterns:
        match = pattern.search(vendor)
        if match is None:
            continue
        cleaned = match.group("vendor").strip()
        return cleaned or vendor
    return vendor
