"""Duplicate detection for imported transactions.

Two independent checks:

- ``detect_duplicates`` scores each candidate against stored records. The
  amount must match; date distance and vendor similarity decide the
  confidence. Each stored record backs at most one duplicate verdict per run,
  so overlapping imports ("last 30 days" exported every week) are caught
  without one stored row swallowing several genuine repeats.
- ``detect_internal_duplicates`` flags exact repeats within the batch itself.
"""

import re
from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from csvintake.domain.entities import DuplicateVerdict, ExistingRecord, MappedTransaction
from csvintake.logging_setup import get_logger

logger = get_logger(__name__)

DEFAULT_DATE_TOLERANCE = 1
DEFAULT_CONFIDENCE_THRESHOLD = 0.7
AMOUNT_TOLERANCE = Decimal("0.01")
SIMILAR_VENDOR = 0.6

_LEADING_NOISE = re.compile(
    r"^(card payment to|payment to|direct debit to|standing order to|transfer to|"
    r"transfer from|pos |pos transaction |card |visa |mastercard |debit )",
    re.IGNORECASE,
)
_TRAILING_DATE = re.compile(r"\s+on\s+\d{2}/\d{2}/\d{4}.*$", re.IGNORECASE)
_TRAILING_REF = re.compile(r"\s+ref[:\s].*$", re.IGNORECASE)
# Only a code after at least one other word; a lone word is the vendor itself.
_TRAILING_CODE = re.compile(r"(?<=\S)\s+[a-z0-9]{6,}$", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")


def normalize_vendor(vendor: str) -> str:
    """Strip transactional noise from a vendor name for comparison.

    Removes leading phrases such as "card payment to", a trailing
    "on DD/MM/YYYY ...", a trailing "ref: ..." and a trailing reference code
    of six or more letters/digits, then lowercases and collapses whitespace.
    """
    value = vendor.lower().strip()
    value = _LEADING_NOISE.sub("", value).strip()
    value = _TRAILING_DATE.sub("", value)
    value = _TRAILING_REF.sub("", value)
    value = _TRAILING_CODE.sub("", value)
    return _WHITESPACE.sub(" ", value).strip()


def _bigrams(value: str) -> set[str]:
    return {value[i : i + 2] for i in range(len(value) - 1)}


def string_similarity(a: str, b: str) -> float:
    """Return a similarity between 0 and 1 for two strings.

    Exact matches score 1. When one string contains the other the score is
    the length ratio. Otherwise it is the overlap of 2-character shingles:
    shared / (|A| + |B| - shared).
    """
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0

    la = a.lower()
    lb = b.lower()
    if la == lb:
        return 1.0

    if la in lb or lb in la:
        return min(len(la), len(lb)) / max(len(la), len(lb))

    bigrams_a = _bigrams(la)
    bigrams_b = _bigrams(lb)
    shared = len(bigrams_a & bigrams_b)
    union = len(bigrams_a) + len(bigrams_b) - shared
    if union == 0:
        return 0.0
    return shared / union


def _as_decimal(value: Decimal | int | float) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _nearby_dates(day: date, tolerance: int) -> list[date]:
    dates = [day]
    for offset in range(1, tolerance + 1):
        dates.append(day - timedelta(days=offset))
        dates.append(day + timedelta(days=offset))
    return dates


def score_pair(
    candidate: MappedTransaction,
    record: ExistingRecord,
    date_tolerance: int = DEFAULT_DATE_TOLERANCE,
    candidate_vendor: Optional[str] = None,
) -> tuple[float, str]:
    """Score how likely a candidate and a stored record are the same event.

    Args:
        candidate: Incoming transaction
        record: Stored record
        date_tolerance: Maximum date distance in days
        candidate_vendor: Pre-normalized candidate vendor, if available

    Returns:
        Tuple of (confidence, reason). Confidence is 0 and reason empty when
        the pair cannot be a duplicate.
    """
    if abs(_as_decimal(record.amount) - _as_decimal(candidate.amount)) >= AMOUNT_TOLERANCE:
        return 0.0, ""
    distance = abs((record.date - candidate.date).days)
    if distance > date_tolerance:
        return 0.0, ""

    if candidate_vendor is None:
        candidate_vendor = normalize_vendor(candidate.vendor)
    similarity = string_similarity(candidate_vendor, normalize_vendor(record.vendor))

    if distance == 0 and similarity >= SIMILAR_VENDOR:
        return (
            0.7 + similarity * 0.3,
            f"Same date, amount, and similar vendor ({round(similarity * 100)}% match)",
        )
    if distance == 0:
        return 0.5, "Same date and amount, different vendor"
    if similarity >= SIMILAR_VENDOR:
        return (
            0.4 + similarity * 0.2,
            f"Similar date (within {date_tolerance}d), same amount, similar vendor",
        )
    return 0.0, ""


def detect_duplicates(
    candidates: Sequence[MappedTransaction],
    existing_records: Iterable[ExistingRecord],
    *,
    account_scope: Optional[int | str] = None,
    date_tolerance: int = DEFAULT_DATE_TOLERANCE,
    confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
) -> list[DuplicateVerdict]:
    """Check candidates against stored records.

    Candidates are processed in input order. For each one, records within
    ``date_tolerance`` days and not yet claimed are scored and the best pair
    kept. A record is claimed only when its pair reaches the threshold, so
    later candidates cannot match it again.

    Args:
        candidates: Incoming transactions
        existing_records: Snapshot of stored records
        account_scope: Only consider records of this account when given
        date_tolerance: Maximum date distance in days (inclusive)
        confidence_threshold: Minimum confidence to flag a duplicate

    Returns:
        One verdict per candidate, in input order
    """
    by_date: dict[date, list[ExistingRecord]] = defaultdict(list)
    for record in existing_records:
        if account_scope is not None and record.account_id != account_scope:
            continue
        by_date[record.date].append(record)

    consumed: set = set()
    verdicts: list[DuplicateVerdict] = []

    for candidate in candidates:
        best_record: Optional[ExistingRecord] = None
        best_confidence = 0.0
        best_reason = ""
        candidate_vendor = normalize_vendor(candidate.vendor)

        for check_date in _nearby_dates(candidate.date, date_tolerance):
            for record in by_date.get(check_date, ()):
                if record.id in consumed:
                    continue
                confidence, reason = score_pair(
                    candidate, record, date_tolerance, candidate_vendor
                )
                if confidence > best_confidence:
                    best_confidence = confidence
                    best_record = record
                    best_reason = reason

        is_duplicate = best_confidence >= confidence_threshold
        if is_duplicate and best_record is not None:
            consumed.add(best_record.id)
            logger.debug(
                "Row %d duplicates record %s (%.2f)",
                candidate.source_row_index,
                best_record.id,
                best_confidence,
            )

        verdicts.append(
            DuplicateVerdict(
                candidate=candidate,
                is_duplicate=is_duplicate,
                confidence=best_confidence,
                matched_record=best_record,
                reason=best_reason or None,
            )
        )

    return verdicts


def fingerprint(transaction: MappedTransaction) -> str:
    """Return the exact-match key: date, amount to two places, vendor."""
    return (
        f"{transaction.date.isoformat()}|{transaction.amount:.2f}|"
        f"{normalize_vendor(transaction.vendor)}"
    )


def detect_internal_duplicates(candidates: Sequence[MappedTransaction]) -> set[int]:
    """Find repeated rows within a batch.

    Args:
        candidates: Incoming transactions

    Returns:
        Positions of every repeat after the first occurrence of a fingerprint
    """
    seen: set[str] = set()
    duplicates: set[int] = set()
    for position, transaction in enumerate(candidates):
        key = fingerprint(transaction)
        if key in seen:
            duplicates.add(position)
        else:
            seen.add(key)
    return duplicates
