"""Tests for duplicate detection."""

import pytest
from datetime import date
from decimal import Decimal
from csvintake.domain.duplicates import (
    detect_duplicates,
    detect_internal_duplicates,
    fingerprint,
    normalize_vendor,
    score_pair,
    string_similarity,
)
from csvintake.domain.entities import ExistingRecord, MappedTransaction


def make_candidate(day, vendor, amount, row=2):
    return MappedTransaction(
        source_row_index=row, date=day, vendor=vendor, amount=Decimal(amount)
    )


def make_record(record_id, day, vendor, amount, account_id=1):
    return ExistingRecord(
        id=record_id, date=day, amount=Decimal(amount), vendor=vendor, account_id=account_id
    )


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("Tesco", "tesco"),
        ("Card payment to TESCO on 15/01/2024", "tesco"),
        ("Direct debit to NETFLIX ref: 12345", "netflix"),
        ("POS Pret", "pret"),
        ("AMAZON MKTP ABC123XYZ", "amazon mktp"),
        ("  Pret   A  Cafe ", "pret a cafe"),
    ],
)
def test_normalize_vendor(raw, expected):
    """Test transactional noise is stripped from vendor names."""
    assert normalize_vendor(raw) == expected


def test_string_similarity():
    """Test the similarity measure."""
    assert string_similarity("tesco", "tesco") == 1.0
    assert string_similarity("Tesco", "TESCO") == 1.0
    assert string_similarity("", "tesco") == 0.0
    assert string_similarity("tesco", "tesco extra") == pytest.approx(5 / 11)
    assert string_similarity("night", "nacht") == pytest.approx(1 / 7)
    assert string_similarity("a", "b") == 0.0


def test_score_same_day_similar_vendor():
    """Test an exact match scores full confidence."""
    candidate = make_candidate(date(2024, 1, 15), "Card payment to TESCO", "-45.00")
    record = make_record(1, date(2024, 1, 15), "Tesco", "-45")
    confidence, reason = score_pair(candidate, record)
    assert confidence == pytest.approx(1.0)
    assert reason == "Same date, amount, and similar vendor (100% match)"


def test_score_same_day_different_vendor():
    """Test a same-day same-amount pair with unrelated vendors."""
    candidate = make_candidate(date(2024, 1, 15), "Tesco", "-45.00")
    record = make_record(1, date(2024, 1, 15), "Shell Garage", "-45.00")
    assert score_pair(candidate, record) == (0.5, "Same date and amount, different vendor")


def test_score_nearby_day():
    """Test a pair one day apart with the same vendor."""
    candidate = make_candidate(date(2024, 1, 15), "Tesco", "-45.00")
    record = make_record(1, date(2024, 1, 16), "Tesco", "-45.00")
    confidence, reason = score_pair(candidate, record)
    assert confidence == pytest.approx(0.6)
    assert reason == "Similar date (within 1d), same amount, similar vendor"


def test_score_requires_amount_and_date_window():
    """Test differing amounts or dates out of range never match."""
    candidate = make_candidate(date(2024, 1, 15), "Tesco", "-45.00")
    assert score_pair(candidate, make_record(1, date(2024, 1, 15), "Tesco", "-45.01")) == (0.0, "")
    assert score_pair(candidate, make_record(1, date(2024, 1, 17), "Tesco", "-45.00")) == (0.0, "")
    confidence, _ = score_pair(candidate, make_record(1, date(2024, 1, 15), "Tesco", "-45.005"))
    assert confidence > 0


def test_detect_flags_exact_match():
    """Test a stored copy of a candidate is flagged with its record."""
    record = make_record(7, date(2024, 1, 15), "Tesco", "-45.00")
    candidate = make_candidate(date(2024, 1, 15), "TESCO", "-45.00")

    (verdict,) = detect_duplicates([candidate], [record])
    assert verdict.is_duplicate
    assert verdict.matched_record == record
    assert verdict.candidate == candidate


def test_detect_no_double_claim():
    """Test one stored record backs at most one duplicate verdict."""
    record = make_record(1, date(2024, 1, 15), "Tesco", "-45.00")
    first = make_candidate(date(2024, 1, 15), "Tesco", "-45.00", row=2)
    second = make_candidate(date(2024, 1, 15), "Tesco", "-45.00", row=3)

    verdicts = detect_duplicates([first, second], [record])
    assert [v.is_duplicate for v in verdicts] == [True, False]
    assert verdicts[1].confidence == 0.0


def test_detect_picks_higher_confidence_record():
    """Test the better vendor match is chosen when two records qualify."""
    other = make_record(1, date(2024, 1, 15), "Shell Garage", "-45.00")
    same = make_record(2, date(2024, 1, 15), "Tesco", "-45.00")
    candidate = make_candidate(date(2024, 1, 15), "Tesco", "-45.00")

    verdicts = detect_duplicates([candidate], [other, same])
    assert sum(v.is_duplicate for v in verdicts) == 1
    assert verdicts[0].matched_record.id == 2


def test_detect_unclaimed_below_threshold():
    """Test a low-confidence best match stays available to later candidates."""
    record = make_record(1, date(2024, 1, 15), "Tesco", "-45.00")
    unrelated = make_candidate(date(2024, 1, 15), "Shell Garage", "-45.00", row=2)
    copy = make_candidate(date(2024, 1, 15), "Tesco", "-45.00", row=3)

    verdicts = detect_duplicates([unrelated, copy], [record])
    assert not verdicts[0].is_duplicate
    assert verdicts[0].confidence == 0.5
    assert verdicts[0].reason == "Same date and amount, different vendor"
    assert verdicts[1].is_duplicate


def test_detect_threshold_and_tolerance():
    """Test the threshold and date tolerance settings."""
    record = make_record(1, date(2024, 1, 13), "Tesco", "-45.00")
    candidate = make_candidate(date(2024, 1, 15), "Tesco", "-45.00")

    assert not detect_duplicates([candidate], [record])[0].is_duplicate
    assert not detect_duplicates([candidate], [record], date_tolerance=2)[0].is_duplicate
    verdict = detect_duplicates(
        [candidate], [record], date_tolerance=2, confidence_threshold=0.6
    )[0]
    assert verdict.is_duplicate


def test_detect_account_scope():
    """Test records of other accounts are ignored when scoped."""
    record = make_record(1, date(2024, 1, 15), "Tesco", "-45.00", account_id=2)
    candidate = make_candidate(date(2024, 1, 15), "Tesco", "-45.00")

    assert detect_duplicates([candidate], [record])[0].is_duplicate
    assert not detect_duplicates([candidate], [record], account_scope=1)[0].is_duplicate


def test_detect_no_records():
    """Test every candidate gets a non-duplicate verdict when nothing is stored."""
    candidates = [make_candidate(date(2024, 1, 15), "Tesco", "-1")] * 2
    verdicts = detect_duplicates(candidates, [])
    assert len(verdicts) == 2
    assert all(not v.is_duplicate and v.matched_record is None for v in verdicts)


def test_fingerprint():
    """Test the exact-match key."""
    candidate = make_candidate(date(2024, 1, 15), "Card payment to TESCO", "-45")
    assert fingerprint(candidate) == "2024-01-15|-45.00|tesco"


def test_internal_duplicates_flag_repeats_only():
    """Test repeats after the first occurrence are flagged."""
    a = make_candidate(date(2024, 1, 15), "Tesco", "-45.00")
    assert detect_internal_duplicates([a, a, a]) == {1, 2}


def test_internal_duplicates_use_normalized_vendor():
    """Test vendor noise does not hide an in-file repeat."""
    batch = [
        make_candidate(date(2024, 1, 15), "Tesco", "-45.00"),
        make_candidate(date(2024, 1, 16), "Tesco", "-45.00"),
        make_candidate(date(2024, 1, 15), "Card payment to TESCO", "-45"),
        make_candidate(date(2024, 1, 15), "Tesco Extra", "-45.00"),
    ]
    assert detect_internal_duplicates(batch) == {2}


def test_normalize_vendor_keeps_single_word_after_prefix():
    """Test a lone vendor word left after a leading phrase is not taken for a code."""
    assert normalize_vendor("Direct debit to NETFLIX") == "netflix"
    assert normalize_vendor("Direct debit to SPOTIFY") == "spotify"
    assert normalize_vendor("Standing order to LANDLORD") == "landlord"


def test_detect_different_payees_after_prefix_not_duplicates():
    """Test debits to different payees with the same date and amount are kept apart."""
    record = make_record(1, date(2024, 1, 1), "Direct debit to SPOTIFY", "-9.99")
    candidate = make_candidate(date(2024, 1, 1), "Direct debit to NETFLIX", "-9.99")

    (verdict,) = detect_duplicates([candidate], [record])
    assert not verdict.is_duplicate
    assert verdict.confidence == 0.5


def test_internal_duplicates_different_payees_after_prefix():
    """Test same-day debits to different payees are not in-file repeats."""
    batch = [
        make_candidate(date(2024, 1, 1), "Direct debit to NETFLIX", "-9.99"),
        make_candidate(date(2024, 1, 1), "Direct debit to SPOTIFY", "-9.99"),
    ]
    assert detect_internal_duplicates(batch) == set()
