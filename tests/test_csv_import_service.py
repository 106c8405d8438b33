"""Tests for CSVImportService."""

import pytest
from datetime import date
from decimal import Decimal
from csvintake.domain.csv_import import DETECT, ImportOptions
from csvintake.domain.entities import ColumnMapping, MappedTransaction, SemanticField
from csvintake.domain.errors import NotFoundError, ValidationError

BASIC_CSV = "Date,Payee,Amount\n2024-01-15,Tesco,-45.00\n2024-01-16,Salary,2000.00\n"


def test_read_table_detects_delimiter(import_service, write_csv):
    """Test the delimiter is detected when not given."""
    path = write_csv("Date;Payee;Amount\n15/01/2024;Tesco;-1,50\n")
    table, delimiter = import_service.read_table(path)
    assert delimiter == ";"
    assert table.rows == (("15/01/2024", "Tesco", "-1,50"),)


def test_read_table_strips_bom(import_service, write_csv):
    """Test a UTF-8 byte order mark is removed."""
    path = write_csv("Date,Payee,Amount\n", encoding="utf-8-sig")
    table, _ = import_service.read_table(path)
    assert table.headers[0] == "Date"


def test_read_table_missing_file(import_service, tmp_path):
    """Test a missing file raises FileNotFoundError."""
    with pytest.raises(FileNotFoundError):
        import_service.read_table(str(tmp_path / "missing.csv"))


def test_read_table_rejects_non_utf8(import_service, write_csv):
    """Test undecodable files raise a validation error."""
    path = write_csv("Date,Payee,Amount\n2024-01-15,Café,-1\n", encoding="latin-1")
    with pytest.raises(ValidationError, match="not valid UTF-8"):
        import_service.read_table(path)


def test_resolve_mappings_detects_preset(import_service):
    """Test a known header row uses the preset mapping."""
    preset, mappings = import_service.resolve_mappings(("Date", "Description", "Amount"))
    assert preset.id == "generic-bank"
    assert ColumnMapping("Description", SemanticField.VENDOR) in mappings


def test_resolve_mappings_auto_maps_unknown_headers(import_service):
    """Test unknown header rows fall back to header-name guessing."""
    preset, mappings = import_service.resolve_mappings(("Date", "Payee", "Amount", "Balance"))
    assert preset is None
    assert [m.field for m in mappings] == [
        SemanticField.DATE,
        SemanticField.VENDOR,
        SemanticField.AMOUNT,
        SemanticField.IGNORE,
    ]


def test_resolve_mappings_explicit_preset(import_service):
    """Test a requested preset is used even if headers would match another."""
    preset, _ = import_service.resolve_mappings(("Date", "Description", "Amount"), "chase-uk")
    assert preset.id == "chase-uk"


def test_resolve_mappings_unknown_preset(import_service):
    """Test an unknown preset ID raises NotFoundError."""
    with pytest.raises(NotFoundError, match="Format preset 'nope' not found"):
        import_service.resolve_mappings(("Date",), "nope")


def test_resolve_mappings_overrides(import_service):
    """Test overrides replace the field of a header."""
    headers = ("When", "Who", "Amount")
    _, mappings = import_service.resolve_mappings(
        headers, overrides={"when": "date", "Who": "VENDOR"}
    )
    assert ColumnMapping("When", SemanticField.DATE) in mappings
    assert ColumnMapping("Who", SemanticField.VENDOR) in mappings
    assert ColumnMapping("When", SemanticField.IGNORE) not in mappings


def test_resolve_mappings_override_to_ignore(import_service):
    """Test overriding a column to ignore removes its mapping."""
    _, mappings = import_service.resolve_mappings(
        ("Date", "Payee", "Amount"), overrides={"Payee": "ignore"}
    )
    assert all(m.source_header != "Payee" for m in mappings)


def test_resolve_mappings_bad_overrides(import_service):
    """Test overrides naming unknown fields or headers are rejected."""
    with pytest.raises(ValidationError, match="Invalid field 'price'"):
        import_service.resolve_mappings(("Date",), overrides={"Date": "price"})
    with pytest.raises(ValidationError, match="Column 'Total' not found"):
        import_service.resolve_mappings(("Date",), overrides={"Total": "amount"})


def test_import_basic(import_service, sample_account, temp_db, write_csv):
    """Test importing a simple file stores every row."""
    path = write_csv(BASIC_CSV)

    result = import_service.import_csv(path, sample_account.name)

    assert result["imported"] == 2
    assert result["skipped"] == 0
    assert result["errors"] == []
    assert result["preset"] is None

    stored = temp_db.list_transactions(account_id=sample_account.id)
    assert [(t.date, t.vendor, t.amount) for t in stored] == [
        (date(2024, 1, 15), "Tesco", Decimal("-45.00")),
        (date(2024, 1, 16), "Salary", Decimal("2000.00")),
    ]


def test_import_by_account_id(import_service, sample_account, temp_db, write_csv):
    """Test the account can be given by ID."""
    path = write_csv(BASIC_CSV)
    result = import_service.import_csv(path, str(sample_account.id))
    assert result["imported"] == 2


def test_import_twice_skips_duplicates(import_service, sample_account, temp_db, write_csv):
    """Test re-importing the same file skips every row."""
    path = write_csv(BASIC_CSV)
    import_service.import_csv(path, sample_account.name)

    result = import_service.import_csv(path, sample_account.name)

    assert result["imported"] == 0
    assert result["skipped"] == 2
    first = result["skipped_details"][0]
    assert first["row_num"] == 2
    assert first["details"] == {"date": "2024-01-15", "vendor": "Tesco", "amount": "-45.00"}
    assert first["reason"].startswith("Same date, amount, and similar vendor")
    assert len(temp_db.list_transactions(account_id=sample_account.id)) == 2


def test_import_overlapping_export(import_service, sample_account, temp_db, write_csv):
    """Test only the new rows of an overlapping export are imported."""
    import_service.import_csv(write_csv(BASIC_CSV, "week1.csv"), sample_account.name)
    overlapping = BASIC_CSV + "2024-01-17,Card payment to TESCO,-12.00\n"

    result = import_service.import_csv(write_csv(overlapping, "week2.csv"), sample_account.name)

    assert result["imported"] == 1
    assert result["skipped"] == 2


def test_import_duplicates_scoped_to_account(
    import_service, account_service, sample_account, write_csv
):
    """Test rows stored in another account do not count as duplicates."""
    path = write_csv(BASIC_CSV)
    import_service.import_csv(path, sample_account.name)
    account_service.create_account("Savings")

    result = import_service.import_csv(path, "Savings")
    assert result["imported"] == 2


def test_import_include_duplicates(import_service, sample_account, temp_db, write_csv):
    """Test duplicates can be imported on request."""
    path = write_csv(BASIC_CSV)
    import_service.import_csv(path, sample_account.name)

    result = import_service.import_csv(path, sample_account.name, include_duplicates=True)

    assert result["imported"] == 2
    assert result["skipped"] == 0
    assert len(temp_db.list_transactions(account_id=sample_account.id)) == 4


def test_import_skips_repeated_rows(import_service, sample_account, write_csv):
    """Test exact repeats within one file are skipped after the first."""
    path = write_csv(BASIC_CSV + "2024-01-15,Tesco,-45.00\n")

    result = import_service.import_csv(path, sample_account.name)

    assert result["imported"] == 2
    assert result["skipped"] == 1
    assert result["skipped_details"][0]["row_num"] == 4
    assert result["skipped_details"][0]["reason"] == "Repeated row in this file"


def test_import_dry_run(import_service, sample_account, temp_db, write_csv):
    """Test a dry run reports counts but writes nothing."""
    path = write_csv(BASIC_CSV)

    result = import_service.import_csv(path, sample_account.name, dry_run=True)

    assert result["imported"] == 2
    assert temp_db.list_transactions(account_id=sample_account.id) == []


def test_import_reports_row_errors(import_service, sample_account, write_csv):
    """Test bad rows are reported while good rows are imported."""
    path = write_csv("Date,Payee,Amount\n2024-01-15,Tesco,-45.00\nsoon,Boots,-1\n")

    result = import_service.import_csv(path, sample_account.name)

    assert result["imported"] == 1
    assert result["errors"] == ['Row 3: Invalid date: "soon"']


def test_import_empty_file(import_service, sample_account, write_csv):
    """Test an empty file imports nothing without error."""
    result = import_service.import_csv(write_csv("\n\n"), sample_account.name)
    assert result == {
        "imported": 0,
        "skipped": 0,
        "skipped_details": [],
        "errors": [],
        "preset": None,
    }


def test_import_unknown_account(import_service, write_csv):
    """Test importing into a missing account raises NotFoundError."""
    with pytest.raises(NotFoundError, match="Account 'Nope' not found"):
        import_service.import_csv(write_csv(BASIC_CSV), "Nope")


def test_import_unusable_mapping(import_service, sample_account, write_csv):
    """Test a header row without date or amount columns is rejected."""
    path = write_csv("When,Who,How much\n2024-01-15,Tesco,-45.00\n")
    with pytest.raises(ValidationError, match="missing required fields: date, amount, vendor"):
        import_service.import_csv(path, sample_account.name)


def test_preview_forced_preset_missing_columns(import_service, sample_account, write_csv):
    """Test a forced preset is checked against the columns the file has."""
    with pytest.raises(ValidationError, match="missing required fields: amount$"):
        import_service.preview(
            write_csv(BASIC_CSV), sample_account.name, ImportOptions(preset_id="ynab")
        )


def test_missing_fields_uses_present_headers(import_service):
    """Test mappings for absent headers do not satisfy requirements."""
    mappings = [
        ColumnMapping("Date", SemanticField.DATE),
        ColumnMapping("Outflow", SemanticField.OUTFLOW),
        ColumnMapping("Payee", SemanticField.VENDOR),
    ]
    assert import_service.missing_fields(["Date", "Payee"], mappings) == ["amount"]
    assert import_service.missing_fields(["date", "Outflow", "payee"], mappings) == []


def test_import_with_overrides(import_service, sample_account, temp_db, write_csv):
    """Test mapping overrides make an unknown layout importable."""
    path = write_csv("When,Who,How much\n2024-01-15,Tesco,-45.00\n")
    options = ImportOptions(
        mapping_overrides={"When": "date", "Who": "vendor", "How much": "amount"}
    )

    result = import_service.import_csv(path, sample_account.name, options)

    assert result["imported"] == 1
    assert temp_db.list_transactions()[0].vendor == "Tesco"


def test_import_ynab_preset(import_service, sample_account, temp_db, write_csv):
    """Test a YNAB export keeps categories, source account and starting balance."""
    text = (
        "Account,Flag,Date,Payee,Category Group/Category,Category Group,Category,"
        "Memo,Outflow,Inflow,Cleared\n"
        "Current,,01/01/2024,Starting Balance,,,,,£0.00,£100.00,Reconciled\n"
        'Current,,15/01/2024,Tesco,"Bills: Food",Bills,Food,shop,£45.10,£0.00,Cleared\n'
    )

    result = import_service.import_csv(write_csv(text), sample_account.name)

    assert result["preset"] == "ynab"
    assert result["imported"] == 2
    opening, shop = temp_db.list_transactions(account_id=sample_account.id)
    assert opening.is_starting_balance
    assert opening.amount == Decimal("100.00")
    assert shop.amount == Decimal("-45.10")
    assert shop.category_name == "Food"
    assert shop.category_group_name == "Bills"
    assert shop.source_account == "Current"
    assert shop.description == "shop"


def test_preset_date_hint(import_service, sample_account, write_csv):
    """Test the preset's date order resolves ambiguous dates."""
    text = (
        "Date,Counter Party,Reference,Type,Amount (GBP),Balance (GBP),Spending Category,Notes\n"
        "05/06/2024,Pret,REF,CARD,-3.50,100.00,EATING_OUT,\n"
    )
    plan = import_service.preview(write_csv(text), sample_account.name)
    assert plan.preset.id == "starling-bank"
    assert plan.transactions[0].date == date(2024, 6, 5)
    assert plan.transactions[0].category_name == "EATING_OUT"


def test_preview_detect_date_format(import_service, sample_account, write_csv):
    """Test detecting one date order for the whole column."""
    text = "Date,Payee,Amount\n01/02/2024,Tesco,-1\n02/25/2024,Boots,-2\n"
    path = write_csv(text)

    auto_plan = import_service.preview(path, sample_account.name)
    assert auto_plan.transactions[0].date == date(2024, 2, 1)

    detected = import_service.preview(path, sample_account.name, ImportOptions(date_format=DETECT))
    assert detected.date_format == "MM/DD/YYYY"
    assert detected.transactions[0].date == date(2024, 1, 2)


def test_preview_rejects_unknown_date_format(import_service, sample_account, write_csv):
    """Test an unknown date format option is rejected."""
    with pytest.raises(ValidationError, match="Invalid date format"):
        import_service.preview(
            write_csv(BASIC_CSV), sample_account.name, ImportOptions(date_format="YY")
        )


def test_preview_writes_nothing(import_service, sample_account, temp_db, write_csv):
    """Test preview computes verdicts without storing rows."""
    plan = import_service.preview(write_csv(BASIC_CSV), sample_account.name)
    assert len(plan.verdicts) == 2
    assert plan.skip_reason(0) is None
    assert temp_db.list_transactions() == []


def test_existing_records_window(import_service, sample_account, temp_db):
    """Test only stored rows near the batch's dates are fetched."""
    for day in (1, 9, 10, 20, 21):
        temp_db.create_transaction(
            account_id=sample_account.id,
            date=date(2024, 1, day),
            vendor="Tesco",
            amount=Decimal("-1"),
        )
    batch = [
        MappedTransaction(2, date(2024, 1, 10), "Tesco", Decimal("-1")),
        MappedTransaction(3, date(2024, 1, 20), "Tesco", Decimal("-1")),
    ]
    records = import_service.existing_records(sample_account.id, batch, date_tolerance=1)
    assert [r.date.day for r in records] == [9, 10, 20, 21]
    assert all(r.account_id == sample_account.id for r in records)


def test_import_applies_preset_vendor_cleanup(import_service, sample_account, temp_db, write_csv):
    """Test the detected preset's payee extraction reaches stored rows."""
    path = write_csv(
        "Date,Transaction type,Description,Paid out,Paid in,Balance\n"
        '"15 Jan 2024","Contactless","Contactless Payment COSTA COFFEE GB APPLEPAY","£3.20","","£96.80"\n'
    )

    import_service.import_csv(path, sample_account.name)

    (stored,) = temp_db.list_transactions(account_id=sample_account.id)
    assert stored.vendor == "COSTA COFFEE"
    assert stored.description == "Contactless Payment COSTA COFFEE GB APPLEPAY"
