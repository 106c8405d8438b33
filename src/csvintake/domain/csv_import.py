"""CSV import domain service.

Wires the pure import pipeline (tokenize, map, normalize, detect duplicates)
to the database: the service reads the file, fetches a snapshot of stored
transactions for the target account, and persists the rows the user keeps.
"""

from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

from csvintake.database.base import Database
from csvintake.database.mappers import transaction_to_existing_record
from csvintake.domain import errors
from csvintake.domain.account import AccountService
from csvintake.domain.auto_mapper import auto_map_headers, missing_required_fields
from csvintake.domain.duplicates import (
    DEFAULT_CONFIDENCE_THRESHOLD,
    DEFAULT_DATE_TOLERANCE,
    detect_duplicates,
    detect_internal_duplicates,
)
from csvintake.domain.entities import (
    Account,
    ColumnMapping,
    DuplicateVerdict,
    ExistingRecord,
    FormatPreset,
    MappedTransaction,
    MappingResult,
    RawTable,
    SemanticField,
)
from csvintake.domain.presets import detect_format, get_preset
from csvintake.domain.row_mapper import FieldIndex, apply_mappings
from csvintake.logging_setup import get_logger
from csvintake.utils.csv_tokenizer import detect_delimiter, parse_csv
from csvintake.utils.date_parser import AUTO, DATE_FORMATS, detect_date_format

logger = get_logger(__name__)

DETECT = "detect"


@dataclass(frozen=True)
class ImportOptions:
    """Knobs for one import run.

    date_format is "auto" (use the preset's hint, else per-row rules),
    "detect" (infer one order for the whole date column), or an explicit
    order such as "MM/DD/YYYY".
    """

    delimiter: Optional[str] = None
    preset_id: Optional[str] = None
    mapping_overrides: Mapping[str, str] = field(default_factory=dict)
    date_format: str = AUTO
    date_tolerance: int = DEFAULT_DATE_TOLERANCE
    confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD


@dataclass(frozen=True)
class ImportPlan:
    """Everything computed for an import before anything is written."""

    account: Account
    table: RawTable
    delimiter: str
    preset: Optional[FormatPreset]
    mappings: list[ColumnMapping]
    date_format: str
    result: MappingResult
    verdicts: list[DuplicateVerdict]
    internal_duplicates: set[int]

    @property
    def transactions(self) -> list[MappedTransaction]:
        return self.result.transactions

    def skip_reason(self, position: int) -> Optional[str]:
        """Return why the candidate at position would be skipped, if at all."""
        verdict = self.verdicts[position]
        if verdict.is_duplicate:
            return verdict.reason or "Duplicate of an existing transaction"
        if position in self.internal_duplicates:
            return "Repeated row in this file"
        return None


class CSVImportService:
    """Service for importing CSV files."""

    def __init__(self, db: Database):
        """Initialize CSV import service.

        Args:
            db: Database instance
        """
        self.db = db
        self.account_service = AccountService(db)

    def read_table(
        self, csv_file_path: str, delimiter: Optional[str] = None
    ) -> tuple[RawTable, str]:
        """Read and tokenize a CSV file.

        Args:
            csv_file_path: Path to CSV file
            delimiter: Field separator; detected from the first line if None

        Returns:
            Tuple of (table, delimiter used)

        Raises:
            FileNotFoundError: If CSV file doesn't exist
            ValidationError: If the file is not UTF-8 text
        """
        csv_path = Path(csv_file_path)
        if not csv_path.exists():
            raise FileNotFoundError(f"CSV file not found: {csv_file_path}")

        try:
            text = csv_path.read_text(encoding="utf-8-sig")
        except UnicodeDecodeError as e:
            raise errors.ValidationError(
                f"CSV file is not valid UTF-8 text: {csv_file_path} ({e.reason})"
            )

        if delimiter is None:
            delimiter = detect_delimiter(text)
        logger.debug("Reading %s with delimiter %r", csv_path.name, delimiter)
        return parse_csv(text, delimiter), delimiter

    def resolve_mappings(
        self,
        headers: tuple[str, ...],
        preset_id: Optional[str] = None,
        overrides: Optional[Mapping[str, str]] = None,
    ) -> tuple[Optional[FormatPreset], list[ColumnMapping]]:
        """Choose column mappings for a header row.

        An explicit preset wins, then a detected preset, then header-name
        guessing. Overrides replace the field of individual headers afterwards.

        Args:
            headers: Header row
            preset_id: Optional preset to force
            overrides: Optional {header: field name} corrections

        Returns:
            Tuple of (preset used or None, mappings)

        Raises:
            NotFoundError: If preset_id is unknown
            ValidationError: If an override names an unknown header or field
        """
        if preset_id:
            preset = get_preset(preset_id)
            if preset is None:
                raise errors.NotFoundError(errors.preset_not_found(preset_id))
        else:
            preset = detect_format(headers)

        if preset is not None:
            mappings = list(preset.column_mappings)
        else:
            mappings = auto_map_headers(headers)

        for header, field_name in (overrides or {}).items():
            mappings = self._apply_override(headers, mappings, header, field_name)

        return preset, mappings

    @staticmethod
    def _apply_override(
        headers: tuple[str, ...],
        mappings: list[ColumnMapping],
        header: str,
        field_name: str,
    ) -> list[ColumnMapping]:
        valid_fields = {f.value for f in SemanticField}
        if field_name.strip().lower() not in valid_fields:
            raise errors.ValidationError(
                f"Invalid field '{field_name}'. "
                f"Must be one of: {', '.join(sorted(valid_fields))}"
            )
        wanted = header.strip().lower()
        source = next((h for h in headers if h.strip().lower() == wanted), None)
        if source is None:
            raise errors.ValidationError(f"Column '{header}' not found in CSV file")

        override = ColumnMapping(source_header=source, field=SemanticField.coerce(field_name))
        kept = [m for m in mappings if m.source_header.strip().lower() != wanted]
        return [override] + kept if override.field is not SemanticField.IGNORE else kept

    def missing_fields(self, headers: Sequence[str], mappings: list[ColumnMapping]) -> list[str]:
        """Report required fields the file cannot supply under these mappings.

        Only mappings whose header is present in the file count, and when
        several headers claim a field the first one is the one used.

        Args:
            headers: Header row of the file
            mappings: Column mappings to check

        Returns:
            Names of the missing requirements, empty when the mapping is usable
        """
        index = FieldIndex(headers, mappings)
        bound = [m for m in mappings if index.has(SemanticField.coerce(m.field))]
        return missing_required_fields(bound)

    def existing_records(
        self,
        account_id: int,
        transactions: list[MappedTransaction],
        date_tolerance: int = DEFAULT_DATE_TOLERANCE,
    ) -> list[ExistingRecord]:
        """Fetch stored transactions that could duplicate the batch.

        Args:
            account_id: Account to reconcile against
            transactions: Candidate batch
            date_tolerance: Days of slack around the batch's date range

        Returns:
            Snapshot of stored records in the batch's date window
        """
        if not transactions:
            return []
        dates = [t.date for t in transactions]
        slack = timedelta(days=max(date_tolerance, 0))
        stored = self.db.list_transactions(
            account_id=account_id,
            start_date=min(dates) - slack,
            end_date=max(dates) + slack,
        )
        return [transaction_to_existing_record(t) for t in stored]

    def _resolve_date_format(
        self,
        options: ImportOptions,
        preset: Optional[FormatPreset],
        table: RawTable,
        mappings: list[ColumnMapping],
    ) -> str:
        if options.date_format == DETECT:
            column = FieldIndex(table.headers, mappings).column(SemanticField.DATE)
            if column is None:
                return AUTO
            return detect_date_format(RawTable.cell(row, column) for row in table.rows)
        if options.date_format not in DATE_FORMATS:
            raise errors.ValidationError(
                f"Invalid date format '{options.date_format}'. "
                f"Must be one of: {', '.join(DATE_FORMATS + (DETECT,))}"
            )
        if options.date_format == AUTO and preset is not None and preset.date_format:
            return preset.date_format
        return options.date_format

    def preview(
        self,
        csv_file_path: str,
        account: str | int,
        options: Optional[ImportOptions] = None,
    ) -> ImportPlan:
        """Run the import pipeline without writing anything.

        Args:
            csv_file_path: Path to CSV file
            account: Target account name or ID
            options: Import options

        Returns:
            ImportPlan with mapped rows, row errors and duplicate verdicts

        Raises:
            NotFoundError: If the account or preset doesn't exist
            ValidationError: If the mapping cannot produce transactions
            FileNotFoundError: If CSV file doesn't exist
        """
        options = options or ImportOptions()
        target = self.account_service.resolve_account(account)
        table, delimiter = self.read_table(csv_file_path, options.delimiter)

        if table.is_empty:
            logger.info("%s is empty, nothing to import", csv_file_path)
            return ImportPlan(
                account=target,
                table=table,
                delimiter=delimiter,
                preset=None,
                mappings=[],
                date_format=AUTO,
                result=MappingResult(),
                verdicts=[],
                internal_duplicates=set(),
            )

        preset, mappings = self.resolve_mappings(
            table.headers, options.preset_id, options.mapping_overrides
        )
        missing = self.missing_fields(table.headers, mappings)
        if missing:
            raise errors.ValidationError(errors.missing_mappings(missing))

        date_format = self._resolve_date_format(options, preset, table, mappings)
        result = apply_mappings(
            table.headers,
            table.rows,
            mappings,
            starting_balance_marker=preset.starting_balance_marker if preset else None,
            date_format=date_format,
            vendor_patterns=preset.vendor_patterns if preset else (),
        )

        snapshot = self.existing_records(target.id, result.transactions, options.date_tolerance)
        verdicts = detect_duplicates(
            result.transactions,
            snapshot,
            account_scope=target.id,
            date_tolerance=options.date_tolerance,
            confidence_threshold=options.confidence_threshold,
        )
        internal = detect_internal_duplicates(result.transactions)

        logger.info(
            "Mapped %d rows from %s (%s): %d errors, %d duplicates, %d repeated",
            len(result.transactions),
            csv_file_path,
            preset.id if preset else "auto-mapped",
            len(result.errors),
            sum(1 for v in verdicts if v.is_duplicate),
            len(internal),
        )

        return ImportPlan(
            account=target,
            table=table,
            delimiter=delimiter,
            preset=preset,
            mappings=mappings,
            date_format=date_format,
            result=result,
            verdicts=verdicts,
            internal_duplicates=internal,
        )

    def import_csv(
        self,
        csv_file_path: str,
        account: str | int,
        options: Optional[ImportOptions] = None,
        include_duplicates: bool = False,
        dry_run: bool = False,
    ) -> dict[str, Any]:
        """Import transactions from a CSV file.

        Args:
            csv_file_path: Path to CSV file
            account: Target account name or ID
            options: Import options
            include_duplicates: Import rows flagged as duplicates too
            dry_run: Compute everything but write nothing

        Returns:
            Dict with import statistics:
            - imported: number of transactions imported (or that would be)
            - skipped: number of rows skipped as duplicates
            - skipped_details: list of {row_num, reason, details} dicts
            - errors: list of row error messages
            - preset: ID of the preset used, or None when auto-mapped

        Raises:
            NotFoundError: If the account or preset doesn't exist
            ValidationError: If the mapping cannot produce transactions
            FileNotFoundError: If CSV file doesn't exist
        """
        plan = self.preview(csv_file_path, account, options)

        imported = 0
        skipped_details = []

        for position, txn in enumerate(plan.transactions):
            reason = plan.skip_reason(position)
            if reason is not None and not include_duplicates:
                skipped_details.append(
                    {
                        "row_num": txn.source_row_index,
                        "reason": reason,
                        "details": {
                            "date": txn.date.isoformat(),
                            "vendor": txn.vendor,
                            "amount": str(txn.amount),
                        },
                    }
                )
                continue

            if not dry_run:
                self.db.create_transaction(
                    account_id=plan.account.id,
                    date=txn.date,
                    vendor=txn.vendor,
                    amount=txn.amount,
                    description=txn.description or None,
                    category_name=txn.category_name or None,
                    category_group_name=txn.category_group_name or None,
                    source_account=txn.account_name or None,
                    is_starting_balance=txn.is_starting_balance,
                )
            imported += 1

        logger.info(
            "%s %d transactions into account '%s' (%d skipped, %d errors)",
            "Would import" if dry_run else "Imported",
            imported,
            plan.account.name,
            len(skipped_details),
            len(plan.result.errors),
        )

        return {
            "imported": imported,
            "skipped": len(skipped_details),
            "skipped_details": skipped_details,
            "errors": [str(error) for error in plan.result.errors],
            "preset": plan.preset.id if plan.preset else None,
        }
