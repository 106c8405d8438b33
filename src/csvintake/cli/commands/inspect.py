"""CSV inspection command."""

import click
from csvintake.cli.error_handling import handle_domain_error
from csvintake.domain.csv_import import CSVImportService
from csvintake.domain.entities import RawTable, SemanticField
from csvintake.domain.errors import DomainError
from csvintake.domain.row_mapper import FieldIndex
from csvintake.utils.date_parser import detect_date_format

_DELIMITER_NAMES = {",": "comma", ";": "semicolon", "\t": "tab", "|": "pipe"}


@click.command("inspect")
@click.argument("csv_file", type=click.Path(exists=True))
@click.option("--delimiter", help="Field separator; detected if omitted")
@click.option("--preset", help="Format preset ID to check against")
@click.pass_context
def inspect_csv(ctx, csv_file: str, delimiter: str | None, preset: str | None):
    """Show how a CSV file would be read, without importing it.

    Examples:
        csvintake inspect statement.csv
        csvintake inspect export.csv --preset ynab
    """
    db = ctx.obj["db"]
    service = CSVImportService(db)

    if delimiter == "\\t":
        delimiter = "\t"

    try:
        table, used_delimiter = service.read_table(csv_file, delimiter)
        if table.is_empty:
            click.echo("File is empty.")
            return
        found_preset, mappings = service.resolve_mappings(table.headers, preset)
    except (DomainError, FileNotFoundError) as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"\nDelimiter: {_DELIMITER_NAMES.get(used_delimiter, repr(used_delimiter))}")
    click.echo(f"Rows: {len(table.rows)}")
    if found_preset is not None:
        click.echo(f"Format: {found_preset.display_name} ({found_preset.id})")
    else:
        click.echo("Format: unrecognized (auto-mapped from header names)")

    index = FieldIndex(table.headers, mappings)
    resolved: dict[int, list[str]] = {}
    for field in SemanticField:
        if field is not SemanticField.IGNORE and index.has(field):
            resolved.setdefault(index.column(field), []).append(field.value)

    click.echo("\nColumns:")
    click.echo("-" * 60)
    for position, header in enumerate(table.headers):
        fields = ", ".join(resolved.get(position, [SemanticField.IGNORE.value]))
        click.echo(f"  {header:30s} -> {fields}")

    date_column = index.column(SemanticField.DATE)
    if date_column is not None:
        samples = (RawTable.cell(row, date_column) for row in table.rows)
        click.echo(f"\nDate format: {detect_date_format(samples)}")

    missing = service.missing_fields(table.headers, mappings)
    if missing:
        click.echo(f"\nMissing required fields: {', '.join(missing)}")
        click.echo("Use --map HEADER=FIELD on preview/import to assign them.")


def register_commands(cli):
    """Register inspect command with main CLI."""
    cli.add_command(inspect_csv)
