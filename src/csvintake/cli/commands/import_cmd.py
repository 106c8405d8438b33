"""CSV import command."""

import click
from csvintake.cli.error_handling import handle_domain_error
from csvintake.cli.import_options import build_import_options, import_option_flags
from csvintake.domain.csv_import import CSVImportService
from csvintake.domain.errors import DomainError


@click.command("import")
@click.argument("csv_file", type=click.Path(exists=True))
@click.option("--account", "-a", required=True, help="Target account name or ID")
@import_option_flags
@click.option(
    "--include-duplicates", is_flag=True, help="Import rows flagged as duplicates too"
)
@click.option("--dry-run", is_flag=True, help="Report what would be imported without writing")
@click.option("--verbose", "-v", is_flag=True, help="List every skipped row")
@click.pass_context
def import_csv(
    ctx,
    csv_file: str,
    account: str,
    preset: str | None,
    mapping_overrides: tuple[str, ...],
    delimiter: str | None,
    date_format: str,
    date_tolerance: int,
    threshold: float,
    include_duplicates: bool,
    dry_run: bool,
    verbose: bool,
):
    """Import transactions from a CSV file.

    Examples:
        csvintake import statement.csv --account "Current Account"
        csvintake import export.csv -a 1 --preset ynab --dry-run
    """
    db = ctx.obj["db"]
    service = CSVImportService(db)
    options = build_import_options(
        ctx,
        preset=preset,
        mapping_overrides=mapping_overrides,
        delimiter=delimiter,
        date_format=date_format,
        date_tolerance=date_tolerance,
        threshold=threshold,
    )

    try:
        result = service.import_csv(
            csv_file_path=csv_file,
            account=account,
            options=options,
            include_duplicates=include_duplicates,
            dry_run=dry_run,
        )
    except (DomainError, FileNotFoundError) as e:
        handle_domain_error(ctx, e)
        return

    click.echo("\nDry run (nothing written):" if dry_run else "\nImport complete:")
    click.echo(f"  Format: {result['preset'] or 'auto-mapped'}")
    click.echo(f"  Imported: {result['imported']} transactions")
    click.echo(f"  Skipped: {result['skipped']} duplicates")
    if verbose:
        for skipped in result["skipped_details"]:
            details = skipped["details"]
            click.echo(
                f"    Row {skipped['row_num']}: {details['date']} {details['vendor']} "
                f"{details['amount']} ({skipped['reason']})"
            )
    if result["errors"]:
        click.echo(f"  Errors: {len(result['errors'])}")
        for error in result["errors"]:
            click.echo(f"    {error}", err=True)


def register_commands(cli):
    """Register import command with main CLI."""
    cli.add_command(import_csv)
