"""Import preview command."""

import click
from csvintake.cli.error_handling import handle_domain_error
from csvintake.cli.import_options import build_import_options, import_option_flags
from csvintake.domain.csv_import import CSVImportService
from csvintake.domain.errors import DomainError
from csvintake.utils.csv_tokenizer import format_csv

NORMALIZED_HEADERS = (
    "row",
    "date",
    "vendor",
    "amount",
    "description",
    "category",
    "category_group",
    "account",
    "status",
)


@click.command("preview")
@click.argument("csv_file", type=click.Path(exists=True))
@click.option("--account", "-a", required=True, help="Target account name or ID")
@import_option_flags
@click.option("--csv", "as_csv", is_flag=True, help="Print the normalized rows as CSV")
@click.pass_context
def preview_csv(
    ctx,
    csv_file: str,
    account: str,
    preset: str | None,
    mapping_overrides: tuple[str, ...],
    delimiter: str | None,
    date_format: str,
    date_tolerance: int,
    threshold: float,
    as_csv: bool,
):
    """Show what an import would do, without writing anything.

    Examples:
        csvintake preview statement.csv --account "Current Account"
        csvintake preview export.csv -a 1 --map "Notes=vendor" --csv
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
        plan = service.preview(csv_file, account, options)
    except (DomainError, FileNotFoundError) as e:
        handle_domain_error(ctx, e)
        return

    if as_csv:
        rows = []
        for position, txn in enumerate(plan.transactions):
            reason = plan.skip_reason(position)
            rows.append(
                (
                    txn.source_row_index,
                    txn.date.isoformat(),
                    txn.vendor,
                    f"{txn.amount:.2f}",
                    txn.description,
                    txn.category_name,
                    txn.category_group_name,
                    txn.account_name,
                    "skip" if reason else ("starting balance" if txn.is_starting_balance else "new"),
                )
            )
        click.echo(format_csv(NORMALIZED_HEADERS, rows), nl=False)
        for error in plan.result.errors:
            click.echo(str(error), err=True)
        return

    if not plan.transactions and not plan.result.errors:
        click.echo("No transactions found.")
        return

    format_label = plan.preset.display_name if plan.preset else "auto-mapped"
    click.echo(f"\nPreview for account '{plan.account.name}' ({format_label}, dates {plan.date_format}):")
    click.echo("-" * 80)
    click.echo(f"{'Row':>5s} | {'Date':10s} | {'Vendor':30s} | {'Amount':>12s} | Status")
    click.echo("-" * 80)

    new_count = 0
    for position, txn in enumerate(plan.transactions):
        reason = plan.skip_reason(position)
        if reason is not None:
            status = f"SKIP: {reason}"
        else:
            new_count += 1
            status = "starting balance" if txn.is_starting_balance else "new"
        vendor = txn.vendor[:30]
        click.echo(
            f"{txn.source_row_index:5d} | {txn.date.isoformat()} | {vendor:30s} | "
            f"{txn.amount:12.2f} | {status}"
        )

    click.echo("-" * 80)
    click.echo(f"New: {new_count} | Skipped: {len(plan.transactions) - new_count} "
               f"| Errors: {len(plan.result.errors)}")
    for error in plan.result.errors:
        click.echo(f"  {error}", err=True)


def register_commands(cli):
    """Register preview command with main CLI."""
    cli.add_command(preview_csv)
