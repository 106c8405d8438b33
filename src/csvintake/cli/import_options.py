"""CLI helpers for options shared by the preview and import commands."""

import click

from csvintake.domain.csv_import import DETECT, ImportOptions
from csvintake.domain.duplicates import DEFAULT_CONFIDENCE_THRESHOLD, DEFAULT_DATE_TOLERANCE
from csvintake.utils.date_parser import DATE_FORMATS


def import_option_flags(func):
    """Attach the mapping and duplicate-detection options to a command."""
    options = [
        click.option("--preset", help="Format preset ID (see 'formats'); detected if omitted"),
        click.option(
            "--map",
            "mapping_overrides",
            multiple=True,
            metavar="HEADER=FIELD",
            help="Override the field of one column, e.g. --map 'Notes=vendor'",
        ),
        click.option("--delimiter", help="Field separator; detected if omitted"),
        click.option(
            "--date-format",
            type=click.Choice(DATE_FORMATS + (DETECT,)),
            default=DATE_FORMATS[0],
            show_default=True,
            help="Date component order; 'detect' infers it from the whole column",
        ),
        click.option(
            "--date-tolerance",
            type=click.IntRange(min=0),
            default=DEFAULT_DATE_TOLERANCE,
            show_default=True,
            help="Days either side of a row's date searched for duplicates",
        ),
        click.option(
            "--threshold",
            type=click.FloatRange(min=0.0, max=1.0),
            default=DEFAULT_CONFIDENCE_THRESHOLD,
            show_default=True,
            help="Minimum confidence for a row to count as a duplicate",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def parse_mapping_overrides(ctx, values: tuple[str, ...]) -> dict[str, str]:
    """Parse repeated HEADER=FIELD values, exiting on malformed input."""
    overrides = {}
    for value in values:
        header, sep, field = value.rpartition("=")
        if not sep or not header.strip() or not field.strip():
            click.echo(f"Error: Invalid --map value '{value}', expected HEADER=FIELD", err=True)
            ctx.exit(1)
        overrides[header.strip()] = field.strip()
    return overrides


def build_import_options(
    ctx,
    *,
    preset: str | None,
    mapping_overrides: tuple[str, ...],
    delimiter: str | None,
    date_format: str,
    date_tolerance: int,
    threshold: float,
) -> ImportOptions:
    """Build ImportOptions from parsed CLI values."""
    if delimiter is not None:
        # Allow writing a tab as \t on the command line
        delimiter = "\t" if delimiter == "\\t" else delimiter
        if len(delimiter) != 1:
            click.echo("Error: --delimiter must be a single character", err=True)
            ctx.exit(1)

    return ImportOptions(
        delimiter=delimiter,
        preset_id=preset,
        mapping_overrides=parse_mapping_overrides(ctx, mapping_overrides),
        date_format=date_format,
        date_tolerance=date_tolerance,
        confidence_threshold=threshold,
    )
