"""Format preset listing command."""

import click
from csvintake.domain.presets import FORMAT_PRESETS


@click.command("formats")
@click.option("--verbose", "-v", is_flag=True, help="Show column mappings for each preset")
def list_formats(verbose: bool):
    """List the export formats that are recognized automatically."""
    click.echo("\nKnown formats:")
    click.echo("-" * 60)
    for preset in FORMAT_PRESETS:
        flags = []
        if preset.supports_multiple_accounts:
            flags.append("multi-account")
        if preset.date_format:
            flags.append(f"dates {preset.date_format}")
        suffix = f" [{', '.join(flags)}]" if flags else ""
        click.echo(f"{preset.id:28s} {preset.display_name}{suffix}")
        if verbose:
            click.echo(f"  {preset.description}")
            for mapping in preset.column_mappings:
                click.echo(f"    {mapping.source_header} -> {mapping.field.value}")


def register_commands(cli):
    """Register formats command with main CLI."""
    cli.add_command(list_formats)
