"""Main CLI entry point."""

import click
from csvintake.database.factories import create_sqlite_database
from csvintake.logging_setup import configure_logging

# Import and register all commands at module level
from csvintake.cli.commands import (
    account,
    formats,
    inspect,
    preview,
    import_cmd,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides CSVINTAKE_DB_PATH environment variable)",
    envvar="CSVINTAKE_DB_PATH",
)
@click.option(
    "--log-level",
    help="Logging level, e.g. DEBUG or INFO (overrides CSVINTAKE_LOG_LEVEL)",
    envvar="CSVINTAKE_LOG_LEVEL",
)
@click.pass_context
def cli(ctx, db_path: str | None, log_level: str | None):
    """csvintake - Import bank CSV exports into your budget.

    Detects the export format (or guesses the columns), normalizes dates and
    amounts, and flags rows that are already in the budget before anything
    is written.
    """
    ctx.ensure_object(dict)
    configure_logging(log_level)

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None and "db" not in ctx.obj:
        db = create_sqlite_database(database_path=db_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.call_on_close(db.disconnect)


# Register all commands
account.register_commands(cli)
formats.register_commands(cli)
inspect.register_commands(cli)
preview.register_commands(cli)
import_cmd.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
