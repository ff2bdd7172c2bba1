"""Main CLI entry point."""

import click
from bankrecon.database.factories import create_sqlite_database
from bankrecon.logging_config import configure_logging

# Import and register all commands at module level
from bankrecon.cli.commands import (
    import_cmd,
    view,
    match,
    review,
    rule,
    category,
    invoice,
    expense,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides BANKRECON_DB_PATH environment variable)",
    envvar="BANKRECON_DB_PATH",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    envvar="BANKRECON_LOG_LEVEL",
    show_default=True,
    help="Log level for diagnostics written to stderr",
)
@click.option(
    "--log-json",
    is_flag=True,
    envvar="BANKRECON_LOG_JSON",
    help="Write logs as JSON lines",
)
@click.option(
    "--user",
    envvar="BANKRECON_USER",
    help="Acting user recorded on imports and matches",
)
@click.pass_context
def cli(ctx, db_path: str | None, log_level: str, log_json: bool, user: str | None):
    """Bankrecon - Bank statement reconciliation.

    Import OFX, CSV and XLSX bank statements, classify their lines and
    match them against open invoices and expenses.
    """
    ctx.ensure_object(dict)
    ctx.obj["user"] = user

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        configure_logging(level=log_level, json_output=log_json)
        db = create_sqlite_database(database_path=db_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.call_on_close(db.disconnect)


# Register all commands
import_cmd.register_commands(cli)
view.register_commands(cli)
match.register_commands(cli)
review.register_commands(cli)
rule.register_commands(cli)
category.register_commands(cli)
invoice.register_commands(cli)
expense.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
