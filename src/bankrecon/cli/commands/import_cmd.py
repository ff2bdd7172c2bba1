"""Statement import command."""

import click
from bankrecon.cli.error_handling import echo_json, handle_domain_error
from bankrecon.domain.errors import DomainError
from bankrecon.domain.statement_import import DEFAULT_CATEGORY_NAME, StatementImportService
from bankrecon.utils.amount_parser import format_cents
from bankrecon.utils.date_parser import parse_date


@click.command("import")
@click.argument("statement_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--type",
    "file_type",
    type=click.Choice(["ofx", "csv", "xlsx", "xls"], case_sensitive=False),
    help="Statement format (default: from the file extension)",
)
@click.option(
    "--default-category",
    envvar="BANKRECON_DEFAULT_CATEGORY",
    default=DEFAULT_CATEGORY_NAME,
    show_default=True,
    help="Category for auto-created expenses no rule matches",
)
@click.option("--reference-date", help="Card statement due date when the sheet has none")
@click.option("--json", "as_json", is_flag=True, help="Print the import summary as JSON")
@click.pass_context
def import_statement(
    ctx,
    statement_file: str,
    file_type: str | None,
    default_category: str,
    reference_date: str | None,
    as_json: bool,
):
    """Import a bank statement file (OFX, CSV or XLSX)."""
    db = ctx.obj["db"]
    service = StatementImportService(db, default_category_name=default_category)

    try:
        reference = parse_date(reference_date) if reference_date else None
        result = service.ingest_file(
            statement_file,
            file_type=file_type,
            imported_by=ctx.obj.get("user"),
            reference_date=reference,
        )
    except DomainError as e:
        handle_domain_error(ctx, e, as_json=as_json)
        return
    except ValueError as e:
        handle_domain_error(ctx, e)
        return

    if as_json:
        echo_json(result.to_dict())
        return

    click.echo(f"\nImport complete (ID: {result.import_id}):")
    click.echo(f"  Transactions: {result.total_transactions}")
    click.echo(f"  Skipped balance entries: {result.skipped_balance_entries}")
    if result.skipped_duplicates:
        click.echo(f"  Skipped duplicate lines: {result.skipped_duplicates}")
    click.echo(f"  Credits: {format_cents(result.total_credits_cents)}")
    click.echo(f"  Debits: {format_cents(result.total_debits_cents)}")
    if result.bank_id or result.account_id:
        click.echo(f"  Bank: {result.bank_id or '-'}  Account: {result.account_id or '-'}")
    if result.period_start:
        click.echo(f"  Period: {result.period_start} to {result.period_end}")
    click.echo(f"  Expenses created: {result.expenses_created}")


def register_commands(cli):
    """Register import command with main CLI."""
    cli.add_command(import_statement)
