"""Import and bank transaction viewing commands."""

import click
from bankrecon.cli.error_handling import echo_json, handle_domain_error
from bankrecon.domain.entities import Direction, MatchStatus
from bankrecon.domain.errors import DomainError
from bankrecon.domain.statement_import import StatementImportService
from bankrecon.utils.amount_parser import format_cents


@click.command("imports")
@click.option("--json", "as_json", is_flag=True, help="Print imports as JSON")
@click.pass_context
def list_imports(ctx, as_json: bool):
    """List statement imports, newest first."""
    service = StatementImportService(ctx.obj["db"])
    imports = service.list_imports()

    if as_json:
        echo_json(
            [
                {
                    "id": imp.id,
                    "file_name": imp.file_name,
                    "file_type": imp.file_type.value,
                    "status": imp.status.value,
                    "total_transactions": imp.total_transactions,
                    "total_credits": imp.total_credits_cents,
                    "total_debits": imp.total_debits_cents,
                    "error_message": imp.error_message,
                    "created_at": imp.created_at,
                }
                for imp in imports
            ]
        )
        return

    if not imports:
        click.echo("No imports found.")
        return

    click.echo(f"\nFound {len(imports)} import(s):")
    click.echo("-" * 100)
    click.echo(f"{'ID':<6} {'Status':<11} {'Type':<5} {'Lines':<6} {'Credits':<16} {'Debits':<16} {'File':<30}")
    click.echo("-" * 100)
    for imp in imports:
        click.echo(
            f"{imp.id:<6} {imp.status.value:<11} {imp.file_type.value:<5} "
            f"{imp.total_transactions:<6} {format_cents(imp.total_credits_cents):<16} "
            f"{format_cents(imp.total_debits_cents):<16} {imp.file_name[:30]:<30}"
        )
        if imp.error_message:
            click.echo(f"       Error: {imp.error_message}")


@click.command("transactions")
@click.argument("import_id", type=int)
@click.option(
    "--status",
    type=click.Choice([s.value for s in MatchStatus], case_sensitive=False),
    help="Only transactions with this match status",
)
@click.option(
    "--direction",
    type=click.Choice([d.value for d in Direction], case_sensitive=False),
    help="Only credits or only debits",
)
@click.option("--json", "as_json", is_flag=True, help="Print transactions as JSON")
@click.pass_context
def list_transactions(ctx, import_id: int, status: str | None, direction: str | None, as_json: bool):
    """List the bank transactions of an import."""
    service = StatementImportService(ctx.obj["db"])
    try:
        transactions = service.list_transactions(
            import_id,
            match_status=MatchStatus(status.lower()) if status else None,
            direction=Direction(direction.lower()) if direction else None,
        )
    except DomainError as e:
        handle_domain_error(ctx, e, as_json=as_json)
        return

    if as_json:
        echo_json(
            [
                dict(
                    txn.match_fields(),
                    fit_id=txn.fit_id,
                    direction=txn.direction.value,
                    posted_date=txn.posted_date,
                    amount_cents=txn.amount_cents,
                    memo=txn.memo,
                    parsed_type=txn.parsed_type,
                    counterparty_name=txn.counterparty_name,
                    counterparty_document=txn.counterparty_document,
                )
                for txn in transactions
            ]
        )
        return

    if not transactions:
        click.echo("No transactions found.")
        return

    click.echo(f"\nFound {len(transactions)} transaction(s):")
    click.echo("-" * 110)
    click.echo(
        f"{'ID':<6} {'Date':<12} {'Amount':<16} {'Type':<20} {'Status':<15} {'Memo':<40}"
    )
    click.echo("-" * 110)
    for txn in transactions:
        sign = "+" if txn.direction == Direction.CREDIT else "-"
        click.echo(
            f"{txn.id:<6} {str(txn.posted_date):<12} {sign + format_cents(txn.amount_cents):<16} "
            f"{txn.parsed_type:<20} {txn.match_status.value:<15} {txn.memo[:40]:<40}"
        )


@click.command("summary")
@click.argument("import_id", type=int)
@click.option("--json", "as_json", is_flag=True, help="Print the KPIs as JSON")
@click.pass_context
def import_summary(ctx, import_id: int, as_json: bool):
    """Show reconciliation KPIs for an import."""
    service = StatementImportService(ctx.obj["db"])
    try:
        kpis = service.summarize(import_id)
    except DomainError as e:
        handle_domain_error(ctx, e, as_json=as_json)
        return

    if as_json:
        echo_json(kpis)
        return

    click.echo(f"\nImport {import_id}:")
    click.echo(f"  Transactions: {kpis['total']}")
    click.echo(f"  Credits: {format_cents(kpis['credits'])}")
    click.echo(f"  Debits: {format_cents(kpis['debits'])}")
    click.echo(f"  Matched: {kpis['matched']}")
    click.echo(f"  Unmatched: {kpis['unmatched']}")
    click.echo(f"  Ignored: {kpis['ignored']}")


def register_commands(cli):
    """Register viewing commands with main CLI."""
    cli.add_command(list_imports)
    cli.add_command(list_transactions)
    cli.add_command(import_summary)
