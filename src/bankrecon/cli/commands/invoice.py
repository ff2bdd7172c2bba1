"""Invoice commands.

Invoices belong to the billing side; these commands only seed and inspect
them for reconciliation.
"""

import click
from bankrecon.domain.entities import OPEN_INVOICE_STATUSES
from bankrecon.utils.amount_parser import format_cents, parse_cents
from bankrecon.utils.date_parser import parse_date


@click.group()
def invoice_group():
    """Manage invoices (receivables)."""
    pass


@invoice_group.command("add")
@click.argument("amount")
@click.argument("due_date")
@click.option("--student", help="Student name looked for in transaction memos")
@click.option("--description", help="Invoice description")
@click.pass_context
def add_invoice(ctx, amount: str, due_date: str, student: str | None, description: str | None):
    """Add a pending invoice of AMOUNT (e.g. 150,00) due on DUE_DATE."""
    db = ctx.obj["db"]
    try:
        amount_cents = parse_cents(amount)
        due = parse_date(due_date)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)
        return
    if amount_cents <= 0:
        click.echo("Error: Amount must be positive", err=True)
        ctx.exit(1)
        return

    invoice_id = db.create_invoice(
        amount_cents=amount_cents, due_date=due, student_name=student, description=description
    )
    click.echo(f"Created invoice {invoice_id}: {format_cents(amount_cents)} due {due}")


@invoice_group.command("list")
@click.option("--open", "only_open", is_flag=True, help="Only pending and overdue invoices")
@click.pass_context
def list_invoices(ctx, only_open: bool):
    """List invoices."""
    db = ctx.obj["db"]
    statuses = OPEN_INVOICE_STATUSES if only_open else None
    invoices = db.list_invoices(statuses=statuses)
    if not invoices:
        click.echo("No invoices found.")
        return

    click.echo(f"\nFound {len(invoices)} invoice(s):")
    click.echo(f"{'ID':<6} {'Due':<12} {'Amount':<16} {'Status':<10} {'Paid':<12} {'Student':<30}")
    click.echo("-" * 90)
    for inv in invoices:
        click.echo(
            f"{inv.id:<6} {str(inv.due_date):<12} {format_cents(inv.amount_cents):<16} "
            f"{inv.status.value:<10} {str(inv.payment_date or ''):<12} {(inv.student_name or '')[:30]:<30}"
        )


def register_commands(cli):
    """Register invoice commands with main CLI."""
    cli.add_command(invoice_group, name="invoice")
