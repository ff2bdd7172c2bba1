"""Expense commands."""

import click
from bankrecon.domain.category_rules import CategoryRuleService
from bankrecon.domain.entities import ExpenseSource, ExpenseStatus
from bankrecon.domain.errors import DomainError
from bankrecon.cli.error_handling import handle_domain_error
from bankrecon.utils.amount_parser import format_cents, parse_cents
from bankrecon.utils.date_parser import parse_date


@click.group()
def expense_group():
    """Manage expenses (payables)."""
    pass


@expense_group.command("add")
@click.argument("amount")
@click.argument("due_date")
@click.argument("description")
@click.option("--category", "category_name", help="Expense category (created if missing)")
@click.option("--notes", help="Free-form notes")
@click.pass_context
def add_expense(
    ctx, amount: str, due_date: str, description: str, category_name: str | None, notes: str | None
):
    """Add a pending expense of AMOUNT due on DUE_DATE."""
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

    category_id = None
    if category_name:
        try:
            category_id = CategoryRuleService(db).get_or_create_category(category_name)
        except DomainError as e:
            handle_domain_error(ctx, e)
            return

    expense_id = db.create_expense(
        amount_cents=amount_cents,
        due_date=due,
        description=description,
        category_id=category_id,
        notes=notes,
    )
    click.echo(f"Created expense {expense_id}: {format_cents(amount_cents)} due {due}")


@expense_group.command("list")
@click.option(
    "--status",
    type=click.Choice([s.value for s in ExpenseStatus], case_sensitive=False),
    help="Only expenses with this status",
)
@click.option(
    "--source",
    type=click.Choice([s.value for s in ExpenseSource], case_sensitive=False),
    help="Only expenses from this source",
)
@click.pass_context
def list_expenses(ctx, status: str | None, source: str | None):
    """List expenses."""
    db = ctx.obj["db"]
    expenses = db.list_expenses(
        statuses=[ExpenseStatus(status.lower())] if status else None,
        source=ExpenseSource(source.lower()) if source else None,
    )
    if not expenses:
        click.echo("No expenses found.")
        return

    click.echo(f"\nFound {len(expenses)} expense(s):")
    click.echo(f"{'ID':<6} {'Due':<12} {'Amount':<16} {'Status':<10} {'Source':<12} {'Description':<40}")
    click.echo("-" * 100)
    for exp in expenses:
        click.echo(
            f"{exp.id:<6} {str(exp.due_date):<12} {format_cents(exp.amount_cents):<16} "
            f"{exp.status.value:<10} {exp.source.value:<12} {exp.description[:40]:<40}"
        )


def register_commands(cli):
    """Register expense commands with main CLI."""
    cli.add_command(expense_group, name="expense")
