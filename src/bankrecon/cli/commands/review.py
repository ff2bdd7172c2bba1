"""Manual review commands."""

import click
from bankrecon.cli.error_handling import echo_json, handle_domain_error
from bankrecon.domain.entities import BankTransaction, Invoice
from bankrecon.domain.errors import DomainError
from bankrecon.domain.review import ReviewService
from bankrecon.utils.amount_parser import format_cents

TARGET_CHOICE = click.Choice(["invoice", "expense"], case_sensitive=False)


def _report(transaction: BankTransaction, as_json: bool, message: str) -> None:
    if as_json:
        echo_json(transaction.match_fields())
    else:
        click.echo(message)


@click.group()
def review_group():
    """Approve, reject or override match suggestions."""
    pass


@review_group.command("approve")
@click.argument("transaction_id", type=int)
@click.argument("matched_type", type=TARGET_CHOICE)
@click.argument("matched_id", type=int)
@click.option(
    "--confidence",
    type=click.Choice(["high", "medium", "low"], case_sensitive=False),
    help="Confidence of the approved suggestion",
)
@click.option("--fee-cents", type=click.IntRange(min=0), help="Acquirer fee of a card settlement")
@click.option("--json", "as_json", is_flag=True, help="Print the match fields as JSON")
@click.pass_context
def approve(
    ctx,
    transaction_id: int,
    matched_type: str,
    matched_id: int,
    confidence: str | None,
    fee_cents: int | None,
    as_json: bool,
):
    """Approve a suggested match."""
    service = ReviewService(ctx.obj["db"])
    try:
        txn = service.approve(
            transaction_id,
            matched_type,
            matched_id,
            confidence=confidence,
            matched_by=ctx.obj.get("user"),
            processor_fee_cents=fee_cents,
        )
    except DomainError as e:
        handle_domain_error(ctx, e, as_json=as_json)
        return
    _report(txn, as_json, f"Matched transaction {transaction_id} to {matched_type} {matched_id}")


@review_group.command("reject")
@click.argument("transaction_id", type=int)
@click.option("--json", "as_json", is_flag=True, help="Print the match fields as JSON")
@click.pass_context
def reject(ctx, transaction_id: int, as_json: bool):
    """Reject a suggestion; the transaction stays unmatched."""
    service = ReviewService(ctx.obj["db"])
    try:
        txn = service.reject(transaction_id)
    except DomainError as e:
        handle_domain_error(ctx, e, as_json=as_json)
        return
    _report(txn, as_json, f"Suggestion for transaction {transaction_id} rejected")


@review_group.command("manual-match")
@click.argument("transaction_id", type=int)
@click.argument("matched_type", type=TARGET_CHOICE)
@click.argument("matched_id", type=int)
@click.option("--json", "as_json", is_flag=True, help="Print the match fields as JSON")
@click.pass_context
def manual_match(ctx, transaction_id: int, matched_type: str, matched_id: int, as_json: bool):
    """Match a transaction to a target of your choice."""
    service = ReviewService(ctx.obj["db"])
    try:
        txn = service.manual_match(
            transaction_id, matched_type, matched_id, matched_by=ctx.obj.get("user")
        )
    except DomainError as e:
        handle_domain_error(ctx, e, as_json=as_json)
        return
    _report(txn, as_json, f"Matched transaction {transaction_id} to {matched_type} {matched_id}")


@review_group.command("ignore")
@click.argument("transaction_id", type=int)
@click.option("--json", "as_json", is_flag=True, help="Print the match fields as JSON")
@click.pass_context
def ignore(ctx, transaction_id: int, as_json: bool):
    """Exclude a transaction from future matching."""
    service = ReviewService(ctx.obj["db"])
    try:
        txn = service.ignore(transaction_id, matched_by=ctx.obj.get("user"))
    except DomainError as e:
        handle_domain_error(ctx, e, as_json=as_json)
        return
    _report(txn, as_json, f"Transaction {transaction_id} ignored")


@review_group.command("candidates")
@click.argument("transaction_id", type=int)
@click.option("--search", help="Filter by name, description or amount")
@click.pass_context
def candidates(ctx, transaction_id: int, search: str | None):
    """List open invoices or expenses a transaction can be matched to."""
    service = ReviewService(ctx.obj["db"])
    try:
        items = service.list_candidates(transaction_id, search=search)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if not items:
        click.echo("No open candidates found.")
        return

    click.echo(f"\nFound {len(items)} candidate(s):")
    click.echo("-" * 90)
    for item in items:
        kind = "invoice" if isinstance(item, Invoice) else "expense"
        label = item.student_name if isinstance(item, Invoice) else item.description
        click.echo(
            f"{kind:<8} {item.id:<6} {str(item.due_date):<12} "
            f"{format_cents(item.amount_cents):<16} {(label or '')[:40]}"
        )


def register_commands(cli):
    """Register review commands with main CLI."""
    cli.add_command(review_group, name="review")
