"""Matching command."""

from decimal import Decimal

import click
from bankrecon.cli.error_handling import echo_json, handle_domain_error
from bankrecon.domain.errors import DomainError
from bankrecon.domain.matching import DEFAULT_CONFIG, MatchingConfig, MatchingService


@click.command("match")
@click.option("--import-id", type=int, help="Only match transactions of this import")
@click.option("--auto-apply", is_flag=True, help="Apply high-confidence suggestions immediately")
@click.option(
    "--tolerance-cents",
    type=click.IntRange(min=0),
    envvar="BANKRECON_AMOUNT_TOLERANCE_CENTS",
    default=DEFAULT_CONFIG.amount_tolerance_cents,
    show_default=True,
    help="Largest amount difference accepted as an approximate match",
)
@click.option(
    "--fee-rate",
    type=click.FloatRange(min=0, max=1),
    envvar="BANKRECON_ACQUIRER_FEE_RATE",
    default=float(DEFAULT_CONFIG.acquirer_fee_rate),
    show_default=True,
    help="Largest acquirer fee, as a fraction of the invoice, for card settlements",
)
@click.option("--json", "as_json", is_flag=True, help="Print suggestions and stats as JSON")
@click.pass_context
def match_transactions(
    ctx,
    import_id: int | None,
    auto_apply: bool,
    tolerance_cents: int,
    fee_rate: float,
    as_json: bool,
):
    """Suggest matches between unmatched transactions and open invoices/expenses."""
    config = MatchingConfig(
        amount_tolerance_cents=tolerance_cents,
        acquirer_fee_rate=Decimal(str(fee_rate)),
    )
    service = MatchingService(ctx.obj["db"], config=config)

    try:
        result = service.run(
            import_id=import_id, auto_apply=auto_apply, matched_by=ctx.obj.get("user")
        )
    except DomainError as e:
        handle_domain_error(ctx, e, as_json=as_json)
        return

    if as_json:
        echo_json(result.to_dict())
        return

    stats = result.stats
    if not result.matches:
        click.echo(f"No matches found among {stats.total_transactions} unmatched transaction(s).")
        return

    click.echo(f"\nFound {stats.total_matches} match(es) among {stats.total_transactions} transaction(s):")
    click.echo("-" * 110)
    click.echo(f"{'Txn':<6} {'Target':<16} {'Confidence':<11} {'Reason':<75}")
    click.echo("-" * 110)
    for suggestion in result.matches:
        target = f"{suggestion.matched_type.value} {suggestion.matched_id}"
        click.echo(
            f"{suggestion.transaction_id:<6} {target:<16} {suggestion.confidence.value:<11} "
            f"{suggestion.reason}"
        )
    click.echo(
        f"\nHigh: {stats.high_confidence}  Medium: {stats.medium_confidence}  "
        f"Low: {stats.low_confidence}"
    )
    if auto_apply:
        click.echo(f"Auto-applied: {stats.auto_applied}")


def register_commands(cli):
    """Register match command with main CLI."""
    cli.add_command(match_transactions)
