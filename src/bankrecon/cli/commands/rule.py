"""Expense category rule commands."""

import click
from bankrecon.cli.error_handling import handle_domain_error
from bankrecon.domain.category_rules import DEFAULT_RULE_PRIORITY, CategoryRuleService
from bankrecon.domain.errors import DomainError


@click.group()
def rule_group():
    """Manage keyword rules that categorize imported debits."""
    pass


@rule_group.command("add")
@click.argument("keyword")
@click.argument("category_name")
@click.option(
    "--priority",
    type=int,
    default=DEFAULT_RULE_PRIORITY,
    show_default=True,
    help="Higher priorities are tried first",
)
@click.pass_context
def add_rule(ctx, keyword: str, category_name: str, priority: int):
    """Add a rule assigning CATEGORY_NAME to memos containing KEYWORD."""
    service = CategoryRuleService(ctx.obj["db"])
    try:
        rule_id = service.add_rule(keyword, category_name, priority=priority)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Created rule '{keyword.strip().upper()}' -> '{category_name}' (ID: {rule_id})")


@rule_group.command("list")
@click.pass_context
def list_rules(ctx):
    """List rules, highest priority first."""
    service = CategoryRuleService(ctx.obj["db"])
    rules = service.list_rules()
    if not rules:
        click.echo("No rules found.")
        return

    categories = {c.id: c.name for c in service.list_categories()}
    click.echo("\nRules:")
    click.echo(f"{'ID':<6} {'Priority':<9} {'Keyword':<30} {'Category':<30}")
    click.echo("-" * 75)
    for rule in rules:
        click.echo(
            f"{rule.id:<6} {rule.priority:<9} {rule.keyword:<30} "
            f"{categories.get(rule.category_id, 'Unknown'):<30}"
        )


@rule_group.command("delete")
@click.argument("rule_id", type=int)
@click.pass_context
def delete_rule(ctx, rule_id: int):
    """Delete a rule."""
    service = CategoryRuleService(ctx.obj["db"])
    try:
        service.delete_rule(rule_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Deleted rule {rule_id}")


def register_commands(cli):
    """Register rule commands with main CLI."""
    cli.add_command(rule_group, name="rule")
