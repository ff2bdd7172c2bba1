"""Expense category commands."""

import click
from bankrecon.cli.error_handling import handle_domain_error
from bankrecon.domain.category_rules import CategoryRuleService
from bankrecon.domain.errors import DomainError


@click.group()
def category_group():
    """Manage expense categories."""
    pass


@category_group.command("list")
@click.pass_context
def list_categories(ctx):
    """List all expense categories."""
    service = CategoryRuleService(ctx.obj["db"])
    categories = service.list_categories()
    if not categories:
        click.echo("No categories found.")
        return

    click.echo("\nCategories:")
    for category in categories:
        click.echo(f"{category.name} (ID: {category.id})")


@category_group.command("create")
@click.argument("name")
@click.pass_context
def create_category(ctx, name: str):
    """Create a new expense category."""
    service = CategoryRuleService(ctx.obj["db"])
    try:
        category_id = service.create_category(name)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Created category '{name}' (ID: {category_id})")


def register_commands(cli):
    """Register category commands with main CLI."""
    cli.add_command(category_group, name="category")
