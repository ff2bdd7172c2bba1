"""CLI error handling helpers."""

import json

import click

from bankrecon.domain.errors import DomainError


def handle_domain_error(
    ctx: click.Context, error: DomainError | ValueError, as_json: bool = False
) -> None:
    """Render a domain error and exit with failure."""
    if as_json and isinstance(error, DomainError):
        payload = dict(error.to_payload(), status=error.status_code)
        click.echo(json.dumps(payload, default=str), err=True)
    else:
        click.echo(f"Error: {error}", err=True)
    ctx.exit(1)


def echo_json(payload) -> None:
    """Print a payload as indented JSON on stdout."""
    click.echo(json.dumps(payload, indent=2, default=str))
