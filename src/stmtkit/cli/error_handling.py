"""CLI error handling helpers."""

import click

from stmtkit.domain.errors import StatementError


def handle_statement_error(ctx: click.Context, error: StatementError) -> None:
    """Render a statement error and exit with failure."""
    click.echo(f"Error: {error}", err=True)
    ctx.exit(1)
