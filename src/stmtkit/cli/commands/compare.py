"""Compare command."""

import click

from stmtkit.cli.error_handling import handle_statement_error
from stmtkit.cli.format_option import STATEMENT_FORMAT
from stmtkit.domain.entities import Transaction
from stmtkit.domain.errors import StatementError
from stmtkit.domain.reconciliation import ReconciliationService, percent
from stmtkit.domain.statement_io import parse_statement
from stmtkit.utils.text_io import read_text

DESCRIPTION_WIDTH = 50


def format_transaction(tx: Transaction) -> str:
    """Render one transaction as a single report line."""
    sign = "+" if tx.is_credit else "-"
    reference = tx.reference or "-"
    description = tx.description
    if len(description) > DESCRIPTION_WIDTH:
        description = description[: DESCRIPTION_WIDTH - 3] + "..."
    return (
        f"{tx.date} {sign} {tx.amount.as_decimal():.2f} {tx.amount.currency}"
        f" | {reference} | {description}"
    )


def _load(ctx, path: str, fmt, label: str):
    try:
        return parse_statement(read_text(path), fmt)
    except StatementError as e:
        handle_statement_error(ctx, StatementError(f"{label}: {e}"))


@click.command("compare")
@click.argument("file1", type=click.Path(exists=True, dir_okay=False))
@click.argument("file2", type=click.Path(exists=True, dir_okay=False))
@click.option("--format1", required=True, type=STATEMENT_FORMAT, help="Format of FILE1")
@click.option("--format2", required=True, type=STATEMENT_FORMAT, help="Format of FILE2")
@click.option("--verbose", "-v", is_flag=True, help="List matched and unmatched transactions")
@click.pass_context
def compare_statements(ctx, file1: str, file2: str, format1, format2, verbose: bool):
    """Reconcile the transactions of two statements.

    Exits with status 1 when any transaction is left unmatched.
    """
    first = _load(ctx, file1, format1, file1)
    second = _load(ctx, file2, format2, file2)

    result = ReconciliationService().reconcile(first, second)

    click.echo("=== Comparison results ===")
    click.echo(f"Transactions in file 1: {result.first_total}")
    click.echo(f"Transactions in file 2: {result.second_total}")
    click.echo()
    click.echo(
        f"Matched: {len(result.matched)} "
        f"({result.matched_percent_first:.1f}% of file 1, "
        f"{result.matched_percent_second:.1f}% of file 2)"
    )
    click.echo(
        f"Only in file 1: {len(result.only_in_first)} "
        f"({percent(len(result.only_in_first), result.first_total):.1f}%)"
    )
    click.echo(
        f"Only in file 2: {len(result.only_in_second)} "
        f"({percent(len(result.only_in_second), result.second_total):.1f}%)"
    )

    if verbose:
        if result.matched:
            click.echo("\n--- Matched ---")
            for (i, j), score in zip(result.matched, result.scores):
                click.echo(f"[1] {format_transaction(first.transactions[i])}")
                click.echo(f"[2] {format_transaction(second.transactions[j])}")
                click.echo(f"    score {score}")
        if result.only_in_first:
            click.echo("\n--- Only in file 1 ---")
            for i in result.only_in_first:
                click.echo(format_transaction(first.transactions[i]))
        if result.only_in_second:
            click.echo("\n--- Only in file 2 ---")
            for j in result.only_in_second:
                click.echo(format_transaction(second.transactions[j]))

    if not result.is_clean:
        ctx.exit(1)


def register_commands(cli):
    """Register compare command with main CLI."""
    cli.add_command(compare_statements)
