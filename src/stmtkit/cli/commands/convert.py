"""Convert command."""

import click

from stmtkit.cli.error_handling import handle_statement_error
from stmtkit.cli.format_option import STATEMENT_FORMAT
from stmtkit.domain.converter import ConversionService
from stmtkit.domain.errors import StatementError
from stmtkit.formats.diagnostics import Diagnostics
from stmtkit.utils.text_io import read_text, write_text


@click.command("convert")
@click.option("--from", "-f", "source", required=True, type=STATEMENT_FORMAT, help="Input format")
@click.option("--to", "-t", "target", required=True, type=STATEMENT_FORMAT, help="Output format")
@click.option(
    "--input", "-i", "input_path", type=click.Path(dir_okay=False), help="Input file (default: stdin)"
)
@click.option(
    "--output", "-o", "output_path", type=click.Path(dir_okay=False), help="Output file (default: stdout)"
)
@click.pass_context
def convert_statement(ctx, source, target, input_path: str | None, output_path: str | None):
    """Convert a statement from one format to another."""
    service = ConversionService()
    diagnostics = Diagnostics()

    try:
        content = read_text(input_path)
        output = service.convert(content, source, target, diagnostics)
        write_text(output, output_path)
    except StatementError as e:
        handle_statement_error(ctx, e)
        return

    if output_path is not None:
        click.echo(f"Converted {source.label} to {target.label}: {output_path}", err=True)
    # Each warning was already logged when it was recorded
    if diagnostics.warnings:
        click.echo(f"Skipped items: {len(diagnostics.warnings)}", err=True)


def register_commands(cli):
    """Register convert command with main CLI."""
    cli.add_command(convert_statement)
