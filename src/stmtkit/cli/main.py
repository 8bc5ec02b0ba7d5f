"""Main CLI entry point."""

import click

from stmtkit.utils.log_config import resolve_level, setup_logging

# Import and register all commands at module level
from stmtkit.cli.commands import compare, convert


def _validate_log_level(ctx, param, value):
    try:
        resolve_level(value)
    except ValueError as e:
        raise click.BadParameter(str(e)) from e
    return value


@click.group()
@click.option(
    "--log-level",
    default="warning",
    show_default=True,
    callback=_validate_log_level,
    help="Logging level (overrides STMTKIT_LOG_LEVEL environment variable)",
    envvar="STMTKIT_LOG_LEVEL",
)
@click.pass_context
def cli(ctx, log_level: str):
    """stmtkit - Bank statement toolkit.

    Convert statements between MT940, CAMT.053 and bank CSV exports, and
    reconcile the transactions of two statements.
    """
    ctx.ensure_object(dict)
    setup_logging(log_level)


# Register all commands
convert.register_commands(cli)
compare.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
