"""EXQL CLI entry point."""

import logging

import click

from exql.config import ExqlConfig

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@click.group()
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    help="Logging level (default: EXQL_LOG_LEVEL or WARNING).",
)
@click.pass_context
def cli(ctx: click.Context, log_level: str | None):
    """EXQL: evaluate and inspect expressions from the command line."""
    config = ExqlConfig.from_env()
    if log_level:
        config.log_level = log_level.upper()
    if config.log_level not in LOG_LEVELS:
        config.log_level = "WARNING"
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = config


# Register subcommands
from exql.cli.eval_cmd import eval_cmd, parse_cmd, tokens_cmd  # noqa: E402
from exql.cli.functions_cmd import functions  # noqa: E402

cli.add_command(eval_cmd)
cli.add_command(parse_cmd)
cli.add_command(tokens_cmd)
cli.add_command(functions)
