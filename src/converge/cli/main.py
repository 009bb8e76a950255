"""Main CLI entry point for Converge."""

import click
from .commands.plan import plan
from .commands.apply import apply
from .commands.destroy import destroy
from .commands.validate import validate
from .commands.stack import stack
from .commands.version import version as version_command
from ..utils.logging import get_logger, setup_logging
from .. import __version__

logger = get_logger("cli.main")


@click.group()
@click.version_option(version=__version__, prog_name="converge", message="%(prog)s version %(version)s")
@click.option('--log-level', type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False),
              default='WARNING', envvar='CONVERGE_LOG_LEVEL', show_default=True,
              help='Log level for stderr logging (env: CONVERGE_LOG_LEVEL)')
def cli(log_level):
    """Converge - declarative infrastructure reconciliation."""
    setup_logging(log_level)


cli.add_command(plan)
cli.add_command(apply)
cli.add_command(destroy)
cli.add_command(validate)
cli.add_command(stack)
cli.add_command(version_command)


if __name__ == "__main__":
    cli()
