# cloudtunes/cli/__init__.py
import click
from dotenv import load_dotenv

from cloudtunes.cli.login import login, logout
from cloudtunes.cli.resolve import resolve
from cloudtunes.cli.scan import scan
from cloudtunes.core.logging_config import configure_logging


@click.group()
@click.option('--log-level', default=None, help='Override LOG_LEVEL (DEBUG, INFO, ...)')
def cli(log_level):
    """Browse a Dropbox account for music."""
    load_dotenv()
    configure_logging(log_level)


cli.add_command(login)
cli.add_command(logout)
cli.add_command(scan)
cli.add_command(resolve)
