"""
Main CLI group for Inbox Unsubscriber.

Integrates all command groups into a single CLI application.
"""

import click

from .. import __version__
from ..logging import configure_logging
from .commands.action import unsubscribe
from .commands.admin import init, cache
from .commands.scan import scan
from .commands.skip import skip


@click.group()
@click.version_option(version=__version__, prog_name='Inbox Unsubscriber')
@click.option('--log-level', default='WARNING',
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False),
              help='Logging verbosity')
@click.option('--log-file', default=None, help='Also write logs to this file')
def cli(log_level, log_file):
    """
    Inbox Unsubscriber - find junk senders, unsubscribe and clean up.

    Classifies inbox mail with cheap heuristics first and an LLM only for
    ambiguous messages, then unsubscribes and archives per sender.
    """
    configure_logging(level=log_level, output='both' if log_file else 'console', filename=log_file)


# Register command groups
cli.add_command(skip, name='skip')
cli.add_command(cache, name='cache')

# Register standalone commands
cli.add_command(init, name='init')
cli.add_command(scan, name='scan')
cli.add_command(unsubscribe, name='unsubscribe')
