"""
Skip list commands: keep receiving mail from a sender domain.
"""

import click

from ...database.skip_list import SkipListStore
from ..utils import get_database


@click.group('skip')
def skip():
    """Manage sender domains excluded from scan reports."""


@skip.command('add')
@click.argument('domain')
@click.option('--name', default=None, help='Display name for the sender')
@click.option('--reason', default=None, help='Why this sender is kept')
def skip_add(domain, name, reason):
    """
    Add a sender domain to the skip list.

    Example:
        python main.py skip add news.example.com --reason "Read weekly"
    """
    store = SkipListStore(get_database())
    if store.add(domain, name or domain, reason):
        click.secho(f"✓ {domain} will be left out of future scans", fg='green')
    else:
        click.secho(f"✗ Could not add {domain} to the skip list", fg='red')
        raise click.Abort()


@skip.command('remove')
@click.argument('domain')
def skip_remove(domain):
    """Remove a sender domain from the skip list."""
    store = SkipListStore(get_database())
    if store.remove(domain):
        click.secho(f"✓ Removed {domain} from the skip list", fg='green')
    else:
        click.secho(f"✗ {domain} is not on the skip list", fg='yellow')


@skip.command('list')
def skip_list():
    """List skipped sender domains."""
    entries = SkipListStore(get_database()).list()
    if not entries:
        click.echo("\nSkip list is empty")
        return

    click.echo(f"\nSkipped senders: {len(entries)}")
    click.echo("=" * 60)
    for entry in entries:
        click.echo(f"\n  {entry.domain} ({entry.sender_name})")
        click.echo(f"  Skipped: {entry.skipped_at:%Y-%m-%d %H:%M}")
        if entry.reason:
            click.echo(f"  Reason: {entry.reason}")
    click.echo("\n" + "=" * 60)
